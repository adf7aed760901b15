"""
SqlCheckInStore -- SQLAlchemy reference implementation of the check-in ports.

Responsibility:
    Implements BookingRepository, ChargeRateLookup, TaxRateProvider and
    InvoiceGateway over the kernel's ORM models.  Invoice creation and the
    booking stamp happen in one transaction.

Architecture position:
    Services -- imperative shell.  Converts ORM rows to domain snapshots
    and domain requests to ORM rows; contains no billing rules beyond
    re-pricing the approved lines for storage.

Invariants enforced:
    - An approved booking never gets a second invoice
      (``InvoiceAlreadyLinkedError`` / ``BookingLockedError``).
    - ``save_inputs`` refuses approved bookings before the ORM listener
      would.
    - All-or-nothing approval: on any failure nothing is written.

Transaction boundaries:
    With ``auto_commit=True`` (default) each write commits on success and
    rolls back on failure.  With ``auto_commit=False`` the store only
    flushes and the caller owns commit/rollback.
"""

from __future__ import annotations

import time
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from checkin_engines.invoice_math import calculate_totals, price_line
from checkin_kernel.db.base import new_id
from checkin_kernel.domain.checkin_state import CheckInApprovalRequest
from checkin_kernel.domain.values import (
    BookingSnapshot,
    BookingStatus,
    ChargeRate,
    FlightContext,
    InstructionType,
    MeterReadings,
)
from checkin_kernel.exceptions import (
    BookingLockedError,
    BookingNotFoundError,
    BookingSaveError,
    ChargeRateConflictError,
    CheckInError,
    InvoiceAlreadyLinkedError,
    InvoiceCreationError,
)
from checkin_kernel.logging_config import get_logger
from checkin_kernel.models.booking import READING_COLUMNS, BookingModel
from checkin_kernel.models.charge_rate import ChargeRateModel, RatePartyType
from checkin_kernel.models.invoice import InvoiceItemModel, InvoiceModel
from checkin_kernel.models.tax_rate import TaxRateModel

logger = get_logger("services.sql_store")


def booking_to_snapshot(model: BookingModel) -> BookingSnapshot:
    """Convert a BookingModel row to a domain BookingSnapshot."""
    return BookingSnapshot(
        id=model.id,
        booking_type=model.booking_type,
        status=BookingStatus(model.status),
        member_id=model.member_id,
        flight=FlightContext(
            aircraft_id=model.aircraft_id,
            instructor_id=model.instructor_id,
            flight_type_id=model.flight_type_id,
            instruction_type=(
                InstructionType(model.instruction_type)
                if model.instruction_type
                else None
            ),
            aircraft_label=model.aircraft_label,
            instructor_label=model.instructor_label,
        ),
        has_solo_at_end=bool(model.has_solo_at_end),
        readings=MeterReadings(**{name: getattr(model, name) for name in READING_COLUMNS}),
        checkin_approved_at=model.checkin_approved_at,
        checkin_invoice_id=model.checkin_invoice_id,
    )


def _write_inputs(model: BookingModel, booking: BookingSnapshot) -> None:
    flight = booking.flight
    model.aircraft_id = flight.aircraft_id
    model.instructor_id = flight.instructor_id
    model.flight_type_id = flight.flight_type_id
    model.instruction_type = flight.instruction_type.value if flight.instruction_type else None
    model.aircraft_label = flight.aircraft_label
    model.instructor_label = flight.instructor_label
    model.has_solo_at_end = booking.has_solo_at_end
    for name, value in booking.readings.as_dict().items():
        setattr(model, name, value)


def _rate_from_model(model: ChargeRateModel) -> ChargeRate:
    return ChargeRate(
        id=model.id,
        rate_per_hour=Decimal(model.rate_per_hour),
        charge_hobbs=bool(model.charge_hobbs),
        charge_tacho=bool(model.charge_tacho),
        charge_airswitch=bool(model.charge_airswitch),
    )


class SqlCheckInStore:
    """
    Reference storage and invoicing collaborator.

    Contract:
        Receives a Session from the caller.  Reads never write.  Writes
        either commit (auto_commit) or flush within the caller's
        transaction.
    """

    def __init__(self, session: Session, auto_commit: bool = True):
        self._session = session
        self._auto_commit = auto_commit

    # ------------------------------------------------------------------
    # BookingRepository
    # ------------------------------------------------------------------

    def get_booking(self, booking_id: str) -> BookingSnapshot | None:
        model = self._session.get(BookingModel, booking_id)
        if model is None:
            return None
        return booking_to_snapshot(model)

    def save_inputs(self, booking: BookingSnapshot) -> None:
        """
        Persist selections and readings.

        Raises:
            BookingNotFoundError: If the booking does not exist.
            BookingLockedError: If the booking's check-in is approved.
            BookingSaveError: On any storage failure.
        """
        model = self._session.get(BookingModel, booking.id)
        if model is None:
            raise BookingNotFoundError(booking.id)
        if model.checkin_approved_at is not None:
            raise BookingLockedError(booking.id)

        try:
            _write_inputs(model, booking)
            self._session.flush()
            if self._auto_commit:
                self._session.commit()
        except CheckInError:
            if self._auto_commit:
                self._session.rollback()
            raise
        except SQLAlchemyError as exc:
            if self._auto_commit:
                self._session.rollback()
            logger.error(
                "booking_inputs_write_failed",
                extra={"booking_id": booking.id},
                exc_info=True,
            )
            raise BookingSaveError(booking.id, str(exc)) from exc

        logger.info("booking_inputs_saved", extra={"booking_id": booking.id})

    # ------------------------------------------------------------------
    # ChargeRateLookup
    # ------------------------------------------------------------------

    def aircraft_rate(self, aircraft_id: str, flight_type_id: str) -> ChargeRate | None:
        return self._rate(RatePartyType.AIRCRAFT, aircraft_id, flight_type_id)

    def instructor_rate(self, instructor_id: str, flight_type_id: str) -> ChargeRate | None:
        return self._rate(RatePartyType.INSTRUCTOR, instructor_id, flight_type_id)

    def _rate(
        self,
        party_type: RatePartyType,
        party_id: str,
        flight_type_id: str,
    ) -> ChargeRate | None:
        rows = self._session.scalars(
            select(ChargeRateModel).where(
                ChargeRateModel.party_type == party_type.value,
                ChargeRateModel.party_id == party_id,
                ChargeRateModel.flight_type_id == flight_type_id,
            )
        ).all()
        if not rows:
            return None
        if len(rows) > 1:
            logger.error("charge_rate_conflict", extra={
                "party_type": party_type.value,
                "party_id": party_id,
                "flight_type_id": flight_type_id,
                "count": len(rows),
            })
            raise ChargeRateConflictError(party_type.value, party_id, flight_type_id)
        return _rate_from_model(rows[0])

    # ------------------------------------------------------------------
    # TaxRateProvider
    # ------------------------------------------------------------------

    def default_tax_rate(self) -> Decimal | None:
        row = self._session.scalars(
            select(TaxRateModel)
            .where(TaxRateModel.is_default.is_(True), TaxRateModel.is_active.is_(True))
            .order_by(TaxRateModel.created_at.desc())
            .limit(1)
        ).first()
        if row is None:
            return None
        return Decimal(row.rate)

    # ------------------------------------------------------------------
    # InvoiceGateway
    # ------------------------------------------------------------------

    def create_checkin_invoice(self, request: CheckInApprovalRequest) -> str:
        """
        Create the invoice and its items and stamp the booking, atomically.

        Raises:
            BookingNotFoundError: If the booking does not exist.
            InvoiceAlreadyLinkedError: If the booking already has an invoice.
            BookingLockedError: If the booking is already approved.
            InvoiceCreationError: On any storage failure.
        """
        t0 = time.monotonic()
        try:
            invoice_id = self._create_invoice(request)
            if self._auto_commit:
                self._session.commit()
        except CheckInError:
            if self._auto_commit:
                self._session.rollback()
            raise
        except SQLAlchemyError as exc:
            if self._auto_commit:
                self._session.rollback()
            logger.error(
                "checkin_invoice_write_failed",
                extra={"booking_id": request.booking_id},
                exc_info=True,
            )
            raise InvoiceCreationError(
                request.booking_id,
                f"Failed to create check-in invoice: {exc}",
            ) from exc

        logger.info("checkin_invoice_created", extra={
            "booking_id": request.booking_id,
            "invoice_id": invoice_id,
            "item_count": len(request.items),
            "duration_ms": round((time.monotonic() - t0) * 1000, 2),
        })
        return invoice_id

    def _create_invoice(self, request: CheckInApprovalRequest) -> str:
        booking = self._session.get(BookingModel, request.booking_id, with_for_update=True)
        if booking is None:
            raise BookingNotFoundError(request.booking_id)
        if booking.checkin_invoice_id:
            raise InvoiceAlreadyLinkedError(request.booking_id, booking.checkin_invoice_id)
        if booking.checkin_approved_at is not None:
            raise BookingLockedError(request.booking_id, "checkin_approved_at")

        lines = [price_line(item) for item in request.items]
        totals = calculate_totals(lines)

        invoice = InvoiceModel(
            id=new_id(),
            booking_id=request.booking_id,
            member_id=request.member_id,
            reference=request.reference,
            issue_date=request.approved_at.date(),
            due_date=request.due_date,
            tax_rate=request.tax_rate,
            subtotal=totals.subtotal,
            tax_total=totals.tax_total,
            total_amount=totals.total_amount,
            notes=request.notes,
        )
        for position, line in enumerate(lines):
            item = line.item
            invoice.items.append(InvoiceItemModel(
                position=position,
                chargeable_id=item.chargeable_id,
                description=item.description,
                quantity=item.quantity,
                unit_price=item.unit_price,
                tax_rate=item.tax_rate,
                amount=line.amounts.amount,
                tax_amount=line.amounts.tax_amount,
                rate_inclusive=line.amounts.rate_inclusive,
                line_total=line.amounts.line_total,
                notes=item.notes,
            ))
        self._session.add(invoice)

        # Approval stamp: inputs as billed, markers and billing snapshot
        _write_inputs(booking, BookingSnapshot(
            id=request.booking_id,
            flight=request.flight,
            has_solo_at_end=booking.has_solo_at_end,
            readings=request.readings,
        ))
        booking.checkin_approved_at = request.approved_at
        booking.checkin_invoice_id = invoice.id
        booking.billing_basis = request.billing_basis.value
        booking.billing_hours = request.billing_hours
        booking.dual_time = request.dual_time
        booking.solo_time = request.solo_time
        booking.checkin_draft_signature = request.draft_signature

        self._session.flush()
        return invoice.id
