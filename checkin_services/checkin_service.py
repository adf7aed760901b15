"""
CheckInService -- orchestrates the check-in state machine over its collaborators.

Responsibility:
    Loads a booking, its charge rates and the tax rate, hands them to the
    pure state machine in ``checkin_engines.checkin_flow`` and carries out
    the side effects it permits: persisting revised inputs and submitting
    the approval request.

Architecture position:
    Services -- imperative shell around the pure engines.  The only layer
    that talks to collaborators (ports) and reads the clock.

Invariants enforced:
    - Every operation returns an outcome value; collaborator exceptions
      (``CheckInError``) are converted to ``Blocked`` here and never escape.
    - Approval prices against live rates and the live tax rate, never the
      rate cache, and re-validates the draft before submitting.
    - The outcome reports APPROVED only after the invoicing collaborator
      has returned an invoice id.  A failed submission is reported verbatim
      and never retried.

Failure modes:
    - ``Blocked(INVOICE_CREATION_FAILED, <collaborator message>)`` when the
      invoicing collaborator raises.
    - ``Blocked(CONFIGURATION_ERROR, ...)`` when stored rates conflict.
    - Exceptions that are not ``CheckInError`` propagate unchanged.
"""

from __future__ import annotations

import time
from datetime import date, timedelta
from decimal import Decimal
from typing import Any

from checkin_config.schema import CheckInSettings
from checkin_engines.charge_basis import resolve_basis
from checkin_engines.checkin_flow import (
    DescriptionTemplates,
    apply_input_changes,
    calculate_draft,
    check_approval,
    derive_state,
    edit_draft_line,
    evaluate,
    revise_inputs,
)
from checkin_engines.signature import compute_signature
from checkin_engines.time_arithmetic import to_decimal
from checkin_kernel.domain.checkin_state import (
    ApprovalOutcome,
    BlockCode,
    Blocked,
    CheckInApprovalRequest,
    CheckInState,
    CheckInStatus,
    DraftOutcome,
    InputChanges,
    RevisionOutcome,
)
from checkin_kernel.domain.clock import Clock
from checkin_kernel.domain.ports import (
    BookingRepository,
    ChargeRateLookup,
    InvoiceGateway,
    TaxRateProvider,
)
from checkin_kernel.domain.values import BookingSnapshot, CheckInInputs, DraftCalculation
from checkin_kernel.exceptions import (
    BookingLockedError,
    BookingNotFoundError,
    BookingSaveError,
    CheckInError,
    ConfigurationError,
    InvoiceAlreadyLinkedError,
)
from checkin_kernel.logging_config import LogContext, get_logger
from checkin_services.rate_lookup import CachedChargeRateLookup

logger = get_logger("services.checkin")


def blocked_from_error(
    exc: CheckInError,
    default: BlockCode = BlockCode.CONFIGURATION_ERROR,
) -> Blocked:
    """Translate a collaborator exception into a blocking reason."""
    if isinstance(exc, BookingNotFoundError):
        code = BlockCode.BOOKING_NOT_FOUND
    elif isinstance(exc, BookingLockedError):
        code = BlockCode.BOOKING_LOCKED
    elif isinstance(exc, BookingSaveError):
        code = BlockCode.BOOKING_SAVE_FAILED
    elif isinstance(exc, InvoiceAlreadyLinkedError):
        code = BlockCode.INVOICE_ALREADY_EXISTS
    elif isinstance(exc, ConfigurationError):
        code = BlockCode.CONFIGURATION_ERROR
    else:
        code = default
    return Blocked(code=code, message=str(exc))


class CheckInService:
    """
    Check-in billing for one organisation.

    Usage:
        service = CheckInService(
            bookings=store, rates=CachedChargeRateLookup(store, clock),
            tax_rates=store, invoices=store, clock=clock,
            settings=get_active_config(),
        )
        outcome = service.calculate(booking_id)
        if outcome.ok:
            approval = service.approve(booking_id, outcome.draft)
    """

    def __init__(
        self,
        bookings: BookingRepository,
        rates: ChargeRateLookup,
        tax_rates: TaxRateProvider,
        invoices: InvoiceGateway,
        clock: Clock,
        settings: CheckInSettings | None = None,
        live_rates: ChargeRateLookup | None = None,
    ):
        self._bookings = bookings
        self._rates = rates
        self._tax_rates = tax_rates
        self._invoices = invoices
        self._clock = clock
        self._settings = settings or CheckInSettings(config_id="builtin", version=1)
        if live_rates is None:
            live_rates = rates.source if isinstance(rates, CachedChargeRateLookup) else rates
        self._live_rates = live_rates
        self._templates = DescriptionTemplates(
            aircraft=self._settings.descriptions.aircraft,
            instructor=self._settings.descriptions.instructor,
        )

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def _tax_rate(self) -> Decimal:
        rate = self._tax_rates.default_tax_rate()
        if rate is None:
            logger.info("tax_rate_defaulted", extra={
                "default_tax_rate": str(self._settings.default_tax_rate),
            })
            return self._settings.default_tax_rate
        return rate

    def _inputs_for(self, booking: BookingSnapshot, rates: ChargeRateLookup) -> CheckInInputs:
        flight = booking.flight
        aircraft_rate = None
        instructor_rate = None
        if flight.aircraft_id and flight.flight_type_id:
            aircraft_rate = rates.aircraft_rate(flight.aircraft_id, flight.flight_type_id)
        if flight.instructor_id and flight.flight_type_id:
            instructor_rate = rates.instructor_rate(flight.instructor_id, flight.flight_type_id)
        return CheckInInputs(
            booking=booking,
            aircraft_rate=aircraft_rate,
            instructor_rate=instructor_rate,
            tax_rate=self._tax_rate(),
        )

    def _load(
        self,
        booking_id: str,
        live: bool = False,
    ) -> tuple[CheckInInputs | None, Blocked | None]:
        try:
            booking = self._bookings.get_booking(booking_id)
            if booking is None:
                raise BookingNotFoundError(booking_id)
            inputs = self._inputs_for(booking, self._live_rates if live else self._rates)
        except CheckInError as exc:
            logger.warning("checkin_inputs_unavailable", extra={
                "error_code": exc.code,
                "reason": str(exc),
            })
            return None, blocked_from_error(exc)
        return inputs, None

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def status(self, booking_id: str, draft: DraftCalculation | None = None) -> CheckInStatus:
        """Evaluate the booking's current inputs against ``draft``."""
        with LogContext.bind(booking_id=booking_id):
            inputs, blocked = self._load(booking_id)
            if blocked is not None:
                return CheckInStatus(
                    state=CheckInState.UNCALCULATED,
                    current_signature=None,
                    draft=draft,
                    calculate_blocked=blocked,
                    approval_blocked=blocked,
                )
            status = evaluate(inputs, draft)
            logger.debug("checkin_status_evaluated", extra={
                "state": status.state.value,
                "can_approve": status.can_approve,
            })
            return status

    def calculate(self, booking_id: str) -> DraftOutcome:
        """Calculate a fresh draft for the booking."""
        with LogContext.bind(booking_id=booking_id):
            logger.info("draft_calculation_started")
            inputs, blocked = self._load(booking_id)
            if blocked is not None:
                return DraftOutcome(blocked=blocked)
            return calculate_draft(inputs, self._clock.now(), self._templates)

    def edit_line(
        self,
        draft: DraftCalculation | None,
        index: int,
        quantity: Any = None,
        unit_price: Any = None,
    ) -> DraftOutcome:
        """
        Patch one draft line.

        ``quantity`` / ``unit_price`` may be Decimal, int or numeric text;
        anything else is refused as an invalid line.
        """
        try:
            quantity = to_decimal(quantity, "quantity")
            unit_price = to_decimal(unit_price, "unit_price")
        except ValueError as exc:
            return DraftOutcome(blocked=Blocked(code=BlockCode.INVALID_LINE, message=str(exc)))
        signature = draft.signature if draft is not None else None
        with LogContext.bind(draft_signature=signature):
            return edit_draft_line(draft, index, quantity=quantity, unit_price=unit_price)

    def revise(self, booking_id: str, changes: InputChanges) -> RevisionOutcome:
        """
        Apply an input patch and persist it.

        Readings irrelevant to the newly selected rates' bases are cleared
        before saving.
        """
        with LogContext.bind(booking_id=booking_id):
            try:
                booking = self._bookings.get_booking(booking_id)
                if booking is None:
                    raise BookingNotFoundError(booking_id)

                applied = apply_input_changes(booking, changes)
                if not applied.ok:
                    return applied

                inputs = self._inputs_for(applied.booking, self._rates)
                outcome = revise_inputs(
                    booking,
                    changes,
                    resolve_basis(inputs.aircraft_rate),
                    resolve_basis(inputs.instructor_rate),
                )
                if not outcome.ok:
                    return outcome

                self._bookings.save_inputs(outcome.booking)
            except CheckInError as exc:
                logger.warning("checkin_revision_refused", extra={
                    "error_code": exc.code,
                    "reason": str(exc),
                })
                return RevisionOutcome(blocked=blocked_from_error(exc))

            logger.info("checkin_inputs_revised")
            return outcome

    def approve(
        self,
        booking_id: str,
        draft: DraftCalculation | None,
        due_date: date | None = None,
        reference: str | None = None,
        notes: str | None = None,
    ) -> ApprovalOutcome:
        """
        Approve the draft and raise the check-in invoice.

        Re-validates against live rates and tax; submits exactly the draft's
        items.  Never retries a failed submission.
        """
        signature = draft.signature if draft is not None else None
        with LogContext.bind(booking_id=booking_id, draft_signature=signature):
            logger.info("checkin_approval_started")
            t0 = time.monotonic()

            inputs, blocked = self._load(booking_id, live=True)
            if blocked is not None:
                return ApprovalOutcome(state=CheckInState.UNCALCULATED, blocked=blocked)

            current_signature = compute_signature(inputs)
            state = derive_state(inputs.booking, draft, current_signature)
            blocked = check_approval(inputs, draft, current_signature)
            if blocked is not None:
                logger.info("checkin_approval_blocked", extra={
                    "state": state.value,
                    "code": blocked.code.value,
                    "reason": blocked.message,
                })
                return ApprovalOutcome(state=state, blocked=blocked)

            request = self._approval_request(inputs, draft, due_date, reference, notes)
            try:
                invoice_id = self._invoices.create_checkin_invoice(request)
            except CheckInError as exc:
                logger.error(
                    "checkin_approval_failed",
                    extra={"error_code": exc.code, "reason": str(exc)},
                    exc_info=True,
                )
                return ApprovalOutcome(
                    state=state,
                    request=request,
                    blocked=Blocked(code=BlockCode.INVOICE_CREATION_FAILED, message=str(exc)),
                )

            logger.info("checkin_approval_completed", extra={
                "invoice_id": invoice_id,
                "reference": request.reference,
                "total_amount": str(draft.totals.total_amount),
                "duration_ms": round((time.monotonic() - t0) * 1000, 2),
            })
            return ApprovalOutcome(
                state=CheckInState.APPROVED,
                invoice_id=invoice_id,
                approved_at=request.approved_at,
                request=request,
            )

    def _approval_request(
        self,
        inputs: CheckInInputs,
        draft: DraftCalculation,
        due_date: date | None,
        reference: str | None,
        notes: str | None,
    ) -> CheckInApprovalRequest:
        booking = inputs.booking
        approved_at = self._clock.now()
        if due_date is None:
            due_date = approved_at.date() + timedelta(days=self._settings.payment_terms_days)
        if not reference:
            reference = (
                f"{self._settings.invoice_reference_prefix}-"
                f"{approved_at:%Y%m%d}-{booking.id[:8].upper()}"
            )
        return CheckInApprovalRequest(
            booking_id=booking.id,
            member_id=booking.member_id,
            items=draft.items,
            tax_rate=inputs.tax_rate,
            due_date=due_date,
            reference=reference,
            notes=notes,
            approved_at=approved_at,
            draft_signature=draft.signature,
            billing_basis=draft.billing_basis,
            billing_hours=draft.billing_hours,
            dual_time=draft.dual_time,
            solo_time=draft.solo_time,
            flight=booking.flight,
            readings=booking.readings,
        )
