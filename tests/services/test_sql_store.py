"""
Tests for SqlCheckInStore against in-memory SQLite.

Covers snapshot conversion, rate lookup conflicts, the default tax rate,
atomic invoice creation with the booking stamp, and the approved-booking
lock enforced by the ORM listeners.
"""

from dataclasses import replace
from datetime import date, datetime, timezone
from decimal import Decimal

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from checkin_kernel.domain.checkin_state import (
    BlockCode,
    CheckInApprovalRequest,
    CheckInState,
    InputChanges,
)
from checkin_kernel.domain.values import (
    BookingSnapshot,
    BookingStatus,
    ChargeBasis,
    FlightContext,
    InstructionType,
    InvoiceLineItem,
)
from checkin_kernel.exceptions import (
    BookingLockedError,
    BookingNotFoundError,
    BookingSaveError,
    ChargeRateConflictError,
    InvoiceAlreadyLinkedError,
)
from checkin_kernel.models import (
    BookingModel,
    ChargeRateModel,
    InvoiceItemModel,
    InvoiceModel,
    RatePartyType,
    TaxRateModel,
)
from checkin_services.checkin_service import CheckInService
from checkin_services.rate_lookup import CachedChargeRateLookup
from checkin_services import sql_store
from checkin_services.sql_store import SqlCheckInStore

from tests.builders import make_readings

APPROVED_AT = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


def _seed(session):
    session.add(BookingModel(
        id="booking-1",
        member_id="member-1",
        aircraft_id="aircraft-1",
        instructor_id="instructor-1",
        flight_type_id="flight-type-1",
        instruction_type="dual",
        aircraft_label="ZK-ABC",
        instructor_label="Jo Smith",
        hobbs_start=Decimal("100.0"),
        hobbs_end=Decimal("102.0"),
    ))
    session.add(ChargeRateModel(
        party_type=RatePartyType.AIRCRAFT.value,
        party_id="aircraft-1",
        flight_type_id="flight-type-1",
        rate_per_hour=Decimal("250.00"),
        charge_hobbs=True,
    ))
    session.add(ChargeRateModel(
        party_type=RatePartyType.INSTRUCTOR.value,
        party_id="instructor-1",
        flight_type_id="flight-type-1",
        rate_per_hour=Decimal("80.00"),
        charge_hobbs=True,
    ))
    session.add(TaxRateModel(name="GST", rate=Decimal("0.15"), is_default=True))
    session.commit()


def _request(booking_id="booking-1"):
    return CheckInApprovalRequest(
        booking_id=booking_id,
        member_id="member-1",
        items=(
            InvoiceLineItem(
                description="Aircraft hire (ZK-ABC)",
                quantity=Decimal("2.0"),
                unit_price=Decimal("250.00"),
                tax_rate=Decimal("0.15"),
            ),
        ),
        tax_rate=Decimal("0.15"),
        due_date=date(2024, 1, 8),
        reference="CHK-20240101-BOOKING-",
        notes=None,
        approved_at=APPROVED_AT,
        draft_signature="a" * 64,
        billing_basis=ChargeBasis.HOBBS,
        billing_hours=Decimal("2.0"),
        dual_time=Decimal("2.0"),
        solo_time=Decimal("0.0"),
        flight=FlightContext(
            aircraft_id="aircraft-1",
            instructor_id="instructor-1",
            flight_type_id="flight-type-1",
            instruction_type=InstructionType.DUAL,
        ),
        readings=make_readings(hobbs_start="100.0", hobbs_end="102.0"),
    )


def _failing_write(model, booking):
    raise OperationalError("UPDATE bookings", {}, Exception("disk I/O error"))


@pytest.fixture
def store(session):
    _seed(session)
    return SqlCheckInStore(session)


# =============================================================================
# BookingRepository
# =============================================================================


class TestBookings:

    def test_snapshot_conversion(self, store):
        booking = store.get_booking("booking-1")

        assert booking.id == "booking-1"
        assert booking.status == BookingStatus.FLYING
        assert booking.booking_type == "flight"
        assert booking.flight.instruction_type == InstructionType.DUAL
        assert booking.flight.aircraft_label == "ZK-ABC"
        assert booking.readings.hobbs_end == Decimal("102.0")
        assert booking.readings.tach_start is None
        assert not booking.is_approved

    def test_missing_booking(self, store):
        assert store.get_booking("missing") is None

    def test_save_inputs(self, store, session):
        booking = store.get_booking("booking-1")
        revised = replace(booking, readings=replace(booking.readings, hobbs_end=Decimal("102.5")))

        store.save_inputs(revised)

        assert session.get(BookingModel, "booking-1").hobbs_end == Decimal("102.5")

    def test_save_inputs_without_commit_can_be_rolled_back(self, store, session):
        booking = store.get_booking("booking-1")
        caller_owned = SqlCheckInStore(session, auto_commit=False)

        caller_owned.save_inputs(replace(booking, readings=replace(booking.readings, hobbs_end=Decimal("109.0"))))
        session.rollback()

        assert session.get(BookingModel, "booking-1").hobbs_end == Decimal("102.0")

    def test_save_inputs_storage_failure(self, store, monkeypatch):
        booking = store.get_booking("booking-1")
        monkeypatch.setattr(sql_store, "_write_inputs", _failing_write)

        with pytest.raises(BookingSaveError) as exc_info:
            store.save_inputs(booking)

        assert exc_info.value.booking_id == "booking-1"
        assert "disk I/O error" in exc_info.value.reason

    def test_save_inputs_unknown_booking(self, store):
        with pytest.raises(BookingNotFoundError):
            store.save_inputs(BookingSnapshot(id="missing"))


# =============================================================================
# Rates
# =============================================================================


class TestRates:

    def test_aircraft_rate(self, store):
        rate = store.aircraft_rate("aircraft-1", "flight-type-1")
        assert rate.rate_per_hour == Decimal("250.00")
        assert rate.charge_hobbs is True
        assert rate.charge_tacho is False

    def test_absent_rate(self, store):
        assert store.instructor_rate("instructor-1", "other-type") is None

    def test_duplicate_rates_conflict(self, store, session):
        session.add(ChargeRateModel(
            party_type=RatePartyType.AIRCRAFT.value,
            party_id="aircraft-1",
            flight_type_id="flight-type-1",
            rate_per_hour=Decimal("260.00"),
            charge_tacho=True,
        ))
        session.commit()

        with pytest.raises(ChargeRateConflictError):
            store.aircraft_rate("aircraft-1", "flight-type-1")

    def test_default_tax_rate(self, store):
        assert store.default_tax_rate() == Decimal("0.15")

    def test_inactive_default_ignored(self, session):
        session.add(TaxRateModel(name="Old", rate=Decimal("0.125"), is_default=True, is_active=False))
        session.commit()
        assert SqlCheckInStore(session).default_tax_rate() is None


# =============================================================================
# InvoiceGateway
# =============================================================================


class TestCreateCheckinInvoice:

    def test_creates_invoice_and_stamps_booking(self, store, session):
        invoice_id = store.create_checkin_invoice(_request())

        invoice = session.get(InvoiceModel, invoice_id)
        assert invoice.booking_id == "booking-1"
        assert invoice.reference == "CHK-20240101-BOOKING-"
        assert invoice.issue_date == date(2024, 1, 1)
        assert invoice.subtotal == Decimal("500.00")
        assert invoice.tax_total == Decimal("75.00")
        assert invoice.total_amount == Decimal("575.00")
        assert len(invoice.items) == 1
        assert invoice.items[0].line_total == Decimal("575.00")

        booking = session.get(BookingModel, "booking-1")
        assert booking.checkin_invoice_id == invoice_id
        assert booking.checkin_approved_at is not None
        assert booking.billing_basis == "hobbs"
        assert booking.billing_hours == Decimal("2.0")
        assert booking.checkin_draft_signature == "a" * 64

    def test_second_invoice_refused(self, store, session):
        store.create_checkin_invoice(_request())

        with pytest.raises(InvoiceAlreadyLinkedError):
            store.create_checkin_invoice(_request())

        assert session.scalar(select(func.count()).select_from(InvoiceModel)) == 1

    def test_unknown_booking_writes_nothing(self, store, session):
        with pytest.raises(BookingNotFoundError):
            store.create_checkin_invoice(_request("missing"))

        assert session.scalar(select(func.count()).select_from(InvoiceModel)) == 0
        assert session.scalar(select(func.count()).select_from(InvoiceItemModel)) == 0

    def test_invoice_logged(self, store, captured_logs):
        invoice_id = store.create_checkin_invoice(_request())

        created = [r for r in captured_logs() if r["message"] == "checkin_invoice_created"]
        assert created[0]["invoice_id"] == invoice_id
        assert created[0]["item_count"] == 1


# =============================================================================
# Approved-booking lock
# =============================================================================


class TestApprovedBookingLock:

    def test_direct_reading_write_refused(self, store, session):
        store.create_checkin_invoice(_request())
        booking = session.get(BookingModel, "booking-1")

        booking.hobbs_end = Decimal("110.0")
        with pytest.raises(BookingLockedError) as exc_info:
            session.flush()
        assert exc_info.value.field == "hobbs_end"
        session.rollback()

    def test_status_stays_mutable(self, store, session):
        store.create_checkin_invoice(_request())
        booking = session.get(BookingModel, "booking-1")

        booking.status = BookingStatus.COMPLETE.value
        session.flush()

    def test_delete_refused(self, store, session):
        store.create_checkin_invoice(_request())
        booking = session.get(BookingModel, "booking-1")

        session.delete(booking)
        with pytest.raises(BookingLockedError):
            session.flush()
        session.rollback()

    def test_save_inputs_refused(self, store):
        store.create_checkin_invoice(_request())
        booking = store.get_booking("booking-1")

        with pytest.raises(BookingLockedError):
            store.save_inputs(booking)


# =============================================================================
# End to end
# =============================================================================


class TestServiceOverSqlStore:

    def test_calculate_and_approve(self, store, session, deterministic_clock):
        service = CheckInService(
            bookings=store,
            rates=CachedChargeRateLookup(store, deterministic_clock),
            tax_rates=store,
            invoices=store,
            clock=deterministic_clock,
        )

        draft = service.calculate("booking-1").draft
        assert draft.totals.total_amount == Decimal("759.00")

        outcome = service.approve("booking-1", draft)
        assert outcome.ok

        invoice = session.get(InvoiceModel, outcome.invoice_id)
        assert invoice.total_amount == Decimal("759.00")
        assert [item.position for item in invoice.items] == [0, 1]

        status = service.status("booking-1", draft)
        assert status.state == CheckInState.APPROVED

        again = service.approve("booking-1", draft)
        assert again.blocked.code == BlockCode.ALREADY_APPROVED
        assert session.scalar(select(func.count()).select_from(InvoiceModel)) == 1

    def test_revise_storage_failure_is_blocked(self, store, deterministic_clock, monkeypatch):
        service = CheckInService(
            bookings=store,
            rates=store,
            tax_rates=store,
            invoices=store,
            clock=deterministic_clock,
        )
        monkeypatch.setattr(sql_store, "_write_inputs", _failing_write)

        outcome = service.revise("booking-1", InputChanges(
            readings=make_readings(hobbs_start="100.0", hobbs_end="102.5"),
        ))

        assert outcome.blocked.code == BlockCode.BOOKING_SAVE_FAILED
        assert "disk I/O error" in outcome.blocked.message
