"""
Collaborator protocols consumed by the check-in core.

Implementations live outside the pure core: ``checkin_services.sql_store``
provides a SQLAlchemy-backed reference implementation of all four.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Protocol

from checkin_kernel.domain.checkin_state import CheckInApprovalRequest
from checkin_kernel.domain.values import BookingSnapshot, ChargeRate


class BookingRepository(Protocol):
    """Reads booking records and persists revised billing inputs."""

    def get_booking(self, booking_id: str) -> BookingSnapshot | None:
        """Return the booking, or None if it does not exist."""
        ...

    def save_inputs(self, booking: BookingSnapshot) -> None:
        """Persist selections and readings.

        Must raise ``BookingLockedError`` once the booking is approved.
        """
        ...


class ChargeRateLookup(Protocol):
    """Returns at most one charge rate per party and flight type."""

    def aircraft_rate(self, aircraft_id: str, flight_type_id: str) -> ChargeRate | None:
        ...

    def instructor_rate(self, instructor_id: str, flight_type_id: str) -> ChargeRate | None:
        ...


class TaxRateProvider(Protocol):
    """Supplies the organisation's current default tax rate."""

    def default_tax_rate(self) -> Decimal | None:
        """Decimal fraction (0.15 for 15%), or None when not configured."""
        ...


class InvoiceGateway(Protocol):
    """Single atomic invoice-creation boundary."""

    def create_checkin_invoice(self, request: CheckInApprovalRequest) -> str:
        """Create the invoice and lock the booking; return the invoice id.

        Raises ``InvoiceCreationError`` (or another ``CheckInError``) when
        nothing was written.
        """
        ...
