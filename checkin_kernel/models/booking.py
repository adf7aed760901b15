"""
Module: checkin_kernel.models.booking
Responsibility: ORM persistence for flight bookings: selections, meter
    readings, the check-in markers and the billing snapshot written at
    approval.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    Once ``checkin_approved_at`` is set, every column in
    ``BOOKING_BILLING_FIELDS`` is immutable and the row cannot be deleted
    (ORM listeners in db/immutability.py raise BookingLockedError).
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import Boolean, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from checkin_kernel.db.base import TrackedBase

READING_COLUMNS: tuple[str, ...] = (
    "hobbs_start",
    "hobbs_end",
    "tach_start",
    "tach_end",
    "airswitch_start",
    "airswitch_end",
    "solo_end_hobbs",
    "solo_end_tach",
)

# Columns frozen once the check-in is approved.
BOOKING_BILLING_FIELDS: frozenset[str] = frozenset({
    "booking_type",
    "member_id",
    "aircraft_id",
    "instructor_id",
    "flight_type_id",
    "instruction_type",
    "has_solo_at_end",
    *READING_COLUMNS,
    "checkin_approved_at",
    "checkin_invoice_id",
    "billing_basis",
    "billing_hours",
    "dual_time",
    "solo_time",
    "checkin_draft_signature",
})


class BookingModel(TrackedBase):
    """
    A scheduled booking with its check-in billing state.

    ``status`` and the display labels stay mutable after approval; the
    billing inputs and markers do not.
    """

    __tablename__ = "bookings"

    __table_args__ = (
        Index("idx_booking_member", "member_id"),
        Index("idx_booking_aircraft", "aircraft_id"),
    )

    booking_type: Mapped[str] = mapped_column(String(20), nullable=False, default="flight")
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="flying")
    member_id: Mapped[str | None] = mapped_column(String(36), nullable=True)

    aircraft_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    instructor_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    flight_type_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    instruction_type: Mapped[str | None] = mapped_column(String(10), nullable=True)
    aircraft_label: Mapped[str | None] = mapped_column(nullable=True)
    instructor_label: Mapped[str | None] = mapped_column(nullable=True)

    has_solo_at_end: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    hobbs_start: Mapped[Decimal | None] = mapped_column(nullable=True)
    hobbs_end: Mapped[Decimal | None] = mapped_column(nullable=True)
    tach_start: Mapped[Decimal | None] = mapped_column(nullable=True)
    tach_end: Mapped[Decimal | None] = mapped_column(nullable=True)
    airswitch_start: Mapped[Decimal | None] = mapped_column(nullable=True)
    airswitch_end: Mapped[Decimal | None] = mapped_column(nullable=True)
    solo_end_hobbs: Mapped[Decimal | None] = mapped_column(nullable=True)
    solo_end_tach: Mapped[Decimal | None] = mapped_column(nullable=True)

    checkin_approved_at: Mapped[datetime | None] = mapped_column(nullable=True)
    checkin_invoice_id: Mapped[str | None] = mapped_column(String(36), nullable=True)

    # Billing snapshot recorded at approval
    billing_basis: Mapped[str | None] = mapped_column(String(10), nullable=True)
    billing_hours: Mapped[Decimal | None] = mapped_column(nullable=True)
    dual_time: Mapped[Decimal | None] = mapped_column(nullable=True)
    solo_time: Mapped[Decimal | None] = mapped_column(nullable=True)
    checkin_draft_signature: Mapped[str | None] = mapped_column(String(64), nullable=True)

    def __repr__(self) -> str:
        return f"<BookingModel {self.id} approved={self.checkin_approved_at is not None}>"
