"""
Module: checkin_kernel.models.charge_rate
Responsibility: ORM persistence for hourly charge rates per aircraft or
    instructor and flight type.
Architecture position: Kernel > Models.  May import from db/base.py only.

At most one rate is expected per (party_type, party_id, flight_type_id).
Stored data does not always honour that, so there is deliberately no unique
constraint; the lookup raises ChargeRateConflictError instead of guessing.
"""

from decimal import Decimal
from enum import Enum

from sqlalchemy import Boolean, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from checkin_kernel.db.base import TrackedBase


class RatePartyType(str, Enum):
    """Who a charge rate bills for."""

    AIRCRAFT = "aircraft"
    INSTRUCTOR = "instructor"


class ChargeRateModel(TrackedBase):
    """Hourly, tax-exclusive rate and its basis flags."""

    __tablename__ = "charge_rates"

    __table_args__ = (
        Index("idx_charge_rate_party", "party_type", "party_id", "flight_type_id"),
    )

    party_type: Mapped[str] = mapped_column(String(20), nullable=False)
    party_id: Mapped[str] = mapped_column(String(36), nullable=False)
    flight_type_id: Mapped[str] = mapped_column(String(36), nullable=False)
    rate_per_hour: Mapped[Decimal] = mapped_column(nullable=False)
    charge_hobbs: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    charge_tacho: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    charge_airswitch: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
