"""
Module: checkin_kernel.models.tax_rate
Responsibility: ORM persistence for the organisation's tax rates.
Architecture position: Kernel > Models.  May import from db/base.py only.
"""

from decimal import Decimal

from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column

from checkin_kernel.db.base import TrackedBase


class TaxRateModel(TrackedBase):
    """A named tax rate; ``rate`` is a fraction (0.15 for 15%)."""

    __tablename__ = "tax_rates"

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    rate: Mapped[Decimal] = mapped_column(nullable=False)
    is_default: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
