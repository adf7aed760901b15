"""
Module: checkin_kernel.models.invoice
Responsibility: ORM persistence for check-in invoices and their line items.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - One check-in invoice per booking (uq_invoice_booking).
    - Item amounts are stored exactly as calculated on the approved draft;
      invoice totals are sums of the stored per-line values.
"""

from datetime import date
from decimal import Decimal

from sqlalchemy import Date, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from checkin_kernel.db.base import TrackedBase


class InvoiceModel(TrackedBase):
    """Invoice raised when a booking's check-in is approved."""

    __tablename__ = "invoices"

    __table_args__ = (
        UniqueConstraint("booking_id", name="uq_invoice_booking"),
    )

    booking_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("bookings.id"),
        nullable=False,
    )
    member_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    reference: Mapped[str] = mapped_column(String(50), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    issue_date: Mapped[date] = mapped_column(Date, nullable=False)
    due_date: Mapped[date] = mapped_column(Date, nullable=False)
    tax_rate: Mapped[Decimal] = mapped_column(nullable=False)
    subtotal: Mapped[Decimal] = mapped_column(nullable=False)
    tax_total: Mapped[Decimal] = mapped_column(nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    items: Mapped[list["InvoiceItemModel"]] = relationship(
        back_populates="invoice",
        order_by="InvoiceItemModel.position",
        cascade="all, delete-orphan",
    )


class InvoiceItemModel(TrackedBase):
    """A priced line on a check-in invoice."""

    __tablename__ = "invoice_items"

    invoice_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("invoices.id"),
        nullable=False,
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    chargeable_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    description: Mapped[str] = mapped_column(nullable=False)
    quantity: Mapped[Decimal] = mapped_column(nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(nullable=False)
    tax_rate: Mapped[Decimal] = mapped_column(nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    tax_amount: Mapped[Decimal] = mapped_column(nullable=False)
    rate_inclusive: Mapped[Decimal] = mapped_column(nullable=False)
    line_total: Mapped[Decimal] = mapped_column(nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    invoice: Mapped[InvoiceModel] = relationship(back_populates="items")
