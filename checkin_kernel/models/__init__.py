"""ORM models for the reference storage adapter."""

from checkin_kernel.models.booking import (
    BOOKING_BILLING_FIELDS,
    READING_COLUMNS,
    BookingModel,
)
from checkin_kernel.models.charge_rate import ChargeRateModel, RatePartyType
from checkin_kernel.models.invoice import InvoiceItemModel, InvoiceModel
from checkin_kernel.models.tax_rate import TaxRateModel

__all__ = [
    "BOOKING_BILLING_FIELDS",
    "READING_COLUMNS",
    "BookingModel",
    "ChargeRateModel",
    "InvoiceItemModel",
    "InvoiceModel",
    "RatePartyType",
    "TaxRateModel",
]
