"""
Check-in settings schema.

Frozen dataclasses parsed from YAML by ``checkin_config.loader``.  Runtime
code receives a ``CheckInSettings`` from ``get_active_config()`` and never
reads YAML itself.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from checkin_engines.draft_invoice import (
    DEFAULT_AIRCRAFT_DESCRIPTION,
    DEFAULT_INSTRUCTOR_DESCRIPTION,
)


@dataclass(frozen=True)
class BillingSettings:
    """Invoice defaults applied at approval."""

    default_tax_rate: Decimal = Decimal("0.15")
    payment_terms_days: int = 7
    invoice_reference_prefix: str = "CHK"


@dataclass(frozen=True)
class RateSettings:
    """Charge-rate lookup behaviour."""

    cache_ttl_seconds: int = 60


@dataclass(frozen=True)
class DescriptionSettings:
    """Line description templates; ``{label}`` is substituted."""

    aircraft: str = DEFAULT_AIRCRAFT_DESCRIPTION
    instructor: str = DEFAULT_INSTRUCTOR_DESCRIPTION


@dataclass(frozen=True)
class CheckInSettings:
    """The complete, validated settings artifact."""

    config_id: str
    version: int
    billing: BillingSettings = field(default_factory=BillingSettings)
    rates: RateSettings = field(default_factory=RateSettings)
    descriptions: DescriptionSettings = field(default_factory=DescriptionSettings)
    checksum: str = ""

    @property
    def default_tax_rate(self) -> Decimal:
        return self.billing.default_tax_rate

    @property
    def payment_terms_days(self) -> int:
        return self.billing.payment_terms_days

    @property
    def rate_cache_ttl_seconds(self) -> int:
        return self.rates.cache_ttl_seconds

    @property
    def invoice_reference_prefix(self) -> str:
        return self.billing.invoice_reference_prefix
