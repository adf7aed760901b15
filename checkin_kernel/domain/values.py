"""
Check-in value objects (``checkin_kernel.domain.values``).

Responsibility
--------------
Immutable value objects shared by every layer: charge rates, meter readings,
flight context, the booking snapshot, split results, invoice line items and
the draft calculation.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  No imports from
``db/``, ``models/`` or outer layers.

Invariants enforced
-------------------
* All hours and money are ``Decimal``; floats are rejected at construction.
* ``SplitResult.total == dual + solo`` whenever ``error`` is None.
* ``DraftCalculation`` is never mutated; edits produce a new instance via
  ``dataclasses.replace``.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import datetime
from decimal import Decimal
from enum import Enum

ZERO_HOURS = Decimal("0.0")
ZERO_MONEY = Decimal("0.00")


class ChargeBasis(str, Enum):
    """Meter a rate is billed against."""

    HOBBS = "hobbs"
    TACHO = "tacho"
    AIRSWITCH = "airswitch"


class InstructionType(str, Enum):
    """Instruction type of a flight type."""

    TRIAL = "trial"
    DUAL = "dual"
    SOLO = "solo"


class BookingStatus(str, Enum):
    """Booking lifecycle status as stored by the scheduler."""

    UNCONFIRMED = "unconfirmed"
    CONFIRMED = "confirmed"
    BRIEFING = "briefing"
    FLYING = "flying"
    COMPLETE = "complete"
    CANCELLED = "cancelled"


def _require_decimal(value: Decimal | None, name: str) -> None:
    if value is not None and not isinstance(value, Decimal):
        raise TypeError(f"{name} must be Decimal, not {type(value).__name__}")


@dataclass(frozen=True)
class ChargeRate:
    """
    Hourly charge rate for an aircraft or instructor on a flight type.

    ``rate_per_hour`` is tax-exclusive.  Exactly one basis flag is intended
    to be true, but stored data does not always honour that; see
    ``checkin_engines.charge_basis.resolve_basis``.
    """

    id: str
    rate_per_hour: Decimal
    charge_hobbs: bool = False
    charge_tacho: bool = False
    charge_airswitch: bool = False

    def __post_init__(self) -> None:
        _require_decimal(self.rate_per_hour, "rate_per_hour")


@dataclass(frozen=True)
class BasisReadings:
    """Readings for one basis: start, end (dual end when split) and solo end."""

    start: Decimal | None
    end: Decimal | None
    solo_end: Decimal | None = None


@dataclass(frozen=True)
class MeterReadings:
    """
    Raw meter readings captured at check-in.

    When a dual+solo split is active, ``*_end`` is the reading at the end of
    the dual portion and ``solo_end_*`` is the final reading.  Airswitch has
    no solo-end reading.
    """

    hobbs_start: Decimal | None = None
    hobbs_end: Decimal | None = None
    tach_start: Decimal | None = None
    tach_end: Decimal | None = None
    airswitch_start: Decimal | None = None
    airswitch_end: Decimal | None = None
    solo_end_hobbs: Decimal | None = None
    solo_end_tach: Decimal | None = None

    def __post_init__(self) -> None:
        for f in fields(self):
            _require_decimal(getattr(self, f.name), f.name)

    def for_basis(self, basis: ChargeBasis) -> BasisReadings:
        """Readings relevant to ``basis``."""
        if basis == ChargeBasis.HOBBS:
            return BasisReadings(self.hobbs_start, self.hobbs_end, self.solo_end_hobbs)
        if basis == ChargeBasis.TACHO:
            return BasisReadings(self.tach_start, self.tach_end, self.solo_end_tach)
        return BasisReadings(self.airswitch_start, self.airswitch_end, None)

    def as_dict(self) -> dict[str, Decimal | None]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass(frozen=True)
class FlightContext:
    """
    Selections made for the flight.

    ``aircraft_label`` / ``instructor_label`` are display-only (registration,
    instructor name) and never affect price.
    """

    aircraft_id: str | None = None
    instructor_id: str | None = None
    flight_type_id: str | None = None
    instruction_type: InstructionType | None = None
    aircraft_label: str | None = None
    instructor_label: str | None = None


@dataclass(frozen=True)
class BookingSnapshot:
    """The booking record as read from storage."""

    id: str
    booking_type: str = "flight"
    status: BookingStatus = BookingStatus.FLYING
    member_id: str | None = None
    flight: FlightContext = field(default_factory=FlightContext)
    has_solo_at_end: bool = False
    readings: MeterReadings = field(default_factory=MeterReadings)
    checkin_approved_at: datetime | None = None
    checkin_invoice_id: str | None = None

    @property
    def is_approved(self) -> bool:
        return self.checkin_approved_at is not None


@dataclass(frozen=True)
class SplitResult:
    """Dual/solo split of billable hours. ``error`` blocks calculation."""

    total: Decimal
    dual: Decimal
    solo: Decimal
    error: str | None = None

    @classmethod
    def failed(cls, error: str) -> SplitResult:
        return cls(total=ZERO_HOURS, dual=ZERO_HOURS, solo=ZERO_HOURS, error=error)

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class InvoiceLineItem:
    """
    A single priced line on the check-in invoice.

    ``unit_price`` is tax-exclusive; ``quantity`` is in hours.
    """

    description: str
    quantity: Decimal
    unit_price: Decimal
    tax_rate: Decimal
    chargeable_id: str | None = None
    notes: str | None = None

    def __post_init__(self) -> None:
        _require_decimal(self.quantity, "quantity")
        _require_decimal(self.unit_price, "unit_price")
        _require_decimal(self.tax_rate, "tax_rate")


@dataclass(frozen=True)
class LineAmounts:
    """Calculated amounts for one line, each rounded to two places."""

    amount: Decimal
    tax_amount: Decimal
    rate_inclusive: Decimal
    line_total: Decimal


@dataclass(frozen=True)
class CalculatedLine:
    """An invoice line item together with its calculated amounts."""

    item: InvoiceLineItem
    amounts: LineAmounts


@dataclass(frozen=True)
class InvoiceTotals:
    """Invoice aggregates: sums of the per-line rounded values."""

    subtotal: Decimal = ZERO_MONEY
    tax_total: Decimal = ZERO_MONEY
    total_amount: Decimal = ZERO_MONEY


@dataclass(frozen=True)
class DraftCalculation:
    """
    Priced draft produced by "calculate" and consumed by "approve".

    ``signature`` fingerprints the inputs the draft was computed from; it is
    never changed by line edits.
    """

    signature: str
    calculated_at: datetime
    billing_basis: ChargeBasis
    billing_hours: Decimal
    dual_time: Decimal
    solo_time: Decimal
    lines: tuple[CalculatedLine, ...]
    totals: InvoiceTotals
    instructor_basis_conflict: bool = False
    warnings: tuple[str, ...] = ()
    edited: bool = False

    @property
    def items(self) -> tuple[InvoiceLineItem, ...]:
        return tuple(line.item for line in self.lines)


@dataclass(frozen=True)
class CheckInInputs:
    """Everything the pure core needs to evaluate one booking."""

    booking: BookingSnapshot | None
    aircraft_rate: ChargeRate | None = None
    instructor_rate: ChargeRate | None = None
    tax_rate: Decimal = ZERO_MONEY

    def __post_init__(self) -> None:
        _require_decimal(self.tax_rate, "tax_rate")
