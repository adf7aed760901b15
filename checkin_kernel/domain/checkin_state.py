"""
Check-in state types (``checkin_kernel.domain.checkin_state``).

Responsibility
--------------
The explicit check-in state tag, its transition table, blocking reasons and
the outcome values returned by every state-machine operation.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  May import only
from ``domain/values``.

Invariants enforced
-------------------
* ``CHECKIN_TRANSITIONS`` defines the only valid state changes; APPROVED is
  terminal.  Calculate and approval consult it before proceeding.
* ``is_approved`` / ``is_stale`` / ``has_draft`` are derived from the tag,
  never stored independently.
* Every refusal is a ``Blocked`` value with a ``BlockCode`` and an
  operator-facing message.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from checkin_kernel.domain.values import (
    BookingSnapshot,
    ChargeBasis,
    DraftCalculation,
    FlightContext,
    InstructionType,
    InvoiceLineItem,
    MeterReadings,
    SplitResult,
)


# =========================================================================
# State tag
# =========================================================================


class CheckInState(str, Enum):
    """Check-in lifecycle states."""

    UNCALCULATED = "uncalculated"
    CALCULATED = "calculated"
    STALE = "stale"
    APPROVED = "approved"


CHECKIN_TRANSITIONS: dict[CheckInState, frozenset[CheckInState]] = {
    CheckInState.UNCALCULATED: frozenset({CheckInState.CALCULATED}),
    CheckInState.CALCULATED: frozenset({
        CheckInState.CALCULATED,  # recalculate / edit line
        CheckInState.STALE,
        CheckInState.APPROVED,
    }),
    CheckInState.STALE: frozenset({
        CheckInState.CALCULATED,
        CheckInState.STALE,
    }),
    CheckInState.APPROVED: frozenset(),
}


def can_transition(from_state: CheckInState, to_state: CheckInState) -> bool:
    return to_state in CHECKIN_TRANSITIONS[from_state]


# =========================================================================
# Blocking reasons
# =========================================================================


class BlockCode(str, Enum):
    """Machine-readable reason a transition was refused."""

    # Booking
    BOOKING_NOT_LOADED = "BOOKING_NOT_LOADED"
    BOOKING_NOT_FOUND = "BOOKING_NOT_FOUND"
    NOT_A_FLIGHT = "NOT_A_FLIGHT"
    BOOKING_CANCELLED = "BOOKING_CANCELLED"
    ALREADY_APPROVED = "ALREADY_APPROVED"
    BOOKING_LOCKED = "BOOKING_LOCKED"
    BOOKING_SAVE_FAILED = "BOOKING_SAVE_FAILED"
    MISSING_MEMBER = "MISSING_MEMBER"
    INVOICE_ALREADY_EXISTS = "INVOICE_ALREADY_EXISTS"
    # Selections
    AIRCRAFT_NOT_SELECTED = "AIRCRAFT_NOT_SELECTED"
    FLIGHT_TYPE_NOT_SELECTED = "FLIGHT_TYPE_NOT_SELECTED"
    # Configuration
    AIRCRAFT_RATE_MISSING = "AIRCRAFT_RATE_MISSING"
    NO_CHARGE_BASIS = "NO_CHARGE_BASIS"
    UNSUPPORTED_CONFIGURATION = "UNSUPPORTED_CONFIGURATION"
    INSTRUCTOR_BASIS_CONFLICT = "INSTRUCTOR_BASIS_CONFLICT"
    INSTRUCTOR_HOURS_MISSING = "INSTRUCTOR_HOURS_MISSING"
    INVALID_TAX_RATE = "INVALID_TAX_RATE"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    # Readings
    SPLIT_ERROR = "SPLIT_ERROR"
    NO_BILLING_HOURS = "NO_BILLING_HOURS"
    # Draft
    NO_DRAFT = "NO_DRAFT"
    DRAFT_STALE = "DRAFT_STALE"
    DRAFT_EMPTY = "DRAFT_EMPTY"
    INVALID_LINE = "INVALID_LINE"
    INVALID_LINE_INDEX = "INVALID_LINE_INDEX"
    NON_POSITIVE_TOTAL = "NON_POSITIVE_TOTAL"
    INVALID_TRANSITION = "INVALID_TRANSITION"
    # Remote
    INVOICE_CREATION_FAILED = "INVOICE_CREATION_FAILED"


@dataclass(frozen=True)
class Blocked:
    """A refused transition and the single unmet condition behind it."""

    code: BlockCode
    message: str

    def __str__(self) -> str:
        return self.message


# =========================================================================
# Status and outcomes
# =========================================================================


@dataclass(frozen=True)
class BillingPreview:
    """
    Live billing figures for the current inputs.

    Shown alongside (or instead of) a draft so the operator can see why a
    calculation is blocked, e.g. an omitted instructor line.
    """

    aircraft_basis: ChargeBasis | None
    instructor_basis: ChargeBasis | None
    split_active: bool
    split: SplitResult
    instructor_hours: Decimal
    instructor_basis_conflict: bool = False
    instructor_hours_missing: bool = False
    warnings: tuple[str, ...] = ()


@dataclass(frozen=True)
class CheckInStatus:
    """Result of evaluating a booking against its (optional) draft."""

    state: CheckInState
    current_signature: str | None
    draft: DraftCalculation | None = None
    preview: BillingPreview | None = None
    calculate_blocked: Blocked | None = None
    approval_blocked: Blocked | None = None

    @property
    def is_approved(self) -> bool:
        return self.state == CheckInState.APPROVED

    @property
    def is_stale(self) -> bool:
        return self.state == CheckInState.STALE

    @property
    def has_draft(self) -> bool:
        return self.draft is not None

    @property
    def can_approve(self) -> bool:
        return self.state == CheckInState.CALCULATED and self.approval_blocked is None


@dataclass(frozen=True)
class DraftOutcome:
    """Result of calculate / edit: a new draft or the reason it was refused."""

    draft: DraftCalculation | None = None
    blocked: Blocked | None = None

    @property
    def ok(self) -> bool:
        return self.blocked is None


@dataclass(frozen=True)
class InputChanges:
    """
    Patch of billing inputs.

    ``None`` leaves a field as-is; ``readings`` replaces the reading set.
    Use ``clear_instructor=True`` to remove the instructor.  A new aircraft
    or instructor id takes ``aircraft_label`` / ``instructor_label`` with it
    (or no label); the previous party's label is never carried over.
    """

    aircraft_id: str | None = None
    instructor_id: str | None = None
    clear_instructor: bool = False
    flight_type_id: str | None = None
    instruction_type: InstructionType | None = None
    has_solo_at_end: bool | None = None
    readings: MeterReadings | None = None
    aircraft_label: str | None = None
    instructor_label: str | None = None


@dataclass(frozen=True)
class RevisionOutcome:
    """Result of revising booking inputs."""

    booking: BookingSnapshot | None = None
    blocked: Blocked | None = None

    @property
    def ok(self) -> bool:
        return self.blocked is None


@dataclass(frozen=True)
class CheckInApprovalRequest:
    """
    Finalised invoice request submitted on approval.

    The invoicing collaborator must create the invoice and stamp the booking
    (``checkin_approved_at`` / ``checkin_invoice_id`` plus the billing
    snapshot) as a single atomic unit.
    """

    booking_id: str
    member_id: str | None
    items: tuple[InvoiceLineItem, ...]
    tax_rate: Decimal
    due_date: date
    reference: str
    notes: str | None
    approved_at: datetime
    draft_signature: str
    billing_basis: ChargeBasis
    billing_hours: Decimal
    dual_time: Decimal
    solo_time: Decimal
    flight: FlightContext = field(default_factory=FlightContext)
    readings: MeterReadings = field(default_factory=MeterReadings)


@dataclass(frozen=True)
class ApprovalOutcome:
    """Result of an approval attempt."""

    state: CheckInState
    invoice_id: str | None = None
    approved_at: datetime | None = None
    request: CheckInApprovalRequest | None = None
    blocked: Blocked | None = None

    @property
    def ok(self) -> bool:
        return self.blocked is None and self.state == CheckInState.APPROVED
