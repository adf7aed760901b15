"""
checkin_engines.checkin_flow -- Pure check-in state machine.

Responsibility:
    Evaluate a booking's check-in state, calculate a priced draft, edit a
    draft line, re-validate approval preconditions and revise billing inputs.
    Every operation takes the current draft and inputs and returns a new
    value or a ``Blocked`` reason; nothing is mutated in place.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import checkin_kernel/domain types and sibling engines.

States (``CheckInState``):
    UNCALCULATED --calculate--> CALCULATED --inputs change--> STALE
    STALE --calculate--> CALCULATED --approve--> APPROVED (terminal)

    CALCULATED/STALE is a pure function of signature equality; it is
    derived on every evaluation and never stored.

Failure modes:
    None raised.  Every unmet condition is reported as a ``Blocked`` value
    naming that single condition.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal

from checkin_kernel.domain.checkin_state import (
    BillingPreview,
    BlockCode,
    Blocked,
    CheckInState,
    CheckInStatus,
    DraftOutcome,
    InputChanges,
    RevisionOutcome,
    can_transition,
)
from checkin_kernel.domain.values import (
    BookingSnapshot,
    BookingStatus,
    ChargeBasis,
    CheckInInputs,
    DraftCalculation,
    FlightContext,
    MeterReadings,
)
from checkin_kernel.logging_config import get_logger
from checkin_engines.charge_basis import resolve_basis
from checkin_engines.draft_invoice import (
    DEFAULT_AIRCRAFT_DESCRIPTION,
    DEFAULT_INSTRUCTOR_DESCRIPTION,
    DraftInvoiceInput,
    build_draft_lines,
    instructor_billing,
)
from checkin_engines.invoice_math import (
    MAX_TAX_RATE,
    calculate_totals,
    line_item_problem,
    price_line,
)
from checkin_engines.signature import compute_signature
from checkin_engines.split_time import calculate_split, split_applies

logger = get_logger("engines.checkin_flow")

FLIGHT_BOOKING_TYPE = "flight"


@dataclass(frozen=True)
class DescriptionTemplates:
    """Line description templates; ``{label}`` is the aircraft/instructor label."""

    aircraft: str = DEFAULT_AIRCRAFT_DESCRIPTION
    instructor: str = DEFAULT_INSTRUCTOR_DESCRIPTION


def _blocked(code: BlockCode, message: str) -> Blocked:
    return Blocked(code=code, message=message)


_ALREADY_APPROVED = (BlockCode.ALREADY_APPROVED, "Booking check-in has already been approved")

_TRANSITION_REFUSALS: dict[tuple[CheckInState, CheckInState], tuple[BlockCode, str]] = {
    (CheckInState.UNCALCULATED, CheckInState.APPROVED): (
        BlockCode.NO_DRAFT,
        "Calculate the draft invoice before approving",
    ),
    (CheckInState.STALE, CheckInState.APPROVED): (
        BlockCode.DRAFT_STALE,
        "Inputs changed since the draft was calculated; recalculate before approving",
    ),
    (CheckInState.APPROVED, CheckInState.CALCULATED): _ALREADY_APPROVED,
    (CheckInState.APPROVED, CheckInState.APPROVED): _ALREADY_APPROVED,
}


# ============================================================================
# Billing preview
# ============================================================================


def billing_preview(inputs: CheckInInputs) -> BillingPreview | None:
    """Resolve bases, split and instructor hours for the current inputs."""
    booking = inputs.booking
    if booking is None:
        return None
    flight = booking.flight
    aircraft_basis = resolve_basis(inputs.aircraft_rate)
    split = calculate_split(
        aircraft_basis,
        flight.instruction_type,
        booking.has_solo_at_end,
        booking.readings,
    )
    instructor = instructor_billing(
        aircraft_basis,
        inputs.instructor_rate,
        flight,
        booking.has_solo_at_end,
        booking.readings,
        split,
    )
    return BillingPreview(
        aircraft_basis=aircraft_basis,
        instructor_basis=instructor.basis,
        split_active=split_applies(flight.instruction_type, booking.has_solo_at_end),
        split=split,
        instructor_hours=instructor.hours,
        instructor_basis_conflict=instructor.conflict,
        instructor_hours_missing=instructor.hours_missing,
        warnings=instructor.warnings,
    )


# ============================================================================
# Preconditions
# ============================================================================


def _booking_blocked(booking: BookingSnapshot | None) -> Blocked | None:
    if booking is None:
        return _blocked(BlockCode.BOOKING_NOT_LOADED, "Booking is not loaded")
    if booking.booking_type != FLIGHT_BOOKING_TYPE:
        return _blocked(
            BlockCode.NOT_A_FLIGHT,
            "Check-in is only valid for flight bookings",
        )
    if booking.status == BookingStatus.CANCELLED:
        return _blocked(
            BlockCode.BOOKING_CANCELLED,
            "Cannot check in a cancelled booking",
        )
    return None


def transition_blocked(from_state: CheckInState, to_state: CheckInState) -> Blocked | None:
    """Refusal for a state change ``CHECKIN_TRANSITIONS`` does not allow, or None."""
    if can_transition(from_state, to_state):
        return None
    code, message = _TRANSITION_REFUSALS.get((from_state, to_state), (
        BlockCode.INVALID_TRANSITION,
        f"Cannot move check-in from {from_state.value} to {to_state.value}",
    ))
    return _blocked(code, message)


def calculate_blocked(
    inputs: CheckInInputs,
    preview: BillingPreview | None = None,
) -> Blocked | None:
    """
    First unmet precondition for calculating a draft, or None.

    Checked in order: booking loaded / flight / not cancelled / not approved,
    aircraft selected, flight type selected, aircraft rate configured, basis
    resolved, basis supported, tax rate valid, split valid, billing hours
    positive, no instructor basis conflict during a split, instructor hours
    measurable on the instructor's own meter.
    """
    booking = inputs.booking
    blocked = _booking_blocked(booking)
    if blocked is not None:
        return blocked
    # Every unapproved state may be recalculated; the previous draft is irrelevant.
    blocked = transition_blocked(derive_state(booking, None, None), CheckInState.CALCULATED)
    if blocked is not None:
        return blocked

    flight = booking.flight
    if not flight.aircraft_id:
        return _blocked(BlockCode.AIRCRAFT_NOT_SELECTED, "Select an aircraft")
    if not flight.flight_type_id or flight.instruction_type is None:
        return _blocked(BlockCode.FLIGHT_TYPE_NOT_SELECTED, "Select a flight type")
    if inputs.aircraft_rate is None:
        return _blocked(
            BlockCode.AIRCRAFT_RATE_MISSING,
            "No charge rate configured for this aircraft and flight type",
        )

    preview = preview or billing_preview(inputs)
    if preview.aircraft_basis is None:
        return _blocked(
            BlockCode.NO_CHARGE_BASIS,
            "No charge basis configured for the aircraft rate",
        )
    if preview.aircraft_basis == ChargeBasis.AIRSWITCH:
        return _blocked(
            BlockCode.UNSUPPORTED_CONFIGURATION,
            "Unsupported configuration: airswitch billing cannot be entered manually",
        )
    if inputs.tax_rate < 0 or inputs.tax_rate > MAX_TAX_RATE:
        return _blocked(
            BlockCode.INVALID_TAX_RATE,
            f"Tax rate must be between 0 and 1 (got {inputs.tax_rate})",
        )
    if not preview.split.ok:
        return _blocked(BlockCode.SPLIT_ERROR, preview.split.error)
    if preview.split.total <= 0:
        return _blocked(
            BlockCode.NO_BILLING_HOURS,
            "Billing hours must be greater than zero",
        )
    if preview.instructor_basis_conflict:
        return _blocked(
            BlockCode.INSTRUCTOR_BASIS_CONFLICT,
            f"Instructor rate bills on {preview.instructor_basis.value} but the "
            f"aircraft bills on {preview.aircraft_basis.value}; a solo split "
            f"requires both on the same basis",
        )
    if preview.instructor_hours_missing:
        return _blocked(
            BlockCode.INSTRUCTOR_HOURS_MISSING,
            f"Instructor hours cannot be measured: {preview.warnings[0]}",
        )
    return None


def check_approval(
    inputs: CheckInInputs,
    draft: DraftCalculation | None,
    current_signature: str | None = None,
) -> Blocked | None:
    """
    First unmet approval precondition, or None.

    Re-validates every calculate precondition against the live inputs, then
    requires a fresh, non-empty draft whose lines and total can be invoiced.
    """
    blocked = _booking_blocked(inputs.booking)
    if blocked is not None:
        return blocked

    signature = current_signature or compute_signature(inputs)
    state = derive_state(inputs.booking, draft, signature)
    # A stale draft is reported after the live inputs are re-validated.
    if state != CheckInState.STALE:
        blocked = transition_blocked(state, CheckInState.APPROVED)
        if blocked is not None:
            return blocked

    blocked = calculate_blocked(inputs)
    if blocked is not None:
        return blocked
    blocked = transition_blocked(state, CheckInState.APPROVED)
    if blocked is not None:
        return blocked
    if not draft.lines:
        return _blocked(BlockCode.DRAFT_EMPTY, "Draft invoice has no line items")
    for line in draft.lines:
        problem = line_item_problem(line.item)
        if problem is not None:
            return _blocked(BlockCode.INVALID_LINE, problem)
    if draft.totals.total_amount <= 0:
        return _blocked(
            BlockCode.NON_POSITIVE_TOTAL,
            "Invoice total must be greater than zero",
        )

    booking = inputs.booking
    if not booking.member_id:
        return _blocked(BlockCode.MISSING_MEMBER, "Booking has no member to invoice")
    if booking.checkin_invoice_id:
        return _blocked(
            BlockCode.INVOICE_ALREADY_EXISTS,
            f"Booking already has check-in invoice {booking.checkin_invoice_id}",
        )
    return None


# ============================================================================
# Evaluation
# ============================================================================


def derive_state(
    booking: BookingSnapshot | None,
    draft: DraftCalculation | None,
    current_signature: str | None,
) -> CheckInState:
    """The single source of truth for the check-in state tag."""
    if booking is not None and booking.is_approved:
        return CheckInState.APPROVED
    if draft is None:
        return CheckInState.UNCALCULATED
    if draft.signature == current_signature:
        return CheckInState.CALCULATED
    return CheckInState.STALE


def evaluate(inputs: CheckInInputs, draft: DraftCalculation | None) -> CheckInStatus:
    """Evaluate the current inputs against the last draft."""
    signature = compute_signature(inputs) if inputs.booking is not None else None
    state = derive_state(inputs.booking, draft, signature)
    preview = billing_preview(inputs)

    calc_blocked = calculate_blocked(inputs, preview)
    approval_blocked = None
    if state != CheckInState.APPROVED:
        approval_blocked = check_approval(inputs, draft, signature)

    return CheckInStatus(
        state=state,
        current_signature=signature,
        draft=draft,
        preview=preview,
        calculate_blocked=calc_blocked,
        approval_blocked=approval_blocked,
    )


# ============================================================================
# Transitions
# ============================================================================


def calculate_draft(
    inputs: CheckInInputs,
    now: datetime,
    templates: DescriptionTemplates | None = None,
) -> DraftOutcome:
    """
    Calculate a new draft from the current inputs.

    Any failing precondition aborts with that reason; no partial draft is
    produced.
    """
    t0 = time.monotonic()
    templates = templates or DescriptionTemplates()
    preview = billing_preview(inputs)

    blocked = calculate_blocked(inputs, preview)
    if blocked is not None:
        logger.info("draft_calculation_blocked", extra={
            "code": blocked.code.value,
            "reason": blocked.message,
        })
        return DraftOutcome(blocked=blocked)

    booking = inputs.booking
    items, instructor = build_draft_lines(DraftInvoiceInput(
        aircraft_basis=preview.aircraft_basis,
        aircraft_rate=inputs.aircraft_rate,
        instructor_rate=inputs.instructor_rate,
        flight=booking.flight,
        has_solo_at_end=booking.has_solo_at_end,
        readings=booking.readings,
        split=preview.split,
        tax_rate=inputs.tax_rate,
        aircraft_description=templates.aircraft,
        instructor_description=templates.instructor,
    ))
    lines = tuple(price_line(item) for item in items)

    draft = DraftCalculation(
        signature=compute_signature(inputs),
        calculated_at=now,
        billing_basis=preview.aircraft_basis,
        billing_hours=preview.split.total,
        dual_time=preview.split.dual,
        solo_time=preview.split.solo,
        lines=lines,
        totals=calculate_totals(lines),
        instructor_basis_conflict=instructor.conflict,
        warnings=instructor.warnings,
    )

    duration_ms = round((time.monotonic() - t0) * 1000, 2)
    logger.info("draft_calculation_completed", extra={
        "booking_id": booking.id,
        "billing_basis": draft.billing_basis.value,
        "billing_hours": str(draft.billing_hours),
        "dual_time": str(draft.dual_time),
        "solo_time": str(draft.solo_time),
        "line_count": len(lines),
        "total_amount": str(draft.totals.total_amount),
        "signature": draft.signature,
        "duration_ms": duration_ms,
    })
    return DraftOutcome(draft=draft)


def edit_draft_line(
    draft: DraftCalculation | None,
    index: int,
    quantity: Decimal | None = None,
    unit_price: Decimal | None = None,
) -> DraftOutcome:
    """
    Patch one line's quantity and/or unit price.

    Recomputes that line's amounts and the draft totals.  The signature is
    left untouched: editing a draft does not make it stale.
    """
    if draft is None:
        return DraftOutcome(blocked=_blocked(BlockCode.NO_DRAFT, "There is no draft to edit"))
    if index < 0 or index >= len(draft.lines):
        return DraftOutcome(blocked=_blocked(
            BlockCode.INVALID_LINE_INDEX,
            f"Line {index} does not exist on the draft ({len(draft.lines)} lines)",
        ))

    item = draft.lines[index].item
    patched = replace(
        item,
        quantity=item.quantity if quantity is None else quantity,
        unit_price=item.unit_price if unit_price is None else unit_price,
    )
    problem = line_item_problem(patched)
    if problem is not None:
        return DraftOutcome(blocked=_blocked(BlockCode.INVALID_LINE, problem))

    lines = list(draft.lines)
    lines[index] = price_line(patched)
    lines = tuple(lines)
    edited = replace(draft, lines=lines, totals=calculate_totals(lines), edited=True)

    logger.info("draft_line_edited", extra={
        "line_index": index,
        "quantity": str(patched.quantity),
        "unit_price": str(patched.unit_price),
        "total_amount": str(edited.totals.total_amount),
    })
    return DraftOutcome(draft=edited)


# ============================================================================
# Input revision
# ============================================================================


_BASIS_FIELDS: dict[ChargeBasis, tuple[str, ...]] = {
    ChargeBasis.HOBBS: ("hobbs_start", "hobbs_end", "solo_end_hobbs"),
    ChargeBasis.TACHO: ("tach_start", "tach_end", "solo_end_tach"),
    ChargeBasis.AIRSWITCH: ("airswitch_start", "airswitch_end"),
}
_SOLO_END_FIELDS = ("solo_end_hobbs", "solo_end_tach")


def normalize_readings(
    readings: MeterReadings,
    active_bases: set[ChargeBasis],
    split_active: bool,
) -> MeterReadings:
    """
    Clear readings that carry no billing meaning.

    Readings of bases outside ``active_bases`` are cleared once any basis is
    known; solo-end readings are cleared when no split applies.
    """
    cleared: dict[str, None] = {}
    if active_bases:
        for basis, names in _BASIS_FIELDS.items():
            if basis not in active_bases:
                cleared.update({name: None for name in names})
    if not split_active:
        cleared.update({name: None for name in _SOLO_END_FIELDS})
    if not cleared:
        return readings
    return replace(readings, **cleared)


def _revised_party(
    current_id: str | None,
    current_label: str | None,
    new_id: str | None,
    new_label: str | None,
) -> tuple[str | None, str | None]:
    """A label belongs to its party: a new id drops the old label."""
    if new_id and new_id != current_id:
        return new_id, new_label
    return current_id, new_label or current_label


def apply_input_changes(
    booking: BookingSnapshot | None,
    changes: InputChanges,
) -> RevisionOutcome:
    """Apply a patch to the billing inputs of an unapproved booking."""
    if booking is None:
        return RevisionOutcome(blocked=_blocked(BlockCode.BOOKING_NOT_LOADED, "Booking is not loaded"))
    if booking.is_approved:
        logger.warning("approved_booking_revision_refused", extra={"booking_id": booking.id})
        return RevisionOutcome(blocked=_blocked(
            BlockCode.BOOKING_LOCKED,
            "Booking check-in is approved and its billing inputs are read-only",
        ))

    flight = booking.flight
    instructor_id, instructor_label = _revised_party(
        flight.instructor_id, flight.instructor_label,
        changes.instructor_id, changes.instructor_label,
    )
    if changes.clear_instructor:
        instructor_id, instructor_label = None, None
    aircraft_id, aircraft_label = _revised_party(
        flight.aircraft_id, flight.aircraft_label,
        changes.aircraft_id, changes.aircraft_label,
    )

    revised_flight = FlightContext(
        aircraft_id=aircraft_id,
        instructor_id=instructor_id,
        flight_type_id=changes.flight_type_id or flight.flight_type_id,
        instruction_type=changes.instruction_type or flight.instruction_type,
        aircraft_label=aircraft_label,
        instructor_label=instructor_label,
    )
    revised = replace(
        booking,
        flight=revised_flight,
        has_solo_at_end=(
            booking.has_solo_at_end
            if changes.has_solo_at_end is None
            else changes.has_solo_at_end
        ),
        readings=changes.readings if changes.readings is not None else booking.readings,
    )
    return RevisionOutcome(booking=revised)


def revise_inputs(
    booking: BookingSnapshot | None,
    changes: InputChanges,
    aircraft_basis: ChargeBasis | None,
    instructor_basis: ChargeBasis | None = None,
) -> RevisionOutcome:
    """Apply ``changes`` and clear readings irrelevant to the known bases."""
    outcome = apply_input_changes(booking, changes)
    if not outcome.ok:
        return outcome
    revised = outcome.booking
    active = {b for b in (aircraft_basis, instructor_basis) if b is not None}
    readings = normalize_readings(
        revised.readings,
        active,
        split_applies(revised.flight.instruction_type, revised.has_solo_at_end),
    )
    return RevisionOutcome(booking=replace(revised, readings=readings))
