"""
Draft Invoice Builder.

Pure functions with deterministic behavior. No I/O.

Assembles the priced line items of a check-in invoice from the resolved
aircraft basis, the dual/solo split and the configured rates:

- one aircraft-hire line for the total billable hours;
- one instructor line for dual hours only, when an instructor with a rate
  is assigned.  Instructors are never billed for solo time.

When a solo split is active and the instructor's basis differs from the
aircraft's, instructor hours are refused (forced to zero, line omitted) and
``instructor_basis_conflict`` is reported: mixing meters for one party
during a split is not auditable.  Without a split, an instructor measured
on a meter with no usable readings is reported as ``hours_missing`` rather
than silently dropped.

The builder never raises.  When its preconditions are not met it returns no
lines; callers surface the specific reason (see ``checkin_flow``).

Usage:
    from checkin_engines.draft_invoice import DraftInvoiceInput, build_draft_lines

    lines = build_draft_lines(DraftInvoiceInput(
        aircraft_basis=ChargeBasis.HOBBS,
        aircraft_rate=aircraft_rate,
        instructor_rate=None,
        flight=booking.flight,
        has_solo_at_end=False,
        readings=booking.readings,
        split=split,
        tax_rate=Decimal("0.15"),
    ))
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from checkin_kernel.domain.values import (
    ZERO_HOURS,
    ChargeBasis,
    ChargeRate,
    FlightContext,
    InstructionType,
    InvoiceLineItem,
    MeterReadings,
    SplitResult,
)
from checkin_kernel.logging_config import get_logger
from checkin_engines.charge_basis import resolve_basis
from checkin_engines.split_time import calculate_split, split_applies

logger = get_logger("engines.draft_invoice")

DEFAULT_AIRCRAFT_DESCRIPTION = "Aircraft Hire ({label})"
DEFAULT_INSTRUCTOR_DESCRIPTION = "Instructor Rate - {label}"


@dataclass(frozen=True)
class DraftInvoiceInput:
    """Resolved inputs for one draft invoice."""

    aircraft_basis: ChargeBasis | None
    aircraft_rate: ChargeRate | None
    instructor_rate: ChargeRate | None
    flight: FlightContext
    has_solo_at_end: bool
    readings: MeterReadings
    split: SplitResult
    tax_rate: Decimal
    aircraft_description: str = DEFAULT_AIRCRAFT_DESCRIPTION
    instructor_description: str = DEFAULT_INSTRUCTOR_DESCRIPTION


@dataclass(frozen=True)
class InstructorBilling:
    """How the instructor is billed for this flight."""

    basis: ChargeBasis | None
    hours: Decimal
    conflict: bool = False
    hours_missing: bool = False
    warnings: tuple[str, ...] = field(default_factory=tuple)


def instructor_billing(
    aircraft_basis: ChargeBasis | None,
    instructor_rate: ChargeRate | None,
    flight: FlightContext,
    has_solo_at_end: bool,
    readings: MeterReadings,
    split: SplitResult,
) -> InstructorBilling:
    """
    Decide the instructor's billable hours.

    Pure solo flights, missing rates and unusable bases yield zero hours.
    With an active split, the instructor basis must equal the aircraft basis.
    Without a split, an instructor billed on another meter must have usable
    readings on it; otherwise ``hours_missing`` is set.
    """
    if not flight.instructor_id:
        return InstructorBilling(basis=None, hours=ZERO_HOURS)
    if instructor_rate is None:
        return InstructorBilling(
            basis=None,
            hours=ZERO_HOURS,
            warnings=("No instructor charge rate configured for this flight type",),
        )

    basis = resolve_basis(instructor_rate)
    if basis is None:
        return InstructorBilling(
            basis=None,
            hours=ZERO_HOURS,
            warnings=("No charge basis configured for the instructor rate",),
        )
    if flight.instruction_type == InstructionType.SOLO:
        return InstructorBilling(basis=basis, hours=ZERO_HOURS)

    if split_applies(flight.instruction_type, has_solo_at_end):
        if basis != aircraft_basis:
            return InstructorBilling(basis=basis, hours=ZERO_HOURS, conflict=True)
        return InstructorBilling(basis=basis, hours=split.dual)

    if basis == ChargeBasis.AIRSWITCH:
        return InstructorBilling(
            basis=basis,
            hours=ZERO_HOURS,
            warnings=("Unsupported configuration: instructor rate bills on airswitch",),
        )
    if basis == aircraft_basis:
        return InstructorBilling(basis=basis, hours=split.dual)

    own = calculate_split(basis, flight.instruction_type, False, readings)
    if not own.ok:
        return InstructorBilling(
            basis=basis,
            hours=ZERO_HOURS,
            hours_missing=split.dual > 0,
            warnings=(own.error,),
        )
    if own.dual <= 0 and split.dual > 0:
        return InstructorBilling(
            basis=basis,
            hours=ZERO_HOURS,
            hours_missing=True,
            warnings=(f"No {basis.value} readings for the instructor rate",),
        )
    return InstructorBilling(basis=basis, hours=own.dual)


def build_draft_lines(
    draft_input: DraftInvoiceInput,
) -> tuple[tuple[InvoiceLineItem, ...], InstructorBilling]:
    """
    Build draft line items and report how the instructor was billed.

    Returns:
        (items, instructor_billing).  ``items`` is empty when the aircraft
        basis is missing or airswitch, the split failed, or there are no
        billable hours.
    """
    split = draft_input.split
    basis = draft_input.aircraft_basis
    instructor = instructor_billing(
        basis,
        draft_input.instructor_rate,
        draft_input.flight,
        draft_input.has_solo_at_end,
        draft_input.readings,
        split,
    )

    if (
        basis is None
        or basis == ChargeBasis.AIRSWITCH
        or draft_input.aircraft_rate is None
        or not split.ok
        or split.total <= 0
    ):
        logger.debug("draft_lines_preconditions_unmet", extra={
            "basis": basis.value if basis else None,
            "split_error": split.error,
            "total": str(split.total),
        })
        return (), instructor

    items = [_aircraft_line(draft_input)]
    if instructor.hours > 0 and draft_input.instructor_rate is not None:
        items.append(_instructor_line(draft_input, instructor))

    return tuple(items), instructor


def build_line_items(draft_input: DraftInvoiceInput) -> tuple[InvoiceLineItem, ...]:
    """Line items only; see ``build_draft_lines``."""
    items, _ = build_draft_lines(draft_input)
    return items


def _describe(template: str, label: str | None, fallback: str) -> str:
    if not label:
        return fallback
    return template.format(label=label)


def _aircraft_line(draft_input: DraftInvoiceInput) -> InvoiceLineItem:
    basis = draft_input.aircraft_basis
    split = draft_input.split
    meter = draft_input.readings.for_basis(basis)

    notes = [f"Basis: {basis.value}"]
    if split_applies(draft_input.flight.instruction_type, draft_input.has_solo_at_end):
        notes.append(
            f"{basis.value} {meter.start} -> {meter.end} (dual end) -> {meter.solo_end} (solo end)"
        )
    else:
        notes.append(f"{basis.value} {meter.start} -> {meter.end}")
    notes.append(f"dual {split.dual}h, solo {split.solo}h")

    return InvoiceLineItem(
        description=_describe(
            draft_input.aircraft_description,
            draft_input.flight.aircraft_label,
            "Aircraft Hire",
        ),
        quantity=split.total,
        unit_price=draft_input.aircraft_rate.rate_per_hour,
        tax_rate=draft_input.tax_rate,
        notes="; ".join(notes),
    )


def _instructor_line(
    draft_input: DraftInvoiceInput,
    instructor: InstructorBilling,
) -> InvoiceLineItem:
    return InvoiceLineItem(
        description=_describe(
            draft_input.instructor_description,
            draft_input.flight.instructor_label,
            "Instructor Rate",
        ),
        quantity=instructor.hours,
        unit_price=draft_input.instructor_rate.rate_per_hour,
        tax_rate=draft_input.tax_rate,
        notes=f"Basis: {instructor.basis.value}; dual {instructor.hours}h",
    )
