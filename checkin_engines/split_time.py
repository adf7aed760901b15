"""
Dual/solo split of billable flight time.

Pure functions with deterministic behavior. No I/O.

The split is computed from directly observed meter deltas, never from
user-entered durations, so ``dual + solo`` reconciles exactly to the total:
both parts are rounded to one decimal place and the total is their sum.

With a solo-at-end split the reading sequence on the active meter is::

    start ........ end (dual end) ........ solo_end (final reading)
          <- dual ->                <- solo ->

Airswitch billing cannot be captured manually and always fails with an
"unsupported configuration" error.
"""

from __future__ import annotations

from decimal import Decimal

from checkin_kernel.domain.values import (
    ChargeBasis,
    InstructionType,
    MeterReadings,
    SplitResult,
)
from checkin_kernel.logging_config import get_logger
from checkin_engines.time_arithmetic import ZERO_HOURS, elapsed_hours, round_hours

logger = get_logger("engines.split_time")

NO_BASIS_MESSAGE = "No charge basis configured"
UNSUPPORTED_AIRSWITCH_MESSAGE = (
    "Unsupported configuration: airswitch billing cannot be entered manually"
)

_BASIS_LABELS = {
    ChargeBasis.HOBBS: "Hobbs",
    ChargeBasis.TACHO: "Tacho",
    ChargeBasis.AIRSWITCH: "Airswitch",
}


def split_applies(
    instruction_type: InstructionType | None,
    has_solo_at_end: bool,
) -> bool:
    """Only trial and dual flights may end with a solo portion."""
    return bool(has_solo_at_end) and instruction_type in (
        InstructionType.TRIAL,
        InstructionType.DUAL,
    )


def calculate_split(
    basis: ChargeBasis | None,
    instruction_type: InstructionType | None,
    has_solo_at_end: bool,
    readings: MeterReadings,
) -> SplitResult:
    """
    Compute total, dual and solo hours under ``basis``.

    Args:
        basis: Resolved billing basis of the rate being billed.
        instruction_type: Instruction type of the flight type.
        has_solo_at_end: Whether the flight finished with a solo portion.
        readings: Raw meter readings.

    Returns:
        SplitResult; ``error`` is set (and all hours are zero) when the split
        cannot be computed.
    """
    if basis is None:
        return SplitResult.failed(NO_BASIS_MESSAGE)
    if basis == ChargeBasis.AIRSWITCH:
        return SplitResult.failed(UNSUPPORTED_AIRSWITCH_MESSAGE)

    label = _BASIS_LABELS[basis]
    meter = readings.for_basis(basis)

    if split_applies(instruction_type, has_solo_at_end):
        return _split_dual_then_solo(label, meter.start, meter.end, meter.solo_end)

    if meter.start is not None and meter.end is not None and meter.end < meter.start:
        return SplitResult.failed(
            f"{label} end ({meter.end}) is before {label.lower()} start ({meter.start})"
        )

    total = elapsed_hours(meter.start, meter.end)
    if instruction_type == InstructionType.SOLO:
        return SplitResult(total=total, dual=ZERO_HOURS, solo=total)
    return SplitResult(total=total, dual=total, solo=ZERO_HOURS)


def _split_dual_then_solo(
    label: str,
    start: Decimal | None,
    dual_end: Decimal | None,
    solo_end: Decimal | None,
) -> SplitResult:
    missing = [
        name for name, value in (
            (f"{label.lower()} start", start),
            ("dual end", dual_end),
            ("solo end", solo_end),
        )
        if value is None
    ]
    if missing:
        return SplitResult.failed(
            f"Solo split requires {label.lower()} start, dual end and solo end "
            f"readings (missing: {', '.join(missing)})"
        )
    if dual_end < start:
        return SplitResult.failed(
            f"Dual end ({dual_end}) is before {label.lower()} start ({start})"
        )
    if solo_end < dual_end:
        return SplitResult.failed(
            f"Solo end ({solo_end}) is before dual end ({dual_end})"
        )

    dual = round_hours(dual_end - start)
    solo = round_hours(solo_end - dual_end)
    logger.debug("split_calculated", extra={
        "basis": label.lower(),
        "dual": str(dual),
        "solo": str(solo),
    })
    return SplitResult(total=dual + solo, dual=dual, solo=solo)
