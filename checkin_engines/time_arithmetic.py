"""
Time arithmetic for billable flight time.

Pure functions with deterministic behavior. No I/O.

One-decimal hours are the system-wide unit for billable time: every
downstream calculation uses values produced by ``round_hours`` /
``elapsed_hours``, never raw meter deltas, so totals are reproducible.
Money is rounded to two places.  Both use ROUND_HALF_UP.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

HOURS_QUANTUM = Decimal("0.1")
MONEY_QUANTUM = Decimal("0.01")
ZERO_HOURS = Decimal("0.0")


def round_hours(value: Decimal) -> Decimal:
    """Round hours to one decimal place."""
    return value.quantize(HOURS_QUANTUM, rounding=ROUND_HALF_UP)


def round_money(value: Decimal) -> Decimal:
    """Round a money amount to two decimal places."""
    return value.quantize(MONEY_QUANTUM, rounding=ROUND_HALF_UP)


def elapsed_hours(start: Decimal | None, end: Decimal | None) -> Decimal:
    """
    Elapsed hours between two meter readings.

    Returns 0.0 if either reading is missing or ``end < start``; never
    negative.  Otherwise ``end - start`` rounded to one decimal place.
    """
    if start is None or end is None:
        return ZERO_HOURS
    if end < start:
        return ZERO_HOURS
    return round_hours(end - start)


def to_decimal(value: Any, name: str = "value") -> Decimal | None:
    """
    Coerce a form value to Decimal.

    ``None`` and blank strings map to None.  Floats are rejected: meter
    readings must arrive as text or Decimal to avoid binary rounding.

    Raises:
        ValueError: If the value is a float or not numeric.
    """
    if value is None:
        return None
    if isinstance(value, bool) or isinstance(value, float):
        raise ValueError(f"{name} must be Decimal, int or numeric text, not {type(value).__name__}")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            result = Decimal(text)
        except InvalidOperation:
            raise ValueError(f"{name} is not a number: {value!r}") from None
    else:
        raise ValueError(f"{name} has unsupported type {type(value).__name__}")
    if not result.is_finite():
        raise ValueError(f"{name} must be finite: {value!r}")
    return result
