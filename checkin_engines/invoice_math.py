"""
Invoice line and total arithmetic.

Pure functions. No I/O.

Per line::

    amount         = round2(quantity * unit_price)
    tax_amount     = round2(amount * tax_rate)
    rate_inclusive = round2(unit_price * (1 + tax_rate))
    line_total     = round2(amount + tax_amount)

Invoice totals are sums of the rounded per-line values, not a rounding of a
running sum.  This can differ by 0.01 from a single-sum recomputation; that
is the accepted behavior.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Iterable

from checkin_kernel.domain.values import (
    ZERO_MONEY,
    CalculatedLine,
    InvoiceLineItem,
    InvoiceTotals,
    LineAmounts,
)
from checkin_engines.time_arithmetic import round_money

MAX_TAX_RATE = Decimal("1")


def calculate_line_amounts(
    quantity: Decimal,
    unit_price: Decimal,
    tax_rate: Decimal,
) -> LineAmounts:
    """Calculate amounts for a single line."""
    amount = round_money(quantity * unit_price)
    tax_amount = round_money(amount * tax_rate)
    return LineAmounts(
        amount=amount,
        tax_amount=tax_amount,
        rate_inclusive=round_money(unit_price * (Decimal("1") + tax_rate)),
        line_total=round_money(amount + tax_amount),
    )


def price_line(item: InvoiceLineItem) -> CalculatedLine:
    """Attach calculated amounts to a line item."""
    return CalculatedLine(
        item=item,
        amounts=calculate_line_amounts(item.quantity, item.unit_price, item.tax_rate),
    )


def calculate_totals(lines: Iterable[CalculatedLine]) -> InvoiceTotals:
    """Sum per-line rounded amounts into invoice totals."""
    subtotal = ZERO_MONEY
    tax_total = ZERO_MONEY
    for line in lines:
        subtotal += line.amounts.amount
        tax_total += line.amounts.tax_amount
    return InvoiceTotals(
        subtotal=round_money(subtotal),
        tax_total=round_money(tax_total),
        total_amount=round_money(subtotal + tax_total),
    )


def line_item_problem(item: InvoiceLineItem) -> str | None:
    """Describe why a line cannot be invoiced, or None if it can."""
    if item.quantity <= 0:
        return f"Quantity must be positive for '{item.description}'"
    if item.unit_price < 0:
        return f"Unit price cannot be negative for '{item.description}'"
    if item.tax_rate < 0 or item.tax_rate > MAX_TAX_RATE:
        return f"Tax rate must be between 0 and 1 for '{item.description}'"
    return None
