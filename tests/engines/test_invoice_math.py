"""Tests for invoice line and total arithmetic (checkin_engines/invoice_math.py)."""

from decimal import Decimal

from checkin_engines.invoice_math import (
    calculate_line_amounts,
    calculate_totals,
    line_item_problem,
    price_line,
)
from checkin_kernel.domain.values import InvoiceLineItem


def _item(quantity="1.5", unit_price="250.00", tax_rate="0.15", description="Aircraft Hire"):
    return InvoiceLineItem(
        description=description,
        quantity=Decimal(quantity),
        unit_price=Decimal(unit_price),
        tax_rate=Decimal(tax_rate),
    )


class TestLineAmounts:

    def test_standard_line(self):
        amounts = calculate_line_amounts(Decimal("1.5"), Decimal("250.00"), Decimal("0.15"))

        assert amounts.amount == Decimal("375.00")
        assert amounts.tax_amount == Decimal("56.25")
        assert amounts.rate_inclusive == Decimal("287.50")
        assert amounts.line_total == Decimal("431.25")

    def test_tax_rounds_half_up(self):
        # 1.3 * 99.99 = 129.987 -> 129.99; 129.99 * 0.15 = 19.4985 -> 19.50
        amounts = calculate_line_amounts(Decimal("1.3"), Decimal("99.99"), Decimal("0.15"))
        assert amounts.amount == Decimal("129.99")
        assert amounts.tax_amount == Decimal("19.50")
        assert amounts.line_total == Decimal("149.49")

    def test_zero_tax(self):
        amounts = calculate_line_amounts(Decimal("2.0"), Decimal("80"), Decimal("0"))
        assert amounts.tax_amount == Decimal("0.00")
        assert amounts.line_total == Decimal("160.00")


class TestTotals:

    def test_totals_are_sums_of_rounded_lines(self):
        lines = [price_line(_item("1.3", "99.99")), price_line(_item("1.3", "99.99"))]
        totals = calculate_totals(lines)

        assert totals.subtotal == Decimal("259.98")
        assert totals.tax_total == Decimal("39.00")
        assert totals.total_amount == Decimal("298.98")
        assert totals.total_amount == sum(line.amounts.line_total for line in lines)

    def test_empty(self):
        totals = calculate_totals([])
        assert totals.total_amount == Decimal("0.00")


class TestLineItemProblem:

    def test_valid_line(self):
        assert line_item_problem(_item()) is None

    def test_zero_quantity(self):
        assert "Quantity must be positive" in line_item_problem(_item(quantity="0"))

    def test_negative_price(self):
        assert "Unit price cannot be negative" in line_item_problem(_item(unit_price="-1"))

    def test_zero_price_allowed(self):
        assert line_item_problem(_item(unit_price="0")) is None

    def test_tax_out_of_range(self):
        assert "Tax rate" in line_item_problem(_item(tax_rate="1.5"))
        assert "Tax rate" in line_item_problem(_item(tax_rate="-0.1"))
