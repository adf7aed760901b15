"""
Property-based tests for the check-in arithmetic.

Properties:
- elapsed hours are never negative and always carry one decimal place
- a dual+solo split reconciles exactly to its total
- basis resolution never raises and only returns a flagged basis
- invoice totals are the sums of the per-line rounded values
"""

from decimal import Decimal

from hypothesis import given, settings
from hypothesis import strategies as st

from checkin_engines.charge_basis import flagged_bases, resolve_basis
from checkin_engines.invoice_math import calculate_totals, price_line
from checkin_engines.split_time import calculate_split
from checkin_engines.time_arithmetic import elapsed_hours
from checkin_kernel.domain.values import (
    ChargeBasis,
    ChargeRate,
    InstructionType,
    InvoiceLineItem,
    MeterReadings,
)

readings_values = st.decimals(
    min_value=Decimal("0"),
    max_value=Decimal("99999.99"),
    places=2,
    allow_nan=False,
    allow_infinity=False,
)
optional_readings = st.one_of(st.none(), readings_values)

money = st.decimals(
    min_value=Decimal("0"),
    max_value=Decimal("10000"),
    places=2,
    allow_nan=False,
    allow_infinity=False,
)
quantities = st.decimals(
    min_value=Decimal("0.1"),
    max_value=Decimal("100"),
    places=1,
    allow_nan=False,
    allow_infinity=False,
)
tax_rates = st.decimals(
    min_value=Decimal("0"),
    max_value=Decimal("1"),
    places=3,
    allow_nan=False,
    allow_infinity=False,
)


class TestElapsedHoursProperties:

    @given(start=optional_readings, end=optional_readings)
    @settings(max_examples=200)
    def test_never_negative_and_one_place(self, start, end):
        hours = elapsed_hours(start, end)
        assert hours >= 0
        assert hours.as_tuple().exponent == -1

    @given(value=readings_values)
    def test_same_reading_is_zero(self, value):
        assert elapsed_hours(value, value) == 0


class TestSplitProperties:

    @given(
        start=readings_values,
        dual=st.decimals(min_value=Decimal("0"), max_value=Decimal("20"), places=2),
        solo=st.decimals(min_value=Decimal("0"), max_value=Decimal("20"), places=2),
        basis=st.sampled_from([ChargeBasis.HOBBS, ChargeBasis.TACHO]),
    )
    @settings(max_examples=200)
    def test_dual_plus_solo_equals_total(self, start, dual, solo, basis):
        dual_end = start + dual
        solo_end = dual_end + solo
        if basis == ChargeBasis.HOBBS:
            readings = MeterReadings(hobbs_start=start, hobbs_end=dual_end, solo_end_hobbs=solo_end)
        else:
            readings = MeterReadings(tach_start=start, tach_end=dual_end, solo_end_tach=solo_end)

        result = calculate_split(basis, InstructionType.DUAL, True, readings)

        assert result.ok
        assert result.dual + result.solo == result.total
        assert result.dual >= 0
        assert result.solo >= 0

    @given(
        start=readings_values,
        delta=st.decimals(min_value=Decimal("0"), max_value=Decimal("50"), places=2),
        instruction_type=st.sampled_from(list(InstructionType)),
    )
    def test_unsplit_total_matches_elapsed(self, start, delta, instruction_type):
        readings = MeterReadings(hobbs_start=start, hobbs_end=start + delta)

        result = calculate_split(ChargeBasis.HOBBS, instruction_type, False, readings)

        assert result.total == elapsed_hours(start, start + delta)
        assert result.dual + result.solo == result.total


class TestBasisProperties:

    @given(hobbs=st.booleans(), tacho=st.booleans(), airswitch=st.booleans())
    def test_resolve_never_raises(self, hobbs, tacho, airswitch):
        rate = ChargeRate(
            id="rate-1",
            rate_per_hour=Decimal("100"),
            charge_hobbs=hobbs,
            charge_tacho=tacho,
            charge_airswitch=airswitch,
        )

        basis = resolve_basis(rate)

        if not (hobbs or tacho or airswitch):
            assert basis is None
        else:
            assert basis in flagged_bases(rate)


class TestInvoiceTotalsProperties:

    @given(
        lines=st.lists(
            st.tuples(quantities, money, tax_rates),
            min_size=1,
            max_size=5,
        )
    )
    @settings(max_examples=100)
    def test_totals_are_sums_of_rounded_lines(self, lines):
        priced = [
            price_line(InvoiceLineItem(
                description="Line",
                quantity=quantity,
                unit_price=unit_price,
                tax_rate=tax_rate,
            ))
            for quantity, unit_price, tax_rate in lines
        ]

        totals = calculate_totals(priced)

        assert totals.subtotal == sum(line.amounts.amount for line in priced)
        assert totals.tax_total == sum(line.amounts.tax_amount for line in priced)
        assert totals.total_amount == totals.subtotal + totals.tax_total
        for line in priced:
            assert line.amounts.line_total == line.amounts.amount + line.amounts.tax_amount
