"""Tests for the dual/solo split (checkin_engines/split_time.py)."""

from decimal import Decimal

import pytest

from checkin_engines.split_time import (
    NO_BASIS_MESSAGE,
    UNSUPPORTED_AIRSWITCH_MESSAGE,
    calculate_split,
    split_applies,
)
from checkin_kernel.domain.values import ChargeBasis, InstructionType

from tests.builders import make_readings


class TestSplitApplies:

    @pytest.mark.parametrize("instruction_type", [InstructionType.TRIAL, InstructionType.DUAL])
    def test_trial_and_dual_can_split(self, instruction_type):
        assert split_applies(instruction_type, True) is True

    def test_solo_never_splits(self):
        assert split_applies(InstructionType.SOLO, True) is False

    def test_flag_off(self):
        assert split_applies(InstructionType.DUAL, False) is False

    def test_unknown_type(self):
        assert split_applies(None, True) is False


class TestWithoutSplit:

    def test_trial_hobbs_no_split(self):
        readings = make_readings(hobbs_start="100.0", hobbs_end="102.0")
        result = calculate_split(ChargeBasis.HOBBS, InstructionType.TRIAL, False, readings)

        assert result.ok
        assert result.total == Decimal("2.0")
        assert result.dual == Decimal("2.0")
        assert result.solo == Decimal("0.0")

    def test_solo_flight_is_all_solo(self):
        readings = make_readings(tach_start="500.0", tach_end="501.3")
        result = calculate_split(ChargeBasis.TACHO, InstructionType.SOLO, False, readings)

        assert result.total == Decimal("1.3")
        assert result.dual == Decimal("0.0")
        assert result.solo == Decimal("1.3")

    def test_solo_flight_ignores_solo_end_reading(self):
        readings = make_readings(hobbs_start="10.0", hobbs_end="11.0", solo_end_hobbs="15.0")
        result = calculate_split(ChargeBasis.HOBBS, InstructionType.SOLO, True, readings)

        assert result.total == Decimal("1.0")
        assert result.solo == Decimal("1.0")

    def test_uses_the_requested_basis(self):
        readings = make_readings(
            hobbs_start="100.0", hobbs_end="102.0",
            tach_start="50.0", tach_end="51.6",
        )
        result = calculate_split(ChargeBasis.TACHO, InstructionType.DUAL, False, readings)
        assert result.total == Decimal("1.6")

    def test_missing_readings_give_zero_hours(self):
        result = calculate_split(
            ChargeBasis.HOBBS, InstructionType.DUAL, False, make_readings(hobbs_start="1.0"),
        )
        assert result.ok
        assert result.total == Decimal("0.0")

    def test_end_before_start_is_an_error(self):
        readings = make_readings(hobbs_start="102.0", hobbs_end="100.0")
        result = calculate_split(ChargeBasis.HOBBS, InstructionType.DUAL, False, readings)

        assert not result.ok
        assert "Hobbs end (100.0)" in result.error
        assert "hobbs start (102.0)" in result.error
        assert result.total == Decimal("0.0")


class TestWithSplit:

    def test_dual_then_solo(self):
        readings = make_readings(
            hobbs_start="100.0", hobbs_end="101.5", solo_end_hobbs="103.0",
        )
        result = calculate_split(ChargeBasis.HOBBS, InstructionType.DUAL, True, readings)

        assert result.ok
        assert result.dual == Decimal("1.5")
        assert result.solo == Decimal("1.5")
        assert result.total == Decimal("3.0")

    def test_total_reconciles_after_rounding(self):
        readings = make_readings(
            tach_start="100.00", tach_end="100.96", solo_end_tach="101.92",
        )
        result = calculate_split(ChargeBasis.TACHO, InstructionType.TRIAL, True, readings)

        assert result.dual == Decimal("1.0")
        assert result.solo == Decimal("1.0")
        assert result.total == result.dual + result.solo

    def test_missing_solo_end_is_named(self):
        readings = make_readings(hobbs_start="100.0", hobbs_end="101.5")
        result = calculate_split(ChargeBasis.HOBBS, InstructionType.DUAL, True, readings)

        assert not result.ok
        assert "missing: solo end" in result.error

    def test_all_missing_readings_are_named(self):
        result = calculate_split(
            ChargeBasis.TACHO, InstructionType.DUAL, True, make_readings(),
        )
        assert "tacho start, dual end, solo end" in result.error

    def test_dual_end_before_start(self):
        readings = make_readings(
            hobbs_start="100.0", hobbs_end="99.0", solo_end_hobbs="101.0",
        )
        result = calculate_split(ChargeBasis.HOBBS, InstructionType.DUAL, True, readings)
        assert result.error == "Dual end (99.0) is before hobbs start (100.0)"

    def test_solo_end_before_dual_end(self):
        readings = make_readings(
            hobbs_start="100.0", hobbs_end="101.5", solo_end_hobbs="101.0",
        )
        result = calculate_split(ChargeBasis.HOBBS, InstructionType.DUAL, True, readings)
        assert result.error == "Solo end (101.0) is before dual end (101.5)"


class TestUnsupported:

    def test_airswitch_is_unsupported(self):
        readings = make_readings(airswitch_start="10.0", airswitch_end="12.0")
        result = calculate_split(ChargeBasis.AIRSWITCH, InstructionType.DUAL, False, readings)

        assert result.error == UNSUPPORTED_AIRSWITCH_MESSAGE
        assert result.total == Decimal("0.0")

    def test_no_basis(self):
        result = calculate_split(None, InstructionType.DUAL, False, make_readings())
        assert result.error == NO_BASIS_MESSAGE
