"""Tests for CachedChargeRateLookup."""

import pytest

from checkin_services.rate_lookup import CachedChargeRateLookup

from tests.builders import make_rate


class CountingRates:
    """ChargeRateLookup that counts source reads."""

    def __init__(self, aircraft=None, instructor=None):
        self.aircraft = aircraft
        self.instructor = instructor
        self.calls = 0

    def aircraft_rate(self, aircraft_id, flight_type_id):
        self.calls += 1
        return self.aircraft

    def instructor_rate(self, instructor_id, flight_type_id):
        self.calls += 1
        return self.instructor


class TestCachedChargeRateLookup:

    def test_repeat_reads_hit_cache(self, deterministic_clock, hobbs_rate):
        source = CountingRates(aircraft=hobbs_rate)
        cache = CachedChargeRateLookup(source, deterministic_clock, ttl_seconds=60)

        assert cache.aircraft_rate("aircraft-1", "ft-1") == hobbs_rate
        assert cache.aircraft_rate("aircraft-1", "ft-1") == hobbs_rate
        assert source.calls == 1

    def test_entry_expires_after_ttl(self, deterministic_clock, hobbs_rate):
        source = CountingRates(aircraft=hobbs_rate)
        cache = CachedChargeRateLookup(source, deterministic_clock, ttl_seconds=60)

        cache.aircraft_rate("aircraft-1", "ft-1")
        deterministic_clock.advance(59)
        cache.aircraft_rate("aircraft-1", "ft-1")
        assert source.calls == 1

        deterministic_clock.advance(1)
        cache.aircraft_rate("aircraft-1", "ft-1")
        assert source.calls == 2

    def test_absent_rate_is_cached(self, deterministic_clock):
        source = CountingRates()
        cache = CachedChargeRateLookup(source, deterministic_clock)

        assert cache.instructor_rate("instructor-1", "ft-1") is None
        assert cache.instructor_rate("instructor-1", "ft-1") is None
        assert source.calls == 1

    def test_keys_are_per_party(self, deterministic_clock, hobbs_rate, instructor_hobbs_rate):
        source = CountingRates(aircraft=hobbs_rate, instructor=instructor_hobbs_rate)
        cache = CachedChargeRateLookup(source, deterministic_clock)

        assert cache.aircraft_rate("x", "ft-1") == hobbs_rate
        assert cache.instructor_rate("x", "ft-1") == instructor_hobbs_rate
        cache.aircraft_rate("x", "ft-2")
        assert source.calls == 3

    def test_invalidate(self, deterministic_clock, hobbs_rate):
        source = CountingRates(aircraft=hobbs_rate)
        cache = CachedChargeRateLookup(source, deterministic_clock)

        cache.aircraft_rate("aircraft-1", "ft-1")
        source.aircraft = make_rate("300.00", hobbs=True)
        cache.invalidate()

        assert cache.aircraft_rate("aircraft-1", "ft-1").rate_per_hour == source.aircraft.rate_per_hour
        assert source.calls == 2

    def test_zero_ttl_never_caches(self, deterministic_clock, hobbs_rate):
        source = CountingRates(aircraft=hobbs_rate)
        cache = CachedChargeRateLookup(source, deterministic_clock, ttl_seconds=0)

        cache.aircraft_rate("aircraft-1", "ft-1")
        cache.aircraft_rate("aircraft-1", "ft-1")
        assert source.calls == 2

    def test_negative_ttl_rejected(self, deterministic_clock):
        with pytest.raises(ValueError, match="ttl_seconds"):
            CachedChargeRateLookup(CountingRates(), deterministic_clock, ttl_seconds=-1)

    def test_expired_entries_dropped_on_miss(self, deterministic_clock, hobbs_rate):
        source = CountingRates(aircraft=hobbs_rate)
        cache = CachedChargeRateLookup(source, deterministic_clock, ttl_seconds=60)

        cache.aircraft_rate("aircraft-1", "ft-1")
        cache.aircraft_rate("aircraft-2", "ft-1")
        assert cache.size == 2

        deterministic_clock.advance(60)
        cache.aircraft_rate("aircraft-3", "ft-1")
        assert cache.size == 1

    def test_zero_ttl_holds_nothing(self, deterministic_clock, hobbs_rate):
        cache = CachedChargeRateLookup(CountingRates(aircraft=hobbs_rate), deterministic_clock, ttl_seconds=0)

        cache.aircraft_rate("aircraft-1", "ft-1")
        assert cache.size == 0
