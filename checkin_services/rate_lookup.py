"""
CachedChargeRateLookup -- short-lived cache over a ChargeRateLookup.

Rate reads for status and calculate go through this cache; approval reads
through ``source`` so that it always prices against live configuration.
Absent rates are cached too: "no rate configured" is a valid answer.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from checkin_kernel.domain.clock import Clock
from checkin_kernel.domain.ports import ChargeRateLookup
from checkin_kernel.domain.values import ChargeRate
from checkin_kernel.logging_config import get_logger

logger = get_logger("services.rate_lookup")


@dataclass(frozen=True)
class _Entry:
    rate: ChargeRate | None
    expires_at: datetime


class CachedChargeRateLookup:
    """
    ChargeRateLookup with a per-key validity window.

    Keys are ``(party_type, party_id, flight_type_id)``.  Expiry is judged
    against the injected clock; expired entries are dropped on every miss.
    """

    def __init__(self, source: ChargeRateLookup, clock: Clock, ttl_seconds: int = 60):
        if ttl_seconds < 0:
            raise ValueError(f"ttl_seconds must be >= 0, got {ttl_seconds}")
        self.source = source
        self._clock = clock
        self._ttl = timedelta(seconds=ttl_seconds)
        self._entries: dict[tuple[str, str, str], _Entry] = {}

    def aircraft_rate(self, aircraft_id: str, flight_type_id: str) -> ChargeRate | None:
        return self._get(
            ("aircraft", aircraft_id, flight_type_id),
            lambda: self.source.aircraft_rate(aircraft_id, flight_type_id),
        )

    def instructor_rate(self, instructor_id: str, flight_type_id: str) -> ChargeRate | None:
        return self._get(
            ("instructor", instructor_id, flight_type_id),
            lambda: self.source.instructor_rate(instructor_id, flight_type_id),
        )

    def invalidate(self) -> None:
        """Drop every cached entry."""
        self._entries.clear()

    @property
    def size(self) -> int:
        """Entries currently held, expired or not."""
        return len(self._entries)

    def _prune(self, now: datetime) -> None:
        expired = [key for key, entry in self._entries.items() if entry.expires_at <= now]
        for key in expired:
            del self._entries[key]

    def _get(self, key, fetch) -> ChargeRate | None:
        now = self._clock.now()
        entry = self._entries.get(key)
        if entry is not None and now < entry.expires_at:
            return entry.rate

        rate = fetch()
        self._prune(now)
        if self._ttl:
            self._entries[key] = _Entry(rate=rate, expires_at=now + self._ttl)
        logger.debug("charge_rate_fetched", extra={
            "party_type": key[0],
            "party_id": key[1],
            "flight_type_id": key[2],
            "rate_id": rate.id if rate else None,
        })
        return rate
