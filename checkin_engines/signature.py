"""
Draft signature -- fingerprint of every priced input.

Pure functions. No I/O.

The signature is a SHA-256 over a canonical structure (sorted keys,
normalized Decimals) of everything that affects price.  Staleness is value
equality of signatures, not a timestamp: an input edited and then restored
to its previous value leaves the draft fresh.  Display labels are not
priced and not signed.
"""

from __future__ import annotations

from typing import Any

from checkin_kernel.domain.values import (
    ChargeRate,
    CheckInInputs,
    DraftCalculation,
)
from checkin_kernel.utils.hashing import hash_payload


def _rate_snapshot(rate: ChargeRate | None) -> dict[str, Any] | None:
    if rate is None:
        return None
    return {
        "id": rate.id,
        "rate_per_hour": rate.rate_per_hour,
        "charge_hobbs": rate.charge_hobbs,
        "charge_tacho": rate.charge_tacho,
        "charge_airswitch": rate.charge_airswitch,
    }


def signature_payload(inputs: CheckInInputs) -> dict[str, Any]:
    """Canonical structure of the priced inputs."""
    booking = inputs.booking
    if booking is None:
        booking_part: dict[str, Any] | None = None
    else:
        flight = booking.flight
        booking_part = {
            "id": booking.id,
            "aircraft_id": flight.aircraft_id,
            "instructor_id": flight.instructor_id,
            "flight_type_id": flight.flight_type_id,
            "instruction_type": flight.instruction_type,
            "has_solo_at_end": booking.has_solo_at_end,
            "readings": booking.readings.as_dict(),
        }
    return {
        "booking": booking_part,
        "aircraft_rate": _rate_snapshot(inputs.aircraft_rate),
        "instructor_rate": _rate_snapshot(inputs.instructor_rate),
        "tax_rate": inputs.tax_rate,
    }


def compute_signature(inputs: CheckInInputs) -> str:
    """Hex SHA-256 signature of the priced inputs."""
    return hash_payload(signature_payload(inputs))


def is_stale(draft: DraftCalculation | None, current_signature: str) -> bool:
    """True when a draft exists and was computed from different inputs."""
    return draft is not None and draft.signature != current_signature
