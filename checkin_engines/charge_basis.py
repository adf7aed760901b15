"""
Charge basis resolution.

Derives the single meter a ``ChargeRate`` bills against from its boolean
flags.  Rates are external configuration that cannot be validated at write
time, so resolution never raises: conflicting flags degrade to a fixed
priority and missing flags yield ``None``.
"""

from __future__ import annotations

from checkin_kernel.domain.values import ChargeBasis, ChargeRate
from checkin_kernel.logging_config import get_logger

logger = get_logger("engines.charge_basis")

# Tie-break when several flags are set.
BASIS_PRIORITY: tuple[ChargeBasis, ...] = (
    ChargeBasis.HOBBS,
    ChargeBasis.TACHO,
    ChargeBasis.AIRSWITCH,
)


def flagged_bases(rate: ChargeRate | None) -> tuple[ChargeBasis, ...]:
    """Bases whose flag is set on ``rate``, in priority order."""
    if rate is None:
        return ()
    flags = {
        ChargeBasis.HOBBS: rate.charge_hobbs,
        ChargeBasis.TACHO: rate.charge_tacho,
        ChargeBasis.AIRSWITCH: rate.charge_airswitch,
    }
    return tuple(basis for basis in BASIS_PRIORITY if flags[basis])


def resolve_basis(rate: ChargeRate | None) -> ChargeBasis | None:
    """
    Resolve the billing basis of a rate.

    Returns:
        The only flagged basis; the highest-priority one when several are
        flagged; None when no flag is set or ``rate`` is None.
    """
    bases = flagged_bases(rate)
    if not bases:
        return None
    if len(bases) > 1:
        logger.warning("charge_basis_conflict", extra={
            "rate_id": rate.id,
            "flagged": [b.value for b in bases],
            "resolved": bases[0].value,
        })
    return bases[0]
