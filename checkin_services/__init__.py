"""
checkin_services -- orchestration over the check-in collaborators.

    CheckInService          load -> evaluate / calculate / edit / revise / approve
    CachedChargeRateLookup  short validity window over a ChargeRateLookup
    SqlCheckInStore         SQLAlchemy reference collaborator (all four ports)
"""

from checkin_services.checkin_service import CheckInService, blocked_from_error
from checkin_services.rate_lookup import CachedChargeRateLookup
from checkin_services.sql_store import SqlCheckInStore, booking_to_snapshot

__all__ = [
    "CachedChargeRateLookup",
    "CheckInService",
    "SqlCheckInStore",
    "blocked_from_error",
    "booking_to_snapshot",
]
