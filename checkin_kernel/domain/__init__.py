"""
Pure domain layer of the check-in kernel.

Value objects, state tags and collaborator protocols.  ZERO I/O.
"""

from checkin_kernel.domain.checkin_state import (
    CHECKIN_TRANSITIONS,
    ApprovalOutcome,
    BillingPreview,
    BlockCode,
    Blocked,
    CheckInApprovalRequest,
    CheckInState,
    CheckInStatus,
    DraftOutcome,
    InputChanges,
    RevisionOutcome,
)
from checkin_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from checkin_kernel.domain.values import (
    BasisReadings,
    BookingSnapshot,
    BookingStatus,
    CalculatedLine,
    ChargeBasis,
    ChargeRate,
    CheckInInputs,
    DraftCalculation,
    FlightContext,
    InstructionType,
    InvoiceLineItem,
    InvoiceTotals,
    LineAmounts,
    MeterReadings,
    SplitResult,
)

__all__ = [
    "CHECKIN_TRANSITIONS",
    "ApprovalOutcome",
    "BasisReadings",
    "BillingPreview",
    "BlockCode",
    "Blocked",
    "BookingSnapshot",
    "BookingStatus",
    "CalculatedLine",
    "ChargeBasis",
    "ChargeRate",
    "CheckInApprovalRequest",
    "CheckInInputs",
    "CheckInState",
    "CheckInStatus",
    "Clock",
    "DeterministicClock",
    "DraftCalculation",
    "DraftOutcome",
    "FlightContext",
    "InputChanges",
    "InstructionType",
    "InvoiceLineItem",
    "InvoiceTotals",
    "LineAmounts",
    "MeterReadings",
    "RevisionOutcome",
    "SplitResult",
    "SystemClock",
]
