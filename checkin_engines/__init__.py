"""
Module: checkin_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    check-in calculation engines.  This is the canonical import surface for
    ``checkin_services``.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import checkin_kernel/domain (and sibling engine modules).
    MUST NOT import checkin_services or checkin_config.

Invariants enforced:
    - Purity: engines NEVER call ``datetime.now()``.  Timestamps are passed
      in by the caller.
    - Decimal-only arithmetic: hours round to one place and money to two,
      both ROUND_HALF_UP.
    - Determinism: identical inputs always produce identical outputs and
      identical draft signatures.

Usage:
    from checkin_engines import calculate_draft, evaluate, check_approval
    from checkin_engines.split_time import calculate_split
"""

from checkin_engines.charge_basis import BASIS_PRIORITY, flagged_bases, resolve_basis
from checkin_engines.checkin_flow import (
    DescriptionTemplates,
    billing_preview,
    calculate_blocked,
    calculate_draft,
    check_approval,
    derive_state,
    edit_draft_line,
    evaluate,
    normalize_readings,
    revise_inputs,
    transition_blocked,
)
from checkin_engines.draft_invoice import (
    DraftInvoiceInput,
    InstructorBilling,
    build_draft_lines,
    build_line_items,
    instructor_billing,
)
from checkin_engines.invoice_math import (
    calculate_line_amounts,
    calculate_totals,
    line_item_problem,
    price_line,
)
from checkin_engines.signature import compute_signature, is_stale, signature_payload
from checkin_engines.split_time import calculate_split, split_applies
from checkin_engines.time_arithmetic import (
    elapsed_hours,
    round_hours,
    round_money,
    to_decimal,
)

__all__ = [
    "BASIS_PRIORITY",
    "DescriptionTemplates",
    "DraftInvoiceInput",
    "InstructorBilling",
    "billing_preview",
    "build_draft_lines",
    "build_line_items",
    "calculate_blocked",
    "calculate_draft",
    "calculate_line_amounts",
    "calculate_split",
    "calculate_totals",
    "check_approval",
    "compute_signature",
    "derive_state",
    "edit_draft_line",
    "elapsed_hours",
    "evaluate",
    "flagged_bases",
    "instructor_billing",
    "is_stale",
    "line_item_problem",
    "normalize_readings",
    "price_line",
    "resolve_basis",
    "revise_inputs",
    "round_hours",
    "round_money",
    "signature_payload",
    "split_applies",
    "to_decimal",
    "transition_blocked",
]
