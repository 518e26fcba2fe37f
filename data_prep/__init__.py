"""
Data preparation — row mapping, legacy imports, validation, recurring
expansion and month cloning.
"""

from .loader import (
    RowMappingError,
    box_from_row,
    box_to_row,
    load_legacy_json,
    load_transactions_csv,
    transaction_from_row,
    transaction_to_row,
    transactions_frame,
)
from .recurrence import (
    DraftError,
    build_draft,
    clone_month_drafts,
    expand_recurring,
    initial_paid,
    resolve_transaction_day,
)
from .validators import (
    ProjectionInputError,
    ValidationResult,
    ensure_valid,
    validate_boxes,
    validate_transactions,
)

__all__ = [
    "RowMappingError",
    "box_from_row",
    "box_to_row",
    "load_legacy_json",
    "load_transactions_csv",
    "transaction_from_row",
    "transaction_to_row",
    "transactions_frame",
    "DraftError",
    "build_draft",
    "clone_month_drafts",
    "expand_recurring",
    "initial_paid",
    "resolve_transaction_day",
    "ProjectionInputError",
    "ValidationResult",
    "ensure_valid",
    "validate_boxes",
    "validate_transactions",
]
