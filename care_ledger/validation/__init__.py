"""Validation package."""

from care_ledger.validation.validator import (
    ALLOWED_TRANSITIONS,
    LedgerValidator,
    is_transition_allowed,
)

__all__ = ["ALLOWED_TRANSITIONS", "LedgerValidator", "is_transition_allowed"]
