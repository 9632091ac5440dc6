"""Ledger Store package."""

from care_ledger.ledger.store import (
    AUTH_ERROR_MESSAGE,
    CONNECTION_ERROR_MESSAGE,
    LedgerStore,
    classify_error,
)

__all__ = [
    "AUTH_ERROR_MESSAGE",
    "CONNECTION_ERROR_MESSAGE",
    "LedgerStore",
    "classify_error",
]
