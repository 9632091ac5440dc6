"""
Business exceptions for the ledger.

Storage failures live with the storage interface (`StorageError` and
friends). These cover the checks that run before anything is written.
"""

from typing import Optional

from care_ledger.models.ledger import ValidationIssue


class LedgerError(Exception):
    """Base exception for ledger business rules."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class LedgerValidationError(LedgerError):
    """A write was rejected by validation. Nothing reached the data store."""

    def __init__(
        self,
        issues: list[ValidationIssue],
        message: Optional[str] = None,
    ):
        self.issues = issues
        if message is None:
            errors = [i.message for i in issues if i.severity == "error"]
            message = "; ".join(errors) or "Validation failed"
        super().__init__(message)


class InvalidStatusTransitionError(LedgerValidationError):
    """The requested status change is not allowed from the current status."""
    pass


class FeesAlreadyGeneratedError(LedgerError):
    """Monthly fees already exist for the requested period."""

    def __init__(self, month: str):
        super().__init__(f"Monthly fees were already generated for {month}")
        self.month = month


class NoResidentsError(LedgerError):
    """There is nobody to generate fees for."""

    def __init__(self, message: str = "No residents found to generate monthly fees for"):
        super().__init__(message)
