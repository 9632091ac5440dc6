"""Monthly fee billing package."""

from care_ledger.billing.generator import (
    GenerationPreview,
    MonthlyFeeGenerator,
    due_date_for,
    validate_period,
)

__all__ = [
    "GenerationPreview",
    "MonthlyFeeGenerator",
    "due_date_for",
    "validate_period",
]
