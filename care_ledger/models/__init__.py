"""
Data Models Package

This package contains all Pydantic models used by Care Ledger.
All data flowing between the ledger and the data store must conform to these schemas.
"""

from care_ledger.models.ledger import (
    AccountPayable,
    AccountPayableDraft,
    AccountPayablePatch,
    AccountReceivable,
    AccountReceivableDraft,
    AccountReceivablePatch,
    CashFlowProjection,
    ExpenseCategory,
    FeeStatus,
    FinancialMetrics,
    LedgerIdentity,
    LedgerPatch,
    LedgerRecord,
    MonthlyFee,
    MonthlyFeeDraft,
    MonthlyFeePatch,
    OverdueAmount,
    PayableStatus,
    PaymentMethod,
    PeriodComparison,
    ReceivableStatus,
    RecurringFrequency,
    ResidentFee,
    RevenueSource,
    UpcomingDues,
    ValidationIssue,
    ValidationResult,
)
from care_ledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from care_ledger.models.errors import (
    FeesAlreadyGeneratedError,
    InvalidStatusTransitionError,
    LedgerError,
    LedgerValidationError,
    NoResidentsError,
)

__all__ = [
    # Ledger models
    "AccountPayable",
    "AccountPayableDraft",
    "AccountPayablePatch",
    "AccountReceivable",
    "AccountReceivableDraft",
    "AccountReceivablePatch",
    "CashFlowProjection",
    "ExpenseCategory",
    "FeeStatus",
    "FinancialMetrics",
    "LedgerIdentity",
    "LedgerPatch",
    "LedgerRecord",
    "MonthlyFee",
    "MonthlyFeeDraft",
    "MonthlyFeePatch",
    "OverdueAmount",
    "PayableStatus",
    "PaymentMethod",
    "PeriodComparison",
    "ReceivableStatus",
    "RecurringFrequency",
    "ResidentFee",
    "RevenueSource",
    "UpcomingDues",
    "ValidationIssue",
    "ValidationResult",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
    # Business errors
    "FeesAlreadyGeneratedError",
    "InvalidStatusTransitionError",
    "LedgerError",
    "LedgerValidationError",
    "NoResidentsError",
]
