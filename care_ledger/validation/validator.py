"""
Write Validation

DESIGN DECISION: Every ledger write is validated before it is sent.
Business errors (non-positive amounts, impossible status changes,
inconsistent dates) are raised locally and never reach the data store.

Validation runs on the record as it would look after the write:
- For an add, that is the draft itself
- For an update, that is the cached entity with the patch applied

Rules only fire for the fields a patch touches, so editing the
observations of an old record is never blocked by an unrelated rule.

IMPORTANT: Validation NEVER silently fixes issues.
It reports them and the write is refused.
"""

from decimal import Decimal
from typing import Any, Optional

from care_ledger.models.errors import (
    InvalidStatusTransitionError,
    LedgerValidationError,
)
from care_ledger.models.ledger import (
    AccountPayable,
    AccountPayableFields,
    LedgerPatch,
    LedgerRecord,
    MonthlyFee,
    MonthlyFeeFields,
    ValidationIssue,
    ValidationResult,
)
from care_ledger.models.periods import parse_month_key


# Status changes accepted by `update`. Statuses are compared by value so the
# same table serves fees, payables and receivables.
ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    "pending": frozenset({"paid", "received", "overdue", "cancelled"}),
    "overdue": frozenset({"paid", "received", "cancelled"}),
    "paid": frozenset(),
    "received": frozenset(),
    "cancelled": frozenset(),
}


def is_transition_allowed(current: str, target: str) -> bool:
    """True if a record may move from `current` to `target` status."""
    if current == target:
        return True
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


def _status_value(status: Any) -> str:
    return getattr(status, "value", status)


class LedgerValidator:
    """
    Validates drafts and patches for the three ledger collections.

    Stateless; one instance can be shared by a whole session.
    """

    # ---------------------------------------------------------------------
    # Individual rules
    # ---------------------------------------------------------------------

    def _check_amount(self, amount: Optional[Decimal]) -> list[ValidationIssue]:
        if amount is None or amount <= 0:
            return [ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Amount must be greater than zero",
                severity="error",
                suggested_fix="Enter a positive amount",
            )]
        return []

    def _check_settlement_dates(self, record: Any) -> list[ValidationIssue]:
        """
        Status and settlement date must agree.

        paid requires paid_date, received requires received_date and an
        overdue record cannot carry a payment date.
        """
        issues = []
        status = _status_value(record.status)

        if status == "paid" and getattr(record, "paid_date", None) is None:
            issues.append(ValidationIssue(
                field="paid_date",
                issue_type="inconsistent",
                message="A paid record must have a payment date",
                severity="error",
                suggested_fix="Set the payment date",
            ))

        if status == "received" and getattr(record, "received_date", None) is None:
            issues.append(ValidationIssue(
                field="received_date",
                issue_type="inconsistent",
                message="A received record must have a receipt date",
                severity="error",
                suggested_fix="Set the receipt date",
            ))

        if status == "overdue" and getattr(record, "paid_date", None) is not None:
            issues.append(ValidationIssue(
                field="paid_date",
                issue_type="inconsistent",
                message="An overdue record cannot have a payment date",
                severity="error",
                suggested_fix="Clear the payment date or mark the record as paid",
            ))

        return issues

    def _check_recurrence(self, record: AccountPayableFields) -> list[ValidationIssue]:
        if not record.is_recurring and record.recurring_frequency is not None:
            return [ValidationIssue(
                field="recurring_frequency",
                issue_type="inconsistent",
                message="Only recurring payables can have a recurring frequency",
                severity="error",
                suggested_fix="Mark the payable as recurring or clear the frequency",
            )]
        return []

    def _check_period(self, record: MonthlyFeeFields) -> list[ValidationIssue]:
        try:
            key_year, _ = parse_month_key(record.month)
        except ValueError as e:
            return [ValidationIssue(
                field="month",
                issue_type="invalid_value",
                message=str(e),
                severity="error",
            )]
        if key_year != record.year:
            return [ValidationIssue(
                field="year",
                issue_type="inconsistent",
                message=f"Month {record.month} does not belong to year {record.year}",
                severity="error",
                suggested_fix=f"Use year {key_year}",
            )]
        return []

    def _check_transition(self, current: Any, target: Any) -> list[ValidationIssue]:
        current_value = _status_value(current)
        target_value = _status_value(target)
        if is_transition_allowed(current_value, target_value):
            return []
        return [ValidationIssue(
            field="status",
            issue_type="invalid_transition",
            message=f"Cannot change status from {current_value} to {target_value}",
            severity="error",
        )]

    # ---------------------------------------------------------------------
    # Drafts
    # ---------------------------------------------------------------------

    def validate_draft(self, draft: Any, entity_type: str) -> ValidationResult:
        """Validate a record about to be inserted."""
        issues = self._check_amount(draft.amount)
        issues.extend(self._check_settlement_dates(draft))

        if isinstance(draft, MonthlyFeeFields):
            issues.extend(self._check_period(draft))
        if isinstance(draft, AccountPayableFields):
            issues.extend(self._check_recurrence(draft))

        return ValidationResult(entity_type=entity_type, issues=issues)

    # ---------------------------------------------------------------------
    # Patches
    # ---------------------------------------------------------------------

    def validate_update(
        self,
        current: LedgerRecord,
        patch: LedgerPatch,
    ) -> ValidationResult:
        """
        Validate a patch against the cached entity it will overwrite.

        Args:
            current: The entity as currently cached
            patch: Fields the caller wants to write

        Returns:
            ValidationResult with all issues found
        """
        touched = patch.model_fields_set
        candidate = patch.apply_to(current)
        issues: list[ValidationIssue] = []

        if "amount" in touched:
            issues.extend(self._check_amount(candidate.amount))

        if "status" in touched:
            issues.extend(self._check_transition(current.status, candidate.status))

        if touched & {"status", "paid_date", "received_date"}:
            issues.extend(self._check_settlement_dates(candidate))

        if isinstance(current, MonthlyFee) and touched & {"month", "year"}:
            issues.extend(self._check_period(candidate))

        if (
            isinstance(current, AccountPayable)
            and touched & {"is_recurring", "recurring_frequency"}
        ):
            issues.extend(self._check_recurrence(candidate))

        return ValidationResult(entity_type=current.entity_type, issues=issues)

    # ---------------------------------------------------------------------
    # Enforcement
    # ---------------------------------------------------------------------

    def ensure_valid(self, result: ValidationResult) -> None:
        """
        Raise if the result carries any error-level issue.

        Raises:
            InvalidStatusTransitionError: If a status change is not allowed
            LedgerValidationError: For every other error-level issue
        """
        if result.is_valid:
            return
        errors = [i for i in result.issues if i.severity == "error"]
        if any(i.issue_type == "invalid_transition" for i in errors):
            raise InvalidStatusTransitionError(errors)
        raise LedgerValidationError(errors)

    def get_user_friendly_summary(self, result: ValidationResult) -> str:
        """
        Summary of a validation result for staff.

        This is what the dashboard shows when a write is refused.
        """
        if result.is_valid and not result.warnings:
            return "✅ All checks passed."

        lines = []

        if result.has_errors:
            lines.append("❌ This change cannot be saved:")
            for issue in result.issues:
                if issue.severity == "error":
                    lines.append(f"   • {issue.message}")
                    if issue.suggested_fix:
                        lines.append(f"     💡 {issue.suggested_fix}")

        if result.warnings:
            lines.append("")
            lines.append("⚠️ Please verify the following:")
            for warning in result.warnings:
                lines.append(f"   • {warning}")

        return "\n".join(lines)

