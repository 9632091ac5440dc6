"""
Tests for write validation.
"""

import pytest
from datetime import date
from decimal import Decimal
from uuid import uuid4

from care_ledger.models.errors import (
    InvalidStatusTransitionError,
    LedgerValidationError,
)
from care_ledger.models.ledger import (
    AccountPayableDraft,
    AccountPayablePatch,
    AccountReceivablePatch,
    FeeStatus,
    MonthlyFeeDraft,
    MonthlyFeePatch,
    PayableStatus,
    RecurringFrequency,
    ReceivableStatus,
)
from care_ledger.validation import LedgerValidator, is_transition_allowed

from conftest import make_fee, make_payable, make_receivable


@pytest.fixture
def validator() -> LedgerValidator:
    return LedgerValidator()


class TestTransitions:
    """Tests for the status transition table."""

    @pytest.mark.parametrize("current,target", [
        ("pending", "paid"),
        ("pending", "received"),
        ("pending", "overdue"),
        ("pending", "cancelled"),
        ("overdue", "cancelled"),
        ("overdue", "paid"),
        ("paid", "paid"),
    ])
    def test_allowed(self, current, target):
        assert is_transition_allowed(current, target) is True

    @pytest.mark.parametrize("current,target", [
        ("paid", "pending"),
        ("paid", "overdue"),
        ("cancelled", "pending"),
        ("received", "pending"),
        ("overdue", "pending"),
    ])
    def test_rejected(self, current, target):
        assert is_transition_allowed(current, target) is False


class TestDraftValidation:
    """Tests for records about to be inserted."""

    def test_valid_fee_draft(self, validator):
        draft = MonthlyFeeDraft(
            resident_id=uuid4(),
            amount=Decimal("2800"),
            due_date=date(2024, 6, 5),
            month="2024-06",
            year=2024,
        )
        result = validator.validate_draft(draft, "monthly_fee")
        assert result.is_valid is True

    def test_zero_amount_rejected(self, validator):
        draft = MonthlyFeeDraft(
            resident_id=uuid4(),
            amount=Decimal("0"),
            due_date=date(2024, 6, 5),
            month="2024-06",
            year=2024,
        )
        result = validator.validate_draft(draft, "monthly_fee")
        assert result.has_errors is True
        assert result.issues[0].field == "amount"

    def test_paid_fee_needs_paid_date(self, validator):
        draft = MonthlyFeeDraft(
            resident_id=uuid4(),
            amount=Decimal("2800"),
            due_date=date(2024, 6, 5),
            status=FeeStatus.PAID,
            month="2024-06",
            year=2024,
        )
        result = validator.validate_draft(draft, "monthly_fee")
        assert [i.field for i in result.issues] == ["paid_date"]

    def test_non_recurring_payable_cannot_have_frequency(self, validator):
        draft = AccountPayableDraft(
            description="Cleaning",
            category="supplies",
            amount=Decimal("120"),
            due_date=date(2024, 6, 20),
            is_recurring=False,
            recurring_frequency=RecurringFrequency.MONTHLY,
        )
        result = validator.validate_draft(draft, "account_payable")
        assert result.has_errors is True
        assert result.issues[0].field == "recurring_frequency"

    def test_recurring_payable_with_frequency_is_valid(self, validator):
        draft = AccountPayableDraft(
            description="Rent",
            category="maintenance",
            amount=Decimal("5000"),
            due_date=date(2024, 6, 10),
            is_recurring=True,
            recurring_frequency=RecurringFrequency.MONTHLY,
        )
        assert validator.validate_draft(draft, "account_payable").is_valid is True


class TestUpdateValidation:
    """Tests for patches checked against the cached entity."""

    def test_mark_paid_with_date(self, validator):
        fee = make_fee()
        patch = MonthlyFeePatch(status=FeeStatus.PAID, paid_date=date(2024, 6, 10))
        assert validator.validate_update(fee, patch).is_valid is True

    def test_mark_paid_without_date(self, validator):
        fee = make_fee()
        result = validator.validate_update(fee, MonthlyFeePatch(status=FeeStatus.PAID))
        assert result.has_errors is True

    def test_paid_is_terminal(self, validator):
        fee = make_fee(status="paid", paid_date=date(2024, 6, 3))
        result = validator.validate_update(fee, MonthlyFeePatch(status=FeeStatus.PENDING))
        assert [i.issue_type for i in result.issues] == ["invalid_transition"]

    def test_overdue_cannot_keep_paid_date(self, validator):
        fee = make_fee()
        patch = MonthlyFeePatch(status=FeeStatus.OVERDUE, paid_date=date(2024, 6, 3))
        result = validator.validate_update(fee, patch)
        assert result.has_errors is True
        assert result.issues[0].field == "paid_date"

    def test_amount_edit_must_be_positive(self, validator):
        fee = make_fee()
        result = validator.validate_update(fee, MonthlyFeePatch(amount=Decimal("0")))
        assert result.has_errors is True

    def test_untouched_amount_not_checked(self, validator):
        """A zero-amount fee can still be settled."""
        fee = make_fee(amount=Decimal("0"))
        patch = MonthlyFeePatch(status=FeeStatus.PAID, paid_date=date(2024, 6, 10))
        assert validator.validate_update(fee, patch).is_valid is True

    def test_period_edit_must_stay_consistent(self, validator):
        fee = make_fee()
        result = validator.validate_update(fee, MonthlyFeePatch(year=2023))
        assert result.issues[0].field == "year"

    def test_clearing_recurrence_flag_requires_clearing_frequency(self, validator):
        payable = make_payable(is_recurring=True, recurring_frequency="monthly")
        result = validator.validate_update(payable, AccountPayablePatch(is_recurring=False))
        assert result.has_errors is True

        both = AccountPayablePatch(is_recurring=False, recurring_frequency=None)
        assert validator.validate_update(payable, both).is_valid is True

    def test_payable_cancel_from_overdue(self, validator):
        payable = make_payable(status="overdue")
        patch = AccountPayablePatch(status=PayableStatus.CANCELLED)
        assert validator.validate_update(payable, patch).is_valid is True

    def test_receivable_received_needs_date(self, validator):
        receivable = make_receivable()
        result = validator.validate_update(
            receivable, AccountReceivablePatch(status=ReceivableStatus.RECEIVED)
        )
        assert result.issues[0].field == "received_date"


class TestEnsureValid:
    """Tests for turning results into exceptions."""

    def test_raises_transition_error(self, validator):
        fee = make_fee(status="cancelled")
        result = validator.validate_update(fee, MonthlyFeePatch(status=FeeStatus.OVERDUE))
        with pytest.raises(InvalidStatusTransitionError, match="cancelled to overdue"):
            validator.ensure_valid(result)

    def test_raises_validation_error_with_issues(self, validator):
        fee = make_fee()
        result = validator.validate_update(fee, MonthlyFeePatch(amount=Decimal("0")))
        with pytest.raises(LedgerValidationError) as exc_info:
            validator.ensure_valid(result)
        assert exc_info.value.issues[0].field == "amount"
        assert "greater than zero" in exc_info.value.message

    def test_valid_result_passes(self, validator):
        fee = make_fee()
        result = validator.validate_update(fee, MonthlyFeePatch(observations="ok"))
        validator.ensure_valid(result)

    def test_user_friendly_summary(self, validator):
        fee = make_fee()
        result = validator.validate_update(fee, MonthlyFeePatch(amount=Decimal("0")))
        summary = validator.get_user_friendly_summary(result)
        assert "cannot be saved" in summary
        assert "Amount must be greater than zero" in summary


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
