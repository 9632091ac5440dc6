"""
Tests for Care Ledger models

Test strategy:
1. Unit tests for individual components (models, validator, metrics)
2. Store and generator tests against the in-memory gateway
3. No real storage calls in tests (use the in-memory gateway and mocks)
"""

import json
import pytest
from datetime import date
from decimal import Decimal
from uuid import uuid4

from care_ledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from care_ledger.models.ledger import (
    AccountPayable,
    AccountPayablePatch,
    ExpenseCategory,
    FeeStatus,
    LedgerIdentity,
    MonthlyFeeDraft,
    MonthlyFeePatch,
    ReceivableStatus,
    ResidentFee,
    ValidationIssue,
    ValidationResult,
)
from care_ledger.models.periods import (
    in_month,
    month_key,
    parse_month_key,
    previous_month_key,
)

from conftest import make_fee, make_payable


class TestPeriods:
    """Tests for year-month key helpers."""

    def test_month_key(self):
        assert month_key(date(2024, 6, 17)) == "2024-06"

    def test_previous_month_key_wraps_year(self):
        """January's previous month is December of the year before."""
        assert previous_month_key(date(2024, 1, 15)) == "2023-12"
        assert previous_month_key(date(2024, 6, 1)) == "2024-05"

    def test_parse_month_key(self):
        assert parse_month_key("2024-06") == (2024, 6)

    @pytest.mark.parametrize("key", ["2024-13", "2024-6", "June", "", "2024-00"])
    def test_parse_month_key_rejects_invalid(self, key):
        with pytest.raises(ValueError, match="Invalid month key"):
            parse_month_key(key)

    def test_in_month(self):
        assert in_month(date(2024, 6, 30), "2024-06") is True
        assert in_month(date(2024, 7, 1), "2024-06") is False
        assert in_month(None, "2024-06") is False


class TestLedgerIdentity:
    """Tests for the session identity."""

    def test_scope_filters_with_organization(self):
        identity = LedgerIdentity(user_id="u1", organization_id="org")
        assert identity.scope_filters() == {"user_id": "u1", "organization_id": "org"}

    def test_scope_filters_without_organization(self):
        """Tenant filter is only added when the user belongs to an organization."""
        identity = LedgerIdentity(user_id="u1")
        assert identity.scope_filters() == {"user_id": "u1"}
        assert identity.owner_stamp() == {"user_id": "u1", "organization_id": None}

    def test_user_id_required(self):
        with pytest.raises(ValueError):
            LedgerIdentity(user_id="   ")


class TestLedgerEntities:
    """Tests for fee, payable and receivable models."""

    def test_fee_draft_creation(self):
        draft = MonthlyFeeDraft(
            resident_id=uuid4(),
            amount=Decimal("2800"),
            due_date=date(2024, 6, 5),
            month="2024-06",
            year=2024,
        )
        assert draft.status == FeeStatus.PENDING
        assert draft.discount == Decimal("0")
        assert draft.late_fee == Decimal("0")

    def test_fee_draft_rejects_month_of_other_year(self):
        with pytest.raises(ValueError, match="does not belong to year"):
            MonthlyFeeDraft(
                resident_id=uuid4(),
                amount=Decimal("2800"),
                due_date=date(2024, 6, 5),
                month="2024-06",
                year=2023,
            )

    def test_fee_rejects_negative_discount(self):
        with pytest.raises(ValueError):
            make_fee(discount=Decimal("-1"))

    def test_fee_total_due(self):
        fee = make_fee(
            amount=Decimal("3000"),
            late_fee=Decimal("60"),
            discount=Decimal("100"),
        )
        assert fee.total_due == Decimal("2960")

    def test_fee_to_row_excludes_store_columns(self):
        """id and timestamps are assigned by the data store, never written."""
        row = make_fee().to_row()
        assert "id" not in row
        assert "created_at" not in row
        assert "updated_at" not in row
        assert row["status"] == "pending"
        assert row["month"] == "2024-06"

    def test_fee_from_row_ignores_owner_columns(self):
        fee_id = uuid4()
        fee = make_fee().from_row({
            **make_fee().to_row(),
            "id": str(fee_id),
            "user_id": "user-1",
            "created_at": "2024-06-01T10:00:00",
            "updated_at": "2024-06-01T10:00:00",
        })
        assert fee.id == fee_id
        assert fee.updated_at.year == 2024

    def test_payable_attachments_default_to_empty(self):
        payable = make_payable(attachments=None)
        assert payable.attachments == []
        assert payable.category == ExpenseCategory.UTILITIES

    def test_resident_fee_from_row_defaults_missing_amount(self):
        resident_id = uuid4()
        resident = ResidentFee.from_row({"id": str(resident_id), "monthly_fee_amount": None})
        assert resident.resident_id == resident_id
        assert resident.monthly_fee_amount == Decimal("0")

    def test_receivable_status_values(self):
        assert ReceivableStatus("received") == ReceivableStatus.RECEIVED
        with pytest.raises(ValueError):
            ReceivableStatus("paid")


class TestPatches:
    """Tests for typed partial updates."""

    def test_only_set_fields_are_written(self):
        patch = MonthlyFeePatch(status=FeeStatus.PAID, paid_date=date(2024, 6, 10))
        assert patch.to_values() == {"status": "paid", "paid_date": "2024-06-10"}

    def test_explicit_none_clears_optional_field(self):
        """Setting None is a write; omitting the field is not."""
        patch = MonthlyFeePatch(observations=None)
        assert patch.to_values() == {"observations": None}
        assert MonthlyFeePatch().to_values() == {}

    def test_required_field_cannot_be_cleared(self):
        with pytest.raises(ValueError, match="amount cannot be cleared"):
            MonthlyFeePatch(amount=None)

    def test_unknown_field_rejected(self):
        with pytest.raises(ValueError):
            AccountPayablePatch(vendor="x")

    def test_is_empty(self):
        assert MonthlyFeePatch().is_empty() is True
        assert MonthlyFeePatch(late_fee=Decimal("10")).is_empty() is False

    def test_apply_to_leaves_original_untouched(self):
        fee = make_fee()
        patched = MonthlyFeePatch(late_fee=Decimal("50")).apply_to(fee)
        assert patched.late_fee == Decimal("50")
        assert fee.late_fee == Decimal("0")
        assert patched.id == fee.id

    def test_payable_patch_applies_to_payable(self):
        payable = make_payable()
        patched = AccountPayablePatch(supplier="New Supplier").apply_to(payable)
        assert isinstance(patched, AccountPayable)
        assert patched.supplier == "New Supplier"


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        event = AuditEvent(
            event_type=AuditEventType.ENTITY_ADDED,
            description="monthly_fee added",
        )
        assert event.event_id is not None
        assert event.timestamp is not None
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        entity_id = uuid4()
        event = AuditEvent(
            event_type=AuditEventType.ENTITY_DELETED,
            entity_type="account_payable",
            entity_id=entity_id,
            description="account_payable deleted",
        )
        log_dict = event.to_log_dict()
        assert log_dict["event_type"] == "entity_deleted"
        assert log_dict["entity_id"] == str(entity_id)

    def test_audit_event_to_row_encodes_details(self):
        event = AuditEventBuilder.fees_generated(
            month="2024-06",
            fee_count=3,
            total_amount="10500",
            user_id="user-1",
        )
        row = event.to_row()
        assert json.loads(row["details"]) == {
            "month": "2024-06",
            "fee_count": 3,
            "total_amount": "10500",
        }

    def test_builder_write_failed_is_error(self):
        event = AuditEventBuilder.write_failed(
            operation="update",
            entity_type="monthly_fee",
            error_message="boom",
            error_code="500",
        )
        assert event.event_type == AuditEventType.WRITE_FAILED
        assert event.severity == AuditSeverity.ERROR
        assert event.error_code == "500"

    def test_builder_stale_response(self):
        entity_id = uuid4()
        event = AuditEventBuilder.stale_response_discarded(
            entity_type="monthly_fee",
            entity_id=entity_id,
            cached_updated_at="2024-06-10T10:00:00",
            response_updated_at="2024-06-01T10:00:00",
        )
        assert event.severity == AuditSeverity.WARNING
        assert event.details["cached_updated_at"] == "2024-06-10T10:00:00"


class TestValidationResult:
    """Tests for ValidationResult model."""

    def test_validation_result_has_errors(self):
        result = ValidationResult(
            entity_type="monthly_fee",
            issues=[
                ValidationIssue(
                    field="amount",
                    issue_type="invalid_value",
                    message="Amount must be greater than zero",
                    severity="error",
                ),
            ],
        )
        assert result.has_errors is True
        assert result.is_valid is False
        assert result.error_count == 1

    def test_validation_result_warnings_only(self):
        """Test that warnings don't count as errors."""
        result = ValidationResult(
            entity_type="monthly_fee",
            issues=[
                ValidationIssue(
                    field="due_date",
                    issue_type="suspicious_date",
                    message="Due date is far in the future",
                    severity="warning",
                ),
            ],
        )
        assert result.has_errors is False
        assert result.error_count == 0
        assert result.warnings == ["Due date is far in the future"]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
