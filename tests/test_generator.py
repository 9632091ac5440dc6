"""
Tests for monthly fee generation.
"""

import asyncio
import pytest
from datetime import date
from decimal import Decimal

from care_ledger.billing import MonthlyFeeGenerator, due_date_for
from care_ledger.config import LedgerSettings
from care_ledger.models.errors import (
    FeesAlreadyGeneratedError,
    LedgerValidationError,
    NoResidentsError,
)
from care_ledger.models.ledger import FeeStatus, LedgerIdentity
from care_ledger.services.storage import StorageError

from conftest import StaticResidentProvider, fee_row


@pytest.fixture
def generator(gateway, residents, identity, ledger_settings) -> MonthlyFeeGenerator:
    return MonthlyFeeGenerator(
        gateway=gateway,
        resident_provider=residents,
        identity=identity,
        settings=ledger_settings,
    )


class TestGenerate:
    """Tests for MonthlyFeeGenerator.generate."""

    def test_one_fee_per_resident_with_own_amount(self, generator, residents):
        fees = asyncio.run(generator.generate("2024-06", 2024))

        assert len(fees) == 3
        assert [f.amount for f in fees] == [Decimal("2800"), Decimal("3200"), Decimal("4500")]
        assert [f.resident_id for f in fees] == [r.resident_id for r in residents.residents]
        for fee in fees:
            assert fee.due_date == date(2024, 6, 5)
            assert fee.status == FeeStatus.PENDING
            assert fee.discount == Decimal("0")
            assert fee.late_fee == Decimal("0")
            assert fee.month == "2024-06"
            assert fee.year == 2024

    def test_store_assigns_ids(self, generator):
        fees = asyncio.run(generator.generate("2024-06", 2024))
        assert len({f.id for f in fees}) == 3
        assert all(f.created_at is not None for f in fees)

    def test_rows_are_stamped_with_owner(self, generator, gateway):
        asyncio.run(generator.generate("2024-06", 2024))
        rows = gateway.rows("monthly_fees")
        assert {r["user_id"] for r in rows} == {"user-1"}
        assert {r["organization_id"] for r in rows} == {"org-1"}

    def test_single_batch_insert(self, generator, gateway):
        asyncio.run(generator.generate("2024-06", 2024))
        assert gateway.calls.count(("insert", "monthly_fees")) == 1

    def test_second_run_for_same_period_fails(self, generator, gateway):
        """Generation is idempotent per period: the second call creates nothing."""
        asyncio.run(generator.generate("2024-06", 2024))

        with pytest.raises(FeesAlreadyGeneratedError, match="already generated for 2024-06"):
            asyncio.run(generator.generate("2024-06", 2024))

        assert len(gateway.rows("monthly_fees")) == 3

    def test_gate_ignores_other_periods(self, generator, gateway, identity):
        gateway.seed("monthly_fees", [fee_row(identity, month="2024-05", due_date="2024-05-05")])
        fees = asyncio.run(generator.generate("2024-06", 2024))
        assert len(fees) == 3

    def test_gate_is_scoped_to_owner(self, generator, gateway):
        other = LedgerIdentity(user_id="someone-else", organization_id="org-2")
        gateway.seed("monthly_fees", [fee_row(other)])
        fees = asyncio.run(generator.generate("2024-06", 2024))
        assert len(fees) == 3

    def test_gate_runs_before_resident_fetch(self, generator, gateway, identity, residents):
        gateway.seed("monthly_fees", [fee_row(identity)])
        with pytest.raises(FeesAlreadyGeneratedError):
            asyncio.run(generator.generate("2024-06", 2024))
        assert residents.calls == 0

    def test_no_residents(self, gateway, identity, ledger_settings):
        generator = MonthlyFeeGenerator(
            gateway=gateway,
            resident_provider=StaticResidentProvider([]),
            identity=identity,
            settings=ledger_settings,
        )
        with pytest.raises(NoResidentsError):
            asyncio.run(generator.generate("2024-06", 2024))
        assert ("insert", "monthly_fees") not in gateway.calls

    def test_inconsistent_year_rejected_before_any_io(self, generator, gateway):
        with pytest.raises(LedgerValidationError, match="does not belong to year 2023"):
            asyncio.run(generator.generate("2024-06", 2023))
        assert gateway.calls == []

    def test_malformed_month_rejected(self, generator, gateway):
        with pytest.raises(LedgerValidationError):
            asyncio.run(generator.generate("06/2024", 2024))
        assert gateway.calls == []

    def test_insert_failure_propagates(self, generator, gateway):
        gateway.fail("insert", StorageError("insert refused", code="23505"))
        with pytest.raises(StorageError, match="insert refused"):
            asyncio.run(generator.generate("2024-06", 2024))
        assert gateway.rows("monthly_fees") == []

    def test_gate_failure_propagates(self, generator, gateway):
        gateway.fail("select")
        with pytest.raises(StorageError):
            asyncio.run(generator.generate("2024-06", 2024))
        assert ("insert", "monthly_fees") not in gateway.calls


class TestPreview:
    """Tests for MonthlyFeeGenerator.preview."""

    def test_preview_totals(self, generator, gateway):
        preview = asyncio.run(generator.preview("2024-06", 2024))

        assert preview.resident_count == 3
        assert preview.total_amount == Decimal("10500")
        assert preview.due_date == date(2024, 6, 5)
        assert preview.already_generated is False
        assert ("insert", "monthly_fees") not in gateway.calls

    def test_preview_flags_generated_period(self, generator, gateway, identity):
        gateway.seed("monthly_fees", [fee_row(identity)])

        preview = asyncio.run(generator.preview("2024-06", 2024))

        assert preview.already_generated is True
        assert preview.resident_count == 3

    def test_preview_ignores_other_periods(self, generator, gateway, identity):
        gateway.seed("monthly_fees", [fee_row(identity, month="2024-05", due_date="2024-05-05")])
        preview = asyncio.run(generator.preview("2024-06", 2024))
        assert preview.already_generated is False

    def test_due_day_follows_settings(self, gateway, residents, identity):
        generator = MonthlyFeeGenerator(
            gateway=gateway,
            resident_provider=residents,
            identity=identity,
            settings=LedgerSettings(default_due_day=10),
        )
        fees = asyncio.run(generator.generate("2024-02", 2024))
        assert {f.due_date for f in fees} == {date(2024, 2, 10)}

    def test_due_date_for(self):
        assert due_date_for("2024-12", 5) == date(2024, 12, 5)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
