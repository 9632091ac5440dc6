"""
Shared fixtures for the Care Ledger tests.

No real storage is touched: every test runs against the in-memory
gateway, optionally wrapped to fail on chosen operations.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional
from uuid import uuid4

import pytest

from care_ledger.config import LedgerSettings
from care_ledger.ledger import LedgerStore
from care_ledger.models.ledger import (
    AccountPayable,
    AccountReceivable,
    LedgerIdentity,
    MonthlyFee,
    ResidentFee,
)
from care_ledger.services.storage import (
    InMemoryGateway,
    ResidentProviderInterface,
    StorageError,
)


TODAY = date(2024, 6, 17)


class FailingGateway(InMemoryGateway):
    """In-memory gateway that raises a chosen error for chosen operations."""

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.failures: dict[str, Exception] = {}

    def fail(self, operation: str, error: Optional[Exception] = None) -> None:
        self.failures[operation] = error or StorageError("boom", code="500")

    def _maybe_fail(self, operation: str, table: str) -> None:
        error = self.failures.get(operation) or self.failures.get(f"{operation}:{table}")
        if error is not None:
            self.calls.append((operation, table))
            raise error

    async def select(self, table, filters=None, order_by=None, descending=False, columns=None):
        self._maybe_fail("select", table)
        return await super().select(table, filters, order_by, descending, columns)

    async def insert(self, table, rows):
        self._maybe_fail("insert", table)
        return await super().insert(table, rows)

    async def update(self, table, values, filters):
        self._maybe_fail("update", table)
        return await super().update(table, values, filters)

    async def delete(self, table, filters):
        self._maybe_fail("delete", table)
        return await super().delete(table, filters)


class StaticResidentProvider(ResidentProviderInterface):
    """Resident provider returning a fixed list."""

    def __init__(self, residents: list[ResidentFee]):
        self.residents = residents
        self.calls = 0

    async def list_resident_fees(self, identity):
        self.calls += 1
        return list(self.residents)


# =============================================================================
# RECORD FACTORIES
# =============================================================================

def make_fee(**overrides: Any) -> MonthlyFee:
    values = {
        "id": uuid4(),
        "resident_id": uuid4(),
        "amount": Decimal("3000"),
        "due_date": date(2024, 6, 5),
        "status": "pending",
        "month": "2024-06",
        "year": 2024,
    }
    values.update(overrides)
    return MonthlyFee(**values)


def make_payable(**overrides: Any) -> AccountPayable:
    values = {
        "id": uuid4(),
        "description": "Electricity",
        "category": "utilities",
        "supplier": "Power Co",
        "amount": Decimal("800"),
        "due_date": date(2024, 6, 20),
        "status": "pending",
    }
    values.update(overrides)
    return AccountPayable(**values)


def make_receivable(**overrides: Any) -> AccountReceivable:
    values = {
        "id": uuid4(),
        "description": "Health plan transfer",
        "source": "health_insurance",
        "client": "Health Plan",
        "amount": Decimal("1500"),
        "due_date": date(2024, 6, 10),
        "status": "pending",
    }
    values.update(overrides)
    return AccountReceivable(**values)


def fee_row(identity: LedgerIdentity, **overrides: Any) -> dict:
    """A monthly_fees row as the data store holds it."""
    row = {
        "resident_id": str(uuid4()),
        "amount": "3000",
        "due_date": "2024-06-05",
        "paid_date": None,
        "discount": "0",
        "late_fee": "0",
        "status": "pending",
        "observations": None,
        "payment_method": None,
        "month": "2024-06",
        "year": 2024,
        **identity.owner_stamp(),
    }
    row.update(overrides)
    return row


def payable_row(identity: LedgerIdentity, **overrides: Any) -> dict:
    row = {
        "description": "Electricity",
        "category": "utilities",
        "supplier": "Power Co",
        "amount": "800",
        "due_date": "2024-06-20",
        "status": "pending",
        "attachments": [],
        "is_recurring": False,
        **identity.owner_stamp(),
    }
    row.update(overrides)
    return row


def receivable_row(identity: LedgerIdentity, **overrides: Any) -> dict:
    row = {
        "description": "Health plan transfer",
        "source": "health_insurance",
        "client": "Health Plan",
        "amount": "1500",
        "due_date": "2024-06-10",
        "status": "pending",
        **identity.owner_stamp(),
    }
    row.update(overrides)
    return row


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def identity() -> LedgerIdentity:
    return LedgerIdentity(user_id="user-1", organization_id="org-1")


@pytest.fixture
def ledger_settings() -> LedgerSettings:
    return LedgerSettings()


@pytest.fixture
def gateway() -> FailingGateway:
    return FailingGateway(clock=lambda: datetime(2024, 6, 17, 9, 0, 0))


@pytest.fixture
def residents() -> StaticResidentProvider:
    return StaticResidentProvider([
        ResidentFee(resident_id=uuid4(), monthly_fee_amount=Decimal("2800")),
        ResidentFee(resident_id=uuid4(), monthly_fee_amount=Decimal("3200")),
        ResidentFee(resident_id=uuid4(), monthly_fee_amount=Decimal("4500")),
    ])


@pytest.fixture
def store(gateway, identity, residents, ledger_settings) -> LedgerStore:
    return LedgerStore(
        gateway=gateway,
        identity=identity,
        resident_provider=residents,
        settings=ledger_settings,
        clock=lambda: TODAY,
    )
