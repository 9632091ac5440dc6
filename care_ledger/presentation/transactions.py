"""
Transaction listing for the financial dashboard.

Fees, payables and receivables are flattened into one row type so the
dashboard can filter, sort and page them together. Receivables show
"received" as "paid", so a single status filter covers all three.
"""

import math
from datetime import date
from decimal import Decimal
from typing import Any, Iterable, Literal, Mapping, Optional, Sequence
from uuid import UUID

from pydantic import BaseModel, Field

from care_ledger.models.ledger import (
    AccountPayable,
    AccountReceivable,
    MonthlyFee,
    ReceivableStatus,
)
from care_ledger.models.periods import in_month


TransactionType = Literal["income", "expense"]

DEFAULT_RESIDENT_NAME = "Resident"

SORT_KEYS = ("due_date", "amount", "description", "status", "entity")


class LedgerTransaction(BaseModel):
    """One dashboard row, whatever collection it came from."""

    id: UUID
    type: TransactionType
    source: str = Field(
        ...,
        description="Entity type the row was built from (monthly_fee, account_payable, ...)"
    )
    description: str
    entity: str = Field(default="", description="Resident, supplier or client")
    category: str
    amount: Decimal
    due_date: date
    paid_date: Optional[date] = None
    status: str
    month: Optional[str] = Field(
        default=None,
        description="Billing period of a fee row; None for other rows"
    )
    observations: Optional[str] = None
    is_recurring: bool = False
    record: Any = Field(default=None, exclude=True)


class Page(BaseModel):
    """A slice of a listing."""

    items: list[LedgerTransaction]
    page: int
    page_size: int
    total: int
    total_pages: int

    @property
    def has_previous(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages


class MonthSummary(BaseModel):
    """Totals shown above the transaction list for the selected month."""

    income: Decimal = Decimal("0")
    expenses: Decimal = Decimal("0")
    balance: Decimal = Decimal("0")
    pending_income: Decimal = Decimal("0")
    pending_expenses: Decimal = Decimal("0")
    projected_cash_flow: Decimal = Decimal("0")


# =============================================================================
# BUILDING
# =============================================================================

def fee_transaction(
    fee: MonthlyFee,
    resident_names: Optional[Mapping[UUID, str]] = None,
) -> LedgerTransaction:
    name = (resident_names or {}).get(fee.resident_id) or DEFAULT_RESIDENT_NAME
    return LedgerTransaction(
        id=fee.id,
        type="income",
        source=MonthlyFee.entity_type,
        description=f"Monthly fee - {name}",
        entity=name,
        category="monthly_fee",
        amount=fee.amount,
        due_date=fee.due_date,
        paid_date=fee.paid_date,
        status=fee.status.value,
        month=fee.month,
        observations=fee.observations,
        is_recurring=True,
        record=fee,
    )


def payable_transaction(payable: AccountPayable) -> LedgerTransaction:
    return LedgerTransaction(
        id=payable.id,
        type="expense",
        source=AccountPayable.entity_type,
        description=payable.description,
        entity=payable.supplier,
        category=payable.category.value,
        amount=payable.amount,
        due_date=payable.due_date,
        paid_date=payable.paid_date,
        status=payable.status.value,
        observations=payable.observations,
        is_recurring=payable.is_recurring,
        record=payable,
    )


def receivable_transaction(receivable: AccountReceivable) -> LedgerTransaction:
    status = receivable.status
    return LedgerTransaction(
        id=receivable.id,
        type="income",
        source=AccountReceivable.entity_type,
        description=receivable.description,
        entity=receivable.client,
        category=receivable.source.value,
        amount=receivable.amount,
        due_date=receivable.due_date,
        paid_date=receivable.received_date,
        status="paid" if status == ReceivableStatus.RECEIVED else status.value,
        observations=receivable.observations,
        record=receivable,
    )


def build_transactions(
    monthly_fees: Iterable[MonthlyFee],
    accounts_payable: Iterable[AccountPayable],
    accounts_receivable: Iterable[AccountReceivable],
    resident_names: Optional[Mapping[UUID, str]] = None,
) -> list[LedgerTransaction]:
    """
    Flatten the three collections into dashboard rows.

    Args:
        monthly_fees: Cached fees
        accounts_payable: Cached payables
        accounts_receivable: Cached receivables
        resident_names: Resident id -> display name for fee rows

    Returns:
        Rows sorted by due date, earliest first
    """
    rows = [fee_transaction(fee, resident_names) for fee in monthly_fees]
    rows.extend(payable_transaction(p) for p in accounts_payable)
    rows.extend(receivable_transaction(r) for r in accounts_receivable)
    return sort_transactions(rows)


# =============================================================================
# FILTERING, SORTING, PAGING
# =============================================================================

def _matches_search(row: LedgerTransaction, term: str) -> bool:
    term = term.lower()
    haystack = [row.description, row.entity, row.observations or ""]
    return any(term in text.lower() for text in haystack)


def filter_transactions(
    rows: Sequence[LedgerTransaction],
    month: Optional[str] = None,
    type_filter: str = "all",
    status_filter: str = "all",
    search: str = "",
) -> list[LedgerTransaction]:
    """
    Rows visible for the selected month and filters.

    Fee rows belong to the month they were billed for; payables and
    receivables to the month of their due date.
    """
    result = []
    for row in rows:
        if month:
            if row.month is not None:
                if row.month != month:
                    continue
            elif not in_month(row.due_date, month):
                continue
        if type_filter != "all" and row.type != type_filter:
            continue
        if status_filter != "all" and row.status != status_filter:
            continue
        if search and not _matches_search(row, search):
            continue
        result.append(row)
    return result


def sort_transactions(
    rows: Sequence[LedgerTransaction],
    key: str = "due_date",
    descending: bool = False,
) -> list[LedgerTransaction]:
    if key not in SORT_KEYS:
        raise ValueError(f"Cannot sort by {key!r}; expected one of {SORT_KEYS}")

    def sort_value(row: LedgerTransaction) -> Any:
        value = getattr(row, key)
        return value.lower() if isinstance(value, str) else value

    return sorted(rows, key=sort_value, reverse=descending)


def paginate(
    rows: Sequence[LedgerTransaction],
    page: int = 1,
    page_size: int = 20,
) -> Page:
    """
    Slice rows into a page. Out-of-range page numbers are clamped.
    """
    if page_size < 1:
        raise ValueError("page_size must be at least 1")

    total = len(rows)
    total_pages = max(1, math.ceil(total / page_size))
    page = min(max(page, 1), total_pages)
    start = (page - 1) * page_size

    return Page(
        items=list(rows[start:start + page_size]),
        page=page,
        page_size=page_size,
        total=total,
        total_pages=total_pages,
    )


# =============================================================================
# SUMMARY
# =============================================================================

def summarize_month(rows: Iterable[LedgerTransaction]) -> MonthSummary:
    """
    Month totals over already-filtered rows.

    Projected cash flow is the balance plus pending income minus pending
    expenses.
    """
    income = expenses = pending_income = pending_expenses = Decimal("0")

    for row in rows:
        if row.type == "income":
            if row.status == "paid":
                income += row.amount
            elif row.status == "pending":
                pending_income += row.amount
        else:
            if row.status == "paid":
                expenses += row.amount
            elif row.status == "pending":
                pending_expenses += row.amount

    balance = income - expenses
    return MonthSummary(
        income=income,
        expenses=expenses,
        balance=balance,
        pending_income=pending_income,
        pending_expenses=pending_expenses,
        projected_cash_flow=balance + pending_income - pending_expenses,
    )
