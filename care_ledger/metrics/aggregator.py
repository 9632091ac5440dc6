"""
Metrics Aggregation

DESIGN DECISION: Metrics are DETERMINISTIC and computed only from
records already in the ledger cache.
Nothing is estimated or forecast: the cash-flow projection is part of the
snapshot shape but stays at zero.

The aggregation is a pure function of the three collections and a
reference date, so a snapshot can be recomputed from scratch on every
change and tested without any storage.
"""

from datetime import date, timedelta
from decimal import Decimal
from typing import Iterable, Optional, Sequence

from care_ledger.config import LedgerSettings
from care_ledger.models.ledger import (
    AccountPayable,
    AccountReceivable,
    CashFlowProjection,
    FeeStatus,
    FinancialMetrics,
    MonthlyFee,
    OverdueAmount,
    PayableStatus,
    PeriodComparison,
    ReceivableStatus,
    UpcomingDues,
)
from care_ledger.models.periods import in_month, month_key, previous_month_key


ZERO = Decimal("0")


def _total(amounts: Iterable[Decimal]) -> Decimal:
    return sum(amounts, ZERO)


def trend_percent(current: Decimal, previous: Decimal) -> float:
    """
    Percent change from previous to current.

    Reported as 0 whenever previous is not positive, including the case
    where current is positive (never infinite or NaN).
    """
    if previous <= 0:
        return 0.0
    return float((current - previous) / previous * 100)


def revenue_for_month(
    monthly_fees: Sequence[MonthlyFee],
    accounts_receivable: Sequence[AccountReceivable],
    key: str,
) -> Decimal:
    """Paid fees billed for the month plus receivables received within it."""
    fees = _total(
        fee.amount for fee in monthly_fees
        if fee.status == FeeStatus.PAID and fee.month == key
    )
    received = _total(
        r.amount for r in accounts_receivable
        if in_month(r.received_date, key)
    )
    return fees + received


def expenses_for_month(
    accounts_payable: Sequence[AccountPayable],
    key: str,
) -> Decimal:
    """Paid payables whose payment date falls within the month."""
    return _total(
        p.amount for p in accounts_payable
        if p.status == PayableStatus.PAID and in_month(p.paid_date, key)
    )


def overdue_totals(
    monthly_fees: Sequence[MonthlyFee],
    accounts_payable: Sequence[AccountPayable],
    accounts_receivable: Sequence[AccountReceivable],
) -> OverdueAmount:
    """
    Amounts already marked overdue.

    Overdue fees count on the receivable side, including their late fee.
    """
    receivables = _total(
        r.amount for r in accounts_receivable
        if r.status == ReceivableStatus.OVERDUE
    )
    fees = _total(
        fee.amount + fee.late_fee for fee in monthly_fees
        if fee.status == FeeStatus.OVERDUE
    )
    payables = _total(
        p.amount for p in accounts_payable
        if p.status == PayableStatus.OVERDUE
    )
    return OverdueAmount(receivables=receivables + fees, payables=payables)


def upcoming_payable_dues(
    accounts_payable: Sequence[AccountPayable],
    today: date,
    short_window_days: int = 7,
    long_window_days: int = 30,
) -> UpcomingDues:
    """Pending payables due on or before today plus each window."""
    def due_within(days: int) -> Decimal:
        horizon = today + timedelta(days=days)
        return _total(
            p.amount for p in accounts_payable
            if p.status == PayableStatus.PENDING and p.due_date <= horizon
        )

    return UpcomingDues(
        next_7_days=due_within(short_window_days),
        next_30_days=due_within(long_window_days),
    )


def calculate_metrics(
    monthly_fees: Sequence[MonthlyFee],
    accounts_payable: Sequence[AccountPayable],
    accounts_receivable: Sequence[AccountReceivable],
    today: date,
    settings: Optional[LedgerSettings] = None,
) -> FinancialMetrics:
    """
    Derive the dashboard snapshot.

    Args:
        monthly_fees: Cached monthly fees
        accounts_payable: Cached payables
        accounts_receivable: Cached receivables
        today: Reference date; its month is the "current" month
        settings: Upcoming-dues windows (defaults 7 and 30 days)

    Returns:
        A fresh FinancialMetrics snapshot
    """
    settings = settings or LedgerSettings()

    current_key = month_key(today)
    previous_key = previous_month_key(today)

    revenue_current = revenue_for_month(monthly_fees, accounts_receivable, current_key)
    revenue_previous = revenue_for_month(monthly_fees, accounts_receivable, previous_key)
    expenses_current = expenses_for_month(accounts_payable, current_key)
    expenses_previous = expenses_for_month(accounts_payable, previous_key)

    return FinancialMetrics(
        reference_date=today,
        monthly_revenue=PeriodComparison(
            current=revenue_current,
            previous=revenue_previous,
            trend=trend_percent(revenue_current, revenue_previous),
        ),
        monthly_expenses=PeriodComparison(
            current=expenses_current,
            previous=expenses_previous,
            trend=trend_percent(expenses_current, expenses_previous),
        ),
        current_balance=revenue_current - expenses_current,
        overdue_amount=overdue_totals(
            monthly_fees, accounts_payable, accounts_receivable
        ),
        upcoming_dues=upcoming_payable_dues(
            accounts_payable,
            today,
            short_window_days=settings.upcoming_short_window_days,
            long_window_days=settings.upcoming_long_window_days,
        ),
        cash_flow_projection=CashFlowProjection(),
    )


def find_overdue_candidates(
    monthly_fees: Sequence[MonthlyFee],
    today: date,
) -> list[MonthlyFee]:
    """
    Pending fees whose due date has passed.

    Read-only: nothing here changes a status. Whoever decides a fee is
    overdue marks it explicitly through the Ledger Store.
    """
    return [
        fee for fee in monthly_fees
        if fee.status == FeeStatus.PENDING and fee.due_date < today
    ]
