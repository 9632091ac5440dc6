"""Financial metrics package."""

from care_ledger.metrics.aggregator import (
    calculate_metrics,
    expenses_for_month,
    find_overdue_candidates,
    overdue_totals,
    revenue_for_month,
    trend_percent,
    upcoming_payable_dues,
)

__all__ = [
    "calculate_metrics",
    "expenses_for_month",
    "find_overdue_candidates",
    "overdue_totals",
    "revenue_for_month",
    "trend_percent",
    "upcoming_payable_dues",
]
