"""Dashboard presentation helpers."""

from care_ledger.presentation.formatting import (
    currency_to_decimal,
    format_currency,
    format_currency_input,
    format_date,
    format_month,
)
from care_ledger.presentation.transactions import (
    LedgerTransaction,
    MonthSummary,
    Page,
    build_transactions,
    filter_transactions,
    paginate,
    sort_transactions,
    summarize_month,
)

__all__ = [
    "LedgerTransaction",
    "MonthSummary",
    "Page",
    "build_transactions",
    "currency_to_decimal",
    "filter_transactions",
    "format_currency",
    "format_currency_input",
    "format_date",
    "format_month",
    "paginate",
    "sort_transactions",
    "summarize_month",
]
