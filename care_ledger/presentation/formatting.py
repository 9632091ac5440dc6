"""
Display formatting for amounts, periods and dates.

Amounts use the Brazilian convention: "R$ 1.234,56".
"""

import calendar
import re
from datetime import date
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Optional, Union

from care_ledger.config import get_settings
from care_ledger.models.periods import parse_month_key


CENTS = Decimal("0.01")


def format_currency(value: Union[Decimal, int, str], symbol: Optional[str] = None) -> str:
    """
    Format an amount for display.

    The symbol defaults to the configured `LEDGER_CURRENCY_SYMBOL`.

    >>> format_currency(Decimal("1234.56"))
    'R$ 1.234,56'
    """
    amount = Decimal(str(value)).quantize(CENTS, rounding=ROUND_HALF_UP)
    sign = "-" if amount < 0 else ""
    # Format with US separators, then swap them
    text = f"{abs(amount):,.2f}"
    text = text.replace(",", "_").replace(".", ",").replace("_", ".")
    symbol = symbol or get_settings().ledger.currency_symbol
    return f"{sign}{symbol} {text}"


def format_currency_input(typed: str, symbol: Optional[str] = None) -> str:
    """
    Format what a user typed into an amount field.

    Every non-digit is dropped and the digits are read as cents, so
    typing "123456" shows "R$ 1.234,56".
    """
    digits = re.sub(r"\D", "", typed or "")
    cents = int(digits or "0")
    return format_currency(Decimal(cents) / 100, symbol=symbol)


def currency_to_decimal(formatted: str) -> Decimal:
    """
    Parse a formatted amount back to a Decimal.

    Thousands dots and the symbol are dropped; the comma is the decimal
    separator. A leading "-" keeps the amount negative. An empty or
    unparseable string is zero.
    """
    negative = (formatted or "").strip().startswith("-")
    numeric = re.sub(r"[^\d,]", "", formatted or "").replace(",", ".", 1)
    try:
        amount = Decimal(numeric) if numeric else Decimal("0")
    except InvalidOperation:
        return Decimal("0")
    return -amount if negative else amount


def format_month(key: str) -> str:
    """'2024-06' -> 'June 2024'"""
    year, month = parse_month_key(key)
    return f"{calendar.month_name[month]} {year}"


def format_date(value: Optional[date]) -> str:
    """'05/06/2024' for 5 June 2024; empty for no date."""
    if value is None:
        return ""
    return value.strftime("%d/%m/%Y")
