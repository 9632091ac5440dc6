"""
Billing period helpers.

A billing period is identified by a year-month key ("YYYY-MM").
Fees are keyed by it directly; payables and receivables are placed in a
period by one of their dates.
"""

import re
from datetime import date
from typing import Optional


MONTH_KEY_PATTERN = r"^\d{4}-(0[1-9]|1[0-2])$"

_MONTH_KEY_RE = re.compile(MONTH_KEY_PATTERN)


def month_key(value: date) -> str:
    """Year-month key for a date, e.g. date(2024, 6, 17) -> "2024-06"."""
    return value.strftime("%Y-%m")


def parse_month_key(key: str) -> tuple[int, int]:
    """
    Split a year-month key into (year, month).

    Raises:
        ValueError: If the key is not a valid "YYYY-MM" string
    """
    if not isinstance(key, str) or not _MONTH_KEY_RE.match(key):
        raise ValueError(f"Invalid month key: {key!r} (expected YYYY-MM)")
    year, month = key.split("-")
    return int(year), int(month)


def previous_month_key(value: date) -> str:
    """Year-month key of the calendar month before the one containing value."""
    if value.month == 1:
        return f"{value.year - 1}-12"
    return f"{value.year}-{value.month - 1:02d}"


def in_month(value: Optional[date], key: str) -> bool:
    """True if value is set and falls within the month identified by key."""
    return value is not None and month_key(value) == key
