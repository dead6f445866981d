"""
Temporal field extraction
=========================

The payroll export stores the class start as one string:

    "2023-04-07, 11:30 AM"

These helpers split it into the fields a Slot is grouped by. None of them
raise: malformed input degrades to an empty string (or None for
`parse_date`).
"""

from __future__ import annotations
from datetime import date, datetime
from functools import lru_cache
from typing import Optional

import pandas as pd

DAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")
MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


def _as_text(value: object) -> str:
    if value is None:
        return ""
    try:
        if pd.isna(value):
            return ""
    except (TypeError, ValueError):
        pass
    return str(value)


def extract_date(value: object) -> str:
    """Return the date portion (text before the first comma), trimmed."""
    return _as_text(value).split(",", 1)[0].strip()


def extract_time(value: object) -> str:
    """Return the time portion (text after the first comma), trimmed."""
    parts = _as_text(value).split(",", 1)
    if len(parts) < 2:
        return ""
    return parts[1].strip()


def parse_date(value: object) -> Optional[date]:
    """Parse the date portion of a date-time string into a calendar date."""
    if value is None or value is pd.NaT:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return _parse_date_text(extract_date(value))


@lru_cache(maxsize=8192)
def _parse_date_text(text: str) -> Optional[date]:
    if not text:
        return None
    try:
        ts = pd.to_datetime(text, errors="coerce")
    except (ValueError, TypeError, OverflowError):
        return None
    if pd.isna(ts):
        return None
    return ts.date()


def extract_day_of_week(value: object) -> str:
    """Weekday name of the date portion, '' if it does not parse."""
    d = parse_date(value)
    if d is None:
        return ""
    return DAYS[d.weekday()]


def extract_period(value: object) -> str:
    """Month-year label such as 'Mar-24', '' if the date does not parse."""
    d = parse_date(value)
    if d is None:
        return ""
    return f"{MONTHS[d.month - 1]}-{d.year % 100:02d}"
