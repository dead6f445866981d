"""
Raw row aggregation (CSV rows -> Slot list)
===========================================

Each payroll row describes one class on one date. Rows are grouped into
Slots by (class type, day, time, location, teacher); every row becomes one
Occurrence of its Slot.

Key ideas:
- Conversion helpers (_to_int/_to_float/_to_str) turn blanks and junk into
  0 / "" instead of failing the row.
- After each append the Slot is rebuilt with `recompute`, a full refold over
  its occurrences. Occurrence counts per slot are small (one per week of the
  reporting period), so this stays cheap and the totals can never drift.
- A row that still fails is logged and skipped; ingestion never aborts on
  one bad row.
"""

from __future__ import annotations
import re
from typing import Dict, Iterable, List, Mapping

import pandas as pd

from .logging import get_logger
from .models import Occurrence, Slot, SlotKey
from .normalize import normalize_class_name
from .recompute import recompute
from .temporal import extract_date, extract_day_of_week, extract_period, extract_time

logger = get_logger(__name__)

# Payroll export column names
COL_FIRST_NAME = "Teacher First Name"
COL_LAST_NAME = "Teacher Last Name"
COL_EMAIL = "Teacher Email"
COL_CLASS = "Class name"
COL_DATE = "Class date"
COL_LOCATION = "Location"
COL_HOURS = "Time (h)"
COL_CHECKED_IN = "Checked in"
COL_LATE_CANCELLED = "Late cancellations"
COL_REVENUE = "Total Revenue"
COL_CHECKED_IN_COMPS = "Checked In Comps"
COL_COMPS = "Comps"
COL_NON_PAID = "Non Paid Customers"

UNKNOWN_CLASS = "Unknown Class"

_WS = re.compile(r"\s+")


def _to_float(x) -> float:
    """Convert a cell to float, returning 0.0 if missing/invalid."""
    if x is None: return 0.0
    if isinstance(x, str):
        x = x.replace(",", "").strip()
        if not x: return 0.0
    try:
        v = float(x)
    except (TypeError, ValueError):
        return 0.0
    if pd.isna(v): return 0.0
    return v

def _to_int(x) -> int:
    """Convert a cell to int, returning 0 if missing/invalid."""
    try: return int(_to_float(x))
    except (OverflowError, ValueError): return 0

def _to_str(x) -> str:
    if x is None: return ""
    try:
        if pd.isna(x): return ""
    except (TypeError, ValueError):
        pass
    return str(x).strip()


def make_unique_id(cleaned_class: str, day: str, time: str, location: str, date: str) -> str:
    return _WS.sub("_", f"{cleaned_class}-{day}-{time}-{location}-{date}")


def _occurrence_from_row(row: Mapping[str, object], date: str) -> Occurrence:
    checkins = _to_int(row.get(COL_CHECKED_IN))
    comps = _to_int(row.get(COL_CHECKED_IN_COMPS)) or _to_int(row.get(COL_COMPS))
    return Occurrence(
        date=date,
        checkins=checkins,
        revenue=_to_float(row.get(COL_REVENUE)),
        cancelled=_to_int(row.get(COL_LATE_CANCELLED)),
        non_paid=comps + _to_int(row.get(COL_NON_PAID)),
        is_empty=checkins == 0,
    )


def aggregate(rows: Iterable[Mapping[str, object]]) -> List[Slot]:
    """Fold raw payroll rows into Slots, in first-seen key order."""
    rows = list(rows)
    logger.info("aggregate_started", rows=len(rows))
    slots: Dict[SlotKey, Slot] = {}
    n_rows = 0
    n_skipped = 0

    for index, row in enumerate(rows):
        n_rows += 1
        try:
            teacher = f"{_to_str(row.get(COL_FIRST_NAME))} {_to_str(row.get(COL_LAST_NAME))}".strip()
            class_date = _to_str(row.get(COL_DATE))
            location = _to_str(row.get(COL_LOCATION))
            cleaned_class = normalize_class_name(_to_str(row.get(COL_CLASS))) or UNKNOWN_CLASS
            class_time = extract_time(class_date)
            day = extract_day_of_week(class_date)
            date_only = extract_date(class_date)

            key: SlotKey = (cleaned_class, day, class_time, location, teacher)
            occurrence = _occurrence_from_row(row, date_only)

            existing = slots.get(key)
            if existing is None:
                existing = Slot(
                    teacher_name=teacher,
                    cleaned_class=cleaned_class,
                    day_of_week=day,
                    class_time=class_time,
                    location=location,
                    date=date_only,
                    period=extract_period(class_date),
                    unique_id=make_unique_id(cleaned_class, day, class_time, location, date_only),
                    teacher_email=_to_str(row.get(COL_EMAIL)),
                    hours=_to_float(row.get(COL_HOURS)),
                )
            slots[key] = recompute(existing, existing.occurrences + (occurrence,))
        except Exception as exc:
            n_skipped += 1
            logger.warning("row_skipped", row_index=index, error=str(exc), error_type=type(exc).__name__)

    out = list(slots.values())
    logger.info("aggregate_finished", rows=n_rows, skipped=n_skipped, slots=len(out))
    return out
