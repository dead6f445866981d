"""Shared fixtures: payroll rows, slots and in-memory ZIP archives."""

from __future__ import annotations

import io
import math
import zipfile
from typing import Dict, List, Optional

import pandas as pd
import pytest

from classlens.aggregate import aggregate
from classlens.config import DEFAULT_ARCHIVE_MARKER
from classlens.models import Slot

PAYROLL_CSV = f"{DEFAULT_ARCHIVE_MARKER}_2024-01.csv"


def _row(
    first: str = "Jane",
    last: str = "Doe",
    class_name: str = "Mat 57",
    class_date: str = "2024-01-01, 6:00 AM",
    location: str = "Downtown",
    checked_in: int = 5,
    revenue: float = 100.0,
    late_cancellations: int = 0,
    checked_in_comps: int = 0,
    comps: int = 0,
    non_paid: int = 0,
    hours: float = 1.0,
    email: str = "jane@example.com",
) -> Dict[str, object]:
    return {
        "Teacher First Name": first,
        "Teacher Last Name": last,
        "Teacher Email": email,
        "Class name": class_name,
        "Class date": class_date,
        "Location": location,
        "Time (h)": hours,
        "Checked in": checked_in,
        "Late cancellations": late_cancellations,
        "Total Revenue": revenue,
        "Checked In Comps": checked_in_comps,
        "Comps": comps,
        "Non Paid Customers": non_paid,
    }


@pytest.fixture
def make_row():
    """Factory for one raw payroll row; keyword overrides per column."""
    return _row


@pytest.fixture
def scenario_a_rows() -> List[Dict[str, object]]:
    """Same slot on two Mondays, 5 and 7 check-ins."""
    return [
        _row(class_date="2024-01-01, 6:00 AM", checked_in=5, revenue=100.0),
        _row(class_date="2024-01-08, 6:00 AM", checked_in=7, revenue=140.0),
    ]


@pytest.fixture
def sample_rows() -> List[Dict[str, object]]:
    """A small mixed export: 3 teachers, 2 locations, January and February."""
    return [
        _row(class_date="2024-01-01, 6:00 AM", checked_in=5, revenue=100.0),
        _row(class_date="2024-01-08, 6:00 AM", checked_in=7, revenue=140.0),
        _row(class_date="2024-02-05, 6:00 AM", checked_in=0, revenue=0.0, late_cancellations=2),
        _row(first="Sam", last="Lee", class_name="Cardio Barre Express", class_date="2024-01-02, 7:30 AM",
             location="Uptown", checked_in=10, revenue=300.0, email="sam@example.com"),
        _row(first="Sam", last="Lee", class_name="Cardio Barre Express", class_date="2024-01-09, 7:30 AM",
             location="Uptown", checked_in=12, revenue=360.0, late_cancellations=1, email="sam@example.com"),
        _row(first="Ava", last="Singh", class_name="powerCycle", class_date="2024-02-03, 9:00 AM",
             location="Downtown", checked_in=8, revenue=250.0, email="ava@example.com"),
    ]


@pytest.fixture
def sample_slots(sample_rows) -> List[Slot]:
    return aggregate(sample_rows)


def rows_to_csv(rows: List[Dict[str, object]]) -> str:
    return pd.DataFrame(rows).to_csv(index=False)


def build_zip(members: Dict[str, str]) -> bytes:
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as zf:
        for name, text in members.items():
            zf.writestr(name, text)
    return buf.getvalue()


@pytest.fixture
def make_archive():
    """Factory: rows -> ZIP bytes holding the payroll CSV (plus optional extra members)."""
    def _make(rows: List[Dict[str, object]], name: str = PAYROLL_CSV,
              extra: Optional[Dict[str, str]] = None) -> bytes:
        members = dict(extra or {})
        members[name] = rows_to_csv(rows)
        return build_zip(members)
    return _make


@pytest.fixture
def zip_of():
    """Factory: {member name: text} -> ZIP bytes."""
    return build_zip


def _assert_consistent(slot: Slot) -> None:
    occs = slot.occurrences
    assert slot.total_checkins == sum(o.checkins for o in occs)
    assert math.isclose(slot.total_revenue, sum(o.revenue for o in occs))
    assert slot.total_cancelled == sum(o.cancelled for o in occs)
    assert slot.total_non_paid == sum(o.non_paid for o in occs)
    assert slot.total_occurrences == len(occs)
    assert slot.total_empty == sum(1 for o in occs if o.is_empty)
    assert slot.total_non_empty == slot.total_occurrences - slot.total_empty


@pytest.fixture
def assert_consistent():
    """Checker: every derived total on a slot equals the fold over its occurrences."""
    return _assert_consistent
