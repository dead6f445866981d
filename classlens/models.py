"""
Data model (Occurrence, Slot, SlotField)
========================================

A *Slot* is one recurring class: a unique combination of class type, day of
week, start time, location and teacher. Each time the slot actually ran on a
calendar date it gets an *Occurrence*.

Both records are immutable (`frozen=True`) so that:
- occurrences are created once at ingestion and never edited, and
- filtering produces new Slot values over the same Occurrence objects.

The derived totals on a Slot are only ever produced by
`classlens.recompute.recompute`; nothing else sets them.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional, Tuple

from .errors import UnknownFieldError


@dataclass(frozen=True)
class Occurrence:
    """One concrete calendar-date instance of a Slot."""
    date: str
    checkins: int
    revenue: float
    cancelled: int
    non_paid: int
    is_empty: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date,
            "checkins": self.checkins,
            "revenue": self.revenue,
            "cancelled": self.cancelled,
            "nonPaid": self.non_paid,
            "isEmpty": self.is_empty,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Occurrence":
        checkins = int(d.get("checkins") or 0)
        return cls(
            date=str(d.get("date") or ""),
            checkins=checkins,
            revenue=float(d.get("revenue") or 0.0),
            cancelled=int(d.get("cancelled") or 0),
            non_paid=int(d.get("nonPaid") or 0),
            is_empty=checkins == 0,
        )


SlotKey = Tuple[str, str, str, str, str]


@dataclass(frozen=True)
class Slot:
    """Aggregated record for one class slot.

    Identity fields come from the first raw row seen for the slot.
    Everything after `occurrences` is derived from it.
    """
    teacher_name: str
    cleaned_class: str
    day_of_week: str
    class_time: str
    location: str
    date: str
    period: str
    unique_id: str
    teacher_email: str = ""
    # class duration in hours, from the representative row
    hours: float = 0.0
    occurrences: Tuple[Occurrence, ...] = ()

    total_checkins: int = 0
    total_revenue: float = 0.0
    total_cancelled: int = 0
    total_non_paid: int = 0
    total_occurrences: int = 0
    total_empty: int = 0
    total_non_empty: int = 0
    # None means "not applicable" (zero denominator)
    class_average_including_empty: Optional[float] = None
    class_average_excluding_empty: Optional[float] = None

    @property
    def key(self) -> SlotKey:
        """Grouping key: unique within a dataset."""
        return (self.cleaned_class, self.day_of_week, self.class_time, self.location, self.teacher_name)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize with the dashboard's camelCase field names."""
        return {
            "teacherName": self.teacher_name,
            "teacherEmail": self.teacher_email,
            "totalTime": self.hours,
            "classTime": self.class_time,
            "location": self.location,
            "cleanedClass": self.cleaned_class,
            "date": self.date,
            "dayOfWeek": self.day_of_week,
            "period": self.period,
            "totalCheckins": self.total_checkins,
            "totalOccurrences": self.total_occurrences,
            "totalRevenue": self.total_revenue,
            "totalCancelled": self.total_cancelled,
            "totalEmpty": self.total_empty,
            "totalNonEmpty": self.total_non_empty,
            "totalNonPaid": self.total_non_paid,
            "classAverageIncludingEmpty": self.class_average_including_empty,
            "classAverageExcludingEmpty": self.class_average_excluding_empty,
            "uniqueID": self.unique_id,
            "occurrences": [o.to_dict() for o in self.occurrences],
        }


# -----------------------------
# Closed set of queryable fields
# -----------------------------

class FieldKind(Enum):
    TEXT = "text"
    NUMBER = "number"
    DATE = "date"


class SlotField(Enum):
    """Every Slot field that can be filtered, sorted or pivoted on."""
    TEACHER_NAME = "teacher_name"
    CLEANED_CLASS = "cleaned_class"
    LOCATION = "location"
    DAY_OF_WEEK = "day_of_week"
    CLASS_TIME = "class_time"
    DATE = "date"
    PERIOD = "period"
    UNIQUE_ID = "unique_id"
    HOURS = "hours"
    TOTAL_CHECKINS = "total_checkins"
    TOTAL_REVENUE = "total_revenue"
    TOTAL_CANCELLED = "total_cancelled"
    TOTAL_NON_PAID = "total_non_paid"
    TOTAL_OCCURRENCES = "total_occurrences"
    TOTAL_EMPTY = "total_empty"
    TOTAL_NON_EMPTY = "total_non_empty"
    AVG_INCLUDING_EMPTY = "class_average_including_empty"
    AVG_EXCLUDING_EMPTY = "class_average_excluding_empty"

    @property
    def kind(self) -> FieldKind:
        return _KINDS.get(self, FieldKind.NUMBER)

    @property
    def label(self) -> str:
        return _LABELS[self]

    def get(self, slot: Slot) -> Any:
        """Read this field from a slot."""
        return _ACCESSORS[self](slot)

    @classmethod
    def parse(cls, name: str) -> "SlotField":
        """Resolve a user-supplied field name.

        Accepts the snake_case name, the dashboard camelCase name, or a short
        alias such as `teacher`, `class`, `checkins`, `revenue`.
        """
        n = str(name).strip()
        try:
            return cls(n.lower())
        except ValueError:
            pass
        hit = _ALIASES.get(n.lower())
        if hit is None:
            raise UnknownFieldError(f"Unknown field: {name!r}")
        return hit


_KINDS = {
    SlotField.TEACHER_NAME: FieldKind.TEXT,
    SlotField.CLEANED_CLASS: FieldKind.TEXT,
    SlotField.LOCATION: FieldKind.TEXT,
    SlotField.DAY_OF_WEEK: FieldKind.TEXT,
    SlotField.CLASS_TIME: FieldKind.TEXT,
    SlotField.PERIOD: FieldKind.TEXT,
    SlotField.UNIQUE_ID: FieldKind.TEXT,
    SlotField.DATE: FieldKind.DATE,
}

_ACCESSORS: Dict[SlotField, Callable[[Slot], Any]] = {
    SlotField.TEACHER_NAME: lambda s: s.teacher_name,
    SlotField.CLEANED_CLASS: lambda s: s.cleaned_class,
    SlotField.LOCATION: lambda s: s.location,
    SlotField.DAY_OF_WEEK: lambda s: s.day_of_week,
    SlotField.CLASS_TIME: lambda s: s.class_time,
    SlotField.DATE: lambda s: s.date,
    SlotField.PERIOD: lambda s: s.period,
    SlotField.UNIQUE_ID: lambda s: s.unique_id,
    SlotField.HOURS: lambda s: s.hours,
    SlotField.TOTAL_CHECKINS: lambda s: s.total_checkins,
    SlotField.TOTAL_REVENUE: lambda s: s.total_revenue,
    SlotField.TOTAL_CANCELLED: lambda s: s.total_cancelled,
    SlotField.TOTAL_NON_PAID: lambda s: s.total_non_paid,
    SlotField.TOTAL_OCCURRENCES: lambda s: s.total_occurrences,
    SlotField.TOTAL_EMPTY: lambda s: s.total_empty,
    SlotField.TOTAL_NON_EMPTY: lambda s: s.total_non_empty,
    SlotField.AVG_INCLUDING_EMPTY: lambda s: s.class_average_including_empty,
    SlotField.AVG_EXCLUDING_EMPTY: lambda s: s.class_average_excluding_empty,
}

_LABELS = {
    SlotField.TEACHER_NAME: "Trainer",
    SlotField.CLEANED_CLASS: "Class Type",
    SlotField.LOCATION: "Location",
    SlotField.DAY_OF_WEEK: "Day of Week",
    SlotField.CLASS_TIME: "Time",
    SlotField.DATE: "Date",
    SlotField.PERIOD: "Time Period",
    SlotField.UNIQUE_ID: "ID",
    SlotField.HOURS: "Hours",
    SlotField.TOTAL_CHECKINS: "Check-ins",
    SlotField.TOTAL_REVENUE: "Revenue",
    SlotField.TOTAL_CANCELLED: "Late Cancellations",
    SlotField.TOTAL_NON_PAID: "Non-Paid",
    SlotField.TOTAL_OCCURRENCES: "Classes",
    SlotField.TOTAL_EMPTY: "Empty Classes",
    SlotField.TOTAL_NON_EMPTY: "Non-Empty Classes",
    SlotField.AVG_INCLUDING_EMPTY: "Avg. Attendance (All)",
    SlotField.AVG_EXCLUDING_EMPTY: "Avg. Attendance (Non-Empty)",
}

_ALIASES = {
    "teacher": SlotField.TEACHER_NAME,
    "trainer": SlotField.TEACHER_NAME,
    "teachername": SlotField.TEACHER_NAME,
    "class": SlotField.CLEANED_CLASS,
    "cleanedclass": SlotField.CLEANED_CLASS,
    "day": SlotField.DAY_OF_WEEK,
    "dayofweek": SlotField.DAY_OF_WEEK,
    "time": SlotField.CLASS_TIME,
    "classtime": SlotField.CLASS_TIME,
    "uniqueid": SlotField.UNIQUE_ID,
    "totaltime": SlotField.HOURS,
    "checkins": SlotField.TOTAL_CHECKINS,
    "totalcheckins": SlotField.TOTAL_CHECKINS,
    "revenue": SlotField.TOTAL_REVENUE,
    "totalrevenue": SlotField.TOTAL_REVENUE,
    "cancelled": SlotField.TOTAL_CANCELLED,
    "totalcancelled": SlotField.TOTAL_CANCELLED,
    "nonpaid": SlotField.TOTAL_NON_PAID,
    "totalnonpaid": SlotField.TOTAL_NON_PAID,
    "classes": SlotField.TOTAL_OCCURRENCES,
    "occurrences": SlotField.TOTAL_OCCURRENCES,
    "totaloccurrences": SlotField.TOTAL_OCCURRENCES,
    "empty": SlotField.TOTAL_EMPTY,
    "totalempty": SlotField.TOTAL_EMPTY,
    "nonempty": SlotField.TOTAL_NON_EMPTY,
    "totalnonempty": SlotField.TOTAL_NON_EMPTY,
    "avg": SlotField.AVG_INCLUDING_EMPTY,
    "average": SlotField.AVG_INCLUDING_EMPTY,
    "classaverageincludingempty": SlotField.AVG_INCLUDING_EMPTY,
    "avg_nonempty": SlotField.AVG_EXCLUDING_EMPTY,
    "classaverageexcludingempty": SlotField.AVG_EXCLUDING_EMPTY,
}
