"""Summary metrics and class rankings over a (filtered) Slot set."""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, List, Literal, Optional, Sequence

from .models import Slot

RankMetric = Literal["checkins", "revenue", "classes"]


@dataclass(frozen=True)
class SummaryMetrics:
    total_classes: int = 0
    total_checkins: int = 0
    total_revenue: float = 0.0
    total_cancelled: int = 0
    total_non_empty: int = 0
    total_hours: float = 0.0
    average_class_size: float = 0.0
    average_revenue: float = 0.0
    # percent of check-ins + late cancels that were cancelled
    cancellation_rate: float = 0.0
    unique_teachers: int = 0
    unique_classes: int = 0
    unique_locations: int = 0


def summarize(slots: Sequence[Slot]) -> SummaryMetrics:
    if not slots:
        return SummaryMetrics()
    total_classes = sum(s.total_occurrences for s in slots)
    total_checkins = sum(s.total_checkins for s in slots)
    total_revenue = sum(s.total_revenue for s in slots)
    total_cancelled = sum(s.total_cancelled for s in slots)
    attempted = total_checkins + total_cancelled
    return SummaryMetrics(
        total_classes=total_classes,
        total_checkins=total_checkins,
        total_revenue=total_revenue,
        total_cancelled=total_cancelled,
        total_non_empty=sum(s.total_non_empty for s in slots),
        total_hours=sum(s.hours for s in slots),
        average_class_size=total_checkins / total_classes if total_classes else 0.0,
        average_revenue=total_revenue / total_classes if total_classes else 0.0,
        cancellation_rate=(total_cancelled / attempted) * 100 if attempted else 0.0,
        unique_teachers=len({s.teacher_name for s in slots}),
        unique_classes=len({s.cleaned_class for s in slots}),
        unique_locations=len({s.location for s in slots}),
    )


@dataclass
class ClassStats:
    """All slots of one canonical class type, rolled up."""
    class_name: str
    total_checkins: int = 0
    total_revenue: float = 0.0
    # number of slots, not occurrences
    total_classes: int = 0
    slots: List[Slot] = field(default_factory=list)


def class_stats(slots: Sequence[Slot]) -> List[ClassStats]:
    groups: Dict[str, ClassStats] = {}
    for s in slots:
        g = groups.setdefault(s.cleaned_class, ClassStats(class_name=s.cleaned_class))
        g.total_checkins += s.total_checkins
        g.total_revenue += s.total_revenue
        g.total_classes += 1
        g.slots.append(s)
    return list(groups.values())


_RANK_KEYS = {
    "checkins": lambda c: c.total_checkins,
    "revenue": lambda c: c.total_revenue,
    "classes": lambda c: c.total_classes,
}


def rank_classes(slots: Sequence[Slot], metric: RankMetric = "checkins", n: int = 5, bottom: bool = False) -> List[ClassStats]:
    """Top (or bottom) n class types by metric."""
    key = _RANK_KEYS[metric]
    stats = sorted(class_stats(slots), key=key, reverse=not bottom)
    return stats[:n]


@dataclass
class TrainerStats:
    """One trainer's slots rolled up, for side-by-side comparison.

    Top/bottom class are picked per slot by average attendance
    (checkins / occurrences); the first slot wins ties.
    """
    teacher_name: str
    total_checkins: int = 0
    total_occurrences: int = 0
    total_revenue: float = 0.0
    total_cancelled: int = 0
    total_hours: float = 0.0
    total_empty: int = 0
    total_non_empty: int = 0
    # number of slots
    class_count: int = 0
    classes: List[str] = field(default_factory=list)
    top_class: str = ""
    top_class_attendance: float = 0.0
    bottom_class: str = ""
    bottom_class_attendance: Optional[float] = None

    @property
    def average_including_empty(self) -> float:
        return self.total_checkins / self.total_occurrences if self.total_occurrences else 0.0

    @property
    def average_excluding_empty(self) -> float:
        return self.total_checkins / self.total_non_empty if self.total_non_empty else 0.0

    @property
    def revenue_per_class(self) -> float:
        return self.total_revenue / self.total_occurrences if self.total_occurrences else 0.0

    @property
    def cancellation_rate(self) -> float:
        attempted = self.total_checkins + self.total_cancelled
        return (self.total_cancelled / attempted) * 100 if attempted else 0.0


def trainer_stats(slots: Sequence[Slot]) -> List[TrainerStats]:
    """Per-trainer rollup, in first-seen order."""
    groups: Dict[str, TrainerStats] = {}
    for s in slots:
        t = groups.setdefault(s.teacher_name, TrainerStats(teacher_name=s.teacher_name))
        t.total_checkins += s.total_checkins
        t.total_occurrences += s.total_occurrences
        t.total_revenue += s.total_revenue
        t.total_cancelled += s.total_cancelled
        t.total_hours += s.hours
        t.total_empty += s.total_empty
        t.total_non_empty += s.total_non_empty
        t.class_count += 1
        if s.cleaned_class not in t.classes:
            t.classes.append(s.cleaned_class)

        if not s.total_occurrences:
            continue
        avg = s.total_checkins / s.total_occurrences
        if avg > t.top_class_attendance:
            t.top_class, t.top_class_attendance = s.cleaned_class, avg
        if t.bottom_class_attendance is None or avg < t.bottom_class_attendance:
            t.bottom_class, t.bottom_class_attendance = s.cleaned_class, avg
    return list(groups.values())


_TRAINER_KEYS = {
    "checkins": lambda t: t.total_checkins,
    "classes": lambda t: t.total_occurrences,
    "revenue": lambda t: t.total_revenue,
    "average": lambda t: t.average_including_empty,
    "cancelled": lambda t: t.total_cancelled,
}

TRAINER_METRICS = tuple(_TRAINER_KEYS)


def rank_trainers(slots: Sequence[Slot], metric: str = "checkins", n: int = 5) -> List[TrainerStats]:
    """Top n trainers by metric (checkins, classes, revenue, average, cancelled)."""
    key = _TRAINER_KEYS.get(metric)
    if key is None:
        raise ValueError(f"trainer metric must be one of: {', '.join(TRAINER_METRICS)}")
    return sorted(trainer_stats(slots), key=key, reverse=True)[:n]


def format_currency(value: float) -> str:
    """Rupee amount with Indian digit grouping, no decimals: ₹12,34,567."""
    n = int(round(abs(value)))
    digits = str(n)
    if len(digits) > 3:
        head, tail = digits[:-3], digits[-3:]
        groups = []
        while len(head) > 2:
            groups.insert(0, head[-2:])
            head = head[:-2]
        if head:
            groups.insert(0, head)
        digits = ",".join(groups + [tail])
    sign = "-" if value < 0 and n else ""
    return f"{sign}₹{digits}"
