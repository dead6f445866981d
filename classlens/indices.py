"""
Facet indices
=============

Maps from a dimension value to the positions of the slots carrying it, e.g.
`by_trainer["Jane Doe"] -> [0, 4, 9]`. The keys double as the option lists
for the trainer / class / location / day / period pickers.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, Iterable, List, Sequence

from .models import Slot, SlotField
from .temporal import DAYS


@dataclass
class Indices:
    """Precomputed value -> slot positions maps for the picker dimensions."""
    by_trainer: Dict[str, List[int]]
    by_class: Dict[str, List[int]]
    by_location: Dict[str, List[int]]
    by_day: Dict[str, List[int]]
    by_period: Dict[str, List[int]]

    def options(self, field: SlotField) -> List[str]:
        """Sorted picker values for one of the indexed dimensions."""
        m = {
            SlotField.TEACHER_NAME: self.by_trainer,
            SlotField.CLEANED_CLASS: self.by_class,
            SlotField.LOCATION: self.by_location,
            SlotField.DAY_OF_WEEK: self.by_day,
            SlotField.PERIOD: self.by_period,
        }.get(field)
        if m is None:
            raise ValueError(f"{field.value} is not an indexed dimension")
        if field is SlotField.DAY_OF_WEEK:
            return sorted(m, key=lambda d: DAYS.index(d) if d in DAYS else len(DAYS))
        return sorted(m)


def build_indices(slots: Sequence[Slot]) -> Indices:
    """Index a dataset by its picker dimensions (blank values are skipped)."""
    by_trainer: Dict[str, List[int]] = {}
    by_class: Dict[str, List[int]] = {}
    by_location: Dict[str, List[int]] = {}
    by_day: Dict[str, List[int]] = {}
    by_period: Dict[str, List[int]] = {}

    for i, s in enumerate(slots):
        for d, v in ((by_trainer, s.teacher_name), (by_class, s.cleaned_class),
                     (by_location, s.location), (by_day, s.day_of_week), (by_period, s.period)):
            if v:
                d.setdefault(v, []).append(i)

    return Indices(by_trainer=by_trainer, by_class=by_class, by_location=by_location,
                   by_day=by_day, by_period=by_period)


def unique_values(slots: Iterable[Slot], field: SlotField) -> List[str]:
    """Sorted distinct non-empty values of any field, as strings."""
    out = set()
    for s in slots:
        v = field.get(s)
        if v is None or v == "":
            continue
        out.add(str(v))
    return sorted(out)
