"""
Filter / sort / search
======================

`query(dataset, options)` is the call a UI makes on every interaction. It is
a pure function of its inputs: the dataset is never modified, and Slots
touched by a date range are rebuilt with `recompute` so their totals only
reflect the surviving occurrences.

Second layer (independent of `query`):
- `FieldFilter` / `apply_field_filters` for ad hoc predicates
  (contains, equals, starts, ends, greater, less, after, before, on, in)
- `SortKey` / `sort_slots` for stable multi-key sorting
- `top_k` for quick "best N by metric" lists
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import date
from enum import Enum
import heapq
import locale
import math
from typing import Any, Iterable, List, Mapping, Optional, Sequence

from .dsa import Comparator, chain_comparators, merge_sort
from .errors import QueryError
from .models import Slot, SlotField
from .recompute import recompute
from .temporal import parse_date

ALL = "all"


@dataclass(frozen=True)
class DateRange:
    """Inclusive calendar range; a None bound is open-ended."""
    start: Optional[date] = None
    end: Optional[date] = None

    @property
    def active(self) -> bool:
        return self.start is not None or self.end is not None

    def contains(self, d: Optional[date]) -> bool:
        if d is None:
            return False
        if self.start is not None and d < self.start:
            return False
        if self.end is not None and d > self.end:
            return False
        return True


@dataclass(frozen=True)
class FilterOptions:
    search_term: str = ""
    selected_trainer: str = ALL
    selected_class: str = ALL
    selected_location: str = ALL
    selected_day_of_week: str = ALL
    selected_period: str = ALL
    date_range: Optional[DateRange] = None

    def active_count(self) -> int:
        """Number of constraints in effect (for a filter badge)."""
        n = 1 if self.search_term else 0
        n += sum(1 for v in self._selections() if _selection(v) != ALL)
        if self.date_range is not None and self.date_range.active:
            n += 1
        return n

    def _selections(self):
        return (self.selected_trainer, self.selected_class, self.selected_location,
                self.selected_day_of_week, self.selected_period)


def _pick(raw: Mapping[str, Any], *names: str) -> Any:
    for n in names:
        if raw.get(n) is not None:
            return raw[n]
    return None

def _selection(value: Any) -> str:
    s = "" if value is None else str(value).strip()
    return ALL if not s or s.lower() == ALL else s

def _selects(selected: str, actual: str) -> bool:
    sel = _selection(selected)
    return sel == ALL or actual == sel

def normalize_filters(raw: Mapping[str, Any]) -> FilterOptions:
    """Build FilterOptions from a loose dict (snake_case or camelCase keys).

    Blank selections become "all"; date bounds may be dates or ISO strings.
    """
    dr_raw = _pick(raw, "date_range", "dateRange")
    date_range = None
    if isinstance(dr_raw, DateRange):
        date_range = dr_raw
    elif isinstance(dr_raw, Mapping):
        date_range = DateRange(
            start=parse_date(_pick(dr_raw, "start", "from")),
            end=parse_date(_pick(dr_raw, "end", "to")),
        )
    elif isinstance(dr_raw, (tuple, list)) and len(dr_raw) == 2:
        date_range = DateRange(start=parse_date(dr_raw[0]), end=parse_date(dr_raw[1]))
    if date_range is not None and not date_range.active:
        date_range = None

    return FilterOptions(
        search_term=str(_pick(raw, "search_term", "searchTerm") or "").strip(),
        selected_trainer=_selection(_pick(raw, "selected_trainer", "selectedTrainer")),
        selected_class=_selection(_pick(raw, "selected_class", "selectedClass")),
        selected_location=_selection(_pick(raw, "selected_location", "selectedLocation")),
        selected_day_of_week=_selection(_pick(raw, "selected_day_of_week", "selectedDayOfWeek")),
        selected_period=_selection(_pick(raw, "selected_period", "selectedPeriod")),
        date_range=date_range,
    )


def restrict_to_range(slot: Slot, date_range: DateRange) -> Slot:
    """Recompute a slot from the occurrences that fall inside `date_range`."""
    kept = [o for o in slot.occurrences if date_range.contains(parse_date(o.date))]
    return recompute(slot, kept)


def _matches(slot: Slot, options: FilterOptions) -> bool:
    if options.search_term:
        haystack = " ".join([
            slot.teacher_name, slot.cleaned_class, slot.location, slot.day_of_week, slot.class_time,
        ]).lower()
        if options.search_term.lower() not in haystack:
            return False
    return (_selects(options.selected_trainer, slot.teacher_name)
            and _selects(options.selected_class, slot.cleaned_class)
            and _selects(options.selected_location, slot.location)
            and _selects(options.selected_day_of_week, slot.day_of_week)
            and _selects(options.selected_period, slot.period))


def query(dataset: Iterable[Slot], options: FilterOptions) -> List[Slot]:
    """Apply date range, search term and selectors to a dataset.

    Slots left with no occurrences in the date range are dropped entirely.
    """
    date_range = options.date_range if options.date_range is not None and options.date_range.active else None
    out: List[Slot] = []
    for slot in dataset:
        if date_range is not None:
            slot = restrict_to_range(slot, date_range)
        if slot.total_occurrences == 0:
            continue
        if _matches(slot, options):
            out.append(slot)
    return out


# -----------------------------
# Ad hoc field filters
# -----------------------------

class Operator(Enum):
    CONTAINS = "contains"
    EQUALS = "equals"
    STARTS = "starts"
    ENDS = "ends"
    GREATER = "greater"
    LESS = "less"
    AFTER = "after"
    BEFORE = "before"
    ON = "on"
    IN = "in"

    @classmethod
    def parse(cls, name: str) -> "Operator":
        n = str(name).strip().lower()
        try:
            return cls(n)
        except ValueError:
            pass
        hit = _OPERATOR_ALIASES.get(n)
        if hit is None:
            raise QueryError(f"Unknown operator: {name!r}")
        return hit


_OPERATOR_ALIASES = {
    "==": Operator.EQUALS,
    "=": Operator.EQUALS,
    "eq": Operator.EQUALS,
    "starts-with": Operator.STARTS,
    "starts_with": Operator.STARTS,
    "startswith": Operator.STARTS,
    "ends-with": Operator.ENDS,
    "ends_with": Operator.ENDS,
    "endswith": Operator.ENDS,
    ">": Operator.GREATER,
    "gt": Operator.GREATER,
    "<": Operator.LESS,
    "lt": Operator.LESS,
}


def as_number(value: Any) -> Optional[float]:
    """Return value as a finite float, or None if it is not numeric."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        f = float(value)
    else:
        try:
            f = float(str(value).strip())
        except ValueError:
            return None
    return f if math.isfinite(f) else None


@dataclass(frozen=True)
class FieldFilter:
    field: SlotField
    operator: Operator
    value: str

    def matches(self, slot: Slot) -> bool:
        v = self.field.get(slot)
        if v is None:
            return False
        op = self.operator
        needle = str(self.value).strip().lower()
        text = str(v).lower()

        if op is Operator.CONTAINS:
            return needle in text
        if op is Operator.STARTS:
            return text.startswith(needle)
        if op is Operator.ENDS:
            return text.endswith(needle)
        if op is Operator.IN:
            options = {p.strip().lower() for p in str(self.value).split(",") if p.strip()}
            return text in options
        if op is Operator.EQUALS:
            a, b = as_number(v), as_number(self.value)
            if a is not None and b is not None:
                return a == b
            return text == needle
        if op in (Operator.GREATER, Operator.LESS):
            a, b = as_number(v), as_number(self.value)
            if a is None or b is None:
                return False
            return a > b if op is Operator.GREATER else a < b

        # date operators
        a, b = parse_date(v), parse_date(self.value)
        if a is None or b is None:
            return False
        if op is Operator.AFTER:
            return a > b
        if op is Operator.BEFORE:
            return a < b
        return a == b


def apply_field_filters(slots: Iterable[Slot], filters: Sequence[FieldFilter]) -> List[Slot]:
    """Keep slots that satisfy every filter."""
    return [s for s in slots if all(f.matches(s) for f in filters)]


# -----------------------------
# Sorting
# -----------------------------

@dataclass(frozen=True)
class SortKey:
    field: SlotField
    descending: bool = False

    @classmethod
    def parse(cls, field: str, direction: str = "asc") -> "SortKey":
        d = str(direction).strip().lower()
        if d not in ("asc", "desc"):
            raise QueryError(f"Sort direction must be asc or desc, got {direction!r}")
        return cls(field=SlotField.parse(field), descending=(d == "desc"))


def _text_key(value: Any) -> str:
    s = str(value).casefold()
    try:
        return locale.strxfrm(s)
    except (ValueError, OSError):
        return s


def compare_values(a: Any, b: Any) -> int:
    """Numeric comparison when both sides are numbers, else locale-aware text."""
    na, nb = as_number(a), as_number(b)
    if na is not None and nb is not None:
        return (na > nb) - (na < nb)
    ta, tb = _text_key(a), _text_key(b)
    return (ta > tb) - (ta < tb)


def _key_comparator(key: SortKey) -> Comparator:
    get = key.field.get
    sign = -1 if key.descending else 1

    def cmp(x: Slot, y: Slot) -> int:
        a, b = get(x), get(y)
        # missing values go last in either direction
        if a is None or b is None:
            return (a is None) - (b is None)
        return sign * compare_values(a, b)
    return cmp


def sort_slots(slots: Sequence[Slot], keys: Sequence[SortKey]) -> List[Slot]:
    """Stable lexicographic sort by several keys; full ties keep input order."""
    if not keys:
        return list(slots)
    return merge_sort(list(slots), chain_comparators([_key_comparator(k) for k in keys]))


def top_k(slots: Iterable[Slot], k: int, field: SlotField) -> List[Slot]:
    """The k slots with the largest numeric `field` value, largest first."""
    if k <= 0:
        return []
    heap: List[tuple] = []
    for i, s in enumerate(slots):
        v = as_number(field.get(s))
        if v is None:
            continue
        # negative index: on equal values the earlier slot ranks higher
        item = (v, -i, s)
        if len(heap) < k:
            heapq.heappush(heap, item)
        elif item[:2] > heap[0][:2]:
            heapq.heapreplace(heap, item)
    heap.sort(key=lambda t: t[:2], reverse=True)
    return [s for _, _, s in heap]


def field_filter(field: str, operator: str, value: Any) -> FieldFilter:
    """Convenience constructor from loose strings."""
    return FieldFilter(field=SlotField.parse(field), operator=Operator.parse(operator), value=str(value))

