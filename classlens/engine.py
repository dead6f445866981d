"""
Session engine
==============

One `Session` is what a UI (or the CLI) talks to:

1) Ingest an archive -> canonical Slot dataset in a DatasetStore
2) Keep the current *view state*: FilterOptions, ad hoc `where` expressions
   and sort keys
3) `current()` derives the visible Slot list from (dataset, view state)
4) Undo/redo stacks hold previous view states
5) Analytics and exports run on the current view

The dataset itself is never edited: every view is recomputed from it.
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .export import export_csv, export_json
from .indices import Indices, build_indices
from .loader import ArchiveSource, ingest_archive
from .logging import get_logger
from .metrics import ClassStats, RankMetric, SummaryMetrics, TrainerStats, rank_classes, rank_trainers, summarize
from .models import Slot, SlotField
from .pivot import PivotConfig, PivotTable, pivot_from_config
from .query import ALL, DateRange, FilterOptions, SortKey, normalize_filters, query, sort_slots, top_k
from .query_lang import compile_where
from .store import DatasetStore, PivotConfigStore
from .config import DEFAULT_ARCHIVE_MARKER

logger = get_logger(__name__)

# selector name -> FilterOptions attribute
SELECTORS = {
    "trainer": "selected_trainer",
    "class": "selected_class",
    "location": "selected_location",
    "day": "selected_day_of_week",
    "period": "selected_period",
}


@dataclass(frozen=True)
class ViewState:
    """Everything that decides what the user currently sees."""
    filters: FilterOptions = field(default_factory=FilterOptions)
    where: Tuple[str, ...] = ()
    sort_keys: Tuple[SortKey, ...] = ()


@dataclass
class Session:
    """ClassLens session: dataset store + view state + history."""
    store: DatasetStore = field(default_factory=DatasetStore)
    pivots: PivotConfigStore = field(default_factory=PivotConfigStore)
    archive_marker: str = DEFAULT_ARCHIVE_MARKER
    # commands that changed the view, for reproducibility
    command_log: List[str] = field(default_factory=list)
    view: ViewState = field(default_factory=ViewState)

    # Stacks for undo/redo (store snapshots of the view state)
    _undo: List[ViewState] = field(default_factory=list, init=False)
    _redo: List[ViewState] = field(default_factory=list, init=False)

    # ---------------- Dataset lifecycle ----------------
    def load_archive(self, source: ArchiveSource) -> int:
        """Ingest an archive and install it as the dataset.

        On failure the IngestionError propagates and the previous dataset
        and view are kept.
        """
        logger.info("ingest_started", source=str(source) if isinstance(source, (str, Path)) else type(source).__name__)
        slots = ingest_archive(source, self.archive_marker)
        self.store.replace(slots)
        self.view = ViewState()
        self._undo.clear(); self._redo.clear()
        return len(slots)

    def reset(self) -> None:
        """Drop the dataset and every filter."""
        self.store.clear()
        self.view = ViewState()
        self._undo.clear(); self._redo.clear()

    @property
    def dataset(self) -> Tuple[Slot, ...]:
        return self.store.get()

    # ---------------- History (Stacks) ----------------
    def _push(self, new_view: ViewState) -> None:
        self._undo.append(self.view)
        self._redo.clear()
        self.view = new_view

    def undo(self) -> bool:
        if not self._undo:
            return False
        self._redo.append(self.view)
        self.view = self._undo.pop()
        return True

    def redo(self) -> bool:
        if not self._redo:
            return False
        self._undo.append(self.view)
        self.view = self._redo.pop()
        return True

    # ---------------- Filters ----------------
    def set_filters(self, raw: Dict[str, Any]) -> None:
        """Replace FilterOptions from a loose dict (see normalize_filters)."""
        self._push(replace(self.view, filters=normalize_filters(raw)))

    def search(self, term: str) -> None:
        self._push(replace(self.view, filters=replace(self.view.filters, search_term=term.strip())))

    def select(self, dimension: str, value: str) -> None:
        """Set one exact-match selector (trainer/class/location/day/period); 'all' clears it."""
        attr = SELECTORS.get(dimension.lower())
        if attr is None:
            raise ValueError(f"selector must be one of: {', '.join(SELECTORS)}")
        value = value.strip()
        if not value or value.lower() == ALL:
            value = ALL
        self._push(replace(self.view, filters=replace(self.view.filters, **{attr: value})))

    def set_date_range(self, start: Optional[date], end: Optional[date]) -> None:
        dr = DateRange(start, end) if (start or end) else None
        self._push(replace(self.view, filters=replace(self.view.filters, date_range=dr)))

    def where(self, expr: str) -> None:
        """AND an ad hoc expression onto the view (validated up front)."""
        compile_where(expr)
        self._push(replace(self.view, where=self.view.where + (expr,)))

    def clear_filters(self) -> None:
        self._push(replace(self.view, filters=FilterOptions(), where=()))

    def sort(self, keys: Sequence[SortKey]) -> None:
        self._push(replace(self.view, sort_keys=tuple(keys)))

    # ---------------- Output operations ----------------
    def current(self) -> List[Slot]:
        """The slots visible under the current view state."""
        slots = query(self.dataset, self.view.filters)
        for expr in self.view.where:
            pred = compile_where(expr)
            slots = [s for s in slots if pred(s)]
        return sort_slots(slots, self.view.sort_keys)

    def indices(self) -> Indices:
        """Picker options, taken from the full dataset."""
        return build_indices(self.dataset)

    def topk(self, k: int, field: SlotField) -> List[Slot]:
        return top_k(self.current(), k, field)

    def metrics(self) -> SummaryMetrics:
        return summarize(self.current())

    def ranked_classes(self, metric: RankMetric = "checkins", n: int = 5, bottom: bool = False) -> List[ClassStats]:
        return rank_classes(self.current(), metric=metric, n=n, bottom=bottom)

    def ranked_trainers(self, metric: str = "checkins", n: int = 5) -> List[TrainerStats]:
        return rank_trainers(self.current(), metric=metric, n=n)

    def pivot(self, config: PivotConfig, descending: bool = True) -> PivotTable:
        return pivot_from_config(self.current(), config, descending=descending)

    def export_csv(self, directory: str | Path) -> Path:
        return export_csv(self.current(), directory)

    def export_json(self, directory: str | Path) -> Path:
        return export_json(self.current(), directory)
