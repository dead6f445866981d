"""
Pivot tables
============

Cross-tabulates a Slot set: one dimension down the rows, one across the
columns, a numeric metric summed into each cell. Rows are ordered by their
total. `PivotConfig` is the saved-view shape users can persist by name.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, List, Literal, Optional, Sequence

import pandas as pd
from pydantic import BaseModel, field_validator

from .errors import UnknownFieldError
from .models import FieldKind, Slot, SlotField
from .query import as_number
from .temporal import parse_date

TimeGrouping = Literal["none", "day", "month", "quarter", "year"]

TOTAL_LABEL = "Total"


class PivotConfig(BaseModel):
    """A named pivot view the user saved."""

    name: str = ""
    row_dimension: str = "teacher_name"
    column_dimension: str = "day_of_week"
    metric: str = "total_checkins"
    show_heatmap: bool = True
    show_totals: bool = True
    time_grouping: TimeGrouping = "none"

    @field_validator("row_dimension", "column_dimension", "metric")
    @classmethod
    def _known_field(cls, v: str) -> str:
        try:
            return SlotField.parse(v).value
        except UnknownFieldError as e:
            raise ValueError(str(e)) from e

    def display_name(self) -> str:
        if self.name:
            return self.name
        row = SlotField.parse(self.row_dimension).label
        col = SlotField.parse(self.column_dimension).label
        return f"{row} by {col}"


@dataclass
class PivotRow:
    key: str
    cells: Dict[str, Optional[float]]
    total: float


@dataclass
class PivotTable:
    row_dimension: SlotField
    column_dimension: SlotField
    metric: SlotField
    columns: List[str] = field(default_factory=list)
    rows: List[PivotRow] = field(default_factory=list)
    column_totals: Dict[str, float] = field(default_factory=dict)
    grand_total: float = 0.0

    def column_max(self, column: str) -> float:
        """Largest cell in a column (heatmap scale)."""
        vals = [r.cells.get(column) or 0.0 for r in self.rows]
        return max(vals) if vals else 0.0

    def to_frame(self, show_totals: bool = True) -> pd.DataFrame:
        """Table view; the totals row and column are always last, even when a key is also "Total"."""
        data = [[r.cells.get(c) for c in self.columns] for r in self.rows]
        index = [r.key for r in self.rows]
        columns = list(self.columns)
        if show_totals:
            for values, r in zip(data, self.rows):
                values.append(r.total)
            data.append([self.column_totals.get(c) for c in self.columns] + [self.grand_total])
            index.append(TOTAL_LABEL)
            columns.append(TOTAL_LABEL)
        return pd.DataFrame(data, index=index, columns=columns)


def _bucket(value: object, grouping: str) -> str:
    d = parse_date(value)
    if d is None:
        return str(value)
    if grouping == "day":
        return d.isoformat()
    if grouping == "month":
        return f"{d.year}-{d.month:02d}"
    if grouping == "quarter":
        return f"{d.year}-Q{(d.month - 1) // 3 + 1}"
    if grouping == "year":
        return str(d.year)
    return str(value)


def _label(slot: Slot, dim: SlotField, grouping: str) -> str:
    v = dim.get(slot)
    if dim.kind is FieldKind.DATE and grouping != "none":
        return _bucket(v, grouping)
    return "" if v is None else str(v)


def compute_pivot(
    slots: Sequence[Slot],
    row_dimension: SlotField,
    column_dimension: SlotField,
    metric: SlotField,
    *,
    descending: bool = True,
    time_grouping: str = "none",
) -> PivotTable:
    """Sum `metric` per (row, column) cell; missing combinations are None."""
    table = PivotTable(row_dimension=row_dimension, column_dimension=column_dimension, metric=metric)
    if not slots:
        return table

    df = pd.DataFrame({
        "row": [_label(s, row_dimension, time_grouping) for s in slots],
        "col": [_label(s, column_dimension, time_grouping) for s in slots],
        "value": [as_number(metric.get(s)) for s in slots],
    })
    df["value"] = pd.to_numeric(df["value"], errors="coerce")

    cells = df.groupby(["row", "col"], sort=False)["value"].sum().unstack("col")
    row_totals = df.groupby("row", sort=False)["value"].sum()
    row_totals = row_totals.sort_values(ascending=not descending, kind="mergesort")

    table.columns = sorted(cells.columns.tolist())
    for key, total in row_totals.items():
        row_cells: Dict[str, Optional[float]] = {}
        for c in table.columns:
            v = cells.at[key, c]
            row_cells[c] = None if pd.isna(v) else float(v)
        table.rows.append(PivotRow(key=str(key), cells=row_cells, total=float(total)))

    table.column_totals = {c: float(cells[c].fillna(0).sum()) for c in table.columns}
    table.grand_total = float(row_totals.sum())
    return table


def pivot_from_config(slots: Sequence[Slot], config: PivotConfig, descending: bool = True) -> PivotTable:
    return compute_pivot(
        slots,
        SlotField.parse(config.row_dimension),
        SlotField.parse(config.column_dimension),
        SlotField.parse(config.metric),
        descending=descending,
        time_grouping=config.time_grouping,
    )
