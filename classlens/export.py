"""
Export (current selection -> CSV / JSON)
========================================

CSV is for spreadsheets: one row per slot with the dashboard's column names;
the nested occurrences go into a single JSON-text column. JSON keeps the
nested structure as-is.

A failed export raises `ExportError` and leaves the in-memory dataset alone.
"""

from __future__ import annotations
from datetime import date
import json
from pathlib import Path
from typing import Optional, Sequence

import pandas as pd

from .errors import ExportError
from .logging import get_logger
from .models import Slot

logger = get_logger(__name__)

JSON_FILE_NAME = "class_data.json"

EXPORT_COLUMNS = [
    "teacherName", "teacherEmail", "totalTime", "classTime", "location", "cleanedClass",
    "date", "dayOfWeek", "period", "totalCheckins", "totalOccurrences", "totalRevenue",
    "totalCancelled", "totalEmpty", "totalNonEmpty", "totalNonPaid",
    "classAverageIncludingEmpty", "classAverageExcludingEmpty", "uniqueID", "occurrences",
]


def csv_file_name(today: Optional[date] = None) -> str:
    today = today or date.today()
    return f"class_data_export_{today.isoformat()}.csv"


def slots_to_frame(slots: Sequence[Slot]) -> pd.DataFrame:
    """Flatten slots into a table; `occurrences` becomes a JSON string column."""
    records = []
    for s in slots:
        d = s.to_dict()
        d["occurrences"] = json.dumps(d["occurrences"], ensure_ascii=False)
        records.append(d)
    return pd.DataFrame.from_records(records, columns=EXPORT_COLUMNS)


def export_csv(slots: Sequence[Slot], directory: str | Path = ".", today: Optional[date] = None) -> Path:
    out = Path(directory) / csv_file_name(today)
    try:
        out.parent.mkdir(parents=True, exist_ok=True)
        slots_to_frame(slots).to_csv(out, index=False, encoding="utf-8")
    except (OSError, ValueError, TypeError) as e:
        logger.error("export_failed", format="csv", path=str(out), error=str(e))
        raise ExportError(f"Failed to export data to CSV: {e}") from e
    logger.info("export_written", format="csv", path=str(out), slots=len(slots))
    return out


def export_json(slots: Sequence[Slot], directory: str | Path = ".") -> Path:
    out = Path(directory) / JSON_FILE_NAME
    try:
        out.parent.mkdir(parents=True, exist_ok=True)
        payload = [s.to_dict() for s in slots]
        with open(out, "w", encoding="utf-8") as f:
            json.dump(payload, f, ensure_ascii=False, indent=2)
    except (OSError, ValueError, TypeError) as e:
        logger.error("export_failed", format="json", path=str(out), error=str(e))
        raise ExportError(f"Failed to export data to JSON: {e}") from e
    logger.info("export_written", format="json", path=str(out), slots=len(slots))
    return out
