"""
Archive loader (ZIP -> raw CSV rows -> Slots)
=============================================

The studio's payroll system exports a ZIP holding one or more CSV reports.
We pick the payroll CSV by a marker substring in its file name (falling back
to the first CSV in the archive), parse it with pandas and hand the rows to
the aggregator.

Failures here are fatal to one ingestion attempt only and are raised as
`IngestionError` subclasses; callers keep their previous dataset.
"""

from __future__ import annotations
import io
import zipfile
from pathlib import Path
from typing import BinaryIO, Dict, List, Optional, Union

import pandas as pd

from .aggregate import aggregate
from .config import DEFAULT_ARCHIVE_MARKER
from .errors import ArchiveError, CsvParseError, DataFileNotFoundError, EmptyDataError
from .logging import get_logger
from .models import Slot

logger = get_logger(__name__)

ArchiveSource = Union[str, Path, bytes, BinaryIO]


def _open_zip(source: ArchiveSource) -> zipfile.ZipFile:
    if isinstance(source, (bytes, bytearray)):
        source = io.BytesIO(source)
    try:
        return zipfile.ZipFile(source)
    except (zipfile.BadZipFile, OSError, ValueError) as e:
        raise ArchiveError(f"Failed to read the ZIP archive: {e}") from e


def select_csv_member(names: List[str], marker: str = DEFAULT_ARCHIVE_MARKER) -> Optional[str]:
    """Pick the payroll CSV among archive member names.

    Returns the first CSV whose name contains `marker` (case-insensitive),
    else the first CSV, else None.
    """
    csvs = [n for n in names if n.lower().endswith(".csv") and not n.endswith("/")]
    m = marker.lower()
    for n in csvs:
        if m in n.lower():
            return n
    return csvs[0] if csvs else None


def parse_csv_text(text: str) -> List[Dict[str, object]]:
    """Parse CSV text into row dicts (header row, numeric inference, no blank lines)."""
    try:
        df = pd.read_csv(io.StringIO(text), skip_blank_lines=True)
    except pd.errors.EmptyDataError as e:
        raise EmptyDataError("The CSV file doesn't contain any valid data rows.") from e
    except (pd.errors.ParserError, ValueError) as e:
        raise CsvParseError(f"Failed to parse the CSV file: {e}") from e

    df.rename(columns={c: str(c).strip() for c in df.columns}, inplace=True)
    df = df.dropna(how="all")
    if df.empty:
        raise EmptyDataError("The CSV file doesn't contain any valid data rows.")
    return df.to_dict(orient="records")


def load_archive(source: ArchiveSource, marker: str = DEFAULT_ARCHIVE_MARKER) -> List[Dict[str, object]]:
    """Read the payroll CSV out of a ZIP archive and return its raw rows."""
    with _open_zip(source) as zf:
        names = zf.namelist()
        member = select_csv_member(names, marker)
        if member is None:
            logger.error("csv_member_not_found", marker=marker, members=names)
            raise DataFileNotFoundError(
                f"Could not find the required data file in the ZIP. Please make sure it "
                f"contains a file with '{marker}' in its name."
            )
        logger.info("csv_member_selected", member=member, exact_match=marker.lower() in member.lower())
        try:
            raw = zf.read(member)
        except (zipfile.BadZipFile, OSError, RuntimeError) as e:
            raise ArchiveError(f"Failed to extract {member}: {e}") from e

    text = raw.decode("utf-8-sig", errors="replace")
    rows = parse_csv_text(text)
    logger.info("csv_parsed", member=member, rows=len(rows))
    return rows


def ingest_archive(source: ArchiveSource, marker: str = DEFAULT_ARCHIVE_MARKER) -> List[Slot]:
    """Load an archive and aggregate it into a Slot dataset."""
    rows = load_archive(source, marker)
    return aggregate(rows)
