"""ZIP archive ingestion."""

import pytest

from classlens.config import DEFAULT_ARCHIVE_MARKER
from classlens.errors import (
    ArchiveError,
    CsvParseError,
    DataFileNotFoundError,
    EmptyDataError,
    IngestionError,
)
from classlens.loader import ingest_archive, load_archive, parse_csv_text, select_csv_member


def test_select_member_prefers_marker():
    names = ["readme.txt", "other.csv", f"reports/{DEFAULT_ARCHIVE_MARKER}.csv"]
    assert select_csv_member(names) == f"reports/{DEFAULT_ARCHIVE_MARKER}.csv"


def test_select_member_falls_back_to_first_csv():
    assert select_csv_member(["a.txt", "first.CSV", "second.csv"]) == "first.CSV"
    assert select_csv_member(["a.txt", "folder/"]) is None


def test_ingest_from_bytes(make_archive, scenario_a_rows):
    slots = ingest_archive(make_archive(scenario_a_rows))
    assert len(slots) == 1
    assert slots[0].total_checkins == 12
    assert slots[0].class_time == "6:00 AM"


def test_ingest_from_path(tmp_path, make_archive, sample_rows):
    path = tmp_path / "export.zip"
    path.write_bytes(make_archive(sample_rows))
    slots = ingest_archive(str(path))
    assert len(slots) == 3


def test_marker_member_wins_over_other_csvs(make_archive, scenario_a_rows):
    data = make_archive(scenario_a_rows, extra={"aaa-summary.csv": "x,y\n1,2\n"})
    rows = load_archive(data)
    assert len(rows) == 2
    assert "Class date" in rows[0]


def test_fallback_to_first_csv(make_archive, scenario_a_rows):
    data = make_archive(scenario_a_rows, name="payroll.csv")
    assert len(ingest_archive(data)) == 1


def test_no_csv_in_archive(zip_of):
    with pytest.raises(DataFileNotFoundError):
        load_archive(zip_of({"notes.txt": "hello"}))


def test_not_a_zip():
    with pytest.raises(ArchiveError):
        load_archive(b"this is not a zip file")


def test_missing_file(tmp_path):
    with pytest.raises(ArchiveError):
        load_archive(tmp_path / "missing.zip")


def test_empty_csv(zip_of):
    with pytest.raises(EmptyDataError):
        load_archive(zip_of({"payroll.csv": ""}))


def test_header_only_csv(zip_of):
    with pytest.raises(EmptyDataError):
        load_archive(zip_of({"payroll.csv": "Teacher First Name,Class date\n\n\n"}))


def test_malformed_csv():
    with pytest.raises(CsvParseError):
        parse_csv_text('a,b\n1,2\n"unterminated,3\n')


def test_ingestion_errors_share_a_base():
    for cls in (ArchiveError, CsvParseError, DataFileNotFoundError, EmptyDataError):
        assert issubclass(cls, IngestionError)


def test_parse_strips_headers_and_blank_lines():
    rows = parse_csv_text(" Location ,Checked in\nDowntown,4\n\n,\nUptown,3\n")
    assert rows == [{"Location": "Downtown", "Checked in": 4.0}, {"Location": "Uptown", "Checked in": 3.0}]
