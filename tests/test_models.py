"""Field enum, serialization and settings."""

import pytest

from classlens.config import ClassLensConfig
from classlens.errors import UnknownFieldError
from classlens.models import FieldKind, Occurrence, SlotField


@pytest.mark.parametrize("name, expected", [
    ("teacher_name", SlotField.TEACHER_NAME),
    ("teacherName", SlotField.TEACHER_NAME),
    ("trainer", SlotField.TEACHER_NAME),
    ("Class", SlotField.CLEANED_CLASS),
    ("checkins", SlotField.TOTAL_CHECKINS),
    ("totalRevenue", SlotField.TOTAL_REVENUE),
    ("classAverageExcludingEmpty", SlotField.AVG_EXCLUDING_EMPTY),
    ("uniqueID", SlotField.UNIQUE_ID),
])
def test_field_names(name, expected):
    assert SlotField.parse(name) is expected


def test_unknown_field():
    with pytest.raises(UnknownFieldError):
        SlotField.parse("mood")


def test_field_kinds(sample_slots):
    assert SlotField.DATE.kind is FieldKind.DATE
    assert SlotField.LOCATION.kind is FieldKind.TEXT
    assert SlotField.TOTAL_REVENUE.kind is FieldKind.NUMBER
    assert SlotField.TOTAL_CHECKINS.get(sample_slots[0]) == 12
    assert SlotField.AVG_INCLUDING_EMPTY.label == "Avg. Attendance (All)"


def test_occurrence_from_dict_derives_empty_flag():
    occ = Occurrence.from_dict({"date": "2024-01-01", "checkins": 0, "revenue": 10, "isEmpty": False})
    assert occ.is_empty is True
    assert occ.revenue == 10.0
    assert occ.non_paid == 0
    assert Occurrence.from_dict(occ.to_dict()) == occ


def test_config_from_environment(monkeypatch, tmp_path):
    monkeypatch.setenv("CLASSLENS_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("CLASSLENS_LOG_JSON", "true")
    cfg = ClassLensConfig()
    assert cfg.data_dir == str(tmp_path)
    assert cfg.log_json is True
    assert cfg.archive_marker == "momence-teachers-payroll-report-aggregate-combined"
