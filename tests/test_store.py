"""Dataset container, persistence and saved pivot views."""

import json

import pytest

from classlens.errors import StorageError
from classlens.pivot import PivotConfig
from classlens.store import (
    DATASET_KEY,
    PIVOT_CONFIGS_KEY,
    DatasetStore,
    JsonFileStore,
    MemoryStore,
    PivotConfigStore,
    dataset_from_json,
    dataset_to_json,
)


def test_empty_at_startup():
    store = DatasetStore()
    assert store.get() == ()
    assert len(store) == 0
    assert store.load() is False


def test_replace_swaps_whole_dataset(sample_slots):
    store = DatasetStore(MemoryStore())
    store.replace(sample_slots)
    assert store.get() == tuple(sample_slots)
    store.replace(sample_slots[:1])
    assert len(store) == 1
    store.clear()
    assert store.get() == ()
    assert store.backend.get(DATASET_KEY) is None


def test_json_round_trip(sample_slots):
    assert dataset_from_json(dataset_to_json(sample_slots)) == sample_slots


def test_camel_case_payload(sample_slots):
    payload = json.loads(dataset_to_json(sample_slots))
    first = payload[0]
    assert first["teacherName"] == "Jane Doe"
    assert first["uniqueID"] == sample_slots[0].unique_id
    assert first["occurrences"][0]["isEmpty"] is False
    assert "nonPaid" in first["occurrences"][0]


def test_rehydrate_from_files(tmp_path, sample_slots):
    DatasetStore(JsonFileStore(tmp_path)).replace(sample_slots)
    assert (tmp_path / f"{DATASET_KEY}.json").exists()

    restored = DatasetStore(JsonFileStore(tmp_path))
    assert restored.load() is True
    assert restored.get() == tuple(sample_slots)


def test_rehydrate_refolds_totals(sample_slots):
    payload = json.loads(dataset_to_json(sample_slots))
    payload[0]["totalCheckins"] = 999
    backend = MemoryStore()
    backend.set(DATASET_KEY, json.dumps(payload))
    store = DatasetStore(backend)
    assert store.load()
    assert store.get()[0].total_checkins == sample_slots[0].total_checkins


def test_corrupt_payload_is_ignored():
    backend = MemoryStore()
    backend.set(DATASET_KEY, "{not json")
    store = DatasetStore(backend)
    assert store.load() is False
    assert store.get() == ()

    backend.set(DATASET_KEY, json.dumps({"not": "a list"}))
    assert store.load() is False


def test_pivot_configs(tmp_path):
    pivots = PivotConfigStore(JsonFileStore(tmp_path))
    assert pivots.list() == []
    pivots.add(PivotConfig(name="By day", row_dimension="teacher", column_dimension="day", metric="revenue"))
    pivots.add(PivotConfig(row_dimension="location", column_dimension="period", metric="checkins"))

    reloaded = PivotConfigStore(JsonFileStore(tmp_path)).list()
    assert [c.display_name() for c in reloaded] == ["By day", "Location by Time Period"]
    assert reloaded[0].row_dimension == "teacher_name"
    assert reloaded[0].metric == "total_revenue"

    pivots.remove(0)
    assert [c.row_dimension for c in pivots.list()] == ["location"]
    with pytest.raises(IndexError):
        pivots.remove(3)


def test_corrupt_pivot_configs_read_as_empty():
    backend = MemoryStore()
    backend.set(PIVOT_CONFIGS_KEY, '[{"metric": "nonsense"}]')
    assert PivotConfigStore(backend).list() == []


def test_failed_write_leaves_no_temp_file(tmp_path, monkeypatch):
    def disk_full(src, dst):
        raise OSError("disk full")

    monkeypatch.setattr("classlens.store.os.replace", disk_full)
    store = JsonFileStore(tmp_path)
    with pytest.raises(StorageError):
        store.set("dataset", "[]")
    assert list(tmp_path.iterdir()) == []
