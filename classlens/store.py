"""
State and persistence
=====================

`DatasetStore` is the explicit container for the canonical dataset: it is
empty at startup (or rehydrated from storage), replaced wholesale on every
successful ingestion and cleared on reset. The dataset is an immutable
tuple, so `replace()` is a single reference swap.

Persistence goes through a tiny `KeyValueStore` interface holding JSON text
under fixed keys, like browser local storage.
"""

from __future__ import annotations
import json
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple

from pydantic import ValidationError

from .errors import StorageError
from .logging import get_logger
from .models import Occurrence, Slot
from .pivot import PivotConfig
from .recompute import recompute

logger = get_logger(__name__)

DATASET_KEY = "dashboardData"
PIVOT_CONFIGS_KEY = "pivotConfigs"


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


class MemoryStore:
    """In-process store (tests, or sessions that should not persist)."""

    def __init__(self) -> None:
        self._data: Dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileStore:
    """One `<key>.json` file per key inside a directory."""

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def get(self, key: str) -> Optional[str]:
        p = self._path(key)
        try:
            return p.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.warning("store_read_failed", key=key, path=str(p), error=str(e))
            return None

    def set(self, key: str, value: str) -> None:
        p = self._path(key)
        tmp: Optional[str] = None
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=self.directory, prefix=f".{key}.", suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(value)
            os.replace(tmp, p)
        except OSError as e:
            if tmp is not None:
                Path(tmp).unlink(missing_ok=True)
            raise StorageError(f"Failed to write {p}: {e}") from e

    def delete(self, key: str) -> None:
        try:
            self._path(key).unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            raise StorageError(f"Failed to delete {self._path(key)}: {e}") from e


# -----------------------------
# Dataset (de)serialization
# -----------------------------

def dataset_to_json(slots: Sequence[Slot]) -> str:
    return json.dumps([s.to_dict() for s in slots], ensure_ascii=False)


def slot_from_dict(d: Dict[str, Any]) -> Slot:
    """Rebuild a Slot from its serialized form.

    Derived totals are refolded from the stored occurrences rather than
    trusted from the payload.
    """
    identity = Slot(
        teacher_name=str(d.get("teacherName") or ""),
        cleaned_class=str(d.get("cleanedClass") or ""),
        day_of_week=str(d.get("dayOfWeek") or ""),
        class_time=str(d.get("classTime") or ""),
        location=str(d.get("location") or ""),
        date=str(d.get("date") or ""),
        period=str(d.get("period") or ""),
        unique_id=str(d.get("uniqueID") or ""),
        teacher_email=str(d.get("teacherEmail") or ""),
        hours=float(d.get("totalTime") or 0.0),
    )
    return recompute(identity, [Occurrence.from_dict(o) for o in d.get("occurrences") or []])


def dataset_from_json(text: str) -> List[Slot]:
    payload = json.loads(text)
    if not isinstance(payload, list):
        raise ValueError("dataset payload must be a JSON array")
    return [slot_from_dict(d) for d in payload]


class DatasetStore:
    """Holds the canonical dataset for one session.

    Persistence is optional: pass `backend=None` for a purely in-memory store.
    """

    def __init__(self, backend: Optional[KeyValueStore] = None) -> None:
        self.backend = backend
        self._slots: Tuple[Slot, ...] = ()

    def get(self) -> Tuple[Slot, ...]:
        return self._slots

    def __len__(self) -> int:
        return len(self._slots)

    def replace(self, slots: Sequence[Slot]) -> None:
        """Install a new dataset and persist it."""
        new = tuple(slots)
        if self.backend is not None:
            self.backend.set(DATASET_KEY, dataset_to_json(new))
        self._slots = new
        logger.info("dataset_replaced", slots=len(new))

    def clear(self) -> None:
        self._slots = ()
        if self.backend is not None:
            self.backend.delete(DATASET_KEY)
        logger.info("dataset_cleared")

    def load(self) -> bool:
        """Rehydrate from the backend. Returns True if a dataset was restored.

        A corrupt payload is logged and ignored; the store stays empty.
        """
        if self.backend is None:
            return False
        text = self.backend.get(DATASET_KEY)
        if not text:
            return False
        try:
            slots = dataset_from_json(text)
        except (ValueError, TypeError, AttributeError) as e:
            logger.warning("dataset_rehydrate_failed", error=str(e))
            return False
        self._slots = tuple(slots)
        logger.info("dataset_rehydrated", slots=len(slots))
        return True


class PivotConfigStore:
    """Saved pivot views, appended and removed by explicit user action."""

    def __init__(self, backend: Optional[KeyValueStore] = None) -> None:
        self.backend = backend if backend is not None else MemoryStore()

    def list(self) -> List[PivotConfig]:
        text = self.backend.get(PIVOT_CONFIGS_KEY)
        if not text:
            return []
        try:
            raw = json.loads(text)
            return [PivotConfig.model_validate(c) for c in raw]
        except (ValueError, TypeError, ValidationError) as e:
            logger.warning("pivot_configs_load_failed", error=str(e))
            return []

    def _save(self, configs: List[PivotConfig]) -> None:
        self.backend.set(PIVOT_CONFIGS_KEY, json.dumps([c.model_dump() for c in configs]))

    def add(self, config: PivotConfig) -> List[PivotConfig]:
        configs = self.list() + [config]
        self._save(configs)
        return configs

    def remove(self, index: int) -> List[PivotConfig]:
        configs = self.list()
        if not 0 <= index < len(configs):
            raise IndexError(f"No saved pivot configuration at position {index}")
        del configs[index]
        self._save(configs)
        return configs
