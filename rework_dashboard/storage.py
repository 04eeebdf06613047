"""
Key-value blob stores and the record-batch blob format.

The dashboard persists the loaded batch as one opaque JSON blob under
config.STORAGE_KEY. Any object with get/set/remove works as a store;
MemoryStore and JsonFileStore are provided. Both accept an optional byte
quota and raise QuotaExceeded from set() when a blob does not fit.
"""

import json
import logging
from pathlib import Path
from typing import Protocol

from .errors import QuotaExceeded
from .records import HoldRecord

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    def get(self, key: str) -> str | None: ...

    def set(self, key: str, blob: str) -> None: ...

    def remove(self, key: str) -> None: ...


class MemoryStore:
    """In-process store, mainly for tests and one-shot command-line runs."""

    def __init__(self, max_bytes: int | None = None):
        self.max_bytes = max_bytes
        self._data: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, blob: str) -> None:
        size = len(blob.encode("utf-8"))
        if self.max_bytes is not None and size > self.max_bytes:
            raise QuotaExceeded(f"{size} bytes exceeds quota of {self.max_bytes}")
        self._data[key] = blob

    def remove(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileStore:
    """One file per key under a directory."""

    def __init__(self, directory: str | Path, max_bytes: int | None = None):
        self.directory = Path(directory)
        self.max_bytes = max_bytes

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def get(self, key: str) -> str | None:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def set(self, key: str, blob: str) -> None:
        size = len(blob.encode("utf-8"))
        if self.max_bytes is not None and size > self.max_bytes:
            raise QuotaExceeded(f"{size} bytes exceeds quota of {self.max_bytes}")
        self.directory.mkdir(parents=True, exist_ok=True)
        self._path(key).write_text(blob, encoding="utf-8")

    def remove(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)


def serialize_records(records: list[HoldRecord]) -> str:
    """Dump a record batch to the stored JSON blob (NaN goals kept as NaN)."""
    return json.dumps([r.to_dict() for r in records])


def deserialize_records(blob: str) -> list[HoldRecord]:
    """Load a record batch from a stored blob, without re-validation."""
    return [HoldRecord.from_dict(item) for item in json.loads(blob)]
