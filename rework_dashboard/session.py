"""
Dashboard session: the loaded record batch and the active goals.

A host application creates one session at startup (optionally hydrating it
from a store), hands it to ingest.ingest_file on each upload and reads
`records` / `goals` when rendering. Successful ingestion replaces the batch
wholesale; failures leave it untouched.
"""

import json
import logging

from .config import DEFAULT_GOALS, STORAGE_KEY
from .errors import QuotaExceeded
from .records import HoldRecord
from .storage import KeyValueStore, deserialize_records, serialize_records

logger = logging.getLogger(__name__)


class DashboardSession:
    def __init__(self, store: KeyValueStore | None = None, storage_key: str = STORAGE_KEY):
        self.store = store
        self.storage_key = storage_key
        self.records: list[HoldRecord] = []
        self.goals: dict[str, float] = dict(DEFAULT_GOALS)

    @classmethod
    def from_store(cls, store: KeyValueStore, storage_key: str = STORAGE_KEY) -> "DashboardSession":
        """Create a session and hydrate it from `store`."""
        session = cls(store, storage_key)
        session.hydrate()
        return session

    def hydrate(self) -> None:
        """Reload the persisted batch; an unreadable blob yields an empty batch."""
        if self.store is None:
            return
        blob = self.store.get(self.storage_key)
        if blob is None:
            return
        try:
            self.records = deserialize_records(blob)
        except (json.JSONDecodeError, TypeError, AttributeError):
            logger.warning("Stored data under '%s' is unreadable; starting empty", self.storage_key)
            self.records = []
            return
        logger.info("Restored %d records from storage", len(self.records))

    def replace_records(self, records: list[HoldRecord]) -> bool:
        """Swap in a new batch and persist it.

        Returns False when the store refused the blob; the batch is still
        held in memory.
        """
        self.records = list(records)
        if self.store is None:
            return True
        try:
            self.store.set(self.storage_key, serialize_records(self.records))
        except QuotaExceeded:
            logger.warning(
                "Data too large for storage (%d records). It must be re-uploaded next session.",
                len(self.records),
            )
            return False
        return True

    def set_goals(self, overrides: dict[str, float]) -> None:
        """Apply goal overrides on top of the defaults."""
        goals = dict(DEFAULT_GOALS)
        goals.update({k: float(v) for k, v in overrides.items() if k in DEFAULT_GOALS})
        self.goals = goals

    def reset_goals(self) -> None:
        self.goals = dict(DEFAULT_GOALS)

    def clear(self) -> None:
        """Drop all records and purge the persisted blob."""
        self.records = []
        if self.store is not None:
            self.store.remove(self.storage_key)
        logger.info("All data cleared")

    @property
    def has_data(self) -> bool:
        return bool(self.records)
