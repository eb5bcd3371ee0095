"""Persisted connection store.

Remembers every connection configuration that ever connected successfully,
keyed by name, and which one is active. Lives in a single JSON blob on a
KeyValueStore, so the host picks the medium:

    store = ConnectionStore(DiskCacheKeyValueStore("~/.palette-db"))
    store.upsert(record)
    store.mark_active("studio")
    store.get_active()  -> PersistedConnectionRecord | None

Records are never deleted implicitly; only delete() removes one.

Blob layout (key "palletteo_database_connections"):
    [{"type": "firebase", "name": "studio", "config": {...},
      "isActive": true, "createdAt": 1718000000000, "lastUsed": 1718000000000}]
The most recently activated name is also kept under "<key>:active".
"""

from __future__ import annotations

import copy
import json
import logging
import time

from palette_core.adapters.kv import KeyValueStore
from palette_core.config import DEFAULT_STORE_KEY
from palette_core.types import PersistedConnectionRecord

logger = logging.getLogger(__name__)


def now_millis() -> int:
    return int(time.time() * 1000)


class ConnectionStore:
    """Durable mapping from connection name to PersistedConnectionRecord.

    Invariant: at most one record has ``is_active`` set. Every mutating
    method reads the blob, edits it and writes it back whole; callers that
    mutate concurrently must serialize (the registry does).
    """

    def __init__(self, kv: KeyValueStore, key: str = DEFAULT_STORE_KEY) -> None:
        self.kv = kv
        self.key = key

    @property
    def active_key(self) -> str:
        return f"{self.key}:active"

    def _load(self) -> list[PersistedConnectionRecord]:
        blob = self.kv.get(self.key)
        if not blob:
            return []
        try:
            raw = json.loads(blob)
            if not isinstance(raw, list):
                raise ValueError("expected a list of records")
            return [PersistedConnectionRecord.from_dict(item) for item in raw]
        except (ValueError, KeyError, TypeError) as exc:
            logger.warning("Ignoring unreadable saved connections under %s: %s", self.key, exc)
            return []

    def _save(self, records: list[PersistedConnectionRecord]) -> None:
        self.kv.set(self.key, json.dumps([record.to_dict() for record in records]))

    def list_all(self) -> list[PersistedConnectionRecord]:
        """All records in insertion order."""
        return self._load()

    def get(self, name: str) -> PersistedConnectionRecord | None:
        for record in self._load():
            if record.name == name:
                return record
        return None

    def upsert(self, record: PersistedConnectionRecord) -> PersistedConnectionRecord:
        """Insert a record, or replace the one with the same name in place.

        ``created_at`` of an existing record is kept; ``last_used`` is
        refreshed. If the incoming record is active every other record is
        deactivated.

        Returns:
            The record as stored.
        """
        records = self._load()
        now = now_millis()
        stored = PersistedConnectionRecord(
            type=record.type,
            name=record.name,
            config=copy.deepcopy(record.config),
            is_active=record.is_active,
            created_at=record.created_at or now,
            last_used=now,
        )

        for index, existing in enumerate(records):
            if existing.name == record.name:
                stored.created_at = existing.created_at or stored.created_at
                records[index] = stored
                break
        else:
            records.append(stored)

        if stored.is_active:
            for other in records:
                if other is not stored:
                    other.is_active = False

        self._save(records)
        if stored.is_active:
            self.kv.set(self.active_key, stored.name)
        return stored

    def mark_active(self, name: str) -> bool:
        """Make ``name`` the only active record.

        Returns:
            False (and nothing written) if no record has that name.
        """
        records = self._load()
        if not any(record.name == name for record in records):
            return False

        now = now_millis()
        for record in records:
            record.is_active = record.name == name
            if record.is_active:
                record.last_used = now
        self._save(records)
        self.kv.set(self.active_key, name)
        return True

    def get_active(self) -> PersistedConnectionRecord | None:
        for record in self._load():
            if record.is_active:
                return record
        return None

    def active_name(self) -> str | None:
        """Name of the most recently activated record, even if since deleted."""
        return self.kv.get(self.active_key) or None

    def rename(self, name: str, new_name: str) -> bool:
        """Give a saved record a new name.

        Position, ``created_at``, ``last_used``, config and the active flag
        are untouched. The active marker follows the record.

        Returns:
            False (and nothing written) if no record is called ``name``.

        Raises:
            ValueError: ``new_name`` is empty or already taken by another record.
        """
        if not new_name:
            raise ValueError("new name must not be empty")
        records = self._load()
        target = next((record for record in records if record.name == name), None)
        if target is None:
            return False
        if new_name == name:
            return True
        if any(record.name == new_name for record in records):
            raise ValueError(f"a saved connection named {new_name!r} already exists")

        target.name = new_name
        self._save(records)
        if self.active_name() == name:
            self.kv.set(self.active_key, new_name)
        logger.info("Renamed saved connection %r to %r", name, new_name)
        return True

    def delete(self, name: str) -> bool:
        """Remove a record by name. Returns False if there was none."""
        records = self._load()
        kept = [record for record in records if record.name != name]
        if len(kept) == len(records):
            return False
        self._save(kept)
        return True
