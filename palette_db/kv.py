"""KeyValueStore implementations for the persisted connection store.

    MemoryKeyValueStore     process lifetime only; tests and throwaway sessions
    DiskCacheKeyValueStore  DiskCache directory, survives restarts (default)
    DuckDBKeyValueStore     one ``kv`` table in a DuckDB file

Storage path: $PALETTE_DB_STORE_PATH (default ~/.palette-db/).
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path

import diskcache  # type: ignore[import-untyped]
import duckdb

from palette_core.adapters.kv import KeyValueStore
from palette_core.config import StoreSettings

logger = logging.getLogger(__name__)

DUCKDB_FILENAME = "connections.duckdb"


class MemoryKeyValueStore:
    """Dict-backed store. Nothing outlives the process."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, blob: str) -> None:
        self._data[key] = blob

    def close(self) -> None:
        pass


class DiskCacheKeyValueStore:
    """File-backed store on a DiskCache directory.

    DiskCache is process- and thread-safe, so several processes may share
    one directory.
    """

    def __init__(self, directory: str | Path) -> None:
        path = Path(directory)
        path.mkdir(parents=True, exist_ok=True)
        self.directory = path
        self._cache = diskcache.Cache(str(path))

    def get(self, key: str) -> str | None:
        value = self._cache.get(key)
        return value if isinstance(value, str) else None

    def set(self, key: str, blob: str) -> None:
        self._cache.set(key, blob)

    def close(self) -> None:
        self._cache.close()


class DuckDBKeyValueStore:
    """Store backed by a single DuckDB table.

    Args:
        db_path: Database file, or ":memory:" for an in-memory database.
    """

    def __init__(self, db_path: str | Path = ":memory:") -> None:
        if str(db_path) != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self.db_path = str(db_path)
        self._conn = duckdb.connect(self.db_path)
        # A DuckDB connection is not safe for concurrent use from threads.
        self._lock = threading.Lock()
        self._conn.execute(
            "CREATE TABLE IF NOT EXISTS kv (key VARCHAR PRIMARY KEY, value VARCHAR NOT NULL)"
        )

    def get(self, key: str) -> str | None:
        with self._lock:
            row = self._conn.execute("SELECT value FROM kv WHERE key = ?", [key]).fetchone()
        return row[0] if row else None

    def set(self, key: str, blob: str) -> None:
        with self._lock:
            self._conn.execute("INSERT OR REPLACE INTO kv VALUES (?, ?)", [key, blob])

    def close(self) -> None:
        with self._lock:
            self._conn.close()


def open_key_value_store(settings: StoreSettings) -> KeyValueStore:
    """Build the KeyValueStore named by settings.backend.

    Raises:
        ValueError: unknown backend name.
    """
    backend = settings.backend.lower()
    if backend == "memory":
        store: KeyValueStore = MemoryKeyValueStore()
    elif backend == "diskcache":
        store = DiskCacheKeyValueStore(settings.path)
    elif backend == "duckdb":
        store = DuckDBKeyValueStore(Path(settings.path) / DUCKDB_FILENAME)
    else:
        raise ValueError(f"Unsupported store backend: {settings.backend}")
    logger.debug("Opened %s key-value store at %s", backend, settings.path)
    return store
