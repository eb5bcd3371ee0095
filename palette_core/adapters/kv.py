"""Key-value storage protocol.

Implemented by: palette_db.kv (memory, diskcache, duckdb), or anything that
can get and set one opaque text blob by key.

The persisted connection store needs nothing more than this, so the storage
medium (a file cache, an embedded database, a platform keychain) is the
host's choice.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class KeyValueStore(Protocol):
    """Durable get/set of opaque blobs by key."""

    def get(self, key: str) -> str | None:
        """Return the blob stored under key, or None."""
        ...

    def set(self, key: str, blob: str) -> None:
        """Store blob under key, replacing any previous value."""
        ...
