"""Storage adapter protocol.

Implemented by: palette_db.adapters.firestore (document service),
palette_db.adapters.postgrest (relational API service), and a placeholder
for every reserved backend type.

Responsible for translating the uniform operation set into one backend's
native protocol and error domain. The caller never sees REST paths,
collection names, SQLSTATEs or client sessions.

Design:
    await adapter.connect(config)                         -> None
    await adapter.create(palette)                         -> "k3J9..."
    await adapter.get(Palette, "k3J9...")                 -> Palette | None
    await adapter.list(Collection)                        -> list[Collection]
    await adapter.update(Palette, "k3J9...", {"name": "Dusk"}) -> Palette
    await adapter.delete(Palette, "k3J9...")              -> None
    await adapter.disconnect()                            -> None

The adapter dispatches by type: it knows that Palette maps to its
``palettes`` collection or table, Collection to ``collections``.
"""

from __future__ import annotations

from builtins import list as builtin_list
from collections.abc import Mapping
from typing import Any, Protocol, TypeVar, runtime_checkable

from palette_core.types import BackendType, Entity

E = TypeVar("E", bound=Entity)


@runtime_checkable
class StorageAdapter(Protocol):
    """Uniform CRUD contract over one backend instance.

    Principles:
    - connect() is a live probe, not a handshake: it performs at least one
      round-trip read so credential and network problems surface at once.
    - disconnect() is idempotent and never raises.
    - Every data operation before connect() or after disconnect() raises
      NotConnectedError.
    - Failures are raised as StorageError with a backend-independent kind.
    - Each instance owns an isolated client session.
    """

    backend_type: BackendType
    warning: str | None

    @property
    def is_connected(self) -> bool:
        """True between a successful connect() and disconnect()."""
        ...

    async def connect(self, config: Mapping[str, Any]) -> None:
        """Open a session and probe the backend.

        A probe answered with "permission denied" or "collection not found"
        still counts as connected; the adapter keeps a human-readable note in
        ``warning``.

        Raises:
            BackendConnectionError: transport failure, invalid credentials,
                malformed config or unsupported backend.
        """
        ...

    async def disconnect(self) -> None:
        """Release the session. Safe to call any number of times."""
        ...

    def cancel(self) -> None:
        """Best-effort abort of in-flight requests."""
        ...

    async def create(self, entity: Entity) -> str:
        """Insert a new entity and return the id the backend assigned."""
        ...

    async def get(self, entity_type: type[E], id: str) -> E | None:
        """Fetch one entity by id, or None if it does not exist."""
        ...

    async def list(self, entity_type: type[E]) -> builtin_list[E]:
        """Load the whole collection. No pagination is exposed to the caller."""
        ...

    async def update(
        self, entity_type: type[E], id: str, changes: Mapping[str, Any]
    ) -> E:
        """Merge ``changes`` into the stored entity and return the result.

        Keys are entity field names. Values equal to UNSET are dropped from
        the write; None is written as null. Unknown field names raise
        StorageError(INVALID), a missing entity StorageError(NOT_FOUND).
        """
        ...

    async def delete(self, entity_type: type[E], id: str) -> None:
        """Delete an entity. A missing entity raises StorageError(NOT_FOUND)."""
        ...
