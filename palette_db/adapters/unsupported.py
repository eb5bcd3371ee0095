"""Placeholder adapter for reserved backend types.

Satisfies the StorageAdapter protocol so the registry never special-cases a
backend, but can never get past connect().
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, TypeVar

from palette_core.config import AdapterSettings
from palette_core.errors import BackendConnectionError, ErrorKind, NotConnectedError
from palette_core.types import BackendType, Entity

E = TypeVar("E", bound=Entity)


class UnsupportedAdapter:
    """Adapter whose connect() always fails with UNSUPPORTED."""

    def __init__(
        self,
        backend_type: BackendType,
        settings: AdapterSettings | None = None,
        *,
        connection_hint: str = "",
    ) -> None:
        self.backend_type = backend_type
        self.warning: str | None = None

    @property
    def is_connected(self) -> bool:
        return False

    async def connect(self, config: Mapping[str, Any]) -> None:
        raise BackendConnectionError(
            f"{self.backend_type.value} is not yet supported", ErrorKind.UNSUPPORTED
        )

    async def disconnect(self) -> None:
        return None

    def cancel(self) -> None:
        return None

    async def create(self, entity: Entity) -> str:
        raise NotConnectedError()

    async def get(self, entity_type: type[E], id: str) -> E | None:
        raise NotConnectedError()

    async def list(self, entity_type: type[E]) -> list[E]:
        raise NotConnectedError()

    async def update(
        self, entity_type: type[E], id: str, changes: Mapping[str, Any]
    ) -> E:
        raise NotConnectedError()

    async def delete(self, entity_type: type[E], id: str) -> None:
        raise NotConnectedError()
