"""Shared test fixtures for palette-db tests.

Provides a fake StorageAdapter, a factory wired to it, memory-backed stores
and sample backend configs.
"""

from __future__ import annotations

import asyncio
import uuid
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

import pytest

from palette_core.errors import (
    BackendConnectionError,
    ErrorKind,
    NotConnectedError,
    StorageError,
)
from palette_core.types import BackendType, Entity, Unset
from palette_db.adapters import AdapterFactory
from palette_db.connection_store import ConnectionStore
from palette_db.kv import MemoryKeyValueStore
from palette_db.registry import ConnectionRegistry


class FakeAdapter:
    """In-memory StorageAdapter for registry tests.

    Behaviour is steered by constructor options: fail_kind makes connect()
    raise, warning simulates a "denied but reachable" probe, delay makes
    connect() slow, disconnect_error makes disconnect() raise.
    """

    def __init__(
        self,
        backend_type: BackendType,
        *,
        hint: str = "",
        fail_kind: ErrorKind | None = None,
        warning: str | None = None,
        delay: float = 0.0,
        disconnect_error: Exception | None = None,
    ) -> None:
        self.backend_type = backend_type
        self.hint = hint
        self.warning: str | None = None
        self.fail_kind = fail_kind
        self.probe_warning = warning
        self.delay = delay
        self.disconnect_error = disconnect_error
        self.connected = False
        self.connect_calls: list[Mapping[str, Any]] = []
        self.disconnect_calls = 0
        self.cancelled = False
        self._rows: dict[type[Entity], dict[str, Entity]] = {}

    @property
    def is_connected(self) -> bool:
        return self.connected

    async def connect(self, config: Mapping[str, Any]) -> None:
        self.connect_calls.append(config)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail_kind is not None:
            raise BackendConnectionError("fake connect failed", self.fail_kind)
        self.connected = True
        self.warning = self.probe_warning

    async def disconnect(self) -> None:
        self.disconnect_calls += 1
        self.connected = False
        if self.disconnect_error is not None:
            raise self.disconnect_error

    def cancel(self) -> None:
        self.cancelled = True

    def _table(self, entity_type: type[Entity]) -> dict[str, Entity]:
        if not self.connected:
            raise NotConnectedError()
        return self._rows.setdefault(entity_type, {})

    async def create(self, entity: Entity) -> str:
        table = self._table(type(entity))
        entity.id = uuid.uuid4().hex
        entity.created_at = entity.updated_at = datetime.now(timezone.utc)
        table[entity.id] = entity
        return entity.id

    async def get(self, entity_type: type[Entity], id: str) -> Entity | None:
        return self._table(entity_type).get(id)

    async def list(self, entity_type: type[Entity]) -> list[Entity]:
        return list(self._table(entity_type).values())

    async def update(
        self, entity_type: type[Entity], id: str, changes: Mapping[str, Any]
    ) -> Entity:
        table = self._table(entity_type)
        if id not in table:
            raise StorageError(f"{id} not found", ErrorKind.NOT_FOUND)
        entity = table[id]
        for key, value in changes.items():
            if not isinstance(value, Unset):
                setattr(entity, key, value)
        return entity

    async def delete(self, entity_type: type[Entity], id: str) -> None:
        table = self._table(entity_type)
        if table.pop(id, None) is None:
            raise StorageError(f"{id} not found", ErrorKind.NOT_FOUND)


@pytest.fixture
def firebase_config() -> dict[str, Any]:
    """A Firebase web config that passes validation."""
    return {
        "apiKey": "AIza123",
        "authDomain": "x.firebaseapp.com",
        "projectId": "x",
        "storageBucket": "x.appspot.com",
        "messagingSenderId": "1",
        "appId": "1:1:web:abc",
    }


@pytest.fixture
def supabase_config() -> dict[str, Any]:
    """A Supabase config that passes validation."""
    return {
        "url": "https://abcd.supabase.co",
        "anonKey": "eyJhbGciOiJIUzI1NiJ9.e30.sig",
    }


@pytest.fixture
def fake_adapters() -> list[FakeAdapter]:
    """Every FakeAdapter the factory builds, in creation order."""
    return []


@pytest.fixture
def adapter_options() -> dict[str, Any]:
    """Options passed to FakeAdapter. Tests mutate this before connecting."""
    return {}


@pytest.fixture
def factory(
    fake_adapters: list[FakeAdapter], adapter_options: dict[str, Any]
) -> AdapterFactory:
    """Default factory with FakeAdapter standing in for both real backends."""
    factory = AdapterFactory.default()

    def builder_for(backend_type: BackendType):
        def build(settings: Any, hint: str) -> FakeAdapter:
            adapter = FakeAdapter(backend_type, hint=hint, **adapter_options)
            fake_adapters.append(adapter)
            return adapter

        return build

    factory.register(BackendType.FIREBASE, builder_for(BackendType.FIREBASE))
    factory.register(BackendType.SUPABASE, builder_for(BackendType.SUPABASE))
    return factory


@pytest.fixture
def kv() -> MemoryKeyValueStore:
    """Provide a fresh in-memory key-value store."""
    return MemoryKeyValueStore()


@pytest.fixture
def store(kv: MemoryKeyValueStore) -> ConnectionStore:
    """Provide a ConnectionStore over the in-memory key-value store."""
    return ConnectionStore(kv)


@pytest.fixture
def registry(factory: AdapterFactory, store: ConnectionStore) -> ConnectionRegistry:
    """Provide a fresh registry wired to fake adapters."""
    return ConnectionRegistry(factory, store)
