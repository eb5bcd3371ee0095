"""Adapter factory for the connection registry.

Maps each BackendType to a callable that builds a fresh, unconnected
StorageAdapter. The registry only ever asks this map for an adapter, so
adding a backend means registering one factory:

    factory = AdapterFactory.default(settings)
    factory.register(BackendType.MONGODB, lambda settings, hint: MongoAdapter(settings))
"""

from __future__ import annotations

import functools
from collections.abc import Callable
from typing import TYPE_CHECKING

from palette_core.config import AdapterSettings
from palette_core.types import BackendType
from palette_db.adapters.firestore import FirestoreAdapter
from palette_db.adapters.postgrest import PostgRESTAdapter
from palette_db.adapters.unsupported import UnsupportedAdapter

if TYPE_CHECKING:
    from palette_core.adapters.storage import StorageAdapter

AdapterBuilder = Callable[[AdapterSettings, str], "StorageAdapter"]


def _firestore(settings: AdapterSettings, hint: str) -> StorageAdapter:
    return FirestoreAdapter(settings, connection_hint=hint)


def _postgrest(settings: AdapterSettings, hint: str) -> StorageAdapter:
    return PostgRESTAdapter(settings, connection_hint=hint)


def _unsupported(
    backend_type: BackendType, settings: AdapterSettings, hint: str
) -> StorageAdapter:
    return UnsupportedAdapter(backend_type, settings, connection_hint=hint)


class AdapterFactory:
    """Registered mapping from BackendType to adapter builders.

    Attributes:
        settings: Passed to every builder.
    """

    def __init__(self, settings: AdapterSettings | None = None) -> None:
        self.settings = settings or AdapterSettings()
        self._builders: dict[BackendType, AdapterBuilder] = {}

    @classmethod
    def default(cls, settings: AdapterSettings | None = None) -> AdapterFactory:
        """Factory with the concrete adapters and placeholders for the rest."""
        factory = cls(settings)
        factory.register(BackendType.FIREBASE, _firestore)
        factory.register(BackendType.SUPABASE, _postgrest)
        for backend_type in BackendType:
            if not backend_type.is_implemented:
                factory.register(backend_type, functools.partial(_unsupported, backend_type))
        return factory

    def register(self, backend_type: BackendType, builder: AdapterBuilder) -> None:
        self._builders[backend_type] = builder

    def supports(self, backend_type: BackendType) -> bool:
        return backend_type in self._builders

    def create(self, backend_type: BackendType, connection_hint: str = "") -> StorageAdapter:
        """Build an unconnected adapter.

        Raises:
            KeyError: nothing is registered for backend_type.
        """
        try:
            builder = self._builders[backend_type]
        except KeyError:
            raise KeyError(f"no adapter registered for {backend_type.value}") from None
        return builder(self.settings, connection_hint)


__all__ = [
    "AdapterFactory",
    "FirestoreAdapter",
    "PostgRESTAdapter",
    "UnsupportedAdapter",
]
