"""Connection registry: owns live backend connections and the current pointer.

Lifecycle of a connection id:

    Absent -> Connecting -> Connected -> Disconnected (terminal)

An id only becomes visible once its adapter has connected; a failed or
timed-out connect leaves no trace. Data operations go to "the current
adapter", never to a backend type directly:

    registry = ConnectionRegistry(AdapterFactory.default(), ConnectionStore(kv))
    conn_id = await registry.connect_to_backend(config, BackendType.FIREBASE, "studio")
    palettes = await registry.current_adapter().list(Palette)

The registry lock guards bookkeeping only (id table, current pointer,
persisted upsert). It is never held across adapter network I/O; the upsert
is a short synchronous KeyValueStore write made while holding it.
An adapter that has started connecting is disconnected again on any
failure, including cancellation by the caller.
"""

from __future__ import annotations

import asyncio
import copy
import logging
import uuid
from collections.abc import Awaitable, Mapping
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, TypeVar

from palette_core.config import RegistrySettings
from palette_core.errors import (
    BackendConnectionError,
    ErrorKind,
    NotConnectedError,
    PaletteDBError,
    StorageError,
    ValidationError,
)
from palette_core.types import (
    BackendType,
    Connection,
    PersistedConnectionRecord,
    ProbeResult,
)
from palette_core.validation import validate_config
from palette_db.adapters import AdapterFactory
from palette_db.connection_store import ConnectionStore
from palette_db.kv import MemoryKeyValueStore

if TYPE_CHECKING:
    from palette_core.adapters.storage import StorageAdapter

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _coerce_type(backend_type: BackendType | str) -> BackendType:
    if isinstance(backend_type, BackendType):
        return backend_type
    try:
        return BackendType(backend_type)
    except ValueError:
        raise ValidationError([f"type {backend_type} is not supported"]) from None


async def _bounded(awaitable: Awaitable[T], timeout: float | None) -> T:
    if timeout is None:
        return await awaitable
    return await asyncio.wait_for(awaitable, timeout)


class ConnectionRegistry:
    """Holds zero or more live connections and tracks which one is current.

    Construct one per process (or per test) and pass it to whoever needs
    it; nothing here is module-global.

    Attributes:
        factory: Builds adapters by backend type.
        store: Persisted connection store, upserted on every connect.
        settings: Registry-level settings (default connect timeout).
    """

    def __init__(
        self,
        factory: AdapterFactory | None = None,
        store: ConnectionStore | None = None,
        settings: RegistrySettings | None = None,
    ) -> None:
        self.factory = factory or AdapterFactory.default()
        self.store = store or ConnectionStore(MemoryKeyValueStore())
        self.settings = settings or RegistrySettings()
        self._connections: dict[str, Connection] = {}
        self._current_id: str | None = None
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._connections)

    def __contains__(self, connection_id: object) -> bool:
        return connection_id in self._connections

    # ------------------------------------------------------------------
    # Connect / disconnect
    # ------------------------------------------------------------------

    async def connect_to_backend(
        self,
        config: Mapping[str, Any],
        backend_type: BackendType | str,
        name: str,
        *,
        timeout: float | None = None,
    ) -> str:
        """Validate, connect, register and persist a backend connection.

        The new connection becomes current and its persisted record becomes
        the only active one.

        Args:
            config: Backend-specific configuration. Deep-copied; the caller
                keeps ownership of the original.
            backend_type: Which backend the config is for.
            name: Human name; the persisted record is keyed by it.
            timeout: Seconds to wait for the connect probe. Defaults to
                settings.connect_timeout.

        Returns:
            The new connection id.

        Raises:
            ValidationError: the config failed validation. No state touched.
            BackendConnectionError: the adapter could not connect, or the
                probe timed out (kind UNREACHABLE). Nothing is registered.
        """
        backend_type = _coerce_type(backend_type)
        result = validate_config(backend_type, config)
        if not result.valid:
            raise ValidationError(result.errors)

        snapshot = copy.deepcopy(dict(config))
        connection_id = str(uuid.uuid4())
        adapter = self._build_adapter(backend_type, connection_id)
        await self._connect_adapter(adapter, snapshot, timeout)

        try:
            async with self._lock:
                self.store.upsert(
                    PersistedConnectionRecord(
                        type=backend_type,
                        name=name,
                        config=snapshot,
                        is_active=True,
                    )
                )
                self._connections[connection_id] = Connection(
                    id=connection_id,
                    type=backend_type,
                    name=name,
                    adapter=adapter,
                    config=copy.deepcopy(snapshot),
                    is_connected=True,
                    connected_at=datetime.now(timezone.utc),
                    warning=adapter.warning,
                )
                self._current_id = connection_id
        except BaseException:
            await asyncio.shield(self._quiet_disconnect(adapter, connection_id))
            raise

        logger.info("Connected to %s backend %r as %s", backend_type.value, name, connection_id)
        return connection_id

    async def disconnect(self, connection_id: str) -> None:
        """Disconnect and forget a connection. Never raises.

        Adapter errors during disconnect are logged and dropped: the
        connection is discarded either way. Unknown ids are ignored.
        """
        connection = self._connections.get(connection_id)
        if connection is None:
            return

        await self._quiet_disconnect(connection.adapter, connection_id)

        async with self._lock:
            connection.is_connected = False
            self._connections.pop(connection_id, None)
            if self._current_id == connection_id:
                self._current_id = None
        logger.info("Disconnected %s (%s)", connection_id, connection.name)

    async def disconnect_all(self) -> None:
        for connection_id in list(self._connections):
            await self.disconnect(connection_id)

    async def test_connection(
        self,
        backend_type: BackendType | str,
        config: Mapping[str, Any],
        *,
        timeout: float | None = None,
    ) -> ProbeResult:
        """Connect and immediately disconnect a throwaway adapter.

        Touches neither the registry nor the persisted store, whatever the
        outcome. Every failure is reported in the result, never raised.
        """
        try:
            backend_type = _coerce_type(backend_type)
        except ValidationError as exc:
            return ProbeResult(success=False, error=str(exc), kind=ErrorKind.INVALID)

        result = validate_config(backend_type, config)
        if not result.valid:
            return ProbeResult(
                success=False, error="; ".join(result.errors), kind=ErrorKind.INVALID
            )

        try:
            adapter = self._build_adapter(backend_type, "probe")
        except BackendConnectionError as exc:
            return ProbeResult(success=False, error=str(exc), kind=exc.kind)

        try:
            await self._connect_adapter(adapter, copy.deepcopy(dict(config)), timeout)
        except BackendConnectionError as exc:
            return ProbeResult(success=False, error=str(exc), kind=exc.kind)
        except Exception as exc:
            logger.exception("Unexpected failure testing %s connection", backend_type.value)
            return ProbeResult(success=False, error=str(exc), kind=ErrorKind.UNKNOWN)
        else:
            return ProbeResult(success=True, warning=adapter.warning)
        finally:
            await self._quiet_disconnect(adapter, "probe")

    async def activate_saved(self, name: str, *, timeout: float | None = None) -> str:
        """Reconnect using the persisted record called ``name``.

        Raises:
            KeyError: no saved connection has that name.
            ValidationError, BackendConnectionError: as connect_to_backend().
        """
        record = self.store.get(name)
        if record is None:
            raise KeyError(f"no saved connection named {name!r}")
        return await self.connect_to_backend(
            record.config, record.type, record.name, timeout=timeout
        )

    # ------------------------------------------------------------------
    # Current connection
    # ------------------------------------------------------------------

    def get_current(self) -> Connection | None:
        """The current connection, or None. Never a connection that is gone."""
        if self._current_id is None:
            return None
        connection = self._connections.get(self._current_id)
        if connection is None:
            self._current_id = None
        return connection

    def current_adapter(self) -> StorageAdapter:
        """Adapter of the current connection.

        Raises:
            NotConnectedError: there is no current connection.
        """
        connection = self.get_current()
        if connection is None:
            raise NotConnectedError("no current connection")
        return connection.adapter

    async def switch_to(self, connection_id: str) -> bool:
        """Make another live connection current. Connection states are untouched."""
        async with self._lock:
            if connection_id not in self._connections:
                return False
            self._current_id = connection_id
        logger.info("Switched current connection to %s", connection_id)
        return True

    def get(self, connection_id: str) -> Connection | None:
        return self._connections.get(connection_id)

    def list_connections(self) -> list[Connection]:
        return list(self._connections.values())

    async def run(self, operation: Awaitable[T], *, timeout: float | None) -> T:
        """Await an adapter operation under a caller deadline.

        On timeout the operation is cancelled (best effort; the request may
        still reach the backend) and reported as unreachable.

        Raises:
            StorageError(UNREACHABLE): the deadline passed.
        """
        try:
            return await _bounded(operation, timeout)
        except asyncio.TimeoutError:
            raise StorageError(
                f"operation timed out after {timeout}s", ErrorKind.UNREACHABLE
            ) from None

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _build_adapter(self, backend_type: BackendType, hint: str) -> StorageAdapter:
        try:
            return self.factory.create(backend_type, hint)
        except KeyError:
            raise BackendConnectionError(
                f"{backend_type.value} is not yet supported", ErrorKind.UNSUPPORTED
            ) from None

    async def _connect_adapter(
        self,
        adapter: StorageAdapter,
        config: dict[str, Any],
        timeout: float | None,
    ) -> None:
        if timeout is None:
            timeout = self.settings.connect_timeout
        try:
            await _bounded(adapter.connect(config), timeout)
        except BackendConnectionError:
            await self._quiet_disconnect(adapter, "failed")
            raise
        except asyncio.TimeoutError:
            await self._quiet_disconnect(adapter, "timed out")
            logger.error("Connecting to %s timed out after %ss", adapter.backend_type.value, timeout)
            raise BackendConnectionError(
                f"connecting to {adapter.backend_type.value} timed out after {timeout}s",
                ErrorKind.UNREACHABLE,
            ) from None
        except PaletteDBError as exc:
            await self._quiet_disconnect(adapter, "failed")
            kind = getattr(exc, "kind", ErrorKind.UNKNOWN)
            raise BackendConnectionError(str(exc), kind) from exc
        except BaseException:
            # Cancelled from outside, or an unexpected error: still release the session.
            await asyncio.shield(self._quiet_disconnect(adapter, "abandoned"))
            raise

    async def _quiet_disconnect(self, adapter: StorageAdapter, label: str) -> None:
        try:
            await adapter.disconnect()
        except Exception:
            logger.warning("Adapter disconnect failed for %s", label, exc_info=True)
