"""Tests for palette_db.startup.restore_active_connection."""

from __future__ import annotations

import logging
from typing import Any

import pytest

from palette_core.errors import ErrorKind
from palette_core.types import BackendType, PersistedConnectionRecord
from palette_db.registry import ConnectionRegistry
from palette_db.startup import restore_active_connection


class TestRestoreActiveConnection:
    """Startup reconnects to the last active record, or gives up quietly."""

    @pytest.mark.asyncio
    async def test_nothing_saved(self, registry: ConnectionRegistry) -> None:
        assert await restore_active_connection(registry) is None
        assert registry.get_current() is None

    @pytest.mark.asyncio
    async def test_restores_active_record(
        self,
        registry: ConnectionRegistry,
        firebase_config: dict[str, Any],
        supabase_config: dict[str, Any],
    ) -> None:
        registry.store.upsert(
            PersistedConnectionRecord(BackendType.FIREBASE, "studio", firebase_config)
        )
        registry.store.upsert(
            PersistedConnectionRecord(
                BackendType.SUPABASE, "archive", supabase_config, is_active=True
            )
        )

        conn_id = await restore_active_connection(registry)

        current = registry.get_current()
        assert current is not None
        assert current.id == conn_id
        assert current.name == "archive"
        assert current.type is BackendType.SUPABASE
        assert current.config == supabase_config
        assert registry.store.get_active().name == "archive"

    @pytest.mark.asyncio
    async def test_inactive_records_are_ignored(
        self, registry: ConnectionRegistry, firebase_config: dict[str, Any]
    ) -> None:
        registry.store.upsert(
            PersistedConnectionRecord(BackendType.FIREBASE, "studio", firebase_config)
        )
        assert await restore_active_connection(registry) is None
        assert len(registry) == 0

    @pytest.mark.asyncio
    async def test_stale_config_is_skipped(
        self, registry: ConnectionRegistry, caplog: pytest.LogCaptureFixture
    ) -> None:
        """A saved config that no longer validates is logged, not raised."""
        registry.store.upsert(
            PersistedConnectionRecord(
                BackendType.FIREBASE, "broken", {"projectId": "x"}, is_active=True
            )
        )
        with caplog.at_level(logging.WARNING, logger="palette_db.startup"):
            assert await restore_active_connection(registry) is None
        assert "no longer validates" in caplog.text
        assert registry.store.get_active().name == "broken"

    @pytest.mark.asyncio
    async def test_unreachable_backend_is_skipped(
        self,
        registry: ConnectionRegistry,
        firebase_config: dict[str, Any],
        adapter_options: dict[str, Any],
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        registry.store.upsert(
            PersistedConnectionRecord(
                BackendType.FIREBASE, "studio", firebase_config, is_active=True
            )
        )
        adapter_options["fail_kind"] = ErrorKind.UNREACHABLE
        with caplog.at_level(logging.WARNING, logger="palette_db.startup"):
            assert await restore_active_connection(registry) is None
        assert "unreachable" in caplog.text
        assert len(registry) == 0

    @pytest.mark.asyncio
    async def test_timeout_is_passed_through(
        self,
        registry: ConnectionRegistry,
        firebase_config: dict[str, Any],
        adapter_options: dict[str, Any],
    ) -> None:
        registry.store.upsert(
            PersistedConnectionRecord(
                BackendType.FIREBASE, "studio", firebase_config, is_active=True
            )
        )
        adapter_options["delay"] = 5.0
        assert await restore_active_connection(registry, timeout=0.01) is None
