"""palette-db configuration system.

Externalizes the runtime settings that adapters, the persisted store and
the registry need: request timeouts, session naming, where saved
connections live, connect deadlines.

Configuration can be loaded from:
- Environment variables (PALETTE_DB_*), optionally via a .env file
- Programmatic construction

This module defines the schema. Backend credentials are never part of it;
they travel as per-connection configs through the registry.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field

FIRESTORE_BASE_URL = "https://firestore.googleapis.com/v1"
DEFAULT_STORE_KEY = "palletteo_database_connections"


def _float_or_none(raw: str | None) -> float | None:
    if raw is None or raw.strip() == "":
        return None
    return float(raw)


@dataclass
class AdapterSettings:
    """Backend adapter configuration."""

    request_timeout: float = 30.0
    session_prefix: str = "palette-db"
    firestore_base_url: str = FIRESTORE_BASE_URL
    """Root of the Firestore REST API. Overridden for emulators and tests."""
    postgrest_path: str = "/rest/v1"
    """Path of the PostgREST API under a Supabase project URL."""


@dataclass
class StoreSettings:
    """Persisted connection store configuration."""

    backend: str = "diskcache"
    """One of "memory", "diskcache", "duckdb"."""
    path: str = field(default_factory=lambda: os.path.expanduser("~/.palette-db"))
    key: str = DEFAULT_STORE_KEY


@dataclass
class RegistrySettings:
    """Connection registry configuration."""

    connect_timeout: float | None = None
    """Deadline for connect probes in seconds. None waits for the adapter's
    own request timeout."""


@dataclass
class PaletteDBConfig:
    """Top-level palette-db configuration.

    Load from the environment:
        config = PaletteDBConfig.from_env()

    Or construct programmatically:
        config = PaletteDBConfig(
            adapters=AdapterSettings(request_timeout=10),
            store=StoreSettings(backend="memory"),
        )
    """

    adapters: AdapterSettings = field(default_factory=AdapterSettings)
    store: StoreSettings = field(default_factory=StoreSettings)
    registry: RegistrySettings = field(default_factory=RegistrySettings)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> PaletteDBConfig:
        """Build a config from PALETTE_DB_* variables, defaults elsewhere.

        Raises:
            ValueError: a numeric variable does not parse.
        """
        env = os.environ if environ is None else environ
        config = cls()

        if "PALETTE_DB_REQUEST_TIMEOUT" in env:
            config.adapters.request_timeout = float(env["PALETTE_DB_REQUEST_TIMEOUT"])
        if "PALETTE_DB_FIRESTORE_URL" in env:
            config.adapters.firestore_base_url = env["PALETTE_DB_FIRESTORE_URL"]
        if "PALETTE_DB_STORE_BACKEND" in env:
            config.store.backend = env["PALETTE_DB_STORE_BACKEND"]
        if "PALETTE_DB_STORE_PATH" in env:
            config.store.path = os.path.expanduser(env["PALETTE_DB_STORE_PATH"])
        if "PALETTE_DB_STORE_KEY" in env:
            config.store.key = env["PALETTE_DB_STORE_KEY"]
        config.registry.connect_timeout = _float_or_none(
            env.get("PALETTE_DB_CONNECT_TIMEOUT")
        )
        return config
