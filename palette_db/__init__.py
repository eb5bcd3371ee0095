"""palette-db — backend connection registry and storage adapters."""

__version__ = "0.1.0"

from palette_db.adapters import AdapterFactory
from palette_db.connection_store import ConnectionStore
from palette_db.registry import ConnectionRegistry
from palette_db.startup import restore_active_connection

__all__ = [
    "AdapterFactory",
    "ConnectionRegistry",
    "ConnectionStore",
    "restore_active_connection",
]
