"""
palette-core — backend-agnostic contracts for palette-db.

Adapter protocols, domain records, the error taxonomy and the pure
connection-config validator. Implementations live in palette_db.
"""

__version__ = "0.1.0"

from palette_core.adapters import KeyValueStore, StorageAdapter
from palette_core.config import (
    AdapterSettings,
    PaletteDBConfig,
    RegistrySettings,
    StoreSettings,
)
from palette_core.errors import (
    BackendConnectionError,
    ErrorKind,
    NotConnectedError,
    PaletteDBError,
    StorageError,
    ValidationError,
)
from palette_core.types import (
    # Enums and sentinels
    UNSET,
    BackendType,
    # Entities
    Collection,
    Color,
    Entity,
    Palette,
    # Connections
    Connection,
    PersistedConnectionRecord,
    # Result types
    ProbeResult,
    ValidationResult,
)
from palette_core.validation import validate_config

__all__ = [
    # Adapter protocols
    "StorageAdapter",
    "KeyValueStore",
    # Configuration
    "PaletteDBConfig",
    "AdapterSettings",
    "StoreSettings",
    "RegistrySettings",
    # Errors
    "ErrorKind",
    "PaletteDBError",
    "ValidationError",
    "BackendConnectionError",
    "StorageError",
    "NotConnectedError",
    # Enums and sentinels
    "BackendType",
    "UNSET",
    # Entities
    "Entity",
    "Color",
    "Palette",
    "Collection",
    # Connections
    "Connection",
    "PersistedConnectionRecord",
    # Result types
    "ValidationResult",
    "ProbeResult",
    # Validation
    "validate_config",
]
