"""Adapter protocol interfaces for palette-db.

Each protocol defines a capability boundary that implementations satisfy:

    palette_db.adapters.firestore  → StorageAdapter
    palette_db.adapters.postgrest  → StorageAdapter
    palette_db.kv                  → KeyValueStore

Protocols use structural subtyping (PEP 544) — adapters implement the
interface without inheriting from it.
"""

from palette_core.adapters.kv import KeyValueStore
from palette_core.adapters.storage import StorageAdapter

__all__ = [
    "StorageAdapter",
    "KeyValueStore",
]
