"""Shared data types for palette-db adapter interfaces."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field, fields
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, ClassVar

if TYPE_CHECKING:
    from palette_core.adapters.storage import StorageAdapter
    from palette_core.errors import ErrorKind


# ============================================================
# Enums and sentinels
# ============================================================


class BackendType(Enum):
    """Tag selecting an adapter implementation and a configuration shape.

    Only FIREBASE (document service) and SUPABASE (relational API service)
    have concrete adapters. The remaining tags are reserved: they validate
    trivially and fail at connect with an "unsupported" error.
    """

    FIREBASE = "firebase"
    SUPABASE = "supabase"
    MONGODB = "mongodb"
    POSTGRESQL = "postgresql"
    MYSQL = "mysql"
    SQLITE = "sqlite"
    AIRTABLE = "airtable"
    NOTION = "notion"

    @property
    def is_implemented(self) -> bool:
        return self in (BackendType.FIREBASE, BackendType.SUPABASE)


class Unset:
    """Marker for a field that must be left out of a partial update."""

    _instance: ClassVar[Unset | None] = None

    def __new__(cls) -> Unset:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET = Unset()


# ============================================================
# Entities: records stored through a StorageAdapter
# ============================================================


@dataclass
class Entity:
    """Base class for all persistable domain records.

    The id and both timestamps are assigned by the backend on create; callers
    building a new record leave them empty. Subclasses set ``collection`` to
    the backend collection (document service) or table (relational service).
    """

    collection: ClassVar[str] = ""

    id: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def data_fields(cls) -> tuple[str, ...]:
        """Names of the fields a caller may write (everything but identity)."""
        return tuple(
            f.name
            for f in fields(cls)
            if f.name not in ("id", "created_at", "updated_at")
        )


@dataclass
class Color:
    """A single swatch inside a palette. Stored inline, not as an entity."""

    id: str
    name: str
    hex: str
    rgb: str | None = None
    hsl: str | None = None
    description: str | None = None
    tags: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"id": self.id, "name": self.name, "hex": self.hex}
        for key in ("rgb", "hsl", "description"):
            value = getattr(self, key)
            if value is not None:
                data[key] = value
        if self.tags:
            data["tags"] = list(self.tags)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Color:
        return cls(
            id=str(data.get("id", "")),
            name=data.get("name", ""),
            hex=data.get("hex", ""),
            rgb=data.get("rgb"),
            hsl=data.get("hsl"),
            description=data.get("description"),
            tags=list(data.get("tags") or []),
        )


@dataclass
class Palette(Entity):
    """A named, tagged set of colors."""

    collection: ClassVar[str] = "palettes"

    name: str = ""
    description: str = ""
    colors: list[Color] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    category: str = "Uncategorized"
    is_public: bool = False
    created_by: str = "anonymous"


@dataclass
class Collection(Entity):
    """A curated group of palettes, referenced by id."""

    collection: ClassVar[str] = "collections"

    name: str = ""
    description: str = ""
    palette_ids: list[str] = field(default_factory=list)
    is_public: bool = False
    created_by: str = "anonymous"


ENTITY_TYPES: tuple[type[Entity], ...] = (Palette, Collection)


# ============================================================
# Connections: live and persisted
# ============================================================


@dataclass
class Connection:
    """A live connection held by the ConnectionRegistry.

    Only the registry creates, mutates or removes these. ``config`` is a deep
    copy of what the caller supplied, so later edits to the caller's mapping
    never leak in.
    """

    id: str
    type: BackendType
    name: str
    adapter: StorageAdapter
    config: dict[str, Any]
    is_connected: bool = True
    connected_at: datetime | None = None
    warning: str | None = None


@dataclass
class PersistedConnectionRecord:
    """A durable connection configuration, keyed by name.

    Timestamps are epoch milliseconds. The serialized form keeps the
    camelCase keys of the stored blob so existing blobs stay readable.
    """

    type: BackendType
    name: str
    config: dict[str, Any] = field(default_factory=dict)
    is_active: bool = False
    created_at: int = 0
    last_used: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "name": self.name,
            "config": copy.deepcopy(self.config),
            "isActive": self.is_active,
            "createdAt": self.created_at,
            "lastUsed": self.last_used,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PersistedConnectionRecord:
        return cls(
            type=BackendType(data["type"]),
            name=data["name"],
            config=dict(data.get("config") or {}),
            is_active=bool(data.get("isActive", False)),
            created_at=int(data.get("createdAt") or 0),
            last_used=int(data.get("lastUsed") or 0),
        )


# ============================================================
# Result types
# ============================================================


@dataclass(frozen=True)
class ValidationResult:
    """Returned by validate_config()."""

    valid: bool
    errors: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class ProbeResult:
    """Returned by ConnectionRegistry.test_connection(). Truthy on success."""

    success: bool
    error: str | None = None
    kind: ErrorKind | None = None
    warning: str | None = None

    def __bool__(self) -> bool:
        return self.success
