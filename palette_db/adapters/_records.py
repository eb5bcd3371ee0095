"""Entity <-> backend record mapping shared by the concrete adapters.

Backends disagree on field naming (camelCase documents, snake_case
columns) but agree on everything else: Color values travel as plain dicts,
missing or null values fall back to the entity's defaults, and identity
fields are never written by the caller.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import MISSING, fields
from datetime import datetime
from typing import Any, TypeVar

from palette_core.errors import ErrorKind, StorageError
from palette_core.types import Color, Entity, Unset

E = TypeVar("E", bound=Entity)

Naming = Callable[[str], str]


def snake(name: str) -> str:
    return name


def camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def _to_wire(value: Any) -> Any:
    if isinstance(value, Color):
        return value.to_dict()
    if isinstance(value, (list, tuple)):
        return [_to_wire(item) for item in value]
    return value


def entity_to_record(entity: Entity, naming: Naming) -> dict[str, Any]:
    """Serialize the writable fields of an entity."""
    return {
        naming(name): _to_wire(getattr(entity, name))
        for name in type(entity).data_fields()
    }


def changes_to_record(
    entity_type: type[Entity], changes: Mapping[str, Any], naming: Naming
) -> dict[str, Any]:
    """Serialize a partial update.

    UNSET values are dropped. None is kept and written as null.

    Raises:
        StorageError(INVALID): a key is not a writable field of entity_type.
    """
    allowed = set(entity_type.data_fields())
    unknown = sorted(key for key in changes if key not in allowed)
    if unknown:
        raise StorageError(
            f"unknown {entity_type.__name__} field(s): {', '.join(unknown)}",
            ErrorKind.INVALID,
        )
    return {
        naming(key): _to_wire(value)
        for key, value in changes.items()
        if not isinstance(value, Unset)
    }


def record_to_entity(
    entity_type: type[E],
    data: Mapping[str, Any],
    naming: Naming,
    *,
    id: str,
    created_at: datetime | None,
    updated_at: datetime | None,
) -> E:
    """Build an entity from a backend record, defaulting absent fields."""
    kwargs: dict[str, Any] = {}
    for f in fields(entity_type):
        if f.name in ("id", "created_at", "updated_at"):
            continue
        value = data.get(naming(f.name))
        if value is None:
            if f.default is not MISSING:
                value = f.default
            elif f.default_factory is not MISSING:
                value = f.default_factory()
        elif f.name == "colors":
            value = [Color.from_dict(item) for item in value if isinstance(item, dict)]
        kwargs[f.name] = value
    return entity_type(id=id, created_at=created_at, updated_at=updated_at, **kwargs)
