"""Relational-API adapter: Supabase tables through PostgREST.

Talks to ``<project url>/rest/v1`` with the project's anon (or publishable)
key. Tables are ``palettes`` and ``collections`` with snake_case columns;
``colors`` and ``palette_ids`` are expected to be json/array columns.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any, TypeVar

from palette_core.config import AdapterSettings
from palette_core.errors import BackendConnectionError, ErrorKind, StorageError
from palette_core.types import BackendType, Entity, Palette
from palette_db.adapters._http import HTTPAdapter, format_timestamp, parse_timestamp
from palette_db.adapters._records import (
    changes_to_record,
    entity_to_record,
    record_to_entity,
    snake,
)

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=Entity)

RETURN_REPRESENTATION = {"Prefer": "return=representation"}

# PostgREST and Postgres SQLSTATE codes -> ErrorKind
_CODE_KINDS: dict[str, ErrorKind] = {
    "42P01": ErrorKind.NOT_FOUND,  # undefined_table
    "PGRST205": ErrorKind.NOT_FOUND,  # table not in schema cache
    "PGRST116": ErrorKind.NOT_FOUND,  # no rows for a single-object request
    "42501": ErrorKind.PERMISSION_DENIED,  # insufficient_privilege
    "42703": ErrorKind.INVALID,  # undefined_column
    "PGRST204": ErrorKind.INVALID,  # column not in schema cache
    "PGRST100": ErrorKind.INVALID,  # unparseable query string
}

_HTTP_KINDS: dict[int, ErrorKind] = {
    400: ErrorKind.INVALID,
    403: ErrorKind.PERMISSION_DENIED,
    404: ErrorKind.NOT_FOUND,
    409: ErrorKind.INVALID,
    422: ErrorKind.INVALID,
}


def _now() -> str:
    return format_timestamp(datetime.now(timezone.utc))


class PostgRESTAdapter(HTTPAdapter):
    """StorageAdapter for a Supabase project's public schema."""

    backend_type = BackendType.SUPABASE

    def __init__(
        self,
        settings: AdapterSettings | None = None,
        *,
        connection_hint: str = "",
    ) -> None:
        super().__init__(settings, connection_hint=connection_hint)
        self._rest_url = ""

    async def connect(self, config: Mapping[str, Any]) -> None:
        await self._close_session()
        self.warning = None

        url = str(config.get("url") or "").strip().rstrip("/")
        anon_key = str(config.get("anonKey") or "").strip()
        if not url or not anon_key:
            raise BackendConnectionError(
                "Supabase config needs both url and anonKey", ErrorKind.INVALID
            )

        self._rest_url = url + self.settings.postgrest_path
        self._open_session(
            {
                "apikey": anon_key,
                "Authorization": f"Bearer {anon_key}",
            }
        )

        try:
            await self._request(
                "GET",
                self._table_url(Palette),
                params={"select": "id", "limit": "1"},
            )
        except StorageError as exc:
            if exc.kind is ErrorKind.NOT_FOUND:
                self.warning = (
                    "connected, but the palettes table does not exist yet"
                )
            elif exc.kind is ErrorKind.PERMISSION_DENIED:
                self.warning = (
                    "connected, but reading palettes was denied; check the "
                    "table grants and row level security policies"
                )
            else:
                await self._close_session()
                logger.error("Supabase connection to %s failed: %s", url, exc)
                raise BackendConnectionError(
                    f"Supabase connection failed: {exc}", exc.kind
                ) from exc
            logger.warning("Supabase project %s: %s", url, self.warning)

        logger.info("Connected to Supabase %s (session %s)", url, self.session_name)

    async def create(self, entity: Entity) -> str:
        self._require_session()
        now = _now()
        row = entity_to_record(entity, snake)
        row.update(created_at=now, updated_at=now)
        rows = await self._request(
            "POST",
            self._table_url(type(entity)),
            json_body=[row],
            headers=RETURN_REPRESENTATION,
        )
        if not rows:
            raise StorageError(
                f"insert into {type(entity).collection} returned no row",
                ErrorKind.UNKNOWN,
            )
        new_id = str(rows[0]["id"])
        logger.info("Created %s %s", type(entity).__name__, new_id)
        return new_id

    async def get(self, entity_type: type[E], id: str) -> E | None:
        self._require_session()
        rows = await self._request(
            "GET",
            self._table_url(entity_type),
            params={"select": "*", "id": f"eq.{id}"},
        )
        if not rows:
            return None
        return _to_entity(entity_type, rows[0])

    async def list(self, entity_type: type[E]) -> list[E]:
        self._require_session()
        rows = await self._request(
            "GET",
            self._table_url(entity_type),
            params={"select": "*", "order": "created_at.desc"},
        )
        return [_to_entity(entity_type, row) for row in rows or []]

    async def update(
        self, entity_type: type[E], id: str, changes: Mapping[str, Any]
    ) -> E:
        self._require_session()
        row = changes_to_record(entity_type, changes, snake)
        row["updated_at"] = _now()
        rows = await self._request(
            "PATCH",
            self._table_url(entity_type),
            params={"id": f"eq.{id}"},
            json_body=row,
            headers=RETURN_REPRESENTATION,
        )
        if not rows:
            raise StorageError(
                f"{entity_type.__name__} {id} not found", ErrorKind.NOT_FOUND
            )
        logger.info("Updated %s %s", entity_type.__name__, id)
        return _to_entity(entity_type, rows[0])

    async def delete(self, entity_type: type[E], id: str) -> None:
        self._require_session()
        rows = await self._request(
            "DELETE",
            self._table_url(entity_type),
            params={"id": f"eq.{id}"},
            headers=RETURN_REPRESENTATION,
        )
        if not rows:
            raise StorageError(
                f"{entity_type.__name__} {id} not found", ErrorKind.NOT_FOUND
            )
        logger.info("Deleted %s %s", entity_type.__name__, id)

    def _table_url(self, entity_type: type[Entity]) -> str:
        return f"{self._rest_url}/{entity_type.collection}"

    def _translate_error(self, status: int, payload: Any) -> StorageError:
        body = payload if isinstance(payload, dict) else {"message": str(payload or "")}
        code = str(body.get("code") or "")
        message = str(body.get("message") or f"HTTP {status}")

        if code in _CODE_KINDS:
            return StorageError(message, _CODE_KINDS[code], code=code)
        if status == 401:
            return StorageError(message, ErrorKind.INVALID, code=code or "401")
        if status >= 500:
            return StorageError(message, ErrorKind.UNREACHABLE, code=code or str(status))
        if code.startswith(("22", "23")):
            return StorageError(message, ErrorKind.INVALID, code=code)
        kind = _HTTP_KINDS.get(status, ErrorKind.UNKNOWN)
        return StorageError(message, kind, code=code or str(status))


def _to_entity(entity_type: type[E], row: Mapping[str, Any]) -> E:
    return record_to_entity(
        entity_type,
        row,
        snake,
        id=str(row.get("id", "")),
        created_at=parse_timestamp(row.get("created_at")),
        updated_at=parse_timestamp(row.get("updated_at")),
    )
