"""Document-service adapter: Cloud Firestore over its REST API.

Authenticates with the web API key from the Firebase project config, the
same way the browser SDK does, so Firestore security rules apply exactly as
they would for a signed-out web client.

Documents use camelCase field names (``isPublic``, ``paletteIds``). The
entity timestamps are the document's own ``createTime``/``updateTime``.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, TypeVar
from urllib.parse import quote

from palette_core.config import AdapterSettings
from palette_core.errors import (
    BackendConnectionError,
    ErrorKind,
    StorageError,
)
from palette_core.types import BackendType, Entity, Palette
from palette_db.adapters._http import HTTPAdapter, parse_timestamp
from palette_db.adapters._records import (
    camel,
    changes_to_record,
    entity_to_record,
    record_to_entity,
)
from palette_db.adapters.firestore_codec import (
    decode_fields,
    document_id,
    encode_fields,
)

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=Entity)

PAGE_SIZE = 300

# google.rpc status names -> ErrorKind
_STATUS_KINDS: dict[str, ErrorKind] = {
    "NOT_FOUND": ErrorKind.NOT_FOUND,
    "PERMISSION_DENIED": ErrorKind.PERMISSION_DENIED,
    "UNAUTHENTICATED": ErrorKind.PERMISSION_DENIED,
    "INVALID_ARGUMENT": ErrorKind.INVALID,
    "FAILED_PRECONDITION": ErrorKind.INVALID,
    "OUT_OF_RANGE": ErrorKind.INVALID,
    "ALREADY_EXISTS": ErrorKind.INVALID,
    "UNAVAILABLE": ErrorKind.UNREACHABLE,
    "DEADLINE_EXCEEDED": ErrorKind.UNREACHABLE,
}

_HTTP_KINDS: dict[int, ErrorKind] = {
    400: ErrorKind.INVALID,
    401: ErrorKind.PERMISSION_DENIED,
    403: ErrorKind.PERMISSION_DENIED,
    404: ErrorKind.NOT_FOUND,
}


class FirestoreAdapter(HTTPAdapter):
    """StorageAdapter for a Firebase project's default Firestore database."""

    backend_type = BackendType.FIREBASE

    def __init__(
        self,
        settings: AdapterSettings | None = None,
        *,
        connection_hint: str = "",
    ) -> None:
        super().__init__(settings, connection_hint=connection_hint)
        self._api_key = ""
        self._documents_url = ""

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def connect(self, config: Mapping[str, Any]) -> None:
        await self._close_session()
        self.warning = None

        project_id = str(config.get("projectId") or "").strip()
        api_key = str(config.get("apiKey") or "").strip()
        if not project_id or not api_key:
            raise BackendConnectionError(
                "Firebase config needs both apiKey and projectId", ErrorKind.INVALID
            )

        self._api_key = api_key
        base = self.settings.firestore_base_url.rstrip("/")
        self._documents_url = (
            f"{base}/projects/{quote(project_id, safe='')}/databases/(default)/documents"
        )
        self._open_session()

        # Read one palette to check access. Denied still means reachable. A
        # missing collection lists as empty, so a 404 means no such project or
        # database.
        try:
            await self._request(
                "GET", self._collection_url(Palette), params=self._params(("pageSize", "1"))
            )
        except StorageError as exc:
            if exc.kind is ErrorKind.PERMISSION_DENIED:
                self.warning = (
                    "connected, but reading palettes was denied; sign in or "
                    "update the Firestore security rules"
                )
            else:
                await self._close_session()
                logger.error("Firestore connection to %s failed: %s", project_id, exc)
                raise BackendConnectionError(_connect_message(exc), exc.kind) from exc
            logger.warning("Firestore project %s: %s", project_id, self.warning)

        logger.info(
            "Connected to Firestore project %s (session %s)", project_id, self.session_name
        )

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    async def create(self, entity: Entity) -> str:
        self._require_session()
        document = await self._request(
            "POST",
            self._collection_url(type(entity)),
            params=self._params(),
            json_body={"fields": encode_fields(entity_to_record(entity, camel))},
        )
        new_id = document_id(document or {})
        logger.info("Created %s %s", type(entity).__name__, new_id)
        return new_id

    async def get(self, entity_type: type[E], id: str) -> E | None:
        self._require_session()
        try:
            document = await self._request(
                "GET", self._document_url(entity_type, id), params=self._params()
            )
        except StorageError as exc:
            if exc.kind is ErrorKind.NOT_FOUND:
                return None
            raise
        return _to_entity(entity_type, document)

    async def list(self, entity_type: type[E]) -> list[E]:
        self._require_session()
        results: list[E] = []
        page_token = ""
        while True:
            extra = [("pageSize", str(PAGE_SIZE))]
            if page_token:
                extra.append(("pageToken", page_token))
            payload = await self._request(
                "GET", self._collection_url(entity_type), params=self._params(*extra)
            ) or {}
            results.extend(
                _to_entity(entity_type, document)
                for document in payload.get("documents", [])
            )
            page_token = payload.get("nextPageToken", "")
            if not page_token:
                break
        logger.debug("Loaded %d %s from Firestore", len(results), entity_type.collection)
        return results

    async def update(
        self, entity_type: type[E], id: str, changes: Mapping[str, Any]
    ) -> E:
        self._require_session()
        record = changes_to_record(entity_type, changes, camel)
        if not record:
            # An empty update mask would make PATCH replace the document.
            current = await self.get(entity_type, id)
            if current is None:
                raise StorageError(
                    f"{entity_type.__name__} {id} not found", ErrorKind.NOT_FOUND
                )
            return current

        mask = [("updateMask.fieldPaths", path) for path in record]
        document = await self._request(
            "PATCH",
            self._document_url(entity_type, id),
            params=self._params(*mask, ("currentDocument.exists", "true")),
            json_body={"fields": encode_fields(record)},
        )
        logger.info("Updated %s %s", entity_type.__name__, id)
        return _to_entity(entity_type, document)

    async def delete(self, entity_type: type[E], id: str) -> None:
        self._require_session()
        await self._request(
            "DELETE",
            self._document_url(entity_type, id),
            params=self._params(("currentDocument.exists", "true")),
        )
        logger.info("Deleted %s %s", entity_type.__name__, id)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _params(self, *extra: tuple[str, str]) -> list[tuple[str, str]]:
        return [("key", self._api_key), *extra]

    def _collection_url(self, entity_type: type[Entity]) -> str:
        return f"{self._documents_url}/{entity_type.collection}"

    def _document_url(self, entity_type: type[Entity], id: str) -> str:
        return f"{self._collection_url(entity_type)}/{quote(id, safe='')}"

    def _translate_error(self, status: int, payload: Any) -> StorageError:
        error = _error_body(payload)
        status_name = str(error.get("status") or "")
        message = str(error.get("message") or f"HTTP {status}")
        reasons = {
            detail.get("reason")
            for detail in error.get("details") or []
            if isinstance(detail, dict)
        }

        if "API_KEY_INVALID" in reasons or "API key not valid" in message:
            return StorageError(message, ErrorKind.INVALID, code="API_KEY_INVALID")
        if status_name in _STATUS_KINDS:
            return StorageError(message, _STATUS_KINDS[status_name], code=status_name)
        if status >= 500:
            return StorageError(message, ErrorKind.UNREACHABLE, code=str(status))
        kind = _HTTP_KINDS.get(status, ErrorKind.UNKNOWN)
        return StorageError(message, kind, code=status_name or str(status))


def _error_body(payload: Any) -> dict[str, Any]:
    # Some endpoints wrap the error object in a one-element list.
    if isinstance(payload, list) and payload:
        payload = payload[0]
    if isinstance(payload, dict) and isinstance(payload.get("error"), dict):
        return payload["error"]
    if isinstance(payload, str):
        return {"message": payload}
    return {}


def _connect_message(exc: StorageError) -> str:
    if exc.code == "API_KEY_INVALID":
        return "Invalid Firebase API key. Please check your configuration."
    if exc.kind is ErrorKind.NOT_FOUND:
        return "Firebase project not found. Please check your Project ID."
    return f"Firebase connection failed: {exc}"


def _to_entity(entity_type: type[E], document: Mapping[str, Any]) -> E:
    return record_to_entity(
        entity_type,
        decode_fields(document.get("fields") or {}),
        camel,
        id=document_id(document),
        created_at=parse_timestamp(document.get("createTime")),
        updated_at=parse_timestamp(document.get("updateTime")),
    )
