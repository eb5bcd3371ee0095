"""Shared aiohttp plumbing for the REST-backed storage adapters.

Every adapter instance owns exactly one ClientSession, created on connect
and closed on disconnect. Sessions are never shared between adapters, so
two connections to two projects (or to the same project under two names)
cannot see each other's headers, cookies or connection pools.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
import secrets
import time
from collections.abc import Mapping, Sequence
from datetime import datetime, timezone
from typing import Any

import aiohttp

from palette_core.config import AdapterSettings
from palette_core.errors import ErrorKind, NotConnectedError, StorageError
from palette_core.types import BackendType

logger = logging.getLogger(__name__)

Params = Sequence[tuple[str, str]] | Mapping[str, str]

_FRACTION = re.compile(r"\.(\d+)")


def make_session_name(prefix: str, connection_hint: str = "") -> str:
    """Unique, opaque label for one adapter session.

    Built from the connection hint, the wall clock in milliseconds and a
    random suffix, so two sessions opened in the same millisecond for the
    same connection still differ.
    """
    parts = [prefix]
    if connection_hint:
        parts.append(connection_hint)
    parts.append(str(int(time.time() * 1000)))
    parts.append(secrets.token_hex(3))
    return "-".join(parts)


def parse_timestamp(raw: Any) -> datetime | None:
    """Parse an RFC 3339 timestamp as returned by REST backends.

    Fractions longer than microseconds are truncated and a trailing "Z" is
    read as UTC. Unparseable input yields None.
    """
    if not raw or not isinstance(raw, str):
        return None
    text = raw.strip().replace("Z", "+00:00")
    text = _FRACTION.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1)
    try:
        value = datetime.fromisoformat(text)
    except ValueError:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def format_timestamp(value: datetime) -> str:
    """Render a datetime as RFC 3339 in UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


class HTTPAdapter:
    """Base class for adapters speaking JSON over HTTP.

    Subclasses implement ``_translate_error`` to turn a non-2xx answer into a
    StorageError of the right kind. Transport failures are translated here.
    """

    backend_type: BackendType

    def __init__(
        self,
        settings: AdapterSettings | None = None,
        *,
        connection_hint: str = "",
    ) -> None:
        self.settings = settings or AdapterSettings()
        self.connection_hint = connection_hint
        self.warning: str | None = None
        self.session_name: str | None = None
        self._session: aiohttp.ClientSession | None = None
        self._inflight: set[asyncio.Task[Any]] = set()

    @property
    def is_connected(self) -> bool:
        return self._session is not None and not self._session.closed

    def _open_session(self, headers: Mapping[str, str] | None = None) -> None:
        self.session_name = make_session_name(
            self.settings.session_prefix, self.connection_hint
        )
        base_headers = {"User-Agent": self.session_name, "Accept": "application/json"}
        if headers:
            base_headers.update(headers)
        self._session = aiohttp.ClientSession(
            headers=base_headers,
            timeout=aiohttp.ClientTimeout(total=self.settings.request_timeout),
        )
        logger.debug("Opened session %s", self.session_name)

    async def _close_session(self) -> None:
        session, self._session = self._session, None
        if session is None or session.closed:
            return
        try:
            await session.close()
        except Exception as exc:
            logger.warning("Closing session %s failed: %s", self.session_name, exc)
        logger.debug("Closed session %s", self.session_name)

    async def disconnect(self) -> None:
        self.cancel()
        await self._close_session()

    def cancel(self) -> None:
        for task in list(self._inflight):
            if not task.done():
                task.cancel()

    def _require_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            raise NotConnectedError()
        return self._session

    async def _request(
        self,
        method: str,
        url: str,
        *,
        params: Params | None = None,
        json_body: Any = None,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        """Send one request and return the decoded JSON body (None if empty).

        Raises:
            NotConnectedError: no open session.
            StorageError: transport failure (UNREACHABLE), malformed URL
                (INVALID) or a non-2xx answer (kind from _translate_error).
        """
        session = self._require_session()
        task = asyncio.current_task()
        if task is not None:
            self._inflight.add(task)
        try:
            async with session.request(
                method, url, params=params, json=json_body, headers=headers
            ) as resp:
                text = await resp.text()
                status = resp.status
        except aiohttp.InvalidURL as exc:
            raise StorageError(f"invalid URL: {exc}", ErrorKind.INVALID) from exc
        except (aiohttp.ClientConnectionError, asyncio.TimeoutError) as exc:
            raise StorageError(
                f"{self.backend_type.value} unreachable: {str(exc) or type(exc).__name__}",
                ErrorKind.UNREACHABLE,
            ) from exc
        except aiohttp.ClientError as exc:
            raise StorageError(
                f"{self.backend_type.value} request failed: {exc}", ErrorKind.UNKNOWN
            ) from exc
        finally:
            if task is not None:
                self._inflight.discard(task)

        payload = _decode(text)
        if status >= 400:
            raise self._translate_error(status, payload)
        return payload

    def _translate_error(self, status: int, payload: Any) -> StorageError:
        raise NotImplementedError


def _decode(text: str) -> Any:
    if not text:
        return None
    try:
        return json.loads(text)
    except ValueError:
        return text
