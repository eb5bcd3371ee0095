"""Error taxonomy shared by the validator, the adapters and the registry.

    ValidationError          config incomplete or malformed, raised before any I/O
    BackendConnectionError   network, credential or unsupported-backend failure on connect
    StorageError             per-operation failure after connect
    NotConnectedError        operation on an adapter or registry with no live connection

Nothing here is retried automatically; callers decide.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(Enum):
    """Backend-independent failure categories."""

    NOT_FOUND = "not_found"
    PERMISSION_DENIED = "permission_denied"
    UNREACHABLE = "unreachable"
    INVALID = "invalid"
    UNSUPPORTED = "unsupported"
    UNKNOWN = "unknown"


class PaletteDBError(Exception):
    """Base class for every error raised by palette-db."""


class ValidationError(PaletteDBError):
    """A configuration failed validation. Carries every error message found."""

    def __init__(self, errors: list[str]) -> None:
        self.errors = list(errors)
        super().__init__("; ".join(self.errors) or "invalid configuration")


class BackendConnectionError(PaletteDBError):
    """Connecting to a backend failed."""

    def __init__(self, message: str, kind: ErrorKind = ErrorKind.UNKNOWN) -> None:
        self.kind = kind
        super().__init__(message)


class StorageError(PaletteDBError):
    """A data operation failed.

    ``code`` keeps the backend-native error code (Firestore status, Postgres
    SQLSTATE, HTTP status) when there is one.
    """

    def __init__(
        self,
        message: str,
        kind: ErrorKind = ErrorKind.UNKNOWN,
        code: str | None = None,
    ) -> None:
        self.kind = kind
        self.code = code
        super().__init__(message)


class NotConnectedError(StorageError):
    """Operation attempted without a live connection."""

    def __init__(self, message: str = "adapter not connected") -> None:
        super().__init__(message, ErrorKind.UNREACHABLE)
