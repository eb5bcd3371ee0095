"""Connection config validation.

Pure and synchronous: no network, no exceptions. Each backend type declares
its fields in order; validate_config() walks that declaration twice, first
for missing required values and then for format problems, so messages come
back in a stable, predictable order.

    >>> validate_config(BackendType.SUPABASE, {"url": "https://x.supabase.co"})
    ValidationResult(valid=False, errors=['anonKey is required'])
"""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlparse

from palette_core.types import BackendType, ValidationResult

FIREBASE_AUTH_DOMAIN_SUFFIX = ".firebaseapp.com"
# Legacy buckets end in .appspot.com; projects created since late 2024 get
# .firebasestorage.app. Both are accepted.
FIREBASE_BUCKET_SUFFIXES = (".appspot.com", ".firebasestorage.app")
FIREBASE_API_KEY_PREFIX = "AIza"
FIREBASE_APP_ID_PATTERN = re.compile(r"^\d+:\d+:web:[a-f0-9]+$")
FIREBASE_MEASUREMENT_ID_PREFIX = "G-"

SUPABASE_KEY_PREFIXES = ("eyJ", "sb_publishable_")


@dataclass(frozen=True)
class FieldSpec:
    """One configuration field: its name, whether it is required, and an
    optional format check returning an error message or None."""

    name: str
    required: bool = True
    check: Callable[[str], str | None] | None = None


def _suffix(field: str, *suffixes: str) -> Callable[[str], str | None]:
    def check(value: str) -> str | None:
        if value.endswith(suffixes):
            return None
        return f"{field} should end with {' or '.join(suffixes)}"

    return check


def _prefix(field: str, *prefixes: str) -> Callable[[str], str | None]:
    def check(value: str) -> str | None:
        if value.startswith(prefixes):
            return None
        return f"{field} format appears invalid"

    return check


def _pattern(field: str, pattern: re.Pattern[str]) -> Callable[[str], str | None]:
    def check(value: str) -> str | None:
        if pattern.match(value):
            return None
        return f"{field} format appears invalid"

    return check


def _http_url(field: str) -> Callable[[str], str | None]:
    def check(value: str) -> str | None:
        parsed = urlparse(value)
        if parsed.scheme in ("http", "https") and parsed.netloc:
            return None
        return f"{field} should be an http(s) URL"

    return check


FIELD_SPECS: dict[BackendType, tuple[FieldSpec, ...]] = {
    BackendType.FIREBASE: (
        FieldSpec("apiKey", check=_prefix("apiKey", FIREBASE_API_KEY_PREFIX)),
        FieldSpec(
            "authDomain",
            check=_suffix("authDomain", FIREBASE_AUTH_DOMAIN_SUFFIX),
        ),
        FieldSpec("projectId"),
        FieldSpec(
            "storageBucket",
            check=_suffix("storageBucket", *FIREBASE_BUCKET_SUFFIXES),
        ),
        FieldSpec("messagingSenderId"),
        FieldSpec("appId", check=_pattern("appId", FIREBASE_APP_ID_PATTERN)),
        FieldSpec(
            "measurementId",
            required=False,
            check=_prefix("measurementId", FIREBASE_MEASUREMENT_ID_PREFIX),
        ),
    ),
    BackendType.SUPABASE: (
        FieldSpec("url", check=_http_url("url")),
        FieldSpec("anonKey", check=_prefix("anonKey", *SUPABASE_KEY_PREFIXES)),
    ),
}


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def validate_config(
    backend_type: BackendType | str, config: Mapping[str, Any] | None
) -> ValidationResult:
    """Check a candidate configuration for completeness and field formats.

    Args:
        backend_type: The backend the config is meant for. A raw tag string
            is accepted; an unknown tag is reported as an error.
        config: Field name to value. Anything that is not a mapping is
            treated as an empty config.

    Returns:
        ValidationResult. ``valid`` is True iff ``errors`` is empty. Required
        field errors ("<field> is required") come first, then format errors,
        each in the backend's field declaration order.
    """
    if not isinstance(backend_type, BackendType):
        try:
            backend_type = BackendType(backend_type)
        except ValueError:
            return ValidationResult(
                valid=False, errors=[f"type {backend_type} is not supported"]
            )

    if not isinstance(config, Mapping):
        config = {}

    specs = FIELD_SPECS.get(backend_type, ())
    errors: list[str] = []

    for spec in specs:
        if spec.required and not _text(config.get(spec.name)):
            errors.append(f"{spec.name} is required")

    for spec in specs:
        value = _text(config.get(spec.name))
        if not value or spec.check is None:
            continue
        message = spec.check(value)
        if message:
            errors.append(message)

    return ValidationResult(valid=not errors, errors=errors)


def required_fields(backend_type: BackendType) -> list[str]:
    """Names of the required fields for a backend type, in declaration order."""
    return [spec.name for spec in FIELD_SPECS.get(backend_type, ()) if spec.required]
