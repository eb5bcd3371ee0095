"""Firestore REST value encoding.

Firestore's REST API wraps every value in a one-key object naming its type:

    "Dusk"          <-> {"stringValue": "Dusk"}
    3               <-> {"integerValue": "3"}      (int64 travels as a string)
    ["a", "b"]      <-> {"arrayValue": {"values": [...]}}
    {"hex": "#fff"} <-> {"mapValue": {"fields": {...}}}
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from typing import Any

from palette_db.adapters._http import format_timestamp, parse_timestamp


def encode_value(value: Any) -> dict[str, Any]:
    """Wrap a Python value in its Firestore typed-value object."""
    if value is None:
        return {"nullValue": None}
    # bool before int: bool is an int subclass.
    if isinstance(value, bool):
        return {"booleanValue": value}
    if isinstance(value, int):
        return {"integerValue": str(value)}
    if isinstance(value, float):
        return {"doubleValue": value}
    if isinstance(value, str):
        return {"stringValue": value}
    if isinstance(value, datetime):
        return {"timestampValue": format_timestamp(value)}
    if isinstance(value, Mapping):
        return {"mapValue": {"fields": encode_fields(value)}}
    if isinstance(value, (list, tuple)):
        return {"arrayValue": {"values": [encode_value(item) for item in value]}}
    raise TypeError(f"cannot encode {type(value).__name__} for Firestore")


def encode_fields(data: Mapping[str, Any]) -> dict[str, Any]:
    return {str(key): encode_value(value) for key, value in data.items()}


def decode_value(wrapped: Mapping[str, Any]) -> Any:
    """Unwrap a Firestore typed-value object into a Python value.

    Types the palette model never writes (references, geo points, bytes)
    come back as their raw wire representation.
    """
    if "nullValue" in wrapped:
        return None
    if "booleanValue" in wrapped:
        return bool(wrapped["booleanValue"])
    if "integerValue" in wrapped:
        return int(wrapped["integerValue"])
    if "doubleValue" in wrapped:
        return float(wrapped["doubleValue"])
    if "stringValue" in wrapped:
        return wrapped["stringValue"]
    if "timestampValue" in wrapped:
        return parse_timestamp(wrapped["timestampValue"])
    if "mapValue" in wrapped:
        return decode_fields(wrapped["mapValue"].get("fields") or {})
    if "arrayValue" in wrapped:
        return [decode_value(item) for item in wrapped["arrayValue"].get("values") or []]
    for key in ("referenceValue", "bytesValue", "geoPointValue"):
        if key in wrapped:
            return wrapped[key]
    return None


def decode_fields(fields: Mapping[str, Any]) -> dict[str, Any]:
    return {key: decode_value(value) for key, value in fields.items()}


def document_id(document: Mapping[str, Any]) -> str:
    """The trailing path segment of a document resource name."""
    return str(document.get("name", "")).rsplit("/", 1)[-1]
