"""Tests for palette_core.types — records, enums and result types."""

from __future__ import annotations

import dataclasses

import pytest

from palette_core.errors import ErrorKind, NotConnectedError, StorageError, ValidationError
from palette_core.types import (
    ENTITY_TYPES,
    UNSET,
    BackendType,
    Collection,
    Color,
    Palette,
    PersistedConnectionRecord,
    ProbeResult,
    Unset,
    ValidationResult,
)


class TestBackendType:
    def test_values(self) -> None:
        assert [t.value for t in BackendType] == [
            "firebase",
            "supabase",
            "mongodb",
            "postgresql",
            "mysql",
            "sqlite",
            "airtable",
            "notion",
        ]

    def test_implemented(self) -> None:
        implemented = {t for t in BackendType if t.is_implemented}
        assert implemented == {BackendType.FIREBASE, BackendType.SUPABASE}


class TestUnset:
    def test_singleton_and_falsy(self) -> None:
        assert Unset() is UNSET
        assert not UNSET
        assert repr(UNSET) == "UNSET"


class TestEntities:
    """Test Palette and Collection defaults."""

    def test_palette_defaults(self) -> None:
        palette = Palette(name="Dusk")
        assert palette.id == ""
        assert palette.created_at is None
        assert palette.category == "Uncategorized"
        assert palette.is_public is False
        assert palette.created_by == "anonymous"
        assert palette.colors == []

    def test_list_defaults_not_shared(self) -> None:
        first, second = Palette(), Palette()
        first.tags.append("warm")
        assert second.tags == []

    def test_collection_names(self) -> None:
        assert Palette.collection == "palettes"
        assert Collection.collection == "collections"
        assert ENTITY_TYPES == (Palette, Collection)

    def test_data_fields_exclude_identity(self) -> None:
        assert Collection.data_fields() == (
            "name",
            "description",
            "palette_ids",
            "is_public",
            "created_by",
        )
        assert "collection" not in Palette.data_fields()

    def test_color_dict_omits_empty_optionals(self) -> None:
        color = Color(id="c1", name="Plum", hex="#6b3fa0")
        assert color.to_dict() == {"id": "c1", "name": "Plum", "hex": "#6b3fa0"}
        assert Color.from_dict(color.to_dict()) == color


class TestPersistedConnectionRecord:
    def test_to_dict_keys(self) -> None:
        record = PersistedConnectionRecord(
            BackendType.SUPABASE, "sb", {"url": "u"}, is_active=True, created_at=1, last_used=2
        )
        assert record.to_dict() == {
            "type": "supabase",
            "name": "sb",
            "config": {"url": "u"},
            "isActive": True,
            "createdAt": 1,
            "lastUsed": 2,
        }

    def test_from_dict_defaults(self) -> None:
        record = PersistedConnectionRecord.from_dict({"type": "firebase", "name": "x"})
        assert record.config == {}
        assert record.is_active is False
        assert record.created_at == 0

    def test_from_dict_unknown_type(self) -> None:
        with pytest.raises(ValueError):
            PersistedConnectionRecord.from_dict({"type": "oracle", "name": "x"})


class TestResults:
    def test_validation_result_is_frozen(self) -> None:
        result = ValidationResult(valid=True)
        with pytest.raises(dataclasses.FrozenInstanceError):
            result.valid = False  # type: ignore[misc]

    def test_probe_result_truthiness(self) -> None:
        assert ProbeResult(success=True)
        assert not ProbeResult(success=False, error="x", kind=ErrorKind.INVALID)


class TestErrors:
    def test_validation_error_joins_messages(self) -> None:
        err = ValidationError(["a is required", "b is required"])
        assert str(err) == "a is required; b is required"
        assert err.errors == ["a is required", "b is required"]

    def test_not_connected_is_storage_error(self) -> None:
        err = NotConnectedError()
        assert isinstance(err, StorageError)
        assert err.kind is ErrorKind.UNREACHABLE
