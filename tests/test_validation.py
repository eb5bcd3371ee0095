"""Tests for palette_core.validation — connection config validation."""

from __future__ import annotations

from typing import Any

import pytest

from palette_core.types import BackendType
from palette_core.validation import FIELD_SPECS, required_fields, validate_config


class TestFirebaseValidation:
    """Test the Firebase field table."""

    def test_valid_config(self, firebase_config: dict[str, Any]) -> None:
        """A complete, well-formed config validates cleanly."""
        result = validate_config(BackendType.FIREBASE, firebase_config)
        assert result.valid is True
        assert result.errors == []

    def test_missing_api_key(self, firebase_config: dict[str, Any]) -> None:
        """Removing apiKey yields exactly one required-field error."""
        del firebase_config["apiKey"]
        result = validate_config(BackendType.FIREBASE, firebase_config)
        assert result.valid is False
        assert result.errors == ["apiKey is required"]

    @pytest.mark.parametrize("field", required_fields(BackendType.FIREBASE))
    def test_every_required_field_reported(
        self, firebase_config: dict[str, Any], field: str
    ) -> None:
        """Each required field, when missing, is named in the errors."""
        del firebase_config[field]
        result = validate_config(BackendType.FIREBASE, firebase_config)
        assert result.valid is False
        assert any(field in error for error in result.errors)

    def test_empty_and_blank_values_count_as_missing(
        self, firebase_config: dict[str, Any]
    ) -> None:
        """Empty strings, whitespace and None are all missing."""
        firebase_config["projectId"] = ""
        firebase_config["messagingSenderId"] = "   "
        firebase_config["appId"] = None
        result = validate_config(BackendType.FIREBASE, firebase_config)
        assert result.errors == [
            "projectId is required",
            "messagingSenderId is required",
            "appId is required",
        ]

    def test_current_storage_bucket_suffix_accepted(
        self, firebase_config: dict[str, Any]
    ) -> None:
        """Both the legacy and the current bucket naming are valid."""
        firebase_config["storageBucket"] = "x.firebasestorage.app"
        assert validate_config(BackendType.FIREBASE, firebase_config).valid

    def test_format_errors_follow_declaration_order(
        self, firebase_config: dict[str, Any]
    ) -> None:
        """Format errors come in field order: apiKey, authDomain, storageBucket, appId."""
        firebase_config.update(
            apiKey="nope",
            authDomain="x.example.com",
            storageBucket="x.s3.amazonaws.com",
            appId="1:1:ios:abc",
        )
        result = validate_config(BackendType.FIREBASE, firebase_config)
        assert result.errors == [
            "apiKey format appears invalid",
            "authDomain should end with .firebaseapp.com",
            "storageBucket should end with .appspot.com or .firebasestorage.app",
            "appId format appears invalid",
        ]

    def test_required_errors_precede_format_errors(
        self, firebase_config: dict[str, Any]
    ) -> None:
        """A format error on an early field still comes after a later missing field."""
        firebase_config["apiKey"] = "bad-key"
        del firebase_config["appId"]
        result = validate_config(BackendType.FIREBASE, firebase_config)
        assert result.errors == ["appId is required", "apiKey format appears invalid"]

    def test_app_id_must_be_hex(self, firebase_config: dict[str, Any]) -> None:
        """The trailing segment of appId is lowercase hex."""
        firebase_config["appId"] = "1:1:web:xyz"
        result = validate_config(BackendType.FIREBASE, firebase_config)
        assert result.errors == ["appId format appears invalid"]

    def test_numeric_values_are_checked_as_text(
        self, firebase_config: dict[str, Any]
    ) -> None:
        """messagingSenderId may be given as a number."""
        firebase_config["messagingSenderId"] = 1234567890
        assert validate_config(BackendType.FIREBASE, firebase_config).valid

    def test_optional_measurement_id(self, firebase_config: dict[str, Any]) -> None:
        """measurementId is optional but checked when present."""
        firebase_config["measurementId"] = "UA-1"
        result = validate_config(BackendType.FIREBASE, firebase_config)
        assert result.errors == ["measurementId format appears invalid"]
        firebase_config["measurementId"] = "G-ABC123"
        assert validate_config(BackendType.FIREBASE, firebase_config).valid


class TestSupabaseValidation:
    """Test the Supabase field table."""

    def test_valid_config(self, supabase_config: dict[str, Any]) -> None:
        assert validate_config(BackendType.SUPABASE, supabase_config).valid

    def test_publishable_key_prefix_accepted(
        self, supabase_config: dict[str, Any]
    ) -> None:
        supabase_config["anonKey"] = "sb_publishable_abc"
        assert validate_config(BackendType.SUPABASE, supabase_config).valid

    def test_missing_everything(self) -> None:
        result = validate_config(BackendType.SUPABASE, {})
        assert result.errors == ["url is required", "anonKey is required"]

    def test_bad_url_and_key(self) -> None:
        result = validate_config(
            BackendType.SUPABASE, {"url": "abcd.supabase.co", "anonKey": "secret"}
        )
        assert result.errors == [
            "url should be an http(s) URL",
            "anonKey format appears invalid",
        ]


class TestValidatorEdges:
    """Inputs the validator must survive without raising."""

    @pytest.mark.parametrize("backend_type", list(BackendType))
    def test_missing_required_fields_for_every_type(
        self, backend_type: BackendType
    ) -> None:
        """Every required field of every type is reported on an empty config."""
        result = validate_config(backend_type, {})
        for field in required_fields(backend_type):
            assert f"{field} is required" in result.errors
        assert result.valid is (not required_fields(backend_type))

    def test_reserved_types_have_no_fields(self) -> None:
        """Reserved types validate trivially; they fail later at connect."""
        assert BackendType.MONGODB not in FIELD_SPECS
        assert validate_config(BackendType.MONGODB, {"anything": 1}).valid

    def test_type_given_as_string(self, firebase_config: dict[str, Any]) -> None:
        assert validate_config("firebase", firebase_config).valid

    def test_unknown_type_string(self) -> None:
        result = validate_config("oracle", {})
        assert result.valid is False
        assert result.errors == ["type oracle is not supported"]

    def test_non_mapping_config_treated_as_empty(self) -> None:
        result = validate_config(BackendType.SUPABASE, None)
        assert result.errors == ["url is required", "anonKey is required"]
