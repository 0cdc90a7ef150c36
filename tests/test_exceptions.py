"""Tests for chargehook exception hierarchy."""

import pytest

from chargehook.exceptions import (
    ChargehookError,
    ConfigurationError,
    NotFoundError,
    RegistryUnavailableError,
    StorageError,
    ValidationError,
)


class TestChargehookError:
    """Tests for the base ChargehookError class."""

    def test_error_message(self):
        """Should store and return message."""
        error = ChargehookError("Something went wrong")
        assert error.message == "Something went wrong"
        assert str(error) == "Something went wrong"

    def test_error_code(self):
        """Should have default error code."""
        assert ChargehookError("test").code == "chargehook_error"

    def test_to_dict(self):
        """Should convert to API-friendly dict."""
        assert ChargehookError("Something went wrong").to_dict() == {
            "error": {
                "code": "chargehook_error",
                "message": "Something went wrong",
            }
        }

    def test_inheritance(self):
        """All custom exceptions should inherit from ChargehookError."""
        exceptions = [
            ValidationError("field", "invalid"),
            NotFoundError("subscriber", "sub_1"),
            StorageError("failed"),
            RegistryUnavailableError("unreachable"),
            ConfigurationError("missing"),
        ]
        for exc in exceptions:
            assert isinstance(exc, ChargehookError)

    def test_can_catch_all(self):
        """Should be able to catch all errors with the base class."""
        with pytest.raises(ChargehookError):
            raise RegistryUnavailableError("down")


class TestValidationError:
    """Tests for ValidationError."""

    def test_message_includes_field(self):
        error = ValidationError("limit", "must be at least 1")
        assert error.field == "limit"
        assert error.message == "limit: must be at least 1"
        assert error.code == "validation_error"

    def test_to_dict_includes_field(self):
        result = ValidationError("secret", "empty").to_dict()
        assert result["error"]["field"] == "secret"
        assert result["error"]["code"] == "validation_error"


class TestNotFoundError:
    """Tests for NotFoundError."""

    def test_attributes(self):
        error = NotFoundError("subscriber", "sub_123")
        assert error.resource_type == "subscriber"
        assert error.resource_id == "sub_123"
        assert error.message == "subscriber not found: sub_123"
        assert error.code == "not_found"

    def test_to_dict(self):
        result = NotFoundError("subscriber", "sub_123").to_dict()
        assert result["error"]["resource_type"] == "subscriber"
        assert result["error"]["resource_id"] == "sub_123"


class TestStorageErrors:
    """Tests for storage-related errors."""

    def test_registry_unavailable_is_storage_error(self):
        error = RegistryUnavailableError("registry down")
        assert isinstance(error, StorageError)
        assert error.code == "registry_unavailable"

    def test_storage_error_code(self):
        assert StorageError("x").code == "storage_error"

    def test_configuration_error_code(self):
        assert ConfigurationError("x").code == "configuration_error"
