"""chargehook exception hierarchy.

Provides structured exceptions for error handling throughout the codebase.
All exceptions inherit from ChargehookError for easy catching.

Delivery failures are never raised: the executor turns them into
outcome values. These exceptions cover the synchronous paths only
(subscriber resolution, lookups, configuration).
"""

from __future__ import annotations


class ChargehookError(Exception):
    """Base exception for all chargehook errors.

    Attributes:
        message: Human-readable error description.
        code: Machine-readable error code for API responses.
    """

    code: str = "chargehook_error"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict[str, object]:
        """Convert exception to API-friendly dictionary."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
            }
        }


class ValidationError(ChargehookError):
    """Invalid input provided.

    Attributes:
        field: The field that failed validation.
        message: Description of the validation failure.
    """

    code: str = "validation_error"

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        super().__init__(f"{field}: {message}")

    def to_dict(self) -> dict[str, object]:
        """Convert exception to API-friendly dictionary."""
        return {
            "error": {
                "code": self.code,
                "field": self.field,
                "message": self.message,
            }
        }


class NotFoundError(ChargehookError):
    """Resource not found.

    Attributes:
        resource_type: Type of resource (e.g., "subscriber").
        resource_id: ID of the missing resource.
    """

    code: str = "not_found"

    def __init__(self, resource_type: str, resource_id: str) -> None:
        self.resource_type = resource_type
        self.resource_id = resource_id
        super().__init__(f"{resource_type} not found: {resource_id}")

    def to_dict(self) -> dict[str, object]:
        """Convert exception to API-friendly dictionary."""
        return {
            "error": {
                "code": self.code,
                "resource_type": self.resource_type,
                "resource_id": self.resource_id,
                "message": self.message,
            }
        }


class StorageError(ChargehookError):
    """Storage operation failed.

    Raised when the registry or delivery log backend fails.
    """

    code: str = "storage_error"


class RegistryUnavailableError(StorageError):
    """Subscribers could not be resolved.

    Raised by a fan-out when the registry cannot list eligible
    subscribers, so no delivery can be attempted.
    """

    code: str = "registry_unavailable"


class ConfigurationError(ChargehookError):
    """Configuration error.

    Raised when required configuration is missing or invalid.
    """

    code: str = "configuration_error"
