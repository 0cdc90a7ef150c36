"""Configuration management for chargehook."""

import logging
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """chargehook configuration loaded from environment variables.

    All settings can be overridden via environment variables with
    the CHARGEHOOK_ prefix. For example:
        CHARGEHOOK_STORAGE_BACKEND=qdrant
        CHARGEHOOK_QDRANT_URL=http://localhost:6333
    """

    # Environment
    env: Literal["development", "production", "test"] = Field(
        default="development",
        description="Environment: development, production, or test",
    )

    # Storage
    storage_backend: Literal["memory", "qdrant"] = Field(
        default="memory",
        description="Backend for the subscriber registry and delivery log",
    )
    qdrant_url: str = Field(
        default="http://localhost:6333",
        description="Qdrant connection URL",
    )
    qdrant_api_key: str | None = Field(
        default=None,
        description="Qdrant API key (for cloud)",
    )
    collection_prefix: str = Field(
        default="chargehook",
        description="Prefix for Qdrant collection names",
    )

    # Delivery
    delivery_timeout_seconds: float = Field(
        default=30.0,
        gt=0.0,
        description="Per-attempt HTTP timeout",
    )
    max_concurrent_deliveries: int = Field(
        default=10,
        ge=1,
        le=1000,
        description="Maximum first attempts in flight during one fan-out",
    )
    signature_header: str = Field(
        default="X-Webhook-Signature",
        description="Header carrying the hex HMAC-SHA256 of the body",
    )
    event_header: str = Field(
        default="X-Webhook-Event",
        description="Header carrying the event type",
    )
    response_snippet_max_chars: int = Field(
        default=1000,
        ge=0,
        description="Response body characters kept on each delivery log record",
    )

    # Delivery log queries
    log_query_default_limit: int = Field(
        default=50,
        ge=1,
        description="Records returned by log queries when no limit is given",
    )
    log_query_max_limit: int = Field(
        default=500,
        ge=1,
        description="Upper bound on records returned by one log query",
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )
    log_format: Literal["json", "text"] = Field(
        default="json",
        description="Log output format",
    )

    # CORS Configuration
    cors_enabled: bool = Field(
        default=True,
        description="Enable CORS middleware",
    )
    cors_allow_origins: list[str] = Field(
        default_factory=lambda: ["*"],
        description="List of allowed CORS origins",
    )
    cors_allow_methods: list[str] = Field(
        default_factory=lambda: ["GET", "POST", "OPTIONS"],
        description="Allowed HTTP methods for CORS requests",
    )
    cors_allow_headers: list[str] = Field(
        default_factory=lambda: ["*"],
        description="Allowed headers for CORS requests",
    )

    model_config = {
        "env_prefix": "CHARGEHOOK_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_nested_delimiter": "__",
    }

    @model_validator(mode="after")
    def validate_log_query_limits(self) -> "Settings":
        """Validate the default log query limit fits under the maximum."""
        if self.log_query_default_limit > self.log_query_max_limit:
            raise ValueError(
                f"log_query_default_limit ({self.log_query_default_limit}) must not exceed "
                f"log_query_max_limit ({self.log_query_max_limit})"
            )
        return self

    @model_validator(mode="after")
    def validate_production_storage(self) -> "Settings":
        """Warn when production runs on the volatile in-process backend."""
        if self.env == "production" and self.storage_backend == "memory":
            logger.warning(
                "In-memory storage backend in production: subscriber status and "
                "delivery logs are lost on restart"
            )
        return self


# Global settings instance
settings = Settings()
