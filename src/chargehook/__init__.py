"""chargehook: outbound event delivery for a multi-tenant EV platform.

Delivers domain events (charging sessions, bookings, invoices, ...) to
subscriber endpoints as HMAC-signed HTTP POSTs, logs every attempt,
retries failures with linear backoff and disables endpoints that keep
failing.

Quick Start:
    from chargehook.service import DeliveryService

    async with DeliveryService.create() as service:
        summary = await service.trigger(
            "session.completed",
            {"sessionId": "s_1", "energyKwh": 12.4},
            tenant_id="tenant_1",
        )
        records = await service.get_logs("sub_abc123")

Wire format:
    POST <endpoint_url>
    Content-Type: application/json
    X-Webhook-Signature: <hex HMAC-SHA256 of the raw body>
    X-Webhook-Event: <event type>

    {"event":"session.completed","timestamp":"2024-01-01T00:00:00.000Z","data":{...}}
"""

__version__ = "0.1.0"

# Configuration
from .config import Settings, settings

# Exceptions
from .exceptions import (
    ChargehookError,
    ConfigurationError,
    NotFoundError,
    RegistryUnavailableError,
    StorageError,
    ValidationError,
)

# Logging
from .logging import (
    bind_context,
    clear_context,
    configure_logging,
    get_logger,
    logger,
    unbind_context,
)

# Models
from .models import (
    DeliveryAttempt,
    DeliveryOutcome,
    Event,
    FanOutSummary,
    RetryPolicy,
    Subscriber,
    SubscriberStatus,
)

__all__ = [
    # Version
    "__version__",
    # Configuration
    "Settings",
    "settings",
    # Exceptions
    "ChargehookError",
    "ValidationError",
    "NotFoundError",
    "StorageError",
    "RegistryUnavailableError",
    "ConfigurationError",
    # Logging
    "configure_logging",
    "get_logger",
    "logger",
    "bind_context",
    "clear_context",
    "unbind_context",
    # Models
    "DeliveryAttempt",
    "DeliveryOutcome",
    "Event",
    "FanOutSummary",
    "RetryPolicy",
    "Subscriber",
    "SubscriberStatus",
]
