"""Event models for outbound delivery.

Events are produced by external domain services (charging sessions,
bookings, invoices, ...) and consumed once per fan-out. They are never
persisted by the delivery engine; the delivery log keeps a payload
snapshot per attempt instead.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .base import generate_id, isoformat_z, utc_now

# Event type used by manual test deliveries
TEST_EVENT_TYPE = "test"
TEST_EVENT_MESSAGE = "This is a test webhook delivery"


class Event(BaseModel):
    """A domain event to deliver to subscribers.

    Attributes:
        id: Correlation identifier, recorded on delivery log entries.
        type: Event type string, e.g. "session.completed".
        payload: Event-specific structured data, sent as the envelope's "data".
        tenant_id: Optional tenant scope restricting eligible subscribers.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    id: str = Field(default_factory=lambda: generate_id("evt"))
    type: str = Field(min_length=1, description="Event type")
    payload: dict[str, Any] = Field(default_factory=dict, description="Event payload")
    tenant_id: str | None = Field(default=None, description="Tenant scope (optional)")

    @field_validator("type")
    @classmethod
    def _strip_type(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("event type must be a non-empty string")
        return stripped

    def envelope(self, timestamp: datetime | None = None) -> dict[str, Any]:
        """Build the wire envelope for this event.

        Key order is part of the wire contract: event, timestamp, data.
        """
        return {
            "event": self.type,
            "timestamp": isoformat_z(timestamp or utc_now()),
            "data": self.payload,
        }

    @classmethod
    def for_test_delivery(cls, tenant_id: str | None = None) -> "Event":
        """Create the synthetic event sent by a manual test delivery."""
        return cls(
            type=TEST_EVENT_TYPE,
            tenant_id=tenant_id,
            payload={
                "message": TEST_EVENT_MESSAGE,
                "timestamp": isoformat_z(utc_now()),
            },
        )


__all__ = [
    "TEST_EVENT_MESSAGE",
    "TEST_EVENT_TYPE",
    "Event",
]
