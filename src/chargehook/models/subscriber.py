"""Subscriber models for outbound event delivery.

A subscriber is one registered destination for events. Records are
owned by the external subscriber registry; the delivery engine only
reads them and performs the terminal ACTIVE -> DISABLED transition.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, HttpUrl, field_validator

from .base import generate_id, utc_now


class SubscriberStatus(str, Enum):
    """Lifecycle status of a subscriber endpoint."""

    ACTIVE = "ACTIVE"
    DISABLED = "DISABLED"


class RetryPolicy(BaseModel):
    """Retry policy for one subscriber.

    Attributes:
        max_attempts: Total attempts per delivery chain, first attempt included.
        base_delay_ms: Linear backoff unit. The delay before attempt k+1
            is base_delay_ms * k.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    max_attempts: int = Field(default=3, ge=1, le=20, description="Attempts per chain")
    base_delay_ms: int = Field(default=60000, ge=0, description="Linear backoff unit in ms")

    def delay_ms_after(self, attempt_number: int) -> int:
        """Delay to wait after the given attempt before the next one."""
        return self.base_delay_ms * attempt_number


class Subscriber(BaseModel):
    """A registered external endpoint that receives event notifications.

    Attributes:
        id: Unique identifier for this subscriber.
        tenant_id: Organization scope. None means the subscriber is global.
        endpoint_url: Destination for POSTed envelopes.
        secret: Shared key for HMAC-SHA256 signatures.
        subscribed_events: Event types this subscriber receives.
        custom_headers: Headers merged into every request after the reserved
            ones. A custom header reusing a reserved name overrides it.
        retry_policy: Attempts and backoff for delivery chains.
        status: ACTIVE or DISABLED.
        description: Optional human-readable description.
        created_at: When the subscriber was registered.
        updated_at: When the subscriber was last modified.
    """

    model_config = ConfigDict(extra="forbid")

    id: str = Field(default_factory=lambda: generate_id("sub"))
    tenant_id: str | None = Field(default=None, description="Organization scope (None = global)")
    endpoint_url: HttpUrl = Field(description="Endpoint receiving event deliveries")
    secret: str = Field(min_length=1, description="Shared secret for HMAC-SHA256 signatures")
    subscribed_events: list[str] = Field(
        default_factory=list,
        description="Event types to deliver",
    )
    custom_headers: dict[str, str] = Field(
        default_factory=dict,
        description="Extra headers sent with every delivery",
    )
    retry_policy: RetryPolicy = Field(default_factory=RetryPolicy)
    status: SubscriberStatus = Field(default=SubscriberStatus.ACTIVE)
    description: str | None = Field(default=None, description="Human-readable description")
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @field_validator("subscribed_events")
    @classmethod
    def _strip_event_types(cls, value: list[str]) -> list[str]:
        events = [event.strip() for event in value]
        if any(not event for event in events):
            raise ValueError("event types must be non-empty strings")
        return events

    @property
    def is_active(self) -> bool:
        """Whether deliveries may be dispatched to this subscriber."""
        return self.status == SubscriberStatus.ACTIVE

    def subscribes_to(self, event_type: str) -> bool:
        """Check if this subscriber is active and subscribed to the event type."""
        return self.is_active and event_type in self.subscribed_events

    def matches_tenant(self, tenant_id: str | None) -> bool:
        """Check tenant scope. An absent scope matches every subscriber."""
        return tenant_id is None or self.tenant_id == tenant_id


__all__ = [
    "RetryPolicy",
    "Subscriber",
    "SubscriberStatus",
]
