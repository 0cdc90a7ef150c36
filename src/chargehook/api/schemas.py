"""Pydantic schemas for API request/response models."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class TriggerEventRequest(BaseModel):
    """Request body for triggering an event fan-out.

    Attributes:
        event_type: Event type, e.g. "session.completed".
        data: Event payload, delivered as the envelope's "data".
    """

    model_config = ConfigDict(extra="forbid")

    event_type: str = Field(min_length=1, description="Event type to fan out")
    data: dict[str, Any] = Field(default_factory=dict, description="Event payload")


class FanOutResponse(BaseModel):
    """First-attempt counts of a fan-out.

    Retries are still running when this response is sent.

    Attributes:
        event_type: The triggered event type.
        dispatched: Number of delivery chains started.
        first_attempt_succeeded: First attempts answered with 2xx.
        first_attempt_failed: First attempts that failed.
    """

    model_config = ConfigDict(extra="forbid")

    event_type: str
    dispatched: int = Field(ge=0)
    first_attempt_succeeded: int = Field(ge=0)
    first_attempt_failed: int = Field(ge=0)


class DeliveryTestResponse(BaseModel):
    """Result of a manual test delivery.

    Attributes:
        subscriber_id: Subscriber the test event was sent to.
        chain_id: Delivery chain started by the test.
        success: Whether the endpoint answered 2xx.
        status_code: HTTP status, 0 when no response was received.
        duration_ms: Duration of the HTTP call.
        error: Failure description, if any.
    """

    model_config = ConfigDict(extra="forbid")

    subscriber_id: str
    chain_id: str
    success: bool
    status_code: int
    duration_ms: int
    error: str | None = None


class DeliveryLogResponse(BaseModel):
    """One delivery log record."""

    model_config = ConfigDict(extra="forbid")

    id: str
    chain_id: str
    event_id: str
    event_type: str
    attempt_number: int
    status_code: int
    success: bool
    body: str | None = None
    response_body: str | None = None
    error: str | None = None
    duration_ms: int
    created_at: str


class DeliveryLogListResponse(BaseModel):
    """Newest delivery log records of a subscriber.

    Attributes:
        subscriber_id: Queried subscriber.
        records: Records, newest first.
        count: Number of records returned.
    """

    model_config = ConfigDict(extra="forbid")

    subscriber_id: str
    records: list[DeliveryLogResponse]
    count: int


class HealthResponse(BaseModel):
    """Response for health check endpoint.

    Attributes:
        status: Service status (healthy, unhealthy).
        version: API version.
        storage_connected: Whether storage is connected.
        pending_retries: Delivery chains waiting for a retry.
    """

    model_config = ConfigDict(extra="forbid")

    status: Literal["healthy", "unhealthy"]
    version: str
    storage_connected: bool
    pending_retries: int = 0
