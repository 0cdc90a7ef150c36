"""Delivery log records and attempt outcomes.

DeliveryAttempt is the append-only audit record written for every HTTP
attempt, retries included. DeliveryOutcome is the settled value the
executor hands back to its caller; delivery failures travel as values,
never as exceptions.
"""

from datetime import datetime
from typing import Any, Literal
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from .base import generate_id, utc_now

OutcomeKind = Literal["success", "failure"]


def new_chain_id(subscriber_id: str, started_at: datetime | None = None) -> str:
    """Build the key identifying one delivery chain.

    Format: "{subscriber_id}:{chain start in epoch ms}:{random suffix}".
    The suffix keeps two chains started in the same millisecond apart.
    """
    started = started_at or utc_now()
    return f"{subscriber_id}:{int(started.timestamp() * 1000)}:{uuid4().hex[:6]}"


class DeliveryAttempt(BaseModel):
    """Immutable record of one delivery attempt.

    Attributes:
        id: Unique identifier for this record.
        subscriber_id: Subscriber the attempt targeted.
        chain_id: Delivery chain the attempt belongs to.
        event_id: Correlation id of the delivered event.
        event_type: Event type string.
        payload: Snapshot of the event payload.
        body: Exact request body sent (UTF-8), None if nothing was sent.
        attempt_number: 1-indexed position within the chain.
        status_code: HTTP status, 0 when no response was received.
        response_body: Response text snippet (truncated).
        error: Transport error message when no response was received.
        duration_ms: Wall time of the HTTP call.
        success: True for 2xx responses.
        created_at: When the record was written.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    id: str = Field(default_factory=lambda: generate_id("dlv"))
    subscriber_id: str = Field(description="Subscriber the attempt targeted")
    chain_id: str = Field(description="Delivery chain key")
    event_id: str = Field(description="Correlation id of the delivered event")
    event_type: str = Field(description="Event type")
    payload: dict[str, Any] = Field(default_factory=dict, description="Payload snapshot")
    body: str | None = Field(default=None, description="Exact request body sent")
    attempt_number: int = Field(ge=1, description="Position within the chain")
    status_code: int = Field(default=0, ge=0, description="HTTP status, 0 if no response")
    response_body: str | None = Field(default=None, description="Response snippet")
    error: str | None = Field(default=None, description="Transport error message")
    duration_ms: int = Field(default=0, ge=0, description="Duration of the HTTP call")
    success: bool = Field(description="Whether the endpoint answered 2xx")
    created_at: datetime = Field(default_factory=utc_now)


class DeliveryOutcome(BaseModel):
    """Settled result of one delivery attempt.

    Attributes:
        kind: "success" or "failure".
        subscriber_id: Subscriber the attempt targeted.
        chain_id: Delivery chain the attempt belongs to.
        attempt_number: 1-indexed position within the chain.
        status_code: HTTP status, 0 when no response was received.
        duration_ms: Wall time of the HTTP call.
        error: Failure description, None on success.
        body: Exact bytes transmitted (UTF-8 decoded).
        signature: Signature header value sent with the body.
        record: The log record written for this attempt, if the write succeeded.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    kind: OutcomeKind
    subscriber_id: str
    chain_id: str
    attempt_number: int = Field(ge=1)
    status_code: int = Field(default=0, ge=0)
    duration_ms: int = Field(default=0, ge=0)
    error: str | None = None
    body: str | None = None
    signature: str | None = None
    record: DeliveryAttempt | None = None

    @property
    def succeeded(self) -> bool:
        """Whether the attempt was accepted by the endpoint."""
        return self.kind == "success"


class FanOutSummary(BaseModel):
    """First-attempt counts reported by one fan-out.

    Retries continue in the background and are not reflected here.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    dispatched: int = Field(default=0, ge=0, description="Chains started")
    first_attempt_succeeded: int = Field(default=0, ge=0)
    first_attempt_failed: int = Field(default=0, ge=0)

    @classmethod
    def from_outcomes(cls, outcomes: list[DeliveryOutcome]) -> "FanOutSummary":
        """Count first-attempt outcomes."""
        succeeded = sum(1 for outcome in outcomes if outcome.succeeded)
        return cls(
            dispatched=len(outcomes),
            first_attempt_succeeded=succeeded,
            first_attempt_failed=len(outcomes) - succeeded,
        )


__all__ = [
    "DeliveryAttempt",
    "DeliveryOutcome",
    "FanOutSummary",
    "OutcomeKind",
    "new_chain_id",
]
