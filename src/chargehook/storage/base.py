"""Storage interfaces consumed by the delivery engine.

The subscriber registry and the delivery log are external collaborators.
The engine talks to them only through these two narrow protocols, so any
backend (in-process, Qdrant, a relational adapter) can be plugged in.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from chargehook.models import DeliveryAttempt, Subscriber, SubscriberStatus


@runtime_checkable
class SubscriberRegistry(Protocol):
    """Source of truth for subscriber records and their status."""

    async def list_eligible_subscribers(
        self,
        event_type: str,
        tenant_id: str | None = None,
    ) -> list[Subscriber]:
        """Return ACTIVE subscribers subscribed to event_type.

        When tenant_id is given only subscribers scoped to that tenant
        are returned; otherwise every tenant (and global subscribers)
        qualifies.
        """
        ...

    async def get_subscriber(self, subscriber_id: str) -> Subscriber | None:
        """Return one subscriber, or None if it does not exist."""
        ...

    async def set_status(self, subscriber_id: str, status: SubscriberStatus) -> None:
        """Set a subscriber's status.

        Idempotent: applying the current status again is a no-op and
        does not raise.

        Raises:
            NotFoundError: If the subscriber does not exist.
        """
        ...

    async def add_subscriber(self, subscriber: Subscriber) -> str:
        """Insert or replace a subscriber record. Returns its ID."""
        ...


@runtime_checkable
class DeliveryLogStore(Protocol):
    """Append-only store of delivery attempt records."""

    async def append(self, attempt: DeliveryAttempt) -> None:
        """Persist one attempt record."""
        ...

    async def list_recent(self, subscriber_id: str, limit: int = 50) -> list[DeliveryAttempt]:
        """Return the newest records for a subscriber, newest first."""
        ...


def sort_newest_first(attempts: list[DeliveryAttempt]) -> list[DeliveryAttempt]:
    """Order attempt records newest first.

    attempt_number breaks ties between records of one chain written
    within the same clock tick.
    """
    return sorted(attempts, key=lambda a: (a.created_at, a.attempt_number), reverse=True)
