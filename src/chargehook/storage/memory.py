"""In-process storage backends.

Holds subscribers and delivery log records in memory. Suitable for
development, tests and single-process deployments where losing the
delivery log on restart is acceptable.
"""

from __future__ import annotations

import asyncio
from collections import defaultdict
from typing import TYPE_CHECKING

from chargehook.exceptions import NotFoundError
from chargehook.models import SubscriberStatus, utc_now

from .base import sort_newest_first

if TYPE_CHECKING:
    from chargehook.models import DeliveryAttempt, Subscriber


class InMemorySubscriberRegistry:
    """Subscriber registry backed by a dict.

    Status updates run under a lock so concurrent chains disabling the
    same subscriber apply the transition once.
    """

    def __init__(self, subscribers: list[Subscriber] | None = None) -> None:
        self._subscribers: dict[str, Subscriber] = {}
        self._lock = asyncio.Lock()
        for subscriber in subscribers or []:
            self._subscribers[subscriber.id] = subscriber

    async def add_subscriber(self, subscriber: Subscriber) -> str:
        async with self._lock:
            self._subscribers[subscriber.id] = subscriber.model_copy(deep=True)
        return subscriber.id

    async def get_subscriber(self, subscriber_id: str) -> Subscriber | None:
        subscriber = self._subscribers.get(subscriber_id)
        if subscriber is None:
            return None
        return subscriber.model_copy(deep=True)

    async def list_eligible_subscribers(
        self,
        event_type: str,
        tenant_id: str | None = None,
    ) -> list[Subscriber]:
        return [
            subscriber.model_copy(deep=True)
            for subscriber in self._subscribers.values()
            if subscriber.subscribes_to(event_type) and subscriber.matches_tenant(tenant_id)
        ]

    async def set_status(self, subscriber_id: str, status: SubscriberStatus) -> None:
        async with self._lock:
            subscriber = self._subscribers.get(subscriber_id)
            if subscriber is None:
                raise NotFoundError("subscriber", subscriber_id)
            if subscriber.status == status:
                return
            self._subscribers[subscriber_id] = subscriber.model_copy(
                update={"status": SubscriberStatus(status), "updated_at": utc_now()}
            )


class InMemoryDeliveryLogStore:
    """Delivery log kept in per-subscriber lists."""

    def __init__(self) -> None:
        self._records: dict[str, list[DeliveryAttempt]] = defaultdict(list)

    async def append(self, attempt: DeliveryAttempt) -> None:
        self._records[attempt.subscriber_id].append(attempt)

    async def list_recent(self, subscriber_id: str, limit: int = 50) -> list[DeliveryAttempt]:
        return sort_newest_first(self._records.get(subscriber_id, []))[:limit]

    def count(self, subscriber_id: str | None = None) -> int:
        """Number of records, for one subscriber or in total."""
        if subscriber_id is not None:
            return len(self._records.get(subscriber_id, []))
        return sum(len(records) for records in self._records.values())
