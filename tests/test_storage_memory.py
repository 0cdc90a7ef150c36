"""Tests for the in-process registry and delivery log."""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta

import pytest

from chargehook.exceptions import NotFoundError
from chargehook.models import DeliveryAttempt, Subscriber, SubscriberStatus
from chargehook.storage import (
    DeliveryLogStore,
    InMemoryDeliveryLogStore,
    InMemorySubscriberRegistry,
    SubscriberRegistry,
    sort_newest_first,
)


def _attempt(subscriber_id: str, attempt_number: int, created_at: datetime) -> DeliveryAttempt:
    return DeliveryAttempt(
        subscriber_id=subscriber_id,
        chain_id=f"{subscriber_id}:0:abc",
        event_id="evt_1",
        event_type="session.completed",
        attempt_number=attempt_number,
        status_code=500,
        success=False,
        created_at=created_at,
    )


class TestProtocols:
    """The in-memory backends satisfy the storage protocols."""

    def test_registry_protocol(self) -> None:
        assert isinstance(InMemorySubscriberRegistry(), SubscriberRegistry)

    def test_log_store_protocol(self) -> None:
        assert isinstance(InMemoryDeliveryLogStore(), DeliveryLogStore)


class TestInMemorySubscriberRegistry:
    """Tests for InMemorySubscriberRegistry."""

    async def test_add_and_get(self, sample_subscriber: Subscriber) -> None:
        """A stored subscriber should be retrievable by ID."""
        registry = InMemorySubscriberRegistry()
        assert await registry.add_subscriber(sample_subscriber) == sample_subscriber.id

        fetched = await registry.get_subscriber(sample_subscriber.id)
        assert fetched == sample_subscriber

    async def test_get_missing(self) -> None:
        """A missing subscriber should return None."""
        assert await InMemorySubscriberRegistry().get_subscriber("sub_missing") is None

    async def test_returns_copies(self, registry: InMemorySubscriberRegistry) -> None:
        """Mutating a returned subscriber should not change the registry."""
        fetched = await registry.get_subscriber("sub_test123")
        fetched.subscribed_events.append("invoice.paid")

        again = await registry.get_subscriber("sub_test123")
        assert "invoice.paid" not in again.subscribed_events

    async def test_list_eligible(self, registry: InMemorySubscriberRegistry) -> None:
        """Eligibility should require ACTIVE status, the event type and the tenant."""
        assert len(await registry.list_eligible_subscribers("session.completed")) == 1
        assert len(await registry.list_eligible_subscribers("session.completed", "tenant_1")) == 1
        assert await registry.list_eligible_subscribers("session.completed", "tenant_2") == []
        assert await registry.list_eligible_subscribers("invoice.paid") == []

        await registry.set_status("sub_test123", SubscriberStatus.DISABLED)
        assert await registry.list_eligible_subscribers("session.completed") == []

    async def test_set_status_idempotent(self, registry: InMemorySubscriberRegistry) -> None:
        """Disabling twice should leave one DISABLED subscriber and not raise."""
        await registry.set_status("sub_test123", SubscriberStatus.DISABLED)
        first = await registry.get_subscriber("sub_test123")

        await registry.set_status("sub_test123", SubscriberStatus.DISABLED)
        second = await registry.get_subscriber("sub_test123")

        assert second.status == SubscriberStatus.DISABLED
        assert second.updated_at == first.updated_at

    async def test_set_status_only_changes_status(
        self, registry: InMemorySubscriberRegistry, sample_subscriber: Subscriber
    ) -> None:
        """Other subscriber fields should be left untouched."""
        await registry.set_status("sub_test123", SubscriberStatus.DISABLED)
        fetched = await registry.get_subscriber("sub_test123")

        assert fetched.secret == sample_subscriber.secret
        assert fetched.subscribed_events == sample_subscriber.subscribed_events
        assert fetched.endpoint_url == sample_subscriber.endpoint_url

    async def test_concurrent_disable(self, registry: InMemorySubscriberRegistry) -> None:
        """Concurrent disables of one subscriber should all succeed."""
        await asyncio.gather(
            *(registry.set_status("sub_test123", SubscriberStatus.DISABLED) for _ in range(5))
        )
        fetched = await registry.get_subscriber("sub_test123")
        assert fetched.status == SubscriberStatus.DISABLED

    async def test_set_status_missing(self) -> None:
        """Setting the status of a missing subscriber should raise NotFoundError."""
        with pytest.raises(NotFoundError):
            await InMemorySubscriberRegistry().set_status("sub_missing", SubscriberStatus.DISABLED)


class TestInMemoryDeliveryLogStore:
    """Tests for InMemoryDeliveryLogStore."""

    async def test_append_and_list(self) -> None:
        """Appended records should be listed per subscriber."""
        store = InMemoryDeliveryLogStore()
        now = datetime.now(UTC)
        await store.append(_attempt("sub_a", 1, now))
        await store.append(_attempt("sub_b", 1, now))

        assert len(await store.list_recent("sub_a")) == 1
        assert store.count() == 2
        assert store.count("sub_b") == 1
        assert await store.list_recent("sub_missing") == []

    async def test_newest_first_and_limit(self) -> None:
        """Records should be ordered newest first and truncated to the limit."""
        store = InMemoryDeliveryLogStore()
        base = datetime(2025, 1, 1, tzinfo=UTC)
        for minutes in (5, 1, 3):
            await store.append(_attempt("sub_a", 1, base + timedelta(minutes=minutes)))

        records = await store.list_recent("sub_a", limit=2)
        assert [r.created_at.minute for r in records] == [5, 3]


class TestSortNewestFirst:
    """Tests for log ordering."""

    def test_attempt_number_breaks_ties(self) -> None:
        """Records written in the same tick should order by attempt number."""
        moment = datetime(2025, 1, 1, tzinfo=UTC)
        attempts = [_attempt("sub_a", n, moment) for n in (1, 3, 2)]

        assert [a.attempt_number for a in sort_newest_first(attempts)] == [3, 2, 1]
