"""Tests for the DeliveryService facade."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from chargehook.config import Settings
from chargehook.exceptions import ConfigurationError
from chargehook.models import Subscriber, SubscriberStatus
from chargehook.service import DeliveryService
from chargehook.storage import (
    InMemoryDeliveryLogStore,
    InMemorySubscriberRegistry,
    QdrantStorage,
)
from helpers import RecordingSleep, make_http_client, make_response


class TestCreate:
    """Tests for DeliveryService.create."""

    def test_memory_backend(self) -> None:
        """The memory backend should wire in-process stores."""
        service = DeliveryService.create(Settings(_env_file=None, storage_backend="memory"))

        assert isinstance(service.registry, InMemorySubscriberRegistry)
        assert isinstance(service.log_store, InMemoryDeliveryLogStore)
        assert service.storage is None

    def test_qdrant_backend(self) -> None:
        """The qdrant backend should use one QdrantStorage for both stores."""
        service = DeliveryService.create(
            Settings(_env_file=None, storage_backend="qdrant", qdrant_url=":memory:")
        )

        assert isinstance(service.storage, QdrantStorage)
        assert service.registry is service.storage
        assert service.log_store is service.storage

    def test_unknown_backend(self) -> None:
        """An unknown backend should raise ConfigurationError."""
        settings = Settings.model_construct(storage_backend="postgres")

        with pytest.raises(ConfigurationError):
            DeliveryService.create(settings)

    def test_pipeline_shares_components(self) -> None:
        service = DeliveryService.create(Settings(_env_file=None))
        assert service.dispatcher.scheduler is service.scheduler


class TestLifecycle:
    """Tests for initialize/close."""

    async def test_context_manager_with_qdrant(self, sample_subscriber: Subscriber) -> None:
        """The service should initialize and close its storage."""
        settings = Settings(_env_file=None, storage_backend="qdrant", qdrant_url=":memory:")
        async with DeliveryService.create(settings) as service:
            await service.registry.add_subscriber(sample_subscriber)
            assert await service.registry.get_subscriber(sample_subscriber.id) is not None

        with pytest.raises(RuntimeError):
            _ = service.storage.client

    async def test_close_cancels_pending_retries(
        self, test_settings: Settings, sample_subscriber: Subscriber
    ) -> None:
        """Closing the service should cancel every waiting retry."""
        service = DeliveryService(
            registry=InMemorySubscriberRegistry([sample_subscriber]),
            log_store=InMemoryDeliveryLogStore(),
            settings=test_settings,
        )
        service.scheduler._sleep = RecordingSleep(asyncio.Event())

        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client_class.return_value = make_http_client(
                AsyncMock(return_value=make_response(500))
            )
            summary = await service.trigger("session.completed")

        assert summary.first_attempt_failed == 1
        assert len(service.scheduler.pending_chains) == 1

        await service.close()

        assert service.scheduler.pending_chains == []


class TestDelegation:
    """Tests for trigger, test_delivery and get_logs."""

    @pytest.fixture
    def service(self, test_settings: Settings, sample_subscriber: Subscriber) -> DeliveryService:
        return DeliveryService(
            registry=InMemorySubscriberRegistry([sample_subscriber]),
            log_store=InMemoryDeliveryLogStore(),
            settings=test_settings,
        )

    async def test_trigger_and_logs(
        self, service: DeliveryService, sample_subscriber: Subscriber
    ) -> None:
        """A triggered delivery should show up in the subscriber's logs."""
        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client_class.return_value = make_http_client(
                AsyncMock(return_value=make_response(200, "ok"))
            )
            summary = await service.trigger(
                "session.completed", {"sessionId": "s_1"}, tenant_id="tenant_1"
            )

        assert summary.dispatched == 1
        [record] = await service.get_logs(sample_subscriber.id, tenant_id="tenant_1")
        assert record.success is True
        assert record.response_body == "ok"

    async def test_test_delivery(
        self, service: DeliveryService, sample_subscriber: Subscriber
    ) -> None:
        with patch("httpx.AsyncClient") as mock_client_class:
            mock_client_class.return_value = make_http_client(
                AsyncMock(return_value=make_response(200))
            )
            outcome = await service.test_delivery(sample_subscriber.id)

        assert outcome.succeeded
        subscriber = await service.registry.get_subscriber(sample_subscriber.id)
        assert subscriber.status == SubscriberStatus.ACTIVE
