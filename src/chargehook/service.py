"""Core chargehook service layer.

This module provides the DeliveryService that wires a storage backend,
the attempt executor, the retry scheduler and the dispatcher behind one
trigger/test/logs interface.

Example:
    ```python
    from chargehook.service import DeliveryService

    async with DeliveryService.create() as service:
        summary = await service.trigger(
            "session.completed",
            {"sessionId": "s_1"},
            tenant_id="tenant_1",
        )
        print(f"{summary.first_attempt_succeeded}/{summary.dispatched} delivered")

        outcome = await service.test_delivery("sub_abc123")
        records = await service.get_logs("sub_abc123", limit=20)
    ```
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from chargehook.config import Settings
from chargehook.exceptions import ConfigurationError
from chargehook.logging import get_logger
from chargehook.models import DeliveryAttempt, DeliveryOutcome, FanOutSummary
from chargehook.storage import (
    DeliveryLogStore,
    InMemoryDeliveryLogStore,
    InMemorySubscriberRegistry,
    QdrantStorage,
    SubscriberRegistry,
)
from chargehook.webhooks import DeliveryExecutor, RetryScheduler, WebhookDispatcher

logger = get_logger(__name__)


@dataclass
class DeliveryService:
    """High-level service for delivering events to subscribers.

    This service provides a simple interface for:
    - trigger(): Fan an event out to every eligible subscriber
    - test_delivery(): Send the test event to one subscriber
    - get_logs(): Read a subscriber's newest delivery records

    Uses dependency injection for the registry and log store, making it
    easy to test and to plug in an external subscriber registry.

    Attributes:
        registry: Subscriber registry.
        log_store: Delivery log store.
        settings: Configuration settings.
        storage: Backend owning a connection, initialized and closed with
            the service. None for backends without a lifecycle.
    """

    registry: SubscriberRegistry
    log_store: DeliveryLogStore
    settings: Settings
    storage: QdrantStorage | None = None

    executor: DeliveryExecutor = field(init=False, repr=False)
    scheduler: RetryScheduler = field(init=False, repr=False)
    dispatcher: WebhookDispatcher = field(init=False, repr=False)

    def __post_init__(self) -> None:
        """Build the delivery pipeline on top of the stores."""
        self.executor = DeliveryExecutor(self.log_store, settings=self.settings)
        self.scheduler = RetryScheduler(self.registry, self.executor)
        self.dispatcher = WebhookDispatcher(
            self.registry,
            self.log_store,
            executor=self.executor,
            scheduler=self.scheduler,
            settings=self.settings,
        )

    @classmethod
    def create(cls, settings: Settings | None = None) -> DeliveryService:
        """Create a DeliveryService with the configured storage backend.

        Args:
            settings: Optional settings. Uses defaults if None.

        Returns:
            Configured DeliveryService instance.

        Raises:
            ConfigurationError: If the storage backend is unknown.

        Example:
            ```python
            # In-process backend (CHARGEHOOK_STORAGE_BACKEND=memory)
            async with DeliveryService.create() as service:
                ...

            # Qdrant backend
            settings = Settings(storage_backend="qdrant", qdrant_url="http://localhost:6333")
            async with DeliveryService.create(settings) as service:
                ...
            ```
        """
        if settings is None:
            settings = Settings()

        if settings.storage_backend == "memory":
            return cls(
                registry=InMemorySubscriberRegistry(),
                log_store=InMemoryDeliveryLogStore(),
                settings=settings,
            )

        if settings.storage_backend == "qdrant":
            storage = QdrantStorage(
                url=settings.qdrant_url,
                api_key=settings.qdrant_api_key,
                prefix=settings.collection_prefix,
            )
            return cls(registry=storage, log_store=storage, settings=settings, storage=storage)

        raise ConfigurationError(f"Unknown storage backend: {settings.storage_backend}")

    async def initialize(self) -> None:
        """Initialize the service (storage collections, etc.)."""
        if self.storage is not None:
            await self.storage.initialize()
        logger.info("Delivery service initialized", backend=self.settings.storage_backend)

    async def close(self) -> None:
        """Cancel pending retries and release storage."""
        await self.scheduler.shutdown()
        if self.storage is not None:
            await self.storage.close()

    async def __aenter__(self) -> DeliveryService:
        """Async context manager entry."""
        await self.initialize()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.close()

    async def trigger(
        self,
        event_type: str,
        payload: dict[str, Any] | None = None,
        tenant_id: str | None = None,
    ) -> FanOutSummary:
        """Fan an event out to every eligible subscriber.

        Returns once every first attempt has settled; retries continue
        in the background.
        """
        return await self.dispatcher.trigger(event_type, payload, tenant_id=tenant_id)

    async def test_delivery(
        self,
        subscriber_id: str,
        tenant_id: str | None = None,
    ) -> DeliveryOutcome:
        """Send the test event to one subscriber regardless of its status."""
        return await self.dispatcher.test_delivery(subscriber_id, tenant_id=tenant_id)

    async def get_logs(
        self,
        subscriber_id: str,
        limit: int | None = None,
        tenant_id: str | None = None,
    ) -> list[DeliveryAttempt]:
        """Get a subscriber's newest delivery records, newest first."""
        return await self.dispatcher.list_delivery_logs(
            subscriber_id, limit=limit, tenant_id=tenant_id
        )
