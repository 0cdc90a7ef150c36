"""Event fan-out to subscriber endpoints.

Resolves the subscribers eligible for an event, starts one delivery chain
per subscriber and returns once every first attempt has settled. Retries
keep running in the background after the fan-out returns.

Example:
    ```python
    dispatcher = WebhookDispatcher(registry, log_store)
    summary = await dispatcher.trigger("session.completed", {"sessionId": "s_1"})
    ```
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from chargehook.config import Settings, settings as default_settings
from chargehook.exceptions import (
    ChargehookError,
    NotFoundError,
    RegistryUnavailableError,
    ValidationError,
)
from chargehook.logging import bind_context, unbind_context
from chargehook.models import DeliveryOutcome, Event, FanOutSummary, new_chain_id

from .executor import DeliveryExecutor
from .retry import RetryScheduler

if TYPE_CHECKING:
    from chargehook.models import DeliveryAttempt, Subscriber
    from chargehook.storage import DeliveryLogStore, SubscriberRegistry

logger = logging.getLogger(__name__)

# Logging context keys bound for the lifetime of one chain start
CHAIN_CONTEXT_KEYS = ("chain_id", "event_id", "subscriber_id")


class WebhookDispatcher:
    """Dispatches events to registered subscriber endpoints.

    Handles:
    - Subscriber resolution by event type and tenant
    - Concurrent first attempts, bounded by a semaphore
    - Handing every outcome to the retry scheduler
    - Manual test deliveries and delivery log queries
    """

    def __init__(
        self,
        registry: SubscriberRegistry,
        log_store: DeliveryLogStore,
        executor: DeliveryExecutor | None = None,
        scheduler: RetryScheduler | None = None,
        settings: Settings | None = None,
    ) -> None:
        """Initialize dispatcher.

        Args:
            registry: Subscriber registry.
            log_store: Delivery log store.
            executor: Attempt executor. Built from log_store when None.
            scheduler: Retry scheduler. Built from registry and executor when None.
            settings: Concurrency and query limits. Defaults to global settings.
        """
        self._registry = registry
        self._log_store = log_store
        self._settings = settings or default_settings
        self._executor = executor or DeliveryExecutor(log_store, settings=self._settings)
        self._scheduler = scheduler or RetryScheduler(registry, self._executor)
        self._semaphore = asyncio.Semaphore(self._settings.max_concurrent_deliveries)

    @property
    def scheduler(self) -> RetryScheduler:
        return self._scheduler

    async def trigger(
        self,
        event_type: str,
        payload: dict[str, Any] | None = None,
        tenant_id: str | None = None,
    ) -> FanOutSummary:
        """Fan an event out to every eligible subscriber.

        Args:
            event_type: Event type, e.g. "session.completed".
            payload: Event data sent as the envelope's "data".
            tenant_id: Optional tenant scope.

        Returns:
            First-attempt counts. Retries are not reflected.

        Raises:
            ValidationError: If event_type is empty.
            RegistryUnavailableError: If subscribers cannot be resolved.
        """
        if not event_type or not event_type.strip():
            raise ValidationError("event_type", "must be a non-empty string")

        event = Event(type=event_type, payload=payload or {}, tenant_id=tenant_id)
        return await self.dispatch(event)

    async def dispatch(self, event: Event) -> FanOutSummary:
        """Fan a built event out to every eligible subscriber.

        Raises:
            RegistryUnavailableError: If subscribers cannot be resolved.
        """
        subscribers = await self._resolve_subscribers(event)
        if not subscribers:
            logger.debug("No subscribers for event %s", event.type)
            return FanOutSummary()

        outcomes = await asyncio.gather(
            *(self._start_chain(subscriber, event) for subscriber in subscribers)
        )
        summary = FanOutSummary.from_outcomes(list(outcomes))

        logger.info(
            "Dispatched event %s to %d subscribers (%d ok, %d failed)",
            event.type,
            summary.dispatched,
            summary.first_attempt_succeeded,
            summary.first_attempt_failed,
        )
        return summary

    async def test_delivery(
        self,
        subscriber_id: str,
        tenant_id: str | None = None,
    ) -> DeliveryOutcome:
        """Send the synthetic test event to one subscriber.

        Status and event subscriptions are ignored. The attempt is logged
        and a failure is retried like any other delivery.

        Raises:
            NotFoundError: If the subscriber does not exist in the tenant scope.
        """
        subscriber = await self._get_subscriber(subscriber_id, tenant_id)
        event = Event.for_test_delivery(tenant_id=subscriber.tenant_id)
        return await self._start_chain(subscriber, event)

    async def list_delivery_logs(
        self,
        subscriber_id: str,
        limit: int | None = None,
        tenant_id: str | None = None,
    ) -> list[DeliveryAttempt]:
        """Get the newest delivery log records of a subscriber.

        Args:
            subscriber_id: Subscriber to query.
            limit: Maximum records. Defaults to settings.log_query_default_limit
                and is capped at settings.log_query_max_limit.
            tenant_id: Optional tenant scope.

        Raises:
            ValidationError: If limit is below 1.
            NotFoundError: If the subscriber does not exist in the tenant scope.
        """
        if limit is None:
            limit = self._settings.log_query_default_limit
        if limit < 1:
            raise ValidationError("limit", "must be at least 1")
        limit = min(limit, self._settings.log_query_max_limit)

        await self._get_subscriber(subscriber_id, tenant_id)
        return await self._log_store.list_recent(subscriber_id, limit=limit)

    async def _resolve_subscribers(self, event: Event) -> list[Subscriber]:
        try:
            candidates = await self._registry.list_eligible_subscribers(
                event.type, tenant_id=event.tenant_id
            )
        except ChargehookError:
            raise
        except Exception as e:
            raise RegistryUnavailableError(f"Failed to resolve subscribers: {e}") from e

        # Registry backends may filter loosely; never deliver to a non-match
        return [
            subscriber
            for subscriber in candidates
            if subscriber.subscribes_to(event.type) and subscriber.matches_tenant(event.tenant_id)
        ]

    async def _get_subscriber(self, subscriber_id: str, tenant_id: str | None) -> Subscriber:
        subscriber = await self._registry.get_subscriber(subscriber_id)
        if subscriber is None or not subscriber.matches_tenant(tenant_id):
            raise NotFoundError("subscriber", subscriber_id)
        return subscriber

    async def _start_chain(self, subscriber: Subscriber, event: Event) -> DeliveryOutcome:
        """Run the first attempt of a new chain and hand the outcome on.

        The chain keys are bound to the logging context so every record of
        the chain carries them. Retry tasks copy the context when spawned.
        """
        chain_id = new_chain_id(subscriber.id)
        bind_context(chain_id=chain_id, event_id=event.id, subscriber_id=subscriber.id)
        try:
            async with self._semaphore:
                outcome = await self._executor.attempt(subscriber, event, 1, chain_id)

            try:
                await self._scheduler.on_outcome(subscriber, event, outcome, chain_id)
            except Exception:
                logger.exception(
                    "Failed to handle outcome for subscriber %s (chain %s)",
                    subscriber.id,
                    chain_id,
                )
        finally:
            unbind_context(*CHAIN_CONTEXT_KEYS)
        return outcome


async def dispatch_webhook_event(
    registry: SubscriberRegistry,
    log_store: DeliveryLogStore,
    event_type: str,
    tenant_id: str | None = None,
    **data: Any,
) -> FanOutSummary:
    """Convenience function to create and dispatch an event.

    Args:
        registry: Subscriber registry.
        log_store: Delivery log store.
        event_type: Type of event.
        tenant_id: Optional tenant scope.
        **data: Event payload data.

    Returns:
        First-attempt counts of the fan-out.
    """
    dispatcher = WebhookDispatcher(registry, log_store)
    return await dispatcher.trigger(event_type, dict(data), tenant_id=tenant_id)
