"""Retry scheduling and subscriber disabling.

A failed attempt either schedules exactly one follow-up attempt or, when
the retry policy is exhausted, disables the subscriber. Follow-ups run as
background asyncio tasks that sleep for the linear backoff delay; callers
never wait for them.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from chargehook.logging import get_logger
from chargehook.models import SubscriberStatus, utc_now

if TYPE_CHECKING:
    from chargehook.models import DeliveryOutcome, Event, RetryPolicy, Subscriber
    from chargehook.storage import SubscriberRegistry

    from .executor import DeliveryExecutor

logger = get_logger(__name__)

SleepFunc = Callable[[float], Awaitable[None]]


def compute_delay_ms(policy: RetryPolicy, attempt_number: int) -> int:
    """Delay before the attempt following `attempt_number`.

    Linear backoff: base_delay_ms * attempt_number.
    """
    return policy.delay_ms_after(attempt_number)


class RetryScheduler:
    """Decides what happens after each delivery outcome.

    Pending follow-up tasks are indexed by chain ID. The index exists only
    so shutdown and explicit cancellation can reach them; a running chain
    is never cancelled otherwise.

    Example:
        ```python
        scheduler = RetryScheduler(registry, executor)
        outcome = await executor.attempt(subscriber, event, 1, chain_id)
        await scheduler.on_outcome(subscriber, event, outcome, chain_id)
        ```
    """

    compute_delay_ms = staticmethod(compute_delay_ms)

    def __init__(
        self,
        registry: SubscriberRegistry,
        executor: DeliveryExecutor,
        sleep: SleepFunc = asyncio.sleep,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Initialize the scheduler.

        Args:
            registry: Registry used to disable exhausted subscribers.
            executor: Executor performing follow-up attempts.
            sleep: Awaitable sleep taking seconds.
            clock: Source of the scheduled-at time reported in logs.
        """
        self._registry = registry
        self._executor = executor
        self._sleep = sleep
        self._clock = clock
        self._tasks: dict[str, asyncio.Task[None]] = {}

    @property
    def pending_chains(self) -> list[str]:
        """Chain IDs with a follow-up attempt waiting or in flight."""
        return [chain_id for chain_id, task in self._tasks.items() if not task.done()]

    async def on_outcome(
        self,
        subscriber: Subscriber,
        event: Event,
        outcome: DeliveryOutcome,
        chain_id: str,
    ) -> asyncio.Task[None] | None:
        """Handle a settled attempt.

        Args:
            subscriber: Subscriber the attempt targeted.
            event: Event being delivered.
            outcome: Result of the attempt.
            chain_id: Delivery chain the attempt belongs to.

        Returns:
            The scheduled follow-up task, or None when nothing was scheduled.

        Raises:
            Exception: Registry errors from disabling propagate to the caller.
        """
        if outcome.succeeded:
            return None

        policy = subscriber.retry_policy
        attempt_number = outcome.attempt_number

        if attempt_number >= policy.max_attempts:
            await self._disable(subscriber, chain_id, attempt_number)
            return None

        delay_ms = compute_delay_ms(policy, attempt_number)
        next_attempt = attempt_number + 1
        logger.info(
            "Scheduling webhook retry",
            subscriber_id=subscriber.id,
            chain_id=chain_id,
            next_attempt=next_attempt,
            delay_ms=delay_ms,
            scheduled_for=(self._clock() + timedelta(milliseconds=delay_ms)).isoformat(),
        )

        task = asyncio.create_task(
            self._run_follow_up(subscriber, event, next_attempt, chain_id, delay_ms),
            name=f"webhook-retry:{chain_id}:{next_attempt}",
        )
        self._tasks[chain_id] = task
        task.add_done_callback(lambda t: self._forget(chain_id, t))
        return task

    def cancel(self, chain_id: str) -> bool:
        """Cancel the pending follow-up of one chain.

        Returns:
            True if a pending task was cancelled.
        """
        task = self._tasks.pop(chain_id, None)
        if task is None or task.done():
            return False
        task.cancel()
        logger.info("Cancelled webhook retry", chain_id=chain_id)
        return True

    def cancel_for_subscriber(self, subscriber_id: str) -> int:
        """Cancel every pending chain of a subscriber.

        Returns:
            Number of chains cancelled.
        """
        prefix = f"{subscriber_id}:"
        chain_ids = [chain_id for chain_id in self._tasks if chain_id.startswith(prefix)]
        return sum(1 for chain_id in chain_ids if self.cancel(chain_id))

    async def shutdown(self) -> None:
        """Cancel all pending follow-ups and wait for them to finish."""
        tasks = list(self._tasks.values())
        self._tasks.clear()
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            logger.info("Cancelled pending webhook retries", count=len(tasks))

    async def _run_follow_up(
        self,
        subscriber: Subscriber,
        event: Event,
        attempt_number: int,
        chain_id: str,
        delay_ms: int,
    ) -> None:
        await self._sleep(delay_ms / 1000)
        outcome = await self._executor.attempt(subscriber, event, attempt_number, chain_id)
        try:
            await self.on_outcome(subscriber, event, outcome, chain_id)
        except Exception:
            # Nobody awaits this task; the failure can only be reported
            logger.exception(
                "Retry chain aborted",
                subscriber_id=subscriber.id,
                chain_id=chain_id,
                attempt=attempt_number,
            )

    async def _disable(self, subscriber: Subscriber, chain_id: str, attempt_number: int) -> None:
        await self._registry.set_status(subscriber.id, SubscriberStatus.DISABLED)
        logger.warning(
            "Webhook disabled after max retries",
            subscriber_id=subscriber.id,
            url=str(subscriber.endpoint_url),
            chain_id=chain_id,
            attempts=attempt_number,
        )

    def _forget(self, chain_id: str, task: asyncio.Task[None]) -> None:
        # A follow-up replaces its own entry when it schedules the next one
        if self._tasks.get(chain_id) is task:
            del self._tasks[chain_id]
