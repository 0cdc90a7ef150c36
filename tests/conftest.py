"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

from chargehook.config import Settings
from chargehook.models import Event, RetryPolicy, Subscriber
from chargehook.storage import InMemoryDeliveryLogStore, InMemorySubscriberRegistry
from chargehook.webhooks import DeliveryExecutor, RetryScheduler, WebhookDispatcher

# Add tests directory to path so helpers can be imported
tests_dir = Path(__file__).parent
if str(tests_dir) not in sys.path:
    sys.path.insert(0, str(tests_dir))

from helpers import RecordingSleep  # noqa: E402


@pytest.fixture
def test_settings() -> Settings:
    """Settings that ignore any local .env file."""
    return Settings(_env_file=None)


@pytest.fixture
def sample_subscriber() -> Subscriber:
    """Create a sample subscriber."""
    return Subscriber(
        id="sub_test123",
        tenant_id="tenant_1",
        endpoint_url="https://example.com/webhook",
        secret="whsec_test_secret",
        subscribed_events=["session.completed", "booking.created"],
        retry_policy=RetryPolicy(max_attempts=3, base_delay_ms=60000),
    )


@pytest.fixture
def sample_event() -> Event:
    """Create a sample event."""
    return Event(
        id="evt_test456",
        type="session.completed",
        payload={"sessionId": "s_1", "energyKwh": 12.5},
        tenant_id="tenant_1",
    )


@pytest.fixture
def registry(sample_subscriber: Subscriber) -> InMemorySubscriberRegistry:
    """In-memory registry seeded with the sample subscriber."""
    return InMemorySubscriberRegistry([sample_subscriber])


@pytest.fixture
def log_store() -> InMemoryDeliveryLogStore:
    """Empty in-memory delivery log."""
    return InMemoryDeliveryLogStore()


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    """Sleep replacement recording retry delays."""
    return RecordingSleep()


@pytest.fixture
def executor(log_store: InMemoryDeliveryLogStore, test_settings: Settings) -> DeliveryExecutor:
    """Executor writing to the in-memory log."""
    return DeliveryExecutor(log_store, settings=test_settings)


@pytest.fixture
def scheduler(
    registry: InMemorySubscriberRegistry,
    executor: DeliveryExecutor,
    recording_sleep: RecordingSleep,
) -> RetryScheduler:
    """Retry scheduler with a recording sleep."""
    return RetryScheduler(registry, executor, sleep=recording_sleep)


@pytest.fixture
def dispatcher(
    registry: InMemorySubscriberRegistry,
    log_store: InMemoryDeliveryLogStore,
    executor: DeliveryExecutor,
    scheduler: RetryScheduler,
    test_settings: Settings,
) -> WebhookDispatcher:
    """Dispatcher wired to the in-memory stores."""
    return WebhookDispatcher(
        registry,
        log_store,
        executor=executor,
        scheduler=scheduler,
        settings=test_settings,
    )
