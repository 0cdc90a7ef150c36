"""Data models for chargehook.

Registry records:
    - Subscriber: A registered endpoint with secret, event filter and retry policy
    - RetryPolicy: Attempts and linear backoff unit per subscriber
    - SubscriberStatus: ACTIVE or DISABLED

Delivery:
    - Event: Ephemeral domain event handed to a fan-out
    - DeliveryAttempt: Append-only log record per HTTP attempt
    - DeliveryOutcome: Settled result value of one attempt
    - FanOutSummary: First-attempt counts of one fan-out
"""

from .base import generate_id, isoformat_z, utc_now
from .delivery import DeliveryAttempt, DeliveryOutcome, FanOutSummary, OutcomeKind, new_chain_id
from .event import TEST_EVENT_MESSAGE, TEST_EVENT_TYPE, Event
from .subscriber import RetryPolicy, Subscriber, SubscriberStatus

__all__ = [
    # Helpers
    "generate_id",
    "isoformat_z",
    "utc_now",
    "new_chain_id",
    # Registry
    "RetryPolicy",
    "Subscriber",
    "SubscriberStatus",
    # Delivery
    "TEST_EVENT_MESSAGE",
    "TEST_EVENT_TYPE",
    "DeliveryAttempt",
    "DeliveryOutcome",
    "Event",
    "FanOutSummary",
    "OutcomeKind",
]
