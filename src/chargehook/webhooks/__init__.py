"""Outbound webhook delivery.

Signs each event envelope with the subscriber's secret, POSTs it,
records every attempt and retries failures with linear backoff before
disabling an exhausted subscriber.

Example:
    ```python
    from chargehook.webhooks import WebhookDispatcher, dispatch_webhook_event

    # Using dispatcher directly
    dispatcher = WebhookDispatcher(registry, log_store)
    summary = await dispatcher.trigger("session.completed", {"sessionId": "s_1"})

    # Using convenience function
    await dispatch_webhook_event(
        registry,
        log_store,
        event_type="invoice.created",
        tenant_id="tenant_1",
        invoiceId="inv_42",
    )
    ```
"""

from .dispatcher import WebhookDispatcher, dispatch_webhook_event
from .executor import DeliveryExecutor
from .retry import RetryScheduler, compute_delay_ms
from .signing import build_headers, compute_signature, serialize_envelope, verify_signature

__all__ = [
    "DeliveryExecutor",
    "RetryScheduler",
    "WebhookDispatcher",
    "build_headers",
    "compute_delay_ms",
    "compute_signature",
    "dispatch_webhook_event",
    "serialize_envelope",
    "verify_signature",
]
