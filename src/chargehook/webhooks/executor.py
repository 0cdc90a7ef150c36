"""Single delivery attempt: sign, POST, classify, log.

The executor never raises to its caller. Every transport error, non-2xx
response and unexpected exception becomes a failure outcome, and every
attempt writes exactly one delivery log record before returning.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from datetime import datetime
from typing import TYPE_CHECKING

import httpx

from chargehook.config import Settings, settings as default_settings
from chargehook.logging import get_logger
from chargehook.models import DeliveryAttempt, DeliveryOutcome, utc_now

from .signing import build_headers, compute_signature, serialize_envelope

if TYPE_CHECKING:
    from chargehook.models import Event, Subscriber
    from chargehook.storage import DeliveryLogStore

logger = get_logger(__name__)


class DeliveryExecutor:
    """Performs one HTTP delivery of an event to one subscriber.

    Example:
        ```python
        executor = DeliveryExecutor(log_store)
        outcome = await executor.attempt(subscriber, event, attempt_number=1, chain_id=chain_id)
        if not outcome.succeeded:
            ...
        ```
    """

    def __init__(
        self,
        log_store: DeliveryLogStore,
        settings: Settings | None = None,
        http_client: httpx.AsyncClient | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Initialize the executor.

        Args:
            log_store: Delivery log receiving one record per attempt.
            settings: Timeout, header names and snippet size. Defaults to global settings.
            http_client: Shared client. A short-lived client is opened per
                attempt when None.
            clock: Source of envelope timestamps.
        """
        self._log_store = log_store
        self._settings = settings or default_settings
        self._http_client = http_client
        self._clock = clock

    @property
    def timeout_seconds(self) -> float:
        """Per-attempt HTTP timeout."""
        return self._settings.delivery_timeout_seconds

    async def attempt(
        self,
        subscriber: Subscriber,
        event: Event,
        attempt_number: int,
        chain_id: str,
    ) -> DeliveryOutcome:
        """Deliver an event once and record the attempt.

        Args:
            subscriber: Destination endpoint and secret.
            event: Event to deliver.
            attempt_number: 1-indexed position within the delivery chain.
            chain_id: Delivery chain key recorded on the log entry.

        Returns:
            A settled success or failure outcome.
        """
        body: bytes | None = None
        sent_body: str | None = None
        signature: str | None = None
        status_code = 0
        response_text: str | None = None
        error: str | None = None
        success = False
        started = time.monotonic()

        try:
            body = serialize_envelope(event.envelope(self._clock()))
            signature = compute_signature(body, subscriber.secret)
            headers = build_headers(
                signature,
                event.type,
                subscriber.custom_headers,
                signature_header=self._settings.signature_header,
                event_header=self._settings.event_header,
            )

            sent_body = body.decode("utf-8")
            response = await self._post(str(subscriber.endpoint_url), body, headers)
            status_code = response.status_code
            response_text = response.text or None
            success = 200 <= status_code < 300
            if not success:
                error = f"HTTP {status_code}"

        except httpx.TimeoutException:
            error = "Request timeout"
        except httpx.RequestError as e:
            error = str(e) or type(e).__name__
        except Exception as e:
            error = f"Unexpected error: {e}"
            logger.exception(
                "Webhook delivery error",
                subscriber_id=subscriber.id,
                event_type=event.type,
                attempt=attempt_number,
            )

        duration_ms = int((time.monotonic() - started) * 1000)
        record = await self._write_log(
            DeliveryAttempt(
                subscriber_id=subscriber.id,
                chain_id=chain_id,
                event_id=event.id,
                event_type=event.type,
                payload=event.payload,
                body=sent_body,
                attempt_number=attempt_number,
                status_code=status_code,
                response_body=self._snippet(response_text),
                error=error,
                duration_ms=duration_ms,
                success=success,
            )
        )

        if success:
            logger.info(
                "Webhook delivered",
                subscriber_id=subscriber.id,
                url=str(subscriber.endpoint_url),
                event_type=event.type,
                attempt=attempt_number,
                status_code=status_code,
                duration_ms=duration_ms,
            )
        else:
            logger.warning(
                "Webhook delivery failed",
                subscriber_id=subscriber.id,
                url=str(subscriber.endpoint_url),
                event_type=event.type,
                attempt=attempt_number,
                status_code=status_code,
                error=error,
                duration_ms=duration_ms,
            )

        return DeliveryOutcome(
            kind="success" if success else "failure",
            subscriber_id=subscriber.id,
            chain_id=chain_id,
            attempt_number=attempt_number,
            status_code=status_code,
            duration_ms=duration_ms,
            error=error,
            body=sent_body,
            signature=signature,
            record=record,
        )

    async def _post(self, url: str, body: bytes, headers: dict[str, str]) -> httpx.Response:
        """POST the raw body, reusing the shared client when one was given."""
        if self._http_client is not None:
            return await self._http_client.post(
                url,
                content=body,
                headers=headers,
                timeout=self.timeout_seconds,
            )

        async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
            return await client.post(url, content=body, headers=headers)

    async def _write_log(self, record: DeliveryAttempt) -> DeliveryAttempt | None:
        """Append the attempt record. A failed write is logged, not raised."""
        try:
            await self._log_store.append(record)
        except Exception:
            logger.exception(
                "Failed to write delivery log record",
                subscriber_id=record.subscriber_id,
                chain_id=record.chain_id,
                attempt=record.attempt_number,
            )
            return None
        return record

    def _snippet(self, text: str | None) -> str | None:
        if text is None:
            return None
        return text[: self._settings.response_snippet_max_chars]
