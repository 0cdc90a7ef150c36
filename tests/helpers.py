"""Shared test helpers for delivery tests."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

from chargehook.webhooks import RetryScheduler


class RecordingSleep:
    """Sleep replacement that records requested delays and returns at once.

    When `gate` is set, every call waits for it first, which holds retries
    back until a test releases them.
    """

    def __init__(self, gate: asyncio.Event | None = None) -> None:
        self.delays: list[float] = []
        self.gate = gate

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)
        if self.gate is not None:
            await self.gate.wait()


def make_response(status_code: int, text: str = "") -> MagicMock:
    """Build a stand-in for an httpx.Response."""
    response = MagicMock()
    response.status_code = status_code
    response.text = text
    return response


def make_http_client(post: AsyncMock) -> AsyncMock:
    """Build a stand-in for httpx.AsyncClient used as a context manager."""
    client = AsyncMock()
    client.post = post
    client.__aenter__ = AsyncMock(return_value=client)
    client.__aexit__ = AsyncMock(return_value=None)
    return client


async def drain_retries(scheduler: RetryScheduler) -> None:
    """Wait until every retry chain of a scheduler has settled."""
    while scheduler._tasks:
        await asyncio.gather(*list(scheduler._tasks.values()), return_exceptions=True)

