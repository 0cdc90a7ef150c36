"""Qdrant-backed subscriber registry and delivery log.

Subscribers and delivery attempts are stored as payload-only points: no
semantic search is needed, so every point carries the same placeholder
vector and all lookups go through payload filters.

Example:
    ```python
    from chargehook.storage import QdrantStorage

    async with QdrantStorage(url="http://localhost:6333") as storage:
        subscribers = await storage.list_eligible_subscribers("session.completed")
    ```
"""

from __future__ import annotations

import hashlib
import logging
from typing import Any

from qdrant_client import AsyncQdrantClient, models

from chargehook.config import settings
from chargehook.exceptions import NotFoundError
from chargehook.models import DeliveryAttempt, Subscriber, SubscriberStatus, utc_now

from .base import sort_newest_first
from .retry import qdrant_retry

logger = logging.getLogger(__name__)

COLLECTION_NAMES = {
    "subscribers": "subscribers",
    "delivery_log": "delivery_log",
}

# Placeholder vector shared by every point
PLACEHOLDER_VECTOR = [1.0]

# Page size for scroll pagination
SCROLL_PAGE_SIZE = 256

# Local mode location understood by qdrant-client
IN_MEMORY_LOCATION = ":memory:"

# Integer copy of created_at used to order delivery log scrolls
SORT_KEY_FIELD = "created_at_ms"


class QdrantStorage:
    """Async Qdrant storage for subscribers and delivery log records.

    Implements both the SubscriberRegistry and DeliveryLogStore
    protocols.
    """

    def __init__(
        self,
        url: str | None = None,
        api_key: str | None = None,
        prefix: str | None = None,
    ) -> None:
        """Initialize storage client.

        Args:
            url: Qdrant server URL, or ":memory:" for the in-process local
                mode. Defaults to settings.qdrant_url.
            api_key: Qdrant API key. Defaults to settings.qdrant_api_key.
            prefix: Collection name prefix. Defaults to settings.collection_prefix.
        """
        self._url = url or settings.qdrant_url
        self._api_key = api_key or settings.qdrant_api_key
        self._prefix = prefix or settings.collection_prefix
        self._client: AsyncQdrantClient | None = None
        self._collections_initialized = False

    @property
    def client(self) -> AsyncQdrantClient:
        """Get the Qdrant client, raising if not initialized."""
        if self._client is None:
            raise RuntimeError("Storage not initialized. Call initialize() first.")
        return self._client

    async def initialize(self) -> None:
        """Initialize the storage client and ensure collections exist."""
        if self._url == IN_MEMORY_LOCATION:
            self._client = AsyncQdrantClient(location=IN_MEMORY_LOCATION)
        else:
            self._client = AsyncQdrantClient(
                url=self._url,
                api_key=self._api_key,
            )
        await self._ensure_collections()
        self._collections_initialized = True

    async def close(self) -> None:
        """Close the storage client connection."""
        if self._client is not None:
            await self._client.close()
            self._client = None
            self._collections_initialized = False

    async def __aenter__(self) -> QdrantStorage:
        await self.initialize()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    def _collection_name(self, kind: str) -> str:
        """Get full collection name with prefix."""
        return f"{self._prefix}_{COLLECTION_NAMES[kind]}"

    @staticmethod
    def _key_to_point_id(key: str) -> str:
        """Convert a record ID to a valid Qdrant point ID.

        Qdrant requires point IDs to be UUIDs or unsigned integers.
        The ID is hashed into a deterministic UUID-format string.
        """
        h = hashlib.sha256(key.encode()).hexdigest()[:32]
        return f"{h[:8]}-{h[8:12]}-{h[12:16]}-{h[16:20]}-{h[20:32]}"

    async def _ensure_collections(self) -> None:
        """Ensure both collections exist with their payload indexes."""
        collections = await self.client.get_collections()
        existing = {c.name for c in collections.collections}

        for kind in COLLECTION_NAMES:
            collection_name = self._collection_name(kind)
            if collection_name in existing:
                continue

            await self.client.create_collection(
                collection_name=collection_name,
                vectors_config=models.VectorParams(
                    size=len(PLACEHOLDER_VECTOR),
                    distance=models.Distance.DOT,
                ),
            )
            await self._create_indexes(kind)

    async def _create_indexes(self, kind: str) -> None:
        """Create payload indexes for the filters each collection serves."""
        collection_name = self._collection_name(kind)
        if kind == "subscribers":
            keyword_fields = ["status", "tenant_id", "subscribed_events"]
        else:
            keyword_fields = ["subscriber_id", "chain_id"]

        for field_name in keyword_fields:
            await self.client.create_payload_index(
                collection_name=collection_name,
                field_name=field_name,
                field_schema=models.PayloadSchemaType.KEYWORD,
            )

        if kind == "delivery_log":
            # order_by needs a range index on the sort key
            await self.client.create_payload_index(
                collection_name=collection_name,
                field_name=SORT_KEY_FIELD,
                field_schema=models.PayloadSchemaType.INTEGER,
            )

    async def _scroll_all(self, collection_name: str, scroll_filter: models.Filter) -> list[Any]:
        """Fetch every point matching a filter, following scroll pages."""
        points: list[Any] = []
        offset: Any = None
        while True:
            page, offset = await self.client.scroll(
                collection_name=collection_name,
                scroll_filter=scroll_filter,
                limit=SCROLL_PAGE_SIZE,
                offset=offset,
                with_payload=True,
            )
            points.extend(page)
            if offset is None:
                return points

    # Subscriber registry

    @qdrant_retry
    async def add_subscriber(self, subscriber: Subscriber) -> str:
        """Store a subscriber record.

        Args:
            subscriber: Subscriber to store.

        Returns:
            The subscriber ID.
        """
        await self.client.upsert(
            collection_name=self._collection_name("subscribers"),
            points=[
                models.PointStruct(
                    id=self._key_to_point_id(subscriber.id),
                    vector=PLACEHOLDER_VECTOR,
                    payload=subscriber.model_dump(mode="json"),
                )
            ],
        )
        return subscriber.id

    @qdrant_retry
    async def get_subscriber(self, subscriber_id: str) -> Subscriber | None:
        """Get a subscriber by ID.

        Returns:
            Subscriber or None if not found.
        """
        return await self._fetch_subscriber(subscriber_id)

    async def _fetch_subscriber(self, subscriber_id: str) -> Subscriber | None:
        results = await self.client.retrieve(
            collection_name=self._collection_name("subscribers"),
            ids=[self._key_to_point_id(subscriber_id)],
            with_payload=True,
        )
        if not results or results[0].payload is None:
            return None
        return Subscriber.model_validate(results[0].payload)

    @qdrant_retry
    async def list_eligible_subscribers(
        self,
        event_type: str,
        tenant_id: str | None = None,
    ) -> list[Subscriber]:
        """List ACTIVE subscribers that subscribe to an event type.

        Args:
            event_type: The event type to filter for.
            tenant_id: Optional tenant scope.

        Returns:
            Matching subscribers.
        """
        filters: list[models.FieldCondition] = [
            models.FieldCondition(
                key="status",
                match=models.MatchValue(value=SubscriberStatus.ACTIVE.value),
            ),
            models.FieldCondition(
                key="subscribed_events",
                match=models.MatchValue(value=event_type),
            ),
        ]
        if tenant_id is not None:
            filters.append(
                models.FieldCondition(
                    key="tenant_id",
                    match=models.MatchValue(value=tenant_id),
                )
            )

        points = await self._scroll_all(
            self._collection_name("subscribers"),
            models.Filter(must=filters),
        )
        return [Subscriber.model_validate(p.payload) for p in points if p.payload is not None]

    @qdrant_retry
    async def set_status(self, subscriber_id: str, status: SubscriberStatus) -> None:
        """Update only the status field of a subscriber.

        Raises:
            NotFoundError: If the subscriber does not exist.
        """
        subscriber = await self._fetch_subscriber(subscriber_id)
        if subscriber is None:
            raise NotFoundError("subscriber", subscriber_id)
        if subscriber.status == status:
            return

        await self.client.set_payload(
            collection_name=self._collection_name("subscribers"),
            payload={
                "status": SubscriberStatus(status).value,
                "updated_at": utc_now().isoformat(),
            },
            points=[self._key_to_point_id(subscriber_id)],
        )
        logger.debug("Subscriber %s status set to %s", subscriber_id, status)

    # Delivery log

    @qdrant_retry
    async def append(self, attempt: DeliveryAttempt) -> None:
        """Append a delivery attempt record."""
        payload = attempt.model_dump(mode="json")
        payload[SORT_KEY_FIELD] = int(attempt.created_at.timestamp() * 1000)

        await self.client.upsert(
            collection_name=self._collection_name("delivery_log"),
            points=[
                models.PointStruct(
                    id=self._key_to_point_id(attempt.id),
                    vector=PLACEHOLDER_VECTOR,
                    payload=payload,
                )
            ],
        )

    @qdrant_retry
    async def list_recent(self, subscriber_id: str, limit: int = 50) -> list[DeliveryAttempt]:
        """Get the newest delivery records for a subscriber.

        Only `limit` points are read, ordered by the indexed sort key.

        Returns:
            Records sorted by created_at, newest first.
        """
        points, _ = await self.client.scroll(
            collection_name=self._collection_name("delivery_log"),
            scroll_filter=models.Filter(
                must=[
                    models.FieldCondition(
                        key="subscriber_id",
                        match=models.MatchValue(value=subscriber_id),
                    )
                ]
            ),
            order_by=models.OrderBy(key=SORT_KEY_FIELD, direction=models.Direction.DESC),
            limit=limit,
            with_payload=True,
        )

        attempts: list[DeliveryAttempt] = []
        for point in points:
            if point.payload is None:
                continue
            payload = dict(point.payload)
            payload.pop(SORT_KEY_FIELD, None)
            attempts.append(DeliveryAttempt.model_validate(payload))

        # Attempt number breaks ties inside one millisecond
        return sort_newest_first(attempts)

