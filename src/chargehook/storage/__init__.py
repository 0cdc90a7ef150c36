"""Storage backends for chargehook.

The engine depends only on the SubscriberRegistry and DeliveryLogStore
protocols. Two backends ship with it: in-process dicts (the default)
and Qdrant payload collections.

Example:
    ```python
    from chargehook.storage import QdrantStorage

    async with QdrantStorage() as storage:
        await storage.add_subscriber(subscriber)
        records = await storage.list_recent(subscriber.id, limit=20)
    ```
"""

from .base import DeliveryLogStore, SubscriberRegistry, sort_newest_first
from .memory import InMemoryDeliveryLogStore, InMemorySubscriberRegistry
from .qdrant import COLLECTION_NAMES, QdrantStorage

__all__ = [
    "DeliveryLogStore",
    "SubscriberRegistry",
    "InMemoryDeliveryLogStore",
    "InMemorySubscriberRegistry",
    "QdrantStorage",
    "COLLECTION_NAMES",
    "sort_newest_first",
]
