"""
Real-time query subscriptions for the document store.
"""

import asyncio
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional, Set, Iterable

from shared.logging import get_logger
from .documents import DocumentSnapshot, order_snapshots

_CLOSED = object()


@dataclass(eq=False)
class Subscription:
    """Ordered view of one collection, refreshed after every write.

    Iterating yields the full ordered result set each time it changes. Only
    the newest result set matters, so when the consumer falls behind the
    oldest queued one is dropped.
    """
    subscription_id: str
    collection: str
    order_by: Optional[str] = None
    descending: bool = False
    user_id: Optional[str] = None
    queue_size: int = 100
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    message_count: int = 0
    closed: bool = False

    def __post_init__(self):
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=max(1, self.queue_size))
        self._manager: Optional["SubscriptionManager"] = None

    def push(self, snapshots: Iterable[DocumentSnapshot]):
        if self.closed:
            return
        ordered = order_snapshots(snapshots, self.order_by, self.descending)
        if self._queue.full():
            self._queue.get_nowait()
        self._queue.put_nowait(ordered)
        self.message_count += 1

    async def get(self, timeout: Optional[float] = None) -> List[DocumentSnapshot]:
        """Wait for the next result set."""
        if self.closed and self._queue.empty():
            raise StopAsyncIteration
        item = await asyncio.wait_for(self._queue.get(), timeout)
        if item is _CLOSED:
            raise StopAsyncIteration
        return item

    def close(self):
        if self.closed:
            return
        self.closed = True
        if self._queue.full():
            self._queue.get_nowait()
        self._queue.put_nowait(_CLOSED)
        if self._manager is not None:
            self._manager.remove_subscription(self.subscription_id)

    def __aiter__(self):
        return self

    async def __anext__(self) -> List[DocumentSnapshot]:
        return await self.get()


class SubscriptionManager:
    """Tracks open subscriptions per collection."""

    def __init__(self, queue_size: int = 100, on_change=None):
        self.logger = get_logger("feedbacks.store.subscriptions")
        self.queue_size = queue_size
        self.subscriptions: Dict[str, Subscription] = {}
        self.collection_subscriptions: Dict[str, Set[str]] = {}
        self._on_change = on_change

    def create_subscription(self,
                            collection: str,
                            snapshots: Iterable[DocumentSnapshot],
                            order_by: Optional[str] = None,
                            descending: bool = False,
                            user_id: Optional[str] = None) -> Subscription:
        """Register a subscription and queue the current result set."""
        subscription = Subscription(
            subscription_id=str(uuid.uuid4()),
            collection=collection,
            order_by=order_by,
            descending=descending,
            user_id=user_id,
            queue_size=self.queue_size
        )
        subscription._manager = self
        subscription.push(snapshots)

        self.subscriptions[subscription.subscription_id] = subscription
        self.collection_subscriptions.setdefault(collection, set()).add(subscription.subscription_id)

        self.logger.info(
            "Subscription created",
            subscription_id=subscription.subscription_id,
            collection=collection,
            user_id=user_id
        )
        self._notify()
        return subscription

    def remove_subscription(self, subscription_id: str) -> bool:
        subscription = self.subscriptions.pop(subscription_id, None)
        if subscription is None:
            return False

        ids = self.collection_subscriptions.get(subscription.collection)
        if ids is not None:
            ids.discard(subscription_id)
            if not ids:
                del self.collection_subscriptions[subscription.collection]

        subscription.close()
        self.logger.info(
            "Subscription removed",
            subscription_id=subscription_id,
            collection=subscription.collection,
            messages=subscription.message_count
        )
        self._notify()
        return True

    def publish(self, collection: str, snapshots: List[DocumentSnapshot]) -> int:
        """Push the collection's new contents to its subscribers."""
        ids = self.collection_subscriptions.get(collection, set())
        for subscription_id in list(ids):
            self.subscriptions[subscription_id].push(snapshots)
        return len(ids)

    def get_subscription_count(self, collection: Optional[str] = None) -> int:
        if collection is None:
            return len(self.subscriptions)
        return len(self.collection_subscriptions.get(collection, set()))

    def close_all(self):
        for subscription_id in list(self.subscriptions):
            self.remove_subscription(subscription_id)

    def _notify(self):
        if self._on_change is not None:
            self._on_change(self)
