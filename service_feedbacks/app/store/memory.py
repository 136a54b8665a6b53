"""
In-process document store gated by the access policy.

Every client call names its principal and is checked by the policy engine
before anything is read or committed. Writes are atomic per document: the
policy check and the commit happen under one lock, so a denied write leaves
no trace and concurrent writers see last-write-wins.
"""

import asyncio
import copy
import time
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from shared.errors import NotFoundError
from shared.logging import get_logger
from shared.metrics import MetricsCollector
from ..rules.engine import PolicyEngine
from ..rules.models import Operation, PolicyRequest, Principal
from .documents import DocumentSnapshot, order_snapshots, resolve_server_timestamps
from .subscriptions import Subscription, SubscriptionManager


class DocumentStore:
    """Flat collections of JSON-like documents keyed by ID."""

    def __init__(self,
                 policy: PolicyEngine,
                 metrics: Optional[MetricsCollector] = None,
                 subscriber_queue_size: int = 100):
        self.policy = policy
        self.metrics = metrics
        self.logger = get_logger("feedbacks.store")
        self._collections: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self._lock = asyncio.Lock()
        self._last_commit_time: Optional[datetime] = None
        self.subscriptions = SubscriptionManager(
            queue_size=subscriber_queue_size,
            on_change=self._record_subscribers
        )

    # Reads

    async def get(self, principal: Principal, collection: str, doc_id: str) -> DocumentSnapshot:
        """Read one document. A missing document yields ``exists == False``."""
        existing = self._load(collection, doc_id)
        self._authorize(principal, Operation.READ, collection, doc_id, existing=existing)
        return DocumentSnapshot(doc_id, collection, copy.deepcopy(existing))

    async def list(self,
                   principal: Principal,
                   collection: str,
                   order_by: Optional[str] = None,
                   descending: bool = False,
                   limit: Optional[int] = None) -> List[DocumentSnapshot]:
        """Query a whole collection."""
        self._authorize(principal, Operation.LIST, collection)
        return order_snapshots(self._snapshots(collection), order_by, descending, limit)

    async def subscribe(self,
                        principal: Principal,
                        collection: str,
                        order_by: Optional[str] = None,
                        descending: bool = False) -> Subscription:
        """Listen to a collection query; the first result set is queued at once."""
        self._authorize(principal, Operation.LIST, collection)
        return self.subscriptions.create_subscription(
            collection,
            self._snapshots(collection),
            order_by=order_by,
            descending=descending,
            user_id=principal.uid
        )

    # Writes

    async def add(self, principal: Principal, collection: str, data: Dict[str, Any]) -> str:
        """Create a document under a generated ID."""
        doc_id = uuid.uuid4().hex[:20]
        async with self._lock:
            incoming = resolve_server_timestamps(data, self._now())
            self._authorize(principal, Operation.CREATE, collection, doc_id, incoming=incoming)
            self._commit(collection, doc_id, incoming)
        self._publish(collection)
        return doc_id

    async def check_create(self, principal: Principal, collection: str, data: Dict[str, Any]) -> None:
        """Raise unless creating ``data`` would be allowed. Nothing is written.

        Services call this before asking an AI flow for the content; the
        commit itself is checked again.
        """
        self._authorize(principal, Operation.CREATE, collection, incoming=resolve_server_timestamps(data))

    async def set(self,
                  principal: Principal,
                  collection: str,
                  doc_id: str,
                  data: Dict[str, Any],
                  merge: bool = False) -> DocumentSnapshot:
        """Write a whole document.

        Checked as a create when the document is missing and as an update
        otherwise. With ``merge`` the given fields are merged into the
        stored document instead of replacing it.
        """
        async with self._lock:
            existing = self._load(collection, doc_id)
            incoming = resolve_server_timestamps(data, self._now())
            if existing is None:
                operation = Operation.CREATE
            else:
                operation = Operation.UPDATE
                if merge:
                    incoming = {**existing, **incoming}

            self._authorize(principal, operation, collection, doc_id, existing=existing, incoming=incoming)
            self._commit(collection, doc_id, incoming)
        self._publish(collection)
        return DocumentSnapshot(doc_id, collection, copy.deepcopy(incoming))

    async def update(self,
                     principal: Principal,
                     collection: str,
                     doc_id: str,
                     changes: Dict[str, Any]) -> DocumentSnapshot:
        """Change some fields of an existing document."""
        async with self._lock:
            existing = self._load(collection, doc_id)
            changes = resolve_server_timestamps(changes, self._now())
            incoming = {**(existing or {}), **changes}

            self._authorize(principal, Operation.UPDATE, collection, doc_id, existing=existing, incoming=incoming)
            if existing is None:
                raise NotFoundError(details={"collection": collection, "document_id": doc_id})
            self._commit(collection, doc_id, incoming)
        self._publish(collection)
        return DocumentSnapshot(doc_id, collection, copy.deepcopy(incoming))

    async def delete(self, principal: Principal, collection: str, doc_id: str) -> None:
        async with self._lock:
            existing = self._load(collection, doc_id)
            self._authorize(principal, Operation.DELETE, collection, doc_id, existing=existing)
            self._collections.get(collection, {}).pop(doc_id, None)
        self._publish(collection)

    async def seed(self, collection: str, doc_id: str, data: Dict[str, Any]) -> DocumentSnapshot:
        """Privileged write that skips the policy (fixtures, administration)."""
        async with self._lock:
            incoming = resolve_server_timestamps(data, self._now())
            self._commit(collection, doc_id, incoming)
        self.logger.info("Document seeded", collection=collection, document_id=doc_id)
        self._publish(collection)
        return DocumentSnapshot(doc_id, collection, copy.deepcopy(incoming))

    # Internals

    def _authorize(self,
                   principal: Principal,
                   operation: Operation,
                   collection: str,
                   doc_id: Optional[str] = None,
                   existing: Optional[Dict[str, Any]] = None,
                   incoming: Optional[Dict[str, Any]] = None):
        request = PolicyRequest(
            principal=principal,
            operation=operation,
            collection=collection,
            document_id=doc_id,
            existing=existing,
            incoming=incoming
        )
        start_time = time.perf_counter()
        allowed = False
        try:
            self.policy.authorize(request)
            allowed = True
        finally:
            if self.metrics is not None:
                self.metrics.record_policy_decision(
                    collection, operation.value, allowed, time.perf_counter() - start_time
                )

    def _load(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        stored = self._collections.get(collection, {}).get(doc_id)
        return copy.deepcopy(stored) if stored is not None else None

    def _commit(self, collection: str, doc_id: str, data: Dict[str, Any]):
        self._collections.setdefault(collection, {})[doc_id] = copy.deepcopy(data)
        self.logger.debug("Document committed", collection=collection, document_id=doc_id)

    def _snapshots(self, collection: str) -> List[DocumentSnapshot]:
        return [
            DocumentSnapshot(doc_id, collection, copy.deepcopy(data))
            for doc_id, data in self._collections.get(collection, {}).items()
        ]

    def _publish(self, collection: str):
        if self.subscriptions.get_subscription_count(collection):
            self.subscriptions.publish(collection, self._snapshots(collection))

    def _record_subscribers(self, manager: SubscriptionManager):
        if self.metrics is not None:
            self.metrics.set_active_subscriptions(manager.get_subscription_count())

    def _now(self) -> datetime:
        # Commit times strictly increase, so createdAt orders writes.
        now = datetime.now(timezone.utc)
        if self._last_commit_time is not None and now <= self._last_commit_time:
            now = self._last_commit_time + timedelta(microseconds=1)
        self._last_commit_time = now
        return now

    def get_store_stats(self) -> Dict[str, Any]:
        return {
            "collections": {name: len(docs) for name, docs in self._collections.items()},
            "subscriptions": self.subscriptions.get_subscription_count()
        }
