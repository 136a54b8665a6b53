"""
Policy-gated document store.

Plays the hosting database: evaluates the access policy before every read
and write, fills in server timestamps, commits single documents atomically
and pushes ordered result sets to real-time subscribers.
"""

from .documents import SERVER_TIMESTAMP, DocumentSnapshot, order_snapshots, resolve_server_timestamps
from .memory import DocumentStore
from .subscriptions import Subscription, SubscriptionManager

__all__ = [
    "SERVER_TIMESTAMP", "DocumentSnapshot", "order_snapshots", "resolve_server_timestamps",
    "DocumentStore", "Subscription", "SubscriptionManager",
]
