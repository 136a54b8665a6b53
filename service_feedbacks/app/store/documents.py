"""
Document snapshots, the server-timestamp sentinel and query ordering.
"""

import copy
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple


class ServerTimestamp:
    """Placeholder replaced by the commit time when a write is applied."""

    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"


SERVER_TIMESTAMP = ServerTimestamp()


def resolve_server_timestamps(data: Dict[str, Any], now: Optional[datetime] = None) -> Dict[str, Any]:
    """Copy of ``data`` with top-level SERVER_TIMESTAMP values filled in."""
    now = now or datetime.now(timezone.utc)
    return {
        key: (now if isinstance(value, ServerTimestamp) else copy.deepcopy(value))
        for key, value in data.items()
    }


@dataclass
class DocumentSnapshot:
    """Point-in-time copy of one document; ``data`` is None when it is missing."""
    id: str
    collection: str
    data: Optional[Dict[str, Any]] = None

    @property
    def exists(self) -> bool:
        return self.data is not None

    def get(self, field: str, default: Any = None) -> Any:
        if self.data is None:
            return default
        return self.data.get(field, default)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "collection": self.collection,
            "exists": self.exists,
            "data": copy.deepcopy(self.data)
        }


# Cross-type order for query values: null, booleans, numbers, timestamps,
# strings, bytes, arrays, maps.
_TYPE_RANKS = ((bool, 1), ((int, float), 2), (datetime, 3), (str, 4), (bytes, 5), ((list, tuple), 6), (dict, 7))


def value_sort_key(value: Any) -> Tuple:
    """Total-order key for any stored value, so mixed types never fail to compare."""
    if value is None:
        return (0,)
    for types, rank in _TYPE_RANKS:
        if isinstance(value, types):
            break
    else:
        return (8, type(value).__name__, repr(value))

    if rank == 3 and value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    elif rank == 6:
        value = tuple(value_sort_key(item) for item in value)
    elif rank == 7:
        value = tuple((key, value_sort_key(item)) for key, item in sorted(value.items()))
    return (rank, value)


def order_snapshots(snapshots: Iterable[DocumentSnapshot],
                    order_by: Optional[str] = None,
                    descending: bool = False,
                    limit: Optional[int] = None) -> List[DocumentSnapshot]:
    """Sort snapshots by one field, ties broken by document ID.

    Values of different types order by type first, then by value.
    Documents without the ordering field are left out of ordered results.
    """
    items = list(snapshots)
    if order_by:
        items = [snap for snap in items if snap.get(order_by) is not None]
        items.sort(key=lambda snap: (value_sort_key(snap.get(order_by)), snap.id), reverse=descending)
    else:
        items.sort(key=lambda snap: snap.id)

    if limit is not None:
        items = items[:limit]
    return items
