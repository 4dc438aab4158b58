"""Bounded in-process cache used as the secondary tier.

Entries are kept ordered by their insertion timestamp. Fresh writes carry
the current time and land at the newest end; an entry copied from the
primary tier keeps its original timestamp and is slotted in among the
older ones. Replacing a key re-inserts it. Whenever the store grows past
``max_items`` the entries with the oldest timestamps are evicted until it is
back at the limit.

All methods are synchronous. The store is only touched from the event loop
thread, so no single operation can interleave with another.
"""

import json
from collections import OrderedDict
from collections.abc import Iterator
from dataclasses import asdict, dataclass
from typing import Any


@dataclass(frozen=True)
class CacheEntry:
    """A serialized value with its expiry metadata.

    Attributes:
        key: Fully-qualified (prefixed) cache key
        payload: Serialized value (JSON, optionally zlib+base64)
        timestamp: Insertion instant in epoch seconds
        ttl: Lifetime in seconds
        compressed: Whether ``payload`` is compressed
    """

    key: str
    payload: str
    timestamp: float
    ttl: int
    compressed: bool = False

    def is_expired(self, now: float) -> bool:
        """An entry expires once strictly more than ``ttl`` seconds have passed."""
        return now - self.timestamp > self.ttl

    def remaining_ttl(self, now: float) -> int:
        return max(0, int(self.timestamp + self.ttl - now))

    def to_json(self) -> str:
        """Envelope stored in the primary tier."""
        return json.dumps(asdict(self))

    @classmethod
    def from_json(cls, raw: str | bytes) -> "CacheEntry":
        data: dict[str, Any] = json.loads(raw)
        return cls(
            key=data["key"],
            payload=data["payload"],
            timestamp=float(data["timestamp"]),
            ttl=int(data["ttl"]),
            compressed=bool(data.get("compressed", False)),
        )


class MemoryCache:
    """Key to CacheEntry map ordered by timestamp, with a hard size bound."""

    def __init__(self, max_items: int) -> None:
        if max_items < 1:
            raise ValueError("max_items must be at least 1")
        self.max_items = max_items
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def keys(self) -> Iterator[str]:
        return iter(list(self._entries))

    def get(self, key: str, now: float) -> CacheEntry | None:
        """Return a live entry, dropping it first if it has expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.is_expired(now):
            del self._entries[key]
            return None
        return entry

    def put(self, entry: CacheEntry) -> list[str]:
        """Insert or replace an entry at its timestamp position.

        Returns:
            Keys evicted to keep the store within ``max_items``
        """
        self._entries.pop(entry.key, None)
        newer: list[str] = []
        for key in reversed(self._entries):
            if self._entries[key].timestamp <= entry.timestamp:
                break
            newer.append(key)

        self._entries[entry.key] = entry
        for key in reversed(newer):
            self._entries.move_to_end(key)
        return self.enforce_limit()

    def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    def delete_prefix(self, prefix: str) -> list[str]:
        removed = [k for k in self._entries if k.startswith(prefix)]
        for key in removed:
            del self._entries[key]
        return removed

    def clear(self) -> None:
        self._entries.clear()

    def purge_expired(self, now: float) -> int:
        """Drop every expired entry; returns how many were removed."""
        expired = [k for k, e in self._entries.items() if e.is_expired(now)]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def enforce_limit(self) -> list[str]:
        """Evict the oldest-timestamped entries until the size bound holds."""
        evicted: list[str] = []
        while len(self._entries) > self.max_items:
            key, _ = self._entries.popitem(last=False)
            evicted.append(key)
        return evicted
