"""Bounded in-memory cache with least-recently-used eviction and a TTL."""

from __future__ import annotations

import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Dict, Generic, Hashable, Optional, TypeVar

V = TypeVar("V")

_MISSING = object()


@dataclass(slots=True)
class CacheEntry(Generic[V]):
    value: V
    inserted_at: float


class LRUCache(Generic[V]):
    """Recency-ordered map whose entries expire ``ttl`` seconds after insertion.

    Reads bump an entry to the most-recent position; inserting into a full
    cache evicts the least recent entry. A lock guards every operation, so
    concurrent writers to the same key simply overwrite each other.
    """

    def __init__(
        self,
        max_size: int,
        ttl: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self.max_size = max_size
        self.ttl = ttl
        self._clock = clock
        self._entries: "OrderedDict[Hashable, CacheEntry[V]]" = OrderedDict()
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0
        self.evictions = 0
        self.expirations = 0

    def _expired(self, entry: CacheEntry[V], now: float) -> bool:
        return now - entry.inserted_at > self.ttl

    def get(self, key: Hashable, default: Optional[V] = None) -> Optional[V]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self.misses += 1
                return default
            if self._expired(entry, self._clock()):
                del self._entries[key]
                self.expirations += 1
                self.misses += 1
                return default
            self._entries.move_to_end(key)
            self.hits += 1
            return entry.value

    def set(self, key: Hashable, value: V) -> None:
        with self._lock:
            if key in self._entries:
                del self._entries[key]
            elif len(self._entries) >= self.max_size:
                self._entries.popitem(last=False)
                self.evictions += 1
            self._entries[key] = CacheEntry(value=value, inserted_at=self._clock())

    def has(self, key: Hashable) -> bool:
        return self.get(key, _MISSING) is not _MISSING

    def __contains__(self, key: Hashable) -> bool:
        return self.has(key)

    def purge_expired(self) -> int:
        with self._lock:
            now = self._clock()
            stale = [key for key, entry in self._entries.items() if self._expired(entry, now)]
            for key in stale:
                del self._entries[key]
            self.expirations += len(stale)
            return len(stale)

    def __len__(self) -> int:
        self.purge_expired()
        return len(self._entries)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self.hits = self.misses = self.evictions = self.expirations = 0

    def stats(self) -> Dict[str, int]:
        size = len(self)
        return {
            "size": size,
            "max_size": self.max_size,
            "hits": self.hits,
            "misses": self.misses,
            "evictions": self.evictions,
            "expirations": self.expirations,
        }
