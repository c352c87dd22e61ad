# app/services/cache.py
"""
Per-user keyed store with explicit expiry.

Each entry is (value, stored_at). Freshness is checked at read time against
the TTL; stale entries are dropped on read. Writes are last-write-wins per key.
Every invalidate bumps the key's generation. A writer that read the generation
before computing its value passes it back to `put`, and the write is dropped
if an invalidation happened in between.
Keys are hashed onto a small set of locks so different users rarely share one;
the locks only guard dict access and are never held while computing a value.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Generic, Hashable, Optional, TypeVar

V = TypeVar("V")

LOCK_STRIPES = 16


@dataclass(frozen=True)
class CacheEntry(Generic[V]):
    value: V
    stored_at: float


class TTLCache(Generic[V]):
    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.time) -> None:
        self.ttl_seconds = float(ttl_seconds)
        self.clock = clock
        self._entries: Dict[Hashable, CacheEntry[V]] = {}
        self._generations: Dict[Hashable, int] = {}
        self._locks = [threading.Lock() for _ in range(LOCK_STRIPES)]

    def _lock_for(self, key: Hashable) -> threading.Lock:
        return self._locks[hash(key) % LOCK_STRIPES]

    def is_fresh(self, entry: CacheEntry[V]) -> bool:
        return (self.clock() - entry.stored_at) < self.ttl_seconds

    def get_entry(self, key: Hashable) -> Optional[CacheEntry[V]]:
        with self._lock_for(key):
            entry = self._entries.get(key)
            if entry is None:
                return None
            if not self.is_fresh(entry):
                del self._entries[key]
                return None
            return entry

    def get(self, key: Hashable) -> Optional[V]:
        entry = self.get_entry(key)
        return entry.value if entry is not None else None

    def generation(self, key: Hashable) -> int:
        with self._lock_for(key):
            return self._generations.get(key, 0)

    def put(
        self,
        key: Hashable,
        value: V,
        stored_at: Optional[float] = None,
        *,
        generation: Optional[int] = None,
    ) -> bool:
        """Store `value`; with `generation`, only if no invalidate happened since it was read."""
        entry = CacheEntry(value=value, stored_at=self.clock() if stored_at is None else stored_at)
        with self._lock_for(key):
            if generation is not None and generation != self._generations.get(key, 0):
                return False
            self._entries[key] = entry
            return True

    def invalidate(self, key: Hashable) -> bool:
        with self._lock_for(key):
            self._generations[key] = self._generations.get(key, 0) + 1
            return self._entries.pop(key, None) is not None

    def __len__(self) -> int:
        return len(self._entries)
