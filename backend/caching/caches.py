"""Shared lookup caches.

Instances are created once by the service container and injected where
needed, so tests get fresh caches and nothing lives in module globals.
"""

import threading
from typing import Callable, Hashable, Optional, Sequence, TypeVar

from cachetools import LRUCache

V = TypeVar("V")

DEFAULT_ARTWORK_POOL_SIZE = 5


class BoundedCache:
    """Thread-safe LRU cache with a fixed capacity."""

    def __init__(self, maxsize: int = 100) -> None:
        self._cache: LRUCache = LRUCache(maxsize=maxsize)
        self._lock = threading.RLock()

    @property
    def maxsize(self) -> int:
        return int(self._cache.maxsize)

    def get(self, key: Hashable) -> Optional[object]:
        with self._lock:
            return self._cache.get(key)

    def set(self, key: Hashable, value: object) -> None:
        with self._lock:
            self._cache[key] = value

    def get_or_compute(self, key: Hashable, compute: Callable[[], V]) -> V:
        """Return the cached value for ``key``, computing and storing it on a miss."""
        with self._lock:
            if key in self._cache:
                return self._cache[key]
        value = compute()
        with self._lock:
            self._cache[key] = value
        return value

    def __contains__(self, key: Hashable) -> bool:
        with self._lock:
            return key in self._cache

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()


class HarmonicPairCache(BoundedCache):
    """Memoizes Camelot key relations for (key, target key) pairs."""

    def __init__(self, maxsize: int = 500) -> None:
        super().__init__(maxsize=maxsize)

    def relation(self, key: str, target_key: str, compute: Callable[[str, str], V]) -> V:
        return self.get_or_compute((key, target_key), lambda: compute(key, target_key))


class ArtworkIndexCache:
    """Unbounded, deterministic track id -> artwork pool index."""

    def __init__(self, pool_size: int = DEFAULT_ARTWORK_POOL_SIZE) -> None:
        if pool_size <= 0:
            raise ValueError("pool_size must be positive")
        self.pool_size = pool_size
        self._indexes: dict[str, int] = {}
        self._lock = threading.Lock()

    def index_for(self, track_id: str) -> int:
        with self._lock:
            index = self._indexes.get(track_id)
            if index is None:
                index = sum(ord(char) for char in track_id) % self.pool_size
                self._indexes[track_id] = index
            return index

    def artwork_for(self, track_id: str, pool: Sequence[str]) -> Optional[str]:
        """Pick an artwork URL for ``track_id`` from ``pool``."""
        if not pool:
            return None
        return pool[self.index_for(track_id) % len(pool)]

    def __len__(self) -> int:
        with self._lock:
            return len(self._indexes)
