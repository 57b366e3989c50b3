"""
Asset Registry - Bounded Cache

This module provides the thread-safe, capacity-bounded cache that fronts the
ledger. Eviction is first-in-first-out: when a new key arrives at capacity,
the key inserted earliest is removed. Updating the value of a resident key
does not change its eviction position.
"""

import logging
import threading
from collections import OrderedDict
from dataclasses import dataclass
from typing import List, Optional


DEFAULT_CAPACITY = 1000


@dataclass
class CacheStats:
    """Statistics for cache performance monitoring."""
    hits: int = 0
    misses: int = 0
    evictions: int = 0
    invalidations: int = 0
    total_requests: int = 0
    cache_size: int = 0
    capacity: int = 0
    hit_rate: float = 0.0

    def update_hit_rate(self):
        """Update hit rate calculation."""
        if self.total_requests > 0:
            self.hit_rate = self.hits / self.total_requests
        else:
            self.hit_rate = 0.0


class BoundedCache:
    """
    Thread-safe key/value cache with FIFO eviction.

    Keys and values are strings. All operations hold a single re-entrant lock,
    so an eviction and the insertion that triggered it are observed together.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        """
        Initialize bounded cache.

        Args:
            capacity: Maximum number of resident entries
        """
        if not isinstance(capacity, int) or isinstance(capacity, bool) or capacity <= 0:
            raise ValueError(f"Cache capacity must be a positive integer, got {capacity!r}")

        self.capacity = capacity

        # Insertion-ordered storage; never reordered on update or access
        self._cache: "OrderedDict[str, str]" = OrderedDict()
        self._lock = threading.RLock()

        self.stats = CacheStats(capacity=capacity)

        self.logger = logging.getLogger(__name__)

    def get(self, key: str) -> Optional[str]:
        """
        Get a value from cache.

        Returns:
            Cached value, or None when the key is not resident
        """
        with self._lock:
            self.stats.total_requests += 1

            value = self._cache.get(key)
            if value is None:
                self.stats.misses += 1
                self.stats.update_hit_rate()
                self.logger.debug(f"Cache miss for key: {key}")
                return None

            self.stats.hits += 1
            self.stats.update_hit_rate()
            self.logger.debug(f"Cache hit for key: {key}")
            return value

    def put(self, key: str, value: str) -> None:
        """
        Insert or update a value.

        A new key arriving at capacity evicts the earliest inserted entry
        first. An existing key keeps its insertion position.
        """
        with self._lock:
            if key not in self._cache and len(self._cache) >= self.capacity:
                self._evict_oldest()

            self._cache[key] = value
            self.stats.cache_size = len(self._cache)

    def invalidate(self, key: str) -> bool:
        """
        Remove a key if present.

        Returns:
            True if an entry was removed
        """
        with self._lock:
            if key in self._cache:
                del self._cache[key]
                self.stats.invalidations += 1
                self.stats.cache_size = len(self._cache)
                self.logger.debug(f"Cache invalidated for key: {key}")
                return True
            return False

    def clear(self) -> None:
        """Remove all entries."""
        with self._lock:
            self._cache.clear()
            self.stats.cache_size = 0

    def keys(self) -> List[str]:
        """Get resident keys, oldest insertion first."""
        with self._lock:
            return list(self._cache.keys())

    def get_statistics(self) -> CacheStats:
        """Get a snapshot of cache statistics."""
        with self._lock:
            self.stats.cache_size = len(self._cache)
            return CacheStats(**vars(self.stats))

    def _evict_oldest(self) -> None:
        """Remove the earliest inserted entry. Caller holds the lock."""
        oldest_key, _ = self._cache.popitem(last=False)
        self.stats.evictions += 1
        self.logger.debug(f"Evicted cache key: {oldest_key}")

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._cache
