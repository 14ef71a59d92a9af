"""
Caching utilities for the Ride Duel backend.

Building a report costs at least two Strava round trips per athlete, so
finished reports are kept in memory for a short while.
"""

import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

from .logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class CacheEntry:
    """Represents a cache entry with value and metadata."""
    value: Any
    timestamp: float
    ttl: float

    def is_expired(self) -> bool:
        return time.time() - self.timestamp > self.ttl


class InMemoryCache:
    """
    In-memory cache with TTL support and LRU eviction.

    Suitable for data that does not need to survive a restart.
    """

    def __init__(self, max_size: int = 100, default_ttl: float = 900):
        """
        Args:
            max_size: Maximum number of entries to store
            default_ttl: Default time-to-live in seconds
        """
        self.max_size = max_size
        self.default_ttl = default_ttl
        self._cache: Dict[str, CacheEntry] = {}
        self._access_order: list = []

    def get(self, key: str) -> Optional[Any]:
        """Return the cached value, or None if missing or expired."""
        entry = self._cache.get(key)
        if entry is None:
            return None

        if entry.is_expired():
            self.delete(key)
            return None

        self._update_access_order(key)
        return entry.value

    def set(self, key: str, value: Any) -> None:
        """Store a value, evicting the least recently used entry when full."""
        if key not in self._cache and len(self._cache) >= self.max_size:
            self._evict_lru()

        self._cache[key] = CacheEntry(value=value, timestamp=time.time(), ttl=self.default_ttl)
        self._update_access_order(key)

    def delete(self, key: str) -> bool:
        if key in self._cache:
            del self._cache[key]
            if key in self._access_order:
                self._access_order.remove(key)
            return True
        return False

    def clear(self) -> None:
        self._cache.clear()
        self._access_order.clear()

    def _update_access_order(self, key: str) -> None:
        if key in self._access_order:
            self._access_order.remove(key)
        self._access_order.append(key)

    def _evict_lru(self) -> None:
        if self._access_order:
            lru_key = self._access_order.pop(0)
            self._cache.pop(lru_key, None)
            logger.debug(f"Evicted cache entry: {lru_key}")


class ReportCache:
    """Ready duel reports keyed by year."""

    def __init__(self, ttl: float = 900, max_size: int = 20):
        self.cache = InMemoryCache(max_size=max_size, default_ttl=ttl)

    def get_report(self, year: int) -> Optional[Dict[str, Any]]:
        return self.cache.get(f"report:{year}")

    def set_report(self, year: int, report: Dict[str, Any]) -> None:
        if report.get('status') != 'ready':
            return
        self.cache.set(f"report:{year}", report)

    def invalidate(self) -> None:
        self.cache.clear()
