"""
Bounded in-memory caches with TTL and LRU eviction.
"""

import hashlib
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Dict, Generic, Hashable, List, Optional, TypeVar
import logging

from ..models import SearchOptions, SearchResult

logger = logging.getLogger(__name__)

K = TypeVar('K', bound=Hashable)
V = TypeVar('V')


@dataclass
class CacheEntry(Generic[K, V]):
    """A cached value together with its insertion and expiry timestamps."""

    key: K
    value: V
    inserted_at: float
    expires_at: float


class TTLCache(Generic[K, V]):
    """
    Thread-safe cache bounded by size and age.

    Expiry is measured from insertion, not from last access.
    Expired entries are dropped lazily when read; when an insertion
    would exceed capacity the least recently used entry is evicted.
    """

    def __init__(
        self,
        max_entries: int,
        ttl_seconds: float,
        name: str = "cache",
        enabled: bool = True,
        timer: Callable[[], float] = time.monotonic
    ):
        """
        Initialize the cache.

        Args:
            max_entries: Capacity before LRU eviction kicks in
            ttl_seconds: Lifetime of an entry, measured from insertion
            name: Name used in log messages and stats
            enabled: Whether caching is enabled
            timer: Monotonic clock, injectable for tests
        """
        if max_entries < 1:
            raise ValueError("max_entries must be positive")
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")

        self.max_entries = max_entries
        self.ttl = ttl_seconds
        self.name = name
        self.enabled = enabled
        self._timer = timer
        self._entries: "OrderedDict[K, CacheEntry[K, V]]" = OrderedDict()
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    def get(self, key: K) -> Optional[V]:
        """
        Get a value from cache.

        Args:
            key: Cache key

        Returns:
            Cached value or None if not found/expired
        """
        if not self.enabled:
            return None

        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return None

            if self._timer() > entry.expires_at:
                del self._entries[key]
                self._misses += 1
                logger.debug(f"{self.name}: expired entry for key: {str(key)[:50]}")
                return None

            self._entries.move_to_end(key)
            self._hits += 1
            return entry.value

    def put(self, key: K, value: V) -> None:
        """
        Store a value, evicting the least recently used entry when full.

        Args:
            key: Cache key
            value: Value to cache
        """
        if not self.enabled:
            return

        now = self._timer()
        with self._lock:
            if key in self._entries:
                del self._entries[key]

            while len(self._entries) >= self.max_entries:
                evicted_key, _ = self._entries.popitem(last=False)
                self._evictions += 1
                logger.debug(f"{self.name}: evicted LRU key: {str(evicted_key)[:50]}")

            self._entries[key] = CacheEntry(
                key=key,
                value=value,
                inserted_at=now,
                expires_at=now + self.ttl
            )

    def __contains__(self, key: object) -> bool:
        with self._lock:
            entry = self._entries.get(key)
            return entry is not None and self._timer() <= entry.expires_at

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def clear(self) -> int:
        """
        Remove all entries.

        Returns:
            Number of entries cleared
        """
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
        return count

    def cleanup_expired(self) -> int:
        """
        Remove expired entries eagerly.

        Returns:
            Number of entries removed
        """
        now = self._timer()
        with self._lock:
            expired = [k for k, e in self._entries.items() if now > e.expires_at]
            for key in expired:
                del self._entries[key]
        return len(expired)

    def get_stats(self) -> Dict[str, object]:
        """
        Get cache statistics.

        Returns:
            Dictionary with cache stats
        """
        with self._lock:
            return {
                'name': self.name,
                'enabled': self.enabled,
                'entries': len(self._entries),
                'max_entries': self.max_entries,
                'ttl_seconds': self.ttl,
                'hits': self._hits,
                'misses': self._misses,
                'evictions': self._evictions,
            }


class DualTierCache:
    """
    The two caches shared by every search: result lists keyed by
    normalized query + options digest, and page text keyed by URL.
    """

    def __init__(
        self,
        search_max_entries: int = 100,
        search_ttl_minutes: float = 15,
        content_max_entries: int = 50,
        content_ttl_minutes: float = 30,
        enabled: bool = True,
        timer: Callable[[], float] = time.monotonic
    ):
        self.search: TTLCache[str, List[SearchResult]] = TTLCache(
            max_entries=search_max_entries,
            ttl_seconds=search_ttl_minutes * 60,
            name="search-cache",
            enabled=enabled,
            timer=timer
        )
        self.content: TTLCache[str, str] = TTLCache(
            max_entries=content_max_entries,
            ttl_seconds=content_ttl_minutes * 60,
            name="content-cache",
            enabled=enabled,
            timer=timer
        )

    def clear(self) -> int:
        """Clear both tiers."""
        count = self.search.clear() + self.content.clear()
        logger.info(f"Cleared {count} cache entries")
        return count

    def get_stats(self) -> Dict[str, Dict[str, object]]:
        return {
            'search': self.search.get_stats(),
            'content': self.content.get_stats(),
        }


def build_search_key(query: str, options: SearchOptions) -> str:
    """
    Build the search-result cache key.

    The normalized query is kept readable; everything that changes the
    shape of the result list is folded into a short digest.
    """
    shaping = "|".join([
        str(options.max_results),
        options.time_range.value,
        ",".join(sorted(d.lower() for d in options.include_domains)),
        ",".join(sorted(d.lower() for d in options.exclude_domains)),
        f"{options.fetch_full_content}:{options.max_content_length}",
    ])
    digest = hashlib.md5(shaping.encode()).hexdigest()[:12]
    return f"{query.lower().strip()}|{digest}"
