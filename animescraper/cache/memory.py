"""
Volatile Cache Module

Process-local TTL cache, checked before the durable tier.
"""

import time
from typing import Callable, Dict, Hashable, Optional, Tuple

from animescraper.models import CacheEntry


class MemoryCache:
    """
    In-memory cache with per-entry time-to-live.

    Expired entries are evicted lazily on read; prune() sweeps them all.

    Example:
        cache = MemoryCache()
        cache.set(("anime_search", "search:frieren"), CacheEntry(results), ttl=900)
        entry = cache.get(("anime_search", "search:frieren"))
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        """
        Initialize the cache.

        Args:
            clock: Wall-clock source, seconds
        """
        self._clock = clock
        self._entries: Dict[Hashable, Tuple[CacheEntry, float]] = {}

    def get(self, key: Hashable) -> Optional[CacheEntry]:
        """
        Get an entry if it exists and hasn't expired.

        Args:
            key: Cache key

        Returns:
            CacheEntry or None if missing/expired
        """
        stored = self._entries.get(key)
        if stored is None:
            return None

        entry, ttl = stored
        if not entry.is_fresh(ttl, self._clock()):
            del self._entries[key]
            return None

        return entry

    def set(self, key: Hashable, entry: CacheEntry, ttl: float) -> None:
        """Store an entry with its TTL in seconds."""
        self._entries[key] = (entry, ttl)

    def delete(self, key: Hashable) -> bool:
        """Delete a key; True if it was present."""
        return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        self._entries.clear()

    def prune(self) -> int:
        """
        Remove all expired entries.

        Returns:
            Number of entries removed
        """
        now = self._clock()
        expired = [
            key for key, (entry, ttl) in self._entries.items()
            if not entry.is_fresh(ttl, now)
        ]
        for key in expired:
            del self._entries[key]
        return len(expired)

    @property
    def size(self) -> int:
        """Number of stored entries, expired ones included until pruned."""
        return len(self._entries)
