"""
Tiered Cache Module

Volatile in-memory tier in front of a durable document-store tier,
with read-through and write-through semantics and per-class TTLs.
The async variants keep blocking disk I/O off the event loop.
"""

import asyncio
import logging
import time
from enum import Enum
from typing import Any, Callable, Dict, Optional

from animescraper.cache.durable import DurableCache
from animescraper.cache.memory import MemoryCache
from animescraper.config import config
from animescraper.models import CacheEntry

logger = logging.getLogger(__name__)


class ResourceClass(Enum):
    """Cached resource kinds; the value is the durable collection name."""
    SEARCH = "anime_search"
    EPISODES = "anime_episodes"
    STREAMS = "anime_streams"

    @property
    def collection(self) -> str:
        return self.value


def default_ttls() -> Dict[ResourceClass, float]:
    """TTL per resource class from config, in seconds."""
    return {
        ResourceClass.SEARCH: config.cache.search_ttl,
        ResourceClass.EPISODES: config.cache.episodes_ttl,
        ResourceClass.STREAMS: config.cache.streams_ttl,
    }


class TieredCache:
    """
    Two-tier cache.

    Read path: memory hit -> return; memory miss -> durable read; a fresh
    durable document repopulates memory. Write path: write-through to both.

    Example:
        cache = TieredCache()
        cache.set(ResourceClass.SEARCH, "search:frieren", results)
        cache.get(ResourceClass.SEARCH, "search:frieren")
    """

    def __init__(
        self,
        durable: DurableCache | None = None,
        ttls: Dict[ResourceClass, float] | None = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize the cache.

        Args:
            durable: Durable tier (opened from config if None)
            ttls: TTL per resource class in seconds (default from config)
            clock: Wall-clock source shared by both tiers
        """
        self._clock = clock
        self._ttls = {**default_ttls(), **(ttls or {})}
        self._memory = MemoryCache(clock=clock)
        self._durable = durable if durable is not None else DurableCache.open()

        # Stats
        self._memory_hits = 0
        self._durable_hits = 0
        self._misses = 0

    def ttl(self, resource: ResourceClass) -> float:
        return self._ttls[resource]

    def _memory_get(self, resource: ResourceClass, key: str) -> Optional[CacheEntry]:
        entry = self._memory.get((resource, key))
        if entry is not None:
            self._memory_hits += 1
            logger.debug(f"Cache hit (memory): {resource.collection}/{key}")
        return entry

    def _admit(self, resource: ResourceClass, key: str, entry: Optional[CacheEntry]) -> Optional[CacheEntry]:
        """Accept a durable entry if still fresh, repopulating memory."""
        if entry is not None:
            if entry.is_fresh(self.ttl(resource), self._clock()):
                self._memory.set((resource, key), entry, self.ttl(resource))
                self._durable_hits += 1
                logger.debug(f"Cache hit (durable): {resource.collection}/{key}")
                return entry
            logger.debug(f"Cache expired: {resource.collection}/{key}")

        self._misses += 1
        return None

    def get(self, resource: ResourceClass, key: str) -> Optional[Any]:
        """
        Get a cached payload.

        Args:
            resource: Resource class (selects TTL and collection)
            key: Cache key

        Returns:
            Payload, or None if absent or expired in both tiers
        """
        entry = self._memory_get(resource, key)
        if entry is None:
            entry = self._admit(resource, key, self._durable.get(resource.collection, key))
        return entry.payload if entry is not None else None

    async def aget(self, resource: ResourceClass, key: str) -> Optional[Any]:
        """Like get(), with the durable read run in a worker thread."""
        entry = self._memory_get(resource, key)
        if entry is None:
            durable_entry = await asyncio.to_thread(self._durable.get, resource.collection, key)
            entry = self._admit(resource, key, durable_entry)
        return entry.payload if entry is not None else None

    def set(self, resource: ResourceClass, key: str, payload: Any) -> None:
        """Write a payload through both tiers. Never raises."""
        entry = CacheEntry(payload=payload, cached_at=self._clock())
        self._memory.set((resource, key), entry, self.ttl(resource))
        self._durable.set(resource.collection, key, entry)

    async def aset(self, resource: ResourceClass, key: str, payload: Any) -> None:
        """Like set(), with the durable write run in a worker thread."""
        entry = CacheEntry(payload=payload, cached_at=self._clock())
        self._memory.set((resource, key), entry, self.ttl(resource))
        await asyncio.to_thread(self._durable.set, resource.collection, key, entry)

    def prune(self) -> int:
        """Sweep expired entries from the memory tier."""
        removed = self._memory.prune()
        if removed:
            logger.debug(f"Pruned {removed} expired cache entries")
        return removed

    def clear(self) -> None:
        """Drop the memory tier."""
        self._memory.clear()

    def close(self) -> None:
        self._durable.close()

    @property
    def durable_available(self) -> bool:
        return self._durable.available

    def get_stats(self) -> dict:
        """Get cache statistics."""
        return {
            "memory_entries": self._memory.size,
            "memory_hits": self._memory_hits,
            "durable_hits": self._durable_hits,
            "misses": self._misses,
            "durable_available": self._durable.available,
        }
