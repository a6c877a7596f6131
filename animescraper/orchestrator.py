"""
Main Orchestrator Module

The collaborator-facing entry point. Wraps every scrape in a read-through
tiered cache and routes all browser work through one request queue.
"""

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, TypeVar

from animescraper.cache.tiered import ResourceClass, TieredCache
from animescraper.config import ScraperConfig, config as default_config
from animescraper.fetchers.browser_session import BrowserSession
from animescraper.models import EpisodePage, ResolvedStream, SearchResult
from animescraper.queue_manager import RequestQueue
from animescraper.scrapers.catalog import CatalogScraper
from animescraper.scrapers.streams import StreamResolver

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class OrchestratorStats:
    """Counters for a running orchestrator."""

    cache_hits: int = 0
    cache_misses: int = 0
    scrapes: int = 0
    empty_results: int = 0

    def to_dict(self) -> dict:
        return {
            "cache_hits": self.cache_hits,
            "cache_misses": self.cache_misses,
            "scrapes": self.scrapes,
            "empty_results": self.empty_results,
        }


def _is_empty(value: Any) -> bool:
    if isinstance(value, EpisodePage):
        return value.is_empty
    return not value


class Orchestrator:
    """
    Cached, rate-limited access to catalog and stream data.

    Workflow per call:
    1. Tiered cache checked
    2. On miss, the scrape is queued behind earlier browser work
    3. The shared browser supplies a fresh page
    4. Non-empty results are written through both cache tiers

    Callers always get a well-typed, possibly empty result.

    Example:
        async with Orchestrator() as orchestrator:
            results = await orchestrator.search("Frieren")
            episodes = await orchestrator.get_episodes(results[0].session_id)
    """

    def __init__(
        self,
        config: ScraperConfig | None = None,
        cache: TieredCache | None = None,
        queue: RequestQueue | None = None,
        session: BrowserSession | None = None,
        catalog: CatalogScraper | None = None,
        resolver: StreamResolver | None = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            config: Custom configuration (uses global if None)
            cache: Tiered cache (created from config if None)
            queue: Request queue (created from config if None)
            session: Browser session (created if None)
            catalog: Catalog scraper (created on the session if None)
            resolver: Stream resolver (created on the session if None)
        """
        self._config = config or default_config

        self._cache = cache or TieredCache()
        self._queue = queue or RequestQueue(min_spacing=self._config.queue.min_spacing)
        self._session = session or BrowserSession()
        self._catalog = catalog or CatalogScraper(
            self._session,
            site=self._config.site,
            max_retries=self._config.max_retries,
            retry_backoff=self._config.retry_backoff,
        )
        self._resolver = resolver or StreamResolver(
            self._session,
            site=self._config.site,
            keep_unresolved=self._config.keep_unresolved_streams,
        )

        self._stats = OrchestratorStats()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def _cached(
        self,
        resource: ResourceClass,
        key: str,
        scrape: Callable[[], Awaitable[T]],
        empty: Callable[[], T],
    ) -> T:
        """Read-through cache around a queued scrape."""
        cached = await self._cache.aget(resource, key)
        if cached is not None:
            self._stats.cache_hits += 1
            logger.info(f"Cache hit: {key}")
            return cached

        self._stats.cache_misses += 1

        try:
            result = await self._queue.submit(scrape)
        except Exception as e:
            logger.error(f"Scrape failed for {key}: {e!r}")
            result = empty()
        self._stats.scrapes += 1

        # Empty results are not cached: they may be scrape failures
        if _is_empty(result):
            self._stats.empty_results += 1
            logger.info(f"Empty result, not caching: {key}")
            return result

        await self._cache.aset(resource, key, result)
        return result

    async def search(self, query: str) -> list[SearchResult]:
        """
        Search the catalog.

        Args:
            query: Title query

        Returns:
            List of SearchResult (possibly empty)
        """
        key = f"search:{query.lower().strip()}"
        return await self._cached(
            ResourceClass.SEARCH,
            key,
            lambda: self._catalog.search(query),
            list,
        )

    async def get_episodes(self, session_id: str, page: int = 1) -> EpisodePage:
        """
        Get one page of a title's episodes.

        Args:
            session_id: Anime session id
            page: 1-based page number

        Returns:
            EpisodePage (possibly empty)
        """
        key = f"episodes:{session_id}:{page}"
        return await self._cached(
            ResourceClass.EPISODES,
            key,
            lambda: self._catalog.get_episodes(session_id, page),
            EpisodePage.empty,
        )

    async def get_all_episodes(self, session_id: str) -> EpisodePage:
        """
        Get every episode of a title, across all pages.

        Pages are fetched one after another through get_episodes, so each
        page is cached and queued individually.
        The combined list is only cached when every page came back.

        Returns:
            EpisodePage with all episodes and the origin's last_page
        """
        key = f"episodes:{session_id}:all"
        cached = await self._cache.aget(ResourceClass.EPISODES, key)
        if cached is not None:
            self._stats.cache_hits += 1
            return cached

        first = await self.get_episodes(session_id, 1)
        episodes = list(first.episodes)
        missing = []

        if first.last_page > 1:
            logger.info(f"{session_id} has {first.last_page} pages of episodes, fetching the rest")
            for page in range(2, first.last_page + 1):
                result = await self.get_episodes(session_id, page)
                if result.is_empty:
                    missing.append(page)
                episodes.extend(result.episodes)

        combined = EpisodePage(episodes=episodes, last_page=first.last_page)

        # A partial list would hide the missing pages for the whole TTL
        if missing:
            logger.warning(f"{session_id}: pages {missing} came back empty, not caching the full list")
        elif not combined.is_empty:
            await self._cache.aset(ResourceClass.EPISODES, key, combined)
        return combined

    async def get_streams(self, session_id: str, episode_session_id: str) -> list[ResolvedStream]:
        """
        Resolve an episode's playable streams.

        Args:
            session_id: Anime session id
            episode_session_id: Episode session id

        Returns:
            List of ResolvedStream (possibly empty)
        """
        key = f"streams:{session_id}:{episode_session_id}"
        return await self._cached(
            ResourceClass.STREAMS,
            key,
            lambda: self._resolver.get_streams(session_id, episode_session_id),
            list,
        )

    def prune_cache(self) -> int:
        """Sweep expired entries from the memory tier."""
        return self._cache.prune()

    def get_stats(self) -> dict:
        """Get current statistics."""
        return {
            "orchestrator": self._stats.to_dict(),
            "cache": self._cache.get_stats(),
            "queue": self._queue.get_stats(),
        }

    async def close(self) -> None:
        """Shut down the browser and close the durable store."""
        await self._session.shutdown()
        self._cache.close()
