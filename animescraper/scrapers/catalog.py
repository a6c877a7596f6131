"""
Catalog Scraper Module

Search and episode listing against the origin's JSON API. The API only
answers inside a real browser context, so every call is a full page
navigation whose rendered body text is parsed as JSON.
"""

import logging
from typing import Any, Optional
from urllib.parse import quote, urlencode

from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from animescraper.config import SiteConfig, config
from animescraper.errors import NavigationError, RateLimitError, ScraperError
from animescraper.fetchers.browser_session import BrowserSession
from animescraper.models import EpisodePage, SearchResult
from animescraper.safety.retry import with_retry
from animescraper.scrapers.payloads import parse_release, parse_search

logger = logging.getLogger(__name__)

# Rendered body looks like a JSON object
JSON_READY_SCRIPT = (
    "() => !!document.body && document.body.innerText.trim().startsWith('{')"
)
BODY_TEXT_SCRIPT = "() => document.body ? document.body.innerText : ''"


def _retry_after(response: Any) -> Optional[float]:
    """Retry-After header in seconds, if present and numeric."""
    try:
        value = response.headers.get("retry-after")
        return float(value) if value is not None else None
    except (AttributeError, TypeError, ValueError):
        return None


class CatalogScraper:
    """
    Browser-driven client for the origin's search and release endpoints.

    Every failure degrades to an empty, well-typed result.

    Example:
        scraper = CatalogScraper(session)
        results = await scraper.search("Frieren")
        page = await scraper.get_episodes(results[0].session_id)
    """

    def __init__(
        self,
        session: BrowserSession,
        site: SiteConfig | None = None,
        max_retries: int | None = None,
        retry_backoff: float | None = None,
    ):
        """
        Initialize the scraper.

        Args:
            session: Shared browser session
            site: Origin addresses (default from config)
            max_retries: Attempts per navigation on 429 (default from config)
            retry_backoff: Linear backoff step in seconds (default from config)
        """
        self._session = session
        self._site = site or config.site
        self._max_retries = max_retries
        self._retry_backoff = retry_backoff

    def search_url(self, query: str) -> str:
        return f"{self._site.api_url}?m=search&q={quote(query, safe='')}"

    def release_url(self, session_id: str, page: int) -> str:
        params = urlencode({"m": "release", "id": session_id, "sort": "episode_asc", "page": page})
        return f"{self._site.api_url}?{params}"

    async def _warm_up(self, page: Any) -> None:
        """Visit the site root and sit out the bot-mitigation delay."""
        if not config.browser.warmup:
            return
        await page.goto(self._site.base_url, wait_until="domcontentloaded")
        if config.browser.ddos_wait > 0:
            await page.wait_for_timeout(config.browser.ddos_wait)

    async def _navigate(self, page: Any, url: str) -> None:
        response = await page.goto(url, wait_until="domcontentloaded")
        if response is not None and response.status == 429:
            raise RateLimitError(url, retry_after=_retry_after(response))

    async def _read_json_body(self, page: Any, url: str) -> str:
        """
        Navigate to an API URL and return the rendered body text.

        Waits up to json_timeout for JSON-shaped content; on timeout the
        body is returned anyway for a best-effort parse.
        """
        await with_retry(
            lambda: self._navigate(page, url),
            max_retries=self._max_retries,
            backoff=self._retry_backoff,
        )

        try:
            await page.wait_for_function(JSON_READY_SCRIPT, timeout=config.browser.json_timeout)
        except PlaywrightTimeoutError:
            logger.warning(f"No JSON body after {config.browser.json_timeout}ms, parsing anyway: {url}")

        return await page.evaluate(BODY_TEXT_SCRIPT)

    async def _fetch_text(self, url: str) -> str:
        async with self._session.page() as page:
            try:
                await self._warm_up(page)
                return await self._read_json_body(page, url)
            except PlaywrightTimeoutError as e:
                raise NavigationError(url, "navigation timed out") from e

    async def search(self, query: str) -> list[SearchResult]:
        """
        Search the catalog.

        Args:
            query: Free-text title query

        Returns:
            List of SearchResult (empty on any failure)
        """
        url = self.search_url(query)
        logger.info(f"Searching: {url}")

        try:
            text = await self._fetch_text(url)
            return parse_search(text)
        except ScraperError as e:
            logger.warning(f"Search failed ({type(e).__name__}): {e}")
        except Exception as e:
            logger.error(f"Error during search: {e!r}")
        return []

    async def get_episodes(self, session_id: str, page: int = 1) -> EpisodePage:
        """
        Fetch one page of a title's episodes.

        Args:
            session_id: Anime session id from a SearchResult
            page: 1-based page number

        Returns:
            EpisodePage (empty with last_page=1 on any failure)
        """
        url = self.release_url(session_id, page)
        logger.info(f"Fetching episodes: {url}")

        try:
            text = await self._fetch_text(url)
            episodes, last_page = parse_release(text, session_id)
            return EpisodePage(episodes=episodes, last_page=last_page)
        except ScraperError as e:
            logger.warning(f"Episode listing failed ({type(e).__name__}): {e}")
        except Exception as e:
            logger.error(f"Error getting episodes: {e!r}")
        return EpisodePage.empty()
