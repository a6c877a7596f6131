"""
Stream Resolver Module

Finds stream candidates on an episode's player page and resolves each one
to a direct media URL on the stream host.
"""

import logging
from typing import Dict, Optional

from bs4 import BeautifulSoup
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from animescraper.config import SiteConfig, config
from animescraper.errors import DeobfuscationError, NavigationError, ScraperError
from animescraper.fetchers.browser_session import BrowserSession
from animescraper.models import ResolvedStream, StreamCandidate
from animescraper.scrapers.deobfuscator import (
    PageSandbox,
    extract_source_url,
    find_packed_script,
)

logger = logging.getLogger(__name__)

MENU_SELECTOR = "#resolutionMenu button"


def parse_candidates(html: str) -> list[StreamCandidate]:
    """
    Read the resolution menu of a rendered player page.

    Buttons without a data-src host URL are skipped.
    """
    soup = BeautifulSoup(html, "lxml")
    candidates = []
    for button in soup.select(MENU_SELECTOR):
        host_url = button.get("data-src")
        if not host_url:
            continue
        candidates.append(
            StreamCandidate(
                quality_label=button.get("data-resolution") or "",
                audio_label=button.get("data-audio") or "",
                host_url=host_url,
            )
        )
    return candidates


class StreamResolver:
    """
    Resolves an episode to playable streams.

    Flow per request:
    1. Open the player page and wait for the resolution menu
    2. Extract every candidate (quality, audio, host URL)
    3. For each candidate, sequentially, open the host page on a fresh page
    4. Use an exposed media source if there is one
    5. Otherwise unpack the host's packed script and read its source URL
    6. Drop candidates that fail; the rest are returned

    Example:
        resolver = StreamResolver(session)
        streams = await resolver.get_streams("abc", "e1")
    """

    def __init__(
        self,
        session: BrowserSession,
        site: SiteConfig | None = None,
        keep_unresolved: bool | None = None,
    ):
        """
        Initialize the resolver.

        Args:
            session: Shared browser session
            site: Origin and stream host addresses (default from config)
            keep_unresolved: Return failed candidates without a direct URL
                (default from config)
        """
        self._session = session
        self._site = site or config.site
        self._keep_unresolved = (
            keep_unresolved if keep_unresolved is not None else config.keep_unresolved_streams
        )

    def play_url(self, session_id: str, episode_session_id: str) -> str:
        return f"{self._site.base_url.rstrip('/')}/play/{session_id}/{episode_session_id}"

    def host_headers(self) -> Dict[str, str]:
        """The stream host rejects requests without these."""
        return {
            "Referer": self._site.stream_host_referer,
            "Origin": self._site.stream_host_origin,
        }

    async def get_candidates(self, session_id: str, episode_session_id: str) -> list[StreamCandidate]:
        """
        Extract stream candidates from the player page.

        Raises:
            NavigationError: The resolution menu never appeared
        """
        url = self.play_url(session_id, episode_session_id)
        logger.info(f"Fetching player page: {url}")

        async with self._session.page() as page:
            try:
                await page.goto(url, wait_until="domcontentloaded")
                await page.wait_for_selector(MENU_SELECTOR, timeout=config.browser.menu_timeout)
            except PlaywrightTimeoutError as e:
                raise NavigationError(url, "resolution menu never appeared") from e
            html = await page.content()

        return parse_candidates(html)

    async def resolve_candidate(self, candidate: StreamCandidate) -> str:
        """
        Recover the direct media URL behind a candidate's host page.

        Returns:
            Direct media URL

        Raises:
            NavigationError: Host page did not load
            DeobfuscationError: No URL could be recovered
        """
        async with self._session.page(extra_headers=self.host_headers()) as page:
            try:
                await page.goto(candidate.host_url, wait_until="domcontentloaded")
            except PlaywrightTimeoutError as e:
                raise NavigationError(candidate.host_url, "host page timed out") from e

            sandbox = PageSandbox(page)

            direct = await sandbox.direct_source()
            if direct:
                return direct

            packed = find_packed_script(await sandbox.page_source())
            if packed is None:
                raise DeobfuscationError(f"No packed script on {candidate.host_url}")

            unpacked = await sandbox.capture_eval(packed)
            if unpacked is None:
                raise DeobfuscationError(f"Packed script yielded no source on {candidate.host_url}")

            url = extract_source_url(unpacked)
            if url is None:
                raise DeobfuscationError(f"No source URL in unpacked script on {candidate.host_url}")
            return url

    async def _resolve(self, candidate: StreamCandidate) -> Optional[str]:
        try:
            return await self.resolve_candidate(candidate)
        except ScraperError as e:
            logger.warning(f"Failed to resolve {candidate.quality_label} ({type(e).__name__}): {e}")
        except Exception as e:
            logger.error(f"Failed to resolve host link {candidate.host_url}: {e!r}")
        return None

    async def get_streams(self, session_id: str, episode_session_id: str) -> list[ResolvedStream]:
        """
        Resolve all streams of an episode.

        Args:
            session_id: Anime session id
            episode_session_id: Episode session id

        Returns:
            Resolved streams (empty when the player page fails)
        """
        try:
            candidates = await self.get_candidates(session_id, episode_session_id)
        except ScraperError as e:
            logger.warning(f"No stream candidates ({type(e).__name__}): {e}")
            return []
        except Exception as e:
            logger.error(f"Error getting links: {e!r}")
            return []

        logger.info(f"Found {len(candidates)} stream candidates")

        streams: list[ResolvedStream] = []
        for candidate in candidates:
            direct = await self._resolve(candidate)
            if direct is None and not self._keep_unresolved:
                continue
            streams.append(ResolvedStream.from_candidate(candidate, direct))

        return streams
