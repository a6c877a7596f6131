"""
Browser Session Module

Owns the single shared headless Chromium and hands out short-lived,
isolated pages. Uses Playwright with stealth patches and resource blocking.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

from animescraper.config import config
from animescraper.errors import BrowserUnavailableError
from animescraper.stealth.user_agents import UserAgentRotator

logger = logging.getLogger(__name__)


class BrowserSession:
    """
    Shared browser controller.

    Features:
    - One Chromium process per session, started lazily
    - Concurrent first callers share the same start-up
    - A fresh page (own browser context) per operation
    - Stealth plugin and resource blocking on every page

    Example:
        async with BrowserSession() as session:
            async with session.page() as page:
                await page.goto("https://example.com")
    """

    def __init__(
        self,
        headless: bool | None = None,
        timeout: int | None = None,
        user_agent_rotator: UserAgentRotator | None = None,
    ):
        """
        Initialize the session.

        Args:
            headless: Run in headless mode (default from config)
            timeout: Default navigation timeout in ms (default from config)
            user_agent_rotator: Profile rotator (creates default if None)
        """
        self._headless = headless if headless is not None else config.browser.headless
        self._timeout = timeout or config.browser.timeout
        self._ua_rotator = user_agent_rotator or UserAgentRotator()

        self._browser = None
        self._playwright = None
        self._stealth = None
        self._starting: Optional[asyncio.Task] = None
        self._open_pages = 0

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.shutdown()

    async def _launch(self) -> Any:
        """Start Playwright and launch Chromium."""
        try:
            from playwright.async_api import async_playwright
            from playwright_stealth import Stealth
        except ImportError:
            raise BrowserUnavailableError(
                "playwright and playwright-stealth are required. "
                "Install with: pip install playwright playwright-stealth && playwright install chromium"
            )

        self._stealth = Stealth()
        self._playwright = await async_playwright().start()
        try:
            return await self._playwright.chromium.launch(
                headless=self._headless,
                args=config.browser.launch_args,
            )
        except Exception:
            await self._playwright.stop()
            self._playwright = None
            raise

    async def _start(self) -> Any:
        logger.info("Launching shared browser")
        try:
            self._browser = await self._launch()
        except BrowserUnavailableError:
            raise
        except Exception as e:
            raise BrowserUnavailableError(f"Browser launch failed: {e}") from e
        return self._browser

    async def get_browser(self) -> Any:
        """
        Get the shared browser, starting it on first use.

        Concurrent callers await the same start-up task, so only one
        browser is ever launched. A failed start-up is retried by the
        next caller.

        Returns:
            Playwright Browser
        """
        if self._browser is not None:
            return self._browser

        if self._starting is None:
            self._starting = asyncio.get_running_loop().create_task(self._start())

        starting = self._starting
        try:
            return await asyncio.shield(starting)
        except Exception:
            if self._starting is starting:
                self._starting = None
            raise

    def _should_block_request(self, request) -> bool:
        """Check if a request should be blocked."""
        if config.browser.block_images and request.resource_type == "image":
            return True
        if config.browser.block_fonts and request.resource_type == "font":
            return True
        if config.browser.block_media and request.resource_type == "media":
            return True

        # Block analytics/ads by domain
        if config.browser.block_analytics:
            url = request.url.lower()
            for blocked in config.browser.blocked_domains:
                if blocked in url:
                    return True

        return False

    async def _handle_route(self, route) -> None:
        if self._should_block_request(route.request):
            await route.abort()
        else:
            await route.continue_()

    async def acquire_page(self, extra_headers: Optional[Dict[str, str]] = None) -> Any:
        """
        Open a fresh, isolated page.

        Args:
            extra_headers: Extra HTTP headers sent with every request

        Returns:
            Playwright Page; the caller must release it
        """
        browser = await self.get_browser()
        page = await browser.new_page(**self._ua_rotator.get_page_options(extra_headers))
        self._open_pages += 1

        try:
            page.set_default_navigation_timeout(self._timeout)
            if self._stealth is not None:
                await self._stealth.apply_stealth_async(page)
            await page.route("**/*", self._handle_route)
        except Exception:
            await self.release_page(page)
            raise

        return page

    async def release_page(self, page: Any) -> None:
        """Close a page. Close errors are logged, not raised."""
        try:
            await page.close()
        except Exception as e:
            logger.warning(f"Error closing page: {e}")
        finally:
            self._open_pages -= 1

    @asynccontextmanager
    async def page(self, extra_headers: Optional[Dict[str, str]] = None) -> AsyncIterator[Any]:
        """
        Scoped page that is closed on every exit path.

        Example:
            async with session.page() as page:
                ...
        """
        page = await self.acquire_page(extra_headers)
        try:
            yield page
        finally:
            await self.release_page(page)

    async def shutdown(self) -> None:
        """Close the browser and the Playwright driver."""
        if self._starting is not None and not self._starting.done():
            try:
                await self._starting
            except Exception:
                pass  # Nothing was started
        self._starting = None

        if self._browser:
            try:
                await self._browser.close()
            finally:
                self._browser = None
        if self._playwright:
            await self._playwright.stop()
            self._playwright = None

    @property
    def is_running(self) -> bool:
        return self._browser is not None

    @property
    def open_pages(self) -> int:
        """Pages acquired and not yet released."""
        return self._open_pages
