"""
Error types raised inside the scraping pipeline.

None of these cross the Orchestrator boundary for expected failures; they
exist so degraded paths can log a distinct cause.
"""

from typing import Optional


class ScraperError(Exception):
    """Base class for all scraper errors."""


class BrowserUnavailableError(ScraperError):
    """The shared browser could not be started."""


class NavigationError(ScraperError):
    """A page never reached the expected state."""

    def __init__(self, url: str, reason: str):
        super().__init__(f"{reason}: {url}")
        self.url = url
        self.reason = reason


class PayloadError(ScraperError):
    """Rendered content could not be parsed into the expected shape."""


class RateLimitError(ScraperError):
    """The origin answered with 429 Too Many Requests."""

    def __init__(self, url: str, retry_after: Optional[float] = None):
        super().__init__(f"Rate limited: {url}")
        self.url = url
        self.retry_after = retry_after


class DeobfuscationError(ScraperError):
    """A stream host page did not yield a direct media URL."""
