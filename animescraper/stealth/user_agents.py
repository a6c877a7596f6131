"""
Browser Profile Module

Desktop Chromium fingerprints applied to each fresh page so the user agent
and its Client Hints always agree with the engine actually running.
"""

import random
from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass
class BrowserProfile:
    """A Chromium fingerprint with matching Client Hints."""

    user_agent: str
    sec_ch_ua: str
    sec_ch_ua_platform: str
    accept_language: str = "en-US,en;q=0.9"
    locale: str = "en-US"
    viewport_width: int = 1920
    viewport_height: int = 1080


# Chromium-based desktop profiles only: the automation engine is Chromium
BROWSER_PROFILES = [
    BrowserProfile(
        user_agent="Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
        sec_ch_ua='"Not_A Brand";v="8", "Chromium";v="120", "Google Chrome";v="120"',
        sec_ch_ua_platform='"Windows"',
    ),
    BrowserProfile(
        user_agent="Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/119.0.0.0 Safari/537.36",
        sec_ch_ua='"Not_A Brand";v="8", "Chromium";v="119", "Google Chrome";v="119"',
        sec_ch_ua_platform='"Windows"',
    ),
    BrowserProfile(
        user_agent="Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
        sec_ch_ua='"Not_A Brand";v="8", "Chromium";v="120", "Google Chrome";v="120"',
        sec_ch_ua_platform='"macOS"',
        viewport_width=1440,
        viewport_height=900,
    ),
    BrowserProfile(
        user_agent="Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36 Edg/120.0.0.0",
        sec_ch_ua='"Not_A Brand";v="8", "Chromium";v="120", "Microsoft Edge";v="120"',
        sec_ch_ua_platform='"Windows"',
    ),
]


class UserAgentRotator:
    """
    Rotates browser profiles for new pages.

    Example:
        rotator = UserAgentRotator()
        page = await browser.new_page(**rotator.get_page_options())
    """

    def __init__(self, profiles: list[BrowserProfile] | None = None):
        """
        Initialize the rotator.

        Args:
            profiles: Custom browser profiles (uses defaults if None)
        """
        self._profiles = profiles if profiles is not None else BROWSER_PROFILES.copy()
        self._current_index = 0

    def get_random_profile(self) -> BrowserProfile:
        """Get a random browser profile."""
        return random.choice(self._profiles)

    def get_next_profile(self) -> BrowserProfile:
        """Get the next profile in rotation (round-robin)."""
        profile = self._profiles[self._current_index]
        self._current_index = (self._current_index + 1) % len(self._profiles)
        return profile

    def get_headers(self, profile: BrowserProfile) -> Dict[str, str]:
        """Extra HTTP headers matching a profile."""
        return {
            "Accept-Language": profile.accept_language,
            "Sec-Ch-Ua": profile.sec_ch_ua,
            "Sec-Ch-Ua-Mobile": "?0",
            "Sec-Ch-Ua-Platform": profile.sec_ch_ua_platform,
        }

    def get_page_options(
        self,
        extra_headers: Optional[Dict[str, str]] = None,
        random_selection: bool = True,
    ) -> Dict[str, Any]:
        """
        Keyword arguments for Browser.new_page().

        Args:
            extra_headers: Headers merged over the profile's headers
            random_selection: If True, random profile; if False, round-robin

        Returns:
            Dict with user_agent, locale, viewport and extra_http_headers
        """
        profile = self.get_random_profile() if random_selection else self.get_next_profile()

        headers = self.get_headers(profile)
        if extra_headers:
            headers.update(extra_headers)

        return {
            "user_agent": profile.user_agent,
            "locale": profile.locale,
            "viewport": {"width": profile.viewport_width, "height": profile.viewport_height},
            "extra_http_headers": headers,
        }

    @property
    def profile_count(self) -> int:
        """Number of available profiles."""
        return len(self._profiles)
