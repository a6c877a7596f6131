"""
Configuration module for the anime scraper.

Uses Pydantic Settings for type-safe configuration with environment variable support.
"""

from pathlib import Path
from typing import Literal
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class SiteConfig(BaseSettings):
    """Origin site and stream host addresses."""

    model_config = SettingsConfigDict(env_prefix="ANIMESCRAPER_SITE_")

    base_url: str = Field(default="https://animepahe.si", description="Origin site root")
    api_path: str = Field(default="/api", description="JSON API path on the origin")

    # The stream host rejects requests without a matching referrer/origin
    stream_host_referer: str = Field(default="https://kwik.cx/", description="Referer for stream host pages")
    stream_host_origin: str = Field(default="https://kwik.cx", description="Origin for stream host pages")

    @property
    def api_url(self) -> str:
        """Full URL of the JSON API endpoint."""
        return self.base_url.rstrip("/") + self.api_path


class BrowserConfig(BaseSettings):
    """Headless browser configuration."""

    model_config = SettingsConfigDict(env_prefix="ANIMESCRAPER_BROWSER_")

    headless: bool = Field(default=True, description="Run browser in headless mode")
    timeout: int = Field(default=30000, description="Page navigation timeout in milliseconds")
    json_timeout: int = Field(default=15000, description="Wait for JSON-shaped body (ms)")
    menu_timeout: int = Field(default=10000, description="Wait for the resolution menu (ms)")

    # Bot-mitigation warm-up
    warmup: bool = Field(default=True, description="Visit the site root before API calls")
    ddos_wait: int = Field(default=10000, description="Wait after warm-up navigation (ms)")

    # Resource blocking
    block_images: bool = Field(default=True, description="Block image requests")
    block_fonts: bool = Field(default=True, description="Block font requests")
    block_media: bool = Field(default=True, description="Block media requests")
    block_analytics: bool = Field(default=True, description="Block analytics/tracking")

    blocked_domains: list[str] = Field(
        default=[
            "google-analytics.com",
            "googletagmanager.com",
            "doubleclick.net",
            "analytics.",
            "tracker.",
            "ads.",
        ],
        description="Domains to block"
    )

    launch_args: list[str] = Field(
        default=[
            "--no-sandbox",
            "--disable-setuid-sandbox",
            "--disable-blink-features=AutomationControlled",
        ],
        description="Extra Chromium command line switches"
    )


class QueueConfig(BaseSettings):
    """Request queue spacing."""

    model_config = SettingsConfigDict(env_prefix="ANIMESCRAPER_QUEUE_")

    min_spacing: float = Field(default=1.0, description="Seconds between one completion and the next start")


class CacheConfig(BaseSettings):
    """Tiered cache configuration."""

    model_config = SettingsConfigDict(env_prefix="ANIMESCRAPER_CACHE_")

    # TTLs in seconds, per resource class
    search_ttl: int = Field(default=15 * 60, description="Search results TTL")
    episodes_ttl: int = Field(default=24 * 60 * 60, description="Episode list TTL")
    streams_ttl: int = Field(default=30 * 60, description="Stream URL TTL")

    durable_enabled: bool = Field(default=True, description="Enable the durable document store tier")
    durable_path: Path = Field(default=Path(".cache/anime"), description="Durable store directory")
    max_key_length: int = Field(default=1500, description="Maximum durable document id length")


class ScraperConfig(BaseSettings):
    """Main configuration aggregating all sub-configs."""

    model_config = SettingsConfigDict(
        env_prefix="ANIMESCRAPER_",
        env_nested_delimiter="__",
    )

    # Sub-configurations
    site: SiteConfig = Field(default_factory=SiteConfig)
    browser: BrowserConfig = Field(default_factory=BrowserConfig)
    queue: QueueConfig = Field(default_factory=QueueConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)

    # Retry settings (429 responses)
    max_retries: int = Field(default=3, description="Maximum attempts per navigation")
    retry_backoff: float = Field(default=2.0, description="Linear backoff step in seconds")
    max_retry_after: float = Field(
        default=60.0,
        description="Longest Retry-After honored; longer requests fail the call at once",
    )

    keep_unresolved_streams: bool = Field(
        default=False,
        description="Keep stream candidates whose direct URL could not be recovered",
    )

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging level"
    )


# Global config instance (can be overridden)
config = ScraperConfig()
