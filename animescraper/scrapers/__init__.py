"""Scrapers module - catalog scraping and stream resolution."""

from .catalog import CatalogScraper
from .streams import StreamResolver

__all__ = ["CatalogScraper", "StreamResolver"]
