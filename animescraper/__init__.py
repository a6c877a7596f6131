"""
Anime Scraper - Browser-driven catalog and stream extraction.

This package provides:
- Catalog search and episode listing through a real browser
- Stream resolution with in-browser script deobfuscation
- A rate-limited request queue serializing all browser work
- A two-tier (memory + document store) cache
"""

__version__ = "1.0.0"
__author__ = "Scrape_U"
