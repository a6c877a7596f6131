"""Fetchers module - shared browser session and page lifecycle."""

from .browser_session import BrowserSession

__all__ = ["BrowserSession"]
