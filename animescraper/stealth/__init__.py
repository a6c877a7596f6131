"""Stealth module - browser fingerprint rotation."""

from .user_agents import BrowserProfile, UserAgentRotator

__all__ = ["BrowserProfile", "UserAgentRotator"]
