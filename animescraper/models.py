"""
Data Model Module

Typed records returned by the catalog scraper and the stream resolver.
"""

import asyncio
import time
from dataclasses import asdict, dataclass, field
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar
from urllib.parse import urlparse

T = TypeVar("T")


@dataclass(frozen=True)
class SearchResult:
    """A single title returned by a catalog search."""

    external_id: str
    session_id: str
    title: str
    poster_url: Optional[str] = None
    status: Optional[str] = None
    media_type: Optional[str] = None
    episode_count: Optional[int] = None
    year: Optional[int] = None
    score: Optional[float] = None

    @property
    def url(self) -> str:
        """Deep link to the title page."""
        return f"/anime/{self.session_id}"

    def to_dict(self) -> dict:
        return {**asdict(self), "url": self.url}


@dataclass(frozen=True)
class Episode:
    """One episode of a title, scoped by the parent anime session."""

    external_id: str
    session_id: str
    anime_session_id: str
    episode_number: float
    title: Optional[str] = None
    duration: Optional[str] = None
    snapshot_url: Optional[str] = None

    @property
    def url(self) -> str:
        """Deep link to the player page."""
        return f"/play/{self.anime_session_id}/{self.session_id}"

    def to_dict(self) -> dict:
        return {**asdict(self), "url": self.url}


@dataclass
class EpisodePage:
    """A page of episodes plus the origin's page count."""

    episodes: list[Episode] = field(default_factory=list)
    last_page: int = 1

    @classmethod
    def empty(cls) -> "EpisodePage":
        return cls(episodes=[], last_page=1)

    @property
    def is_empty(self) -> bool:
        return len(self.episodes) == 0

    def to_dict(self) -> dict:
        return {
            "episodes": [e.to_dict() for e in self.episodes],
            "last_page": self.last_page,
        }


@dataclass(frozen=True)
class StreamCandidate:
    """An unresolved entry from a player page's resolution menu."""

    quality_label: str
    audio_label: str
    host_url: str

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class ResolvedStream(StreamCandidate):
    """A stream candidate after the direct media URL lookup."""

    direct_media_url: Optional[str] = None
    is_hls: bool = False

    @classmethod
    def from_candidate(
        cls,
        candidate: StreamCandidate,
        direct_media_url: Optional[str],
    ) -> "ResolvedStream":
        return cls(
            quality_label=candidate.quality_label,
            audio_label=candidate.audio_label,
            host_url=candidate.host_url,
            direct_media_url=direct_media_url,
            is_hls=is_hls_url(direct_media_url),
        )


def is_hls_url(url: Optional[str]) -> bool:
    """Check whether a URL points at an HLS playlist."""
    if not url:
        return False
    return urlparse(url).path.lower().endswith(".m3u8")


@dataclass
class CacheEntry(Generic[T]):
    """A cached payload stamped with its wall-clock write time."""

    payload: T
    cached_at: float = field(default_factory=time.time)

    def is_fresh(self, ttl: float, now: float | None = None) -> bool:
        """An entry is valid iff now - cached_at < ttl."""
        now = time.time() if now is None else now
        return now - self.cached_at < ttl


@dataclass
class QueuedTask:
    """An operation waiting in the request queue."""

    operation: Callable[[], Awaitable[Any]]
    future: asyncio.Future
    enqueued_at: float = field(default_factory=time.monotonic)
