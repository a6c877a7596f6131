"""
Durable Cache Module

Document-store tier that survives process restarts.
Backed by diskcache by default; any object with get/set works.
"""

import logging
from pathlib import Path
from typing import Any, Callable, Optional, Protocol
from urllib.parse import quote

from diskcache import Cache

from animescraper.config import config
from animescraper.models import CacheEntry

logger = logging.getLogger(__name__)


class DocumentStore(Protocol):
    """Minimal key-value document store contract."""

    def get(self, collection: str, doc_id: str) -> Optional[dict]:
        ...

    def set(self, collection: str, doc_id: str, document: dict) -> None:
        ...


class DiskDocumentStore:
    """
    DocumentStore on top of a local diskcache directory.

    Documents are stored under "<collection>/<doc_id>".
    """

    def __init__(self, directory: Path | str):
        self._cache = Cache(str(directory))

    def get(self, collection: str, doc_id: str) -> Optional[dict]:
        return self._cache.get(f"{collection}/{doc_id}")

    def set(self, collection: str, doc_id: str, document: dict) -> None:
        self._cache.set(f"{collection}/{doc_id}", document)

    def clear(self) -> None:
        self._cache.clear()

    def close(self) -> None:
        self._cache.close()


def sanitize_doc_id(doc_id: str, max_length: int | None = None) -> str:
    """
    Make a cache key safe to use as a document id.

    Percent-encodes everything except ":" so distinct keys stay distinct,
    then caps the result at max_length characters.
    """
    limit = max_length or config.cache.max_key_length
    safe = quote(doc_id, safe=":")
    return safe[:limit]


class DurableCache:
    """
    Durable tier of the tiered cache.

    Never raises: when the store is missing every read is a miss and every
    write is dropped; store errors are logged.
    Store calls block; TieredCache.aget/aset run them in a worker thread.

    Example:
        durable = DurableCache.open(Path(".cache/anime"))
        durable.set("anime_streams", "streams:abc:e1", CacheEntry(streams))
        entry = durable.get("anime_streams", "streams:abc:e1")
    """

    def __init__(
        self,
        store: DocumentStore | None,
        max_key_length: int | None = None,
    ):
        """
        Initialize the durable tier.

        Args:
            store: Document store, or None for a no-op tier
            max_key_length: Document id cap (default from config)
        """
        self._store = store
        self._max_key_length = max_key_length or config.cache.max_key_length

    @classmethod
    def open(
        cls,
        directory: Path | str | None = None,
        factory: Callable[[Path | str], DocumentStore] = DiskDocumentStore,
    ) -> "DurableCache":
        """
        Open the default store, degrading to a no-op tier on failure.

        Args:
            directory: Store location (default from config)
            factory: Callable that opens the store

        Returns:
            DurableCache (possibly disabled)
        """
        if not config.cache.durable_enabled:
            logger.info("Durable cache disabled by configuration")
            return cls(None)

        directory = directory or config.cache.durable_path
        try:
            store = factory(directory)
        except Exception as e:
            logger.warning(f"Durable cache unavailable, using memory only: {e}")
            return cls(None)

        return cls(store)

    @property
    def available(self) -> bool:
        return self._store is not None

    def get(self, collection: str, key: str) -> Optional[CacheEntry]:
        """
        Read a document as a CacheEntry.

        Returns:
            CacheEntry or None when missing, malformed or unavailable
        """
        if self._store is None:
            return None

        doc_id = sanitize_doc_id(key, self._max_key_length)
        try:
            document = self._store.get(collection, doc_id)
        except Exception as e:
            logger.error(f"Cache get error [{collection}/{doc_id}]: {e}")
            return None

        if not isinstance(document, dict) or "data" not in document:
            return None

        cached_at = _to_timestamp(document.get("cached_at"))
        if cached_at is None:
            return None

        return CacheEntry(payload=document["data"], cached_at=cached_at)

    def set(self, collection: str, key: str, entry: CacheEntry) -> None:
        """Write a CacheEntry as {"data": ..., "cached_at": ...}."""
        if self._store is None:
            return

        doc_id = sanitize_doc_id(key, self._max_key_length)
        try:
            self._store.set(
                collection,
                doc_id,
                {"data": entry.payload, "cached_at": entry.cached_at},
            )
            logger.debug(f"Cache set: {collection}/{doc_id}")
        except Exception as e:
            # Don't raise - a cache failure must not fail the scrape
            logger.error(f"Cache set error [{collection}/{doc_id}]: {e}")

    def close(self) -> None:
        close = getattr(self._store, "close", None)
        if close is not None:
            close()


def _to_timestamp(value: Any) -> Optional[float]:
    """Accept epoch seconds or datetime-like values."""
    if isinstance(value, (int, float)):
        return float(value)
    timestamp = getattr(value, "timestamp", None)
    if callable(timestamp):
        return float(timestamp())
    return None
