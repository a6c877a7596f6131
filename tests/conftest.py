"""
Shared fakes for browser-driven tests.

No real browser is launched: pages and sessions are replaced by in-process
objects that answer the same calls the scrapers make.
"""

import threading
from contextlib import asynccontextmanager
from typing import Any, Optional

import pytest
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from animescraper.cache.durable import DurableCache
from animescraper.cache.tiered import TieredCache
from animescraper.config import config
from animescraper.scrapers.catalog import BODY_TEXT_SCRIPT
from animescraper.scrapers.deobfuscator import CAPTURE_EVAL_SCRIPT, DIRECT_SOURCE_SCRIPT


class FakeResponse:
    def __init__(self, status: int = 200, headers: Optional[dict] = None):
        self.status = status
        self.headers = headers or {}


class FakePage:
    """Stands in for a Playwright Page."""

    def __init__(
        self,
        body: str = "",
        html: str = "",
        statuses: Optional[list[int]] = None,
        json_ready: bool = True,
        menu_ready: bool = True,
        direct_source: Optional[str] = None,
        captured: Optional[str] = None,
        goto_error: Optional[Exception] = None,
        response_headers: Optional[dict] = None,
    ):
        self.body = body
        self.html = html
        self.statuses = list(statuses or [])
        self.json_ready = json_ready
        self.menu_ready = menu_ready
        self.direct_source = direct_source
        self.captured = captured
        self.goto_error = goto_error
        self.response_headers = response_headers or {}

        self.visited: list[str] = []
        self.evaluated: list[tuple[str, Any]] = []
        self.closed = False

    async def goto(self, url: str, **kwargs) -> FakeResponse:
        self.visited.append(url)
        if self.goto_error is not None:
            raise self.goto_error
        status = self.statuses.pop(0) if self.statuses else 200
        return FakeResponse(status, self.response_headers)

    async def wait_for_timeout(self, ms: float) -> None:
        pass

    async def wait_for_function(self, expression: str, timeout: float | None = None) -> None:
        if not self.json_ready:
            raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded.")

    async def wait_for_selector(self, selector: str, timeout: float | None = None) -> None:
        if not self.menu_ready:
            raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded waiting for {selector}")

    async def evaluate(self, expression: str, arg: Any = None) -> Any:
        self.evaluated.append((expression, arg))
        if expression == BODY_TEXT_SCRIPT:
            return self.body
        if expression == DIRECT_SOURCE_SCRIPT:
            return self.direct_source
        if expression == CAPTURE_EVAL_SCRIPT:
            return self.captured
        raise AssertionError(f"Unexpected script: {expression[:40]}")

    async def content(self) -> str:
        return self.html

    async def close(self) -> None:
        self.closed = True

    @property
    def scripts(self) -> list[str]:
        return [expression for expression, _ in self.evaluated]


class FakeSession:
    """Stands in for BrowserSession; hands out pre-built pages in order."""

    def __init__(self, pages: Optional[list[FakePage]] = None):
        self._pages = list(pages or [])
        self.opened: list[FakePage] = []
        self.headers: list[Optional[dict]] = []
        self.shut_down = False

    @asynccontextmanager
    async def page(self, extra_headers: Optional[dict] = None):
        page = self._pages.pop(0)
        self.opened.append(page)
        self.headers.append(extra_headers)
        try:
            yield page
        finally:
            await page.close()

    async def shutdown(self) -> None:
        self.shut_down = True


class FakeClock:
    """Settable wall clock."""

    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class DictStore:
    """In-memory DocumentStore."""

    def __init__(self):
        self.documents: dict[tuple[str, str], dict] = {}

    def get(self, collection: str, doc_id: str) -> Optional[dict]:
        return self.documents.get((collection, doc_id))

    def set(self, collection: str, doc_id: str, document: dict) -> None:
        self.documents[(collection, doc_id)] = document


class ThreadRecordingStore(DictStore):
    """DictStore that records which thread each call ran on."""

    def __init__(self):
        super().__init__()
        self.threads: list[int] = []

    def get(self, collection: str, doc_id: str) -> Optional[dict]:
        self.threads.append(threading.get_ident())
        return super().get(collection, doc_id)

    def set(self, collection: str, doc_id: str, document: dict) -> None:
        self.threads.append(threading.get_ident())
        super().set(collection, doc_id, document)


class BrokenStore:
    """DocumentStore whose every call fails."""

    def get(self, collection: str, doc_id: str) -> Optional[dict]:
        raise ConnectionError("store unreachable")

    def set(self, collection: str, doc_id: str, document: dict) -> None:
        raise ConnectionError("store unreachable")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def memory_only_cache(clock) -> TieredCache:
    return TieredCache(durable=DurableCache(None), clock=clock)


@pytest.fixture
def no_warmup(monkeypatch):
    """Skip the site-root warm-up navigation."""
    monkeypatch.setattr(config.browser, "warmup", False)
