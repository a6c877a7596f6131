"""
Request Queue Module

Serializes outbound automation operations with a minimum spacing between them.
"""

import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional, TypeVar

from animescraper.config import config
from animescraper.models import QueuedTask

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RequestQueue:
    """
    FIFO queue that runs one operation at a time.

    Features:
    - Submission order is execution order
    - Minimum spacing between one completion and the next start
    - A failing operation only fails its own caller
    - Exactly one drain loop at a time

    Example:
        queue = RequestQueue(min_spacing=1.0)
        results = await queue.submit(lambda: scraper.search("Frieren"))
    """

    def __init__(self, min_spacing: float | None = None):
        """
        Initialize the queue.

        Args:
            min_spacing: Seconds between operations (default from config)
        """
        self._min_spacing = min_spacing if min_spacing is not None else config.queue.min_spacing
        self._queue: list[QueuedTask] = []
        self._processing = False
        self._last_run_at: Optional[float] = None
        self._worker: Optional[asyncio.Task] = None

        # Stats
        self._completed = 0
        self._failed = 0

    def submit(self, operation: Callable[[], Awaitable[T]]) -> "asyncio.Future[T]":
        """
        Add an operation to the queue.

        Args:
            operation: Zero-argument callable returning an awaitable

        Returns:
            Future resolved with the operation's result or exception
        """
        loop = asyncio.get_running_loop()
        task = QueuedTask(operation=operation, future=loop.create_future())
        self._queue.append(task)

        if not self._processing:
            self._processing = True
            self._worker = loop.create_task(self._drain())

        return task.future

    async def _wait_for_spacing(self) -> None:
        """Sleep until min_spacing has passed since the last completion."""
        if self._last_run_at is None:
            return
        elapsed = time.monotonic() - self._last_run_at
        if elapsed < self._min_spacing:
            await asyncio.sleep(self._min_spacing - elapsed)

    async def _run(self, task: QueuedTask) -> None:
        try:
            result = await task.operation()
        except Exception as e:
            self._failed += 1
            logger.error(f"[RequestQueue] Task error: {e!r}")
            if not task.future.done():
                task.future.set_exception(e)
        else:
            self._completed += 1
            if not task.future.done():
                task.future.set_result(result)

    async def _drain(self) -> None:
        """Process queued operations sequentially."""
        try:
            while self._queue:
                task = self._queue.pop(0)
                await self._wait_for_spacing()

                waited = time.monotonic() - task.enqueued_at
                logger.debug(f"[RequestQueue] Running task after {waited:.2f}s in queue")

                await self._run(task)
                self._last_run_at = time.monotonic()
        finally:
            self._processing = False

    @property
    def length(self) -> int:
        """Number of operations waiting to run."""
        return len(self._queue)

    @property
    def is_processing(self) -> bool:
        """Check if a drain loop is active."""
        return self._processing

    def get_stats(self) -> dict:
        """Get queue statistics."""
        return {
            "pending": len(self._queue),
            "processing": self._processing,
            "completed": self._completed,
            "failed": self._failed,
            "min_spacing": self._min_spacing,
        }
