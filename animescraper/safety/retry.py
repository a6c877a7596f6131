"""
Retry Module

Bounded retry with linearly increasing backoff for rate-limited responses.
"""

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from animescraper.config import config
from animescraper.errors import RateLimitError

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    max_retries: int | None = None,
    backoff: float | None = None,
    max_retry_after: float | None = None,
) -> T:
    """
    Run an operation, retrying on RateLimitError.

    Waits backoff * attempt seconds before attempt N+1 (or the server's
    Retry-After when it is longer). A Retry-After above max_retry_after
    is not waited out: the error is raised at once. Any other exception
    propagates at once.

    Args:
        operation: Zero-argument callable returning an awaitable
        max_retries: Total attempts before giving up (default from config)
        backoff: Linear backoff step in seconds (default from config)
        max_retry_after: Longest Retry-After to honor (default from config)

    Returns:
        The operation's result

    Raises:
        RateLimitError: When every attempt was rate limited, or the server
            asked for a longer wait than max_retry_after
    """
    attempts = max_retries if max_retries is not None else config.max_retries
    step = backoff if backoff is not None else config.retry_backoff
    ceiling = max_retry_after if max_retry_after is not None else config.max_retry_after
    attempts = max(1, attempts)

    for attempt in range(1, attempts + 1):
        try:
            return await operation()
        except RateLimitError as e:
            if attempt >= attempts:
                logger.warning(f"Rate limited {attempts} times, giving up: {e.url}")
                raise

            if e.retry_after is not None and e.retry_after > ceiling:
                logger.warning(
                    f"Retry-After {e.retry_after:.0f}s exceeds {ceiling:.0f}s, giving up: {e.url}"
                )
                raise

            wait_time = step * attempt
            if e.retry_after is not None:
                wait_time = max(wait_time, e.retry_after)
            wait_time = min(wait_time, ceiling)

            logger.info(
                f"Rate limited, retrying in {wait_time:.1f}s "
                f"(attempt {attempt + 1}/{attempts})"
            )
            await asyncio.sleep(wait_time)

    # Unreachable: the loop either returns or raises
    raise RuntimeError("retry loop exited without a result")
