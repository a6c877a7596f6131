"""Safety module - retry policy for rate-limited responses."""

from .retry import with_retry

__all__ = ["with_retry"]
