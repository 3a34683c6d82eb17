"""
Retry Exceptions
================
Exception classes raised by the retry middleware itself.

Transport failures from httpx are never wrapped; they reach the caller
unchanged.
"""

from typing import Optional


class RetryError(Exception):
    """Base exception for errors originating in retryware."""
    pass


class RetryCancelled(RetryError):
    """Raised when a pending retry wait is aborted by a cancellation signal."""

    def __init__(self, message: str, retry_count: int = 0, delay: Optional[float] = None):
        self.retry_count = retry_count
        self.delay = delay
        super().__init__(message)
