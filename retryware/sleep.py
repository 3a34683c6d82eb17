"""
Retry Waits
===========
Wait primitives used between attempts.

The sync middleware blocks only the calling thread; the async middleware
suspends the current task so other requests keep running.
"""

import threading
from typing import Awaitable, Callable

from .exceptions import RetryCancelled

Sleep = Callable[[float], None]
AsyncSleep = Callable[[float], Awaitable[None]]


def interruptible_sleep(event: threading.Event) -> Sleep:
    """
    Build a sync sleep that aborts as soon as ``event`` is set.

    Usage:
        stop = threading.Event()
        middleware = RetryMiddleware(handler, sleep=interruptible_sleep(stop))
        ...
        stop.set()  # pending waits raise RetryCancelled
    """
    def sleep(seconds: float) -> None:
        if event.is_set() or event.wait(seconds):
            raise RetryCancelled(f"Retry wait of {seconds}s cancelled", delay=seconds)

    return sleep
