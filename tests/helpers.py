"""
Test helpers for retryware.

Network traffic is simulated: handlers replay a scripted queue of responses
and httpx exceptions, and sleeps only record the requested delays.
"""

import asyncio
from typing import List

import httpx

URL = "https://api.example.com/v1/messages"


def make_request(method: str = "GET", url: str = URL) -> httpx.Request:
    return httpx.Request(method, url)


def connect_timeout(request: httpx.Request = None) -> httpx.ConnectTimeout:
    return httpx.ConnectTimeout("Connect Timeout", request=request or make_request())


def connect_error(request: httpx.Request = None) -> httpx.ConnectError:
    return httpx.ConnectError("Name or service not known", request=request or make_request())


def bad_response(status: int, headers=None, request: httpx.Request = None) -> httpx.HTTPStatusError:
    request = request or make_request()
    response = httpx.Response(status, headers=headers, request=request)
    return httpx.HTTPStatusError(f"HTTP {status}", request=request, response=response)


class MockHandler:
    """Next handler replaying a queue of responses and exceptions."""

    def __init__(self, outcomes):
        self.outcomes = list(outcomes)
        self.calls = 0
        self.seen_options = []

    def _next(self, options):
        self.calls += 1
        self.seen_options.append(options)
        if not self.outcomes:
            raise AssertionError("Mock queue is empty")
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    def __call__(self, request, options):
        return self._next(options)


class AsyncMockHandler(MockHandler):
    """Async flavour of ``MockHandler``; yields once per attempt."""

    async def __call__(self, request, options):
        await asyncio.sleep(0)
        return self._next(options)


class RecordingSleep:
    """Sleep stand-in that records delays instead of waiting."""

    def __init__(self):
        self.delays: List[float] = []

    def __call__(self, seconds):
        self.delays.append(seconds)


class AsyncRecordingSleep(RecordingSleep):
    async def __call__(self, seconds):
        self.delays.append(seconds)
        await asyncio.sleep(0)

