"""
Retry Transports
================
httpx transports that add retries to any ``httpx.Client``.

Example:
    client = httpx.Client(
        transport=RetryTransport(max_retry_attempts=3, retry_on_timeout=True),
    )

    # Per-request overrides travel in the request extensions
    client.get("https://api.example.com/", extensions={"retry": {"retry_enabled": False}})
"""

from typing import Any, Optional

import httpx

from .middleware import AsyncRetryMiddleware, Options, RetryMiddleware
from .sleep import AsyncSleep, Sleep
from .stack import async_transport_handler, transport_handler

# Request extension holding per-call retry options
RETRY_EXTENSION = "retry"


class RetryTransport(httpx.BaseTransport):
    """Sync transport that retries through ``RetryMiddleware``."""

    def __init__(
        self,
        transport: Optional[httpx.BaseTransport] = None,
        options: Options = None,
        *,
        sleep: Optional[Sleep] = None,
        **overrides: Any,
    ):
        self._transport = transport or httpx.HTTPTransport()
        self._middleware = RetryMiddleware(
            transport_handler(self._transport),
            options,
            sleep=sleep,
            **overrides,
        )

    @property
    def middleware(self) -> RetryMiddleware:
        return self._middleware

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        # Buffer the body so it can be sent again
        request.read()
        return self._middleware(request, request.extensions.get(RETRY_EXTENSION))

    def close(self) -> None:
        self._transport.close()


class AsyncRetryTransport(httpx.AsyncBaseTransport):
    """Async transport that retries through ``AsyncRetryMiddleware``."""

    def __init__(
        self,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        options: Options = None,
        *,
        sleep: Optional[AsyncSleep] = None,
        **overrides: Any,
    ):
        self._transport = transport or httpx.AsyncHTTPTransport()
        self._middleware = AsyncRetryMiddleware(
            async_transport_handler(self._transport),
            options,
            sleep=sleep,
            **overrides,
        )

    @property
    def middleware(self) -> AsyncRetryMiddleware:
        return self._middleware

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        await request.aread()
        return await self._middleware(request, request.extensions.get(RETRY_EXTENSION))

    async def aclose(self) -> None:
        await self._transport.aclose()
