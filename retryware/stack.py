"""
Handler Stack
=============
Composes middleware around a terminal request handler.

Middleware factories take a handler and return a new handler. The first
middleware pushed ends up outermost.

Usage:
    stack = HandlerStack(transport_handler(httpx.HTTPTransport()))
    stack.push(RetryMiddleware.factory(), name="retry")
    response = stack(httpx.Request("GET", "https://api.example.com/"))
"""

from typing import Any, Callable, List, Mapping, Optional, Tuple

import httpx

Middleware = Callable[[Callable[..., Any]], Callable[..., Any]]


def transport_handler(transport: httpx.BaseTransport) -> Callable[..., httpx.Response]:
    """Adapt a sync httpx transport into a terminal handler."""
    def handler(request: httpx.Request, options: Any = None) -> httpx.Response:
        return transport.handle_request(request)

    return handler


def async_transport_handler(transport: httpx.AsyncBaseTransport) -> Callable[..., Any]:
    """Adapt an async httpx transport into a terminal handler."""
    async def handler(request: httpx.Request, options: Any = None) -> httpx.Response:
        return await transport.handle_async_request(request)

    return handler


class HandlerStack:
    """
    Ordered list of middleware around a terminal handler.

    Calling the stack resolves it and dispatches the request. With an async
    terminal handler and async middleware the call returns an awaitable.
    """

    def __init__(self, handler: Optional[Callable[..., Any]] = None):
        self._handler = handler
        self._stack: List[Tuple[Middleware, Optional[str]]] = []
        self._cached: Optional[Callable[..., Any]] = None

    def set_handler(self, handler: Callable[..., Any]) -> None:
        self._handler = handler
        self._cached = None

    def has_handler(self) -> bool:
        return self._handler is not None

    def push(self, middleware: Middleware, name: Optional[str] = None) -> None:
        self._stack.append((middleware, name))
        self._cached = None

    def unshift(self, middleware: Middleware, name: Optional[str] = None) -> None:
        """Add middleware at the outermost position."""
        self._stack.insert(0, (middleware, name))
        self._cached = None

    def remove(self, name: str) -> None:
        self._stack = [entry for entry in self._stack if entry[1] != name]
        self._cached = None

    def resolve(self) -> Callable[..., Any]:
        if self._cached is not None:
            return self._cached

        if self._handler is None:
            raise LookupError("No handler has been specified")

        handler = self._handler
        for middleware, _ in reversed(self._stack):
            handler = middleware(handler)

        self._cached = handler
        return handler

    def __call__(self, request: httpx.Request, options: Optional[Mapping[str, Any]] = None):
        return self.resolve()(request, options)

    def __len__(self) -> int:
        return len(self._stack)
