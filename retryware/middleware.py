"""
Retry Middleware
================
Re-issues a request when the outcome is transient.

The middleware wraps a "next handler" ``(request, options) -> response``
that raises httpx exceptions on transport failure. Each call runs an
explicit bounded loop: attempt, evaluate, then either return the outcome or
wait and attempt again.

Usage:
    stack = HandlerStack(transport_handler(httpx.HTTPTransport()))
    stack.push(RetryMiddleware.factory(max_retry_attempts=3))
    response = stack(httpx.Request("GET", "https://api.example.com/"))
"""

import asyncio
import inspect
import time
from typing import Any, Awaitable, Callable, Mapping, Optional, Tuple, Union

import httpx
import structlog

from .decisions import (
    delay_after,
    failure_response,
    finalize_response,
    should_retry_on_failure,
    should_retry_on_response,
)
from .exceptions import RetryCancelled
from .policy import CallState, RetryPolicy
from .sleep import AsyncSleep, Sleep

logger = structlog.get_logger(__name__)

Handler = Callable[[httpx.Request, CallState], httpx.Response]
AsyncHandler = Callable[[httpx.Request, CallState], Awaitable[httpx.Response]]
Options = Union[RetryPolicy, Mapping[str, Any], None]


class _BaseRetryMiddleware:
    """Shared construction and bookkeeping for the sync and async flavours."""

    def __init__(
        self,
        next_handler: Callable[..., Any],
        options: Options = None,
        *,
        sleep: Optional[Callable[[float], Any]] = None,
        **overrides: Any,
    ):
        self._next_handler = next_handler
        self.policy = RetryPolicy.from_options(options).merge(overrides)
        self._sleep = sleep

    @classmethod
    def factory(
        cls,
        options: Options = None,
        *,
        sleep: Optional[Callable[[float], Any]] = None,
        **overrides: Any,
    ) -> Callable[[Callable[..., Any]], "_BaseRetryMiddleware"]:
        """
        Return a middleware constructor for ``HandlerStack.push``.

        Example:
            stack.push(RetryMiddleware.factory({"max_retry_attempts": 3}))
        """
        def middleware(handler: Callable[..., Any]) -> "_BaseRetryMiddleware":
            return cls(handler, options, sleep=sleep, **overrides)

        return middleware

    def _advance(
        self,
        request: httpx.Request,
        state: CallState,
        response: Optional[httpx.Response],
        error: Optional[BaseException] = None,
    ) -> Tuple[CallState, int]:
        """Bump the counter and compute the wait."""
        state = state.advance()
        delay = delay_after(state, response)

        logger.debug(
            "retry_scheduled",
            method=request.method,
            url=str(request.url),
            attempt=state.retry_count,
            max_attempts=state.policy.max_retry_attempts,
            delay=delay,
            status=response.status_code if response is not None else None,
            error=type(error).__name__ if error is not None else None,
        )
        return state, delay

    def _log_exhausted(
        self,
        request: httpx.Request,
        state: CallState,
        response: Optional[httpx.Response] = None,
        error: Optional[BaseException] = None,
    ) -> None:
        """Log when an outcome would have been retried but the budget is spent."""
        if state.retry_count == 0 or state.remaining_retries > 0:
            return

        fresh = CallState(policy=state.policy)
        if error is not None:
            retryable = should_retry_on_failure(error, fresh)
        else:
            retryable = should_retry_on_response(fresh, response)

        if retryable:
            logger.info(
                "retry_exhausted",
                method=request.method,
                url=str(request.url),
                retries=state.retry_count,
                status=response.status_code if response is not None else None,
                error=type(error).__name__ if error is not None else None,
            )


class RetryMiddleware(_BaseRetryMiddleware):
    """
    Synchronous retry middleware.

    Waits with ``time.sleep`` in the calling thread, so concurrent calls on
    other threads sharing this instance are unaffected.
    """

    def __init__(
        self,
        next_handler: Handler,
        options: Options = None,
        *,
        sleep: Optional[Sleep] = None,
        **overrides: Any,
    ):
        super().__init__(next_handler, options, sleep=sleep or time.sleep, **overrides)

    def __call__(
        self,
        request: httpx.Request,
        options: Optional[Mapping[str, Any]] = None,
    ) -> httpx.Response:
        state = CallState.start(self.policy, options)

        while True:
            try:
                response = self._next_handler(request, state)
            except Exception as exc:
                if not should_retry_on_failure(exc, state):
                    self._log_exhausted(request, state, failure_response(exc), exc)
                    raise
                response = failure_response(exc)
                error = exc
            else:
                if not should_retry_on_response(state, response):
                    self._log_exhausted(request, state, response)
                    return finalize_response(response, state)
                error = None

            state, delay = self._advance(request, state, response, error)

            callback = state.policy.callback
            try:
                if callback is not None:
                    callback(float(delay), state, request, response)
            finally:
                if response is not None:
                    response.close()

            try:
                self._sleep(delay)
            except RetryCancelled as exc:
                exc.retry_count = state.retry_count
                logger.warning("retry_cancelled", url=str(request.url), attempt=state.retry_count)
                raise


class AsyncRetryMiddleware(_BaseRetryMiddleware):
    """
    Asyncio retry middleware.

    Waits with ``asyncio.sleep``: the task yields during the delay and task
    cancellation aborts the retry chain with ``asyncio.CancelledError``.
    """

    def __init__(
        self,
        next_handler: AsyncHandler,
        options: Options = None,
        *,
        sleep: Optional[AsyncSleep] = None,
        **overrides: Any,
    ):
        super().__init__(next_handler, options, sleep=sleep or asyncio.sleep, **overrides)

    async def __call__(
        self,
        request: httpx.Request,
        options: Optional[Mapping[str, Any]] = None,
    ) -> httpx.Response:
        state = CallState.start(self.policy, options)

        while True:
            try:
                response = await self._next_handler(request, state)
            except Exception as exc:
                if not should_retry_on_failure(exc, state):
                    self._log_exhausted(request, state, failure_response(exc), exc)
                    raise
                response = failure_response(exc)
                error = exc
            else:
                if not should_retry_on_response(state, response):
                    self._log_exhausted(request, state, response)
                    return finalize_response(response, state)
                error = None

            state, delay = self._advance(request, state, response, error)

            callback = state.policy.callback
            try:
                if callback is not None:
                    result = callback(float(delay), state, request, response)
                    if inspect.isawaitable(result):
                        await result
            finally:
                if response is not None:
                    await response.aclose()

            try:
                await self._sleep(delay)
            except asyncio.CancelledError:
                logger.warning("retry_cancelled", url=str(request.url), attempt=state.retry_count)
                raise
