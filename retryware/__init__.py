"""
retryware
=========
Retry middleware for outbound httpx requests.
"""

__version__ = "0.1.0"

# Policy
from retryware.policy import (
    RetryPolicy,
    CallState,
    RETRY_HEADER,
    RETRY_AFTER,
    RETRY_COUNT,
    OPTIONS_RETRY_ENABLED,
    OPTIONS_MAX_RETRY_ATTEMPTS,
    OPTIONS_RETRY_AFTER_SECONDS,
    OPTIONS_RETRY_ONLY_IF_RETRY_AFTER_HEADER,
    OPTIONS_RETRY_ON_STATUS,
    OPTIONS_RETRY_ON_TIMEOUT,
    OPTIONS_RETRY_HEADER,
    OPTIONS_CALLBACK,
)

# Decisions
from retryware.decisions import (
    remaining_retries,
    should_retry_on_response,
    should_retry_on_connection_failure,
    delay_after,
    finalize_response,
)

# Middleware
from retryware.middleware import RetryMiddleware, AsyncRetryMiddleware

# Composition
from retryware.stack import HandlerStack, transport_handler, async_transport_handler
from retryware.transport import RetryTransport, AsyncRetryTransport, RETRY_EXTENSION

# Config
from retryware.config import policy_from_env

# Waits & errors
from retryware.sleep import interruptible_sleep
from retryware.exceptions import RetryError, RetryCancelled

__all__ = [
    # Policy
    "RetryPolicy",
    "CallState",
    "RETRY_HEADER",
    "RETRY_AFTER",
    "RETRY_COUNT",
    "OPTIONS_RETRY_ENABLED",
    "OPTIONS_MAX_RETRY_ATTEMPTS",
    "OPTIONS_RETRY_AFTER_SECONDS",
    "OPTIONS_RETRY_ONLY_IF_RETRY_AFTER_HEADER",
    "OPTIONS_RETRY_ON_STATUS",
    "OPTIONS_RETRY_ON_TIMEOUT",
    "OPTIONS_RETRY_HEADER",
    "OPTIONS_CALLBACK",
    # Decisions
    "remaining_retries",
    "should_retry_on_response",
    "should_retry_on_connection_failure",
    "delay_after",
    "finalize_response",
    # Middleware
    "RetryMiddleware",
    "AsyncRetryMiddleware",
    # Composition
    "HandlerStack",
    "transport_handler",
    "async_transport_handler",
    "RetryTransport",
    "AsyncRetryTransport",
    "RETRY_EXTENSION",
    # Config
    "policy_from_env",
    # Waits & errors
    "interruptible_sleep",
    "RetryError",
    "RetryCancelled",
]
