"""
Retry Policy
============
Retry configuration and the per-call state that overlays it.

Option keys mirror the options bag accepted by the middleware:

    RetryMiddleware(handler, {
        OPTIONS_MAX_RETRY_ATTEMPTS: 3,
        OPTIONS_RETRY_ON_TIMEOUT: True,
    })
"""

import threading
from collections.abc import Mapping as MappingABC
from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, FrozenSet, Iterator, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

# Response header used to annotate the final response with the retry count
RETRY_HEADER = "X-Retry-Counter"

# Server-provided delay hint
RETRY_AFTER = "Retry-After"

# Option keys
OPTIONS_RETRY_ENABLED = "retry_enabled"
OPTIONS_MAX_RETRY_ATTEMPTS = "max_retry_attempts"
OPTIONS_RETRY_AFTER_SECONDS = "retry_after_seconds"
OPTIONS_RETRY_ONLY_IF_RETRY_AFTER_HEADER = "retry_only_if_retry_after_header"
OPTIONS_RETRY_ON_STATUS = "retry_on_statuses"
OPTIONS_RETRY_ON_TIMEOUT = "retry_on_timeout"
OPTIONS_RETRY_HEADER = "retry_header"
OPTIONS_CALLBACK = "callback"

# Per-call key carrying the number of retries already issued
RETRY_COUNT = "retry_count"

HTTP_TOO_MANY_REQUESTS = 429
HTTP_SERVICE_UNAVAILABLE = 503

DEFAULT_RETRY_STATUSES = frozenset({HTTP_TOO_MANY_REQUESTS, HTTP_SERVICE_UNAVAILABLE})

# Longest wait the sleep primitives can represent
MAX_RETRY_AFTER_SECONDS = int(threading.TIMEOUT_MAX)


class RetryPolicy(BaseModel):
    """
    Immutable retry configuration.

    Field names are the option-bag keys, so a policy can be built straight
    from a mapping with ``RetryPolicy.from_options(options)``.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    retry_enabled: bool = True
    max_retry_attempts: int = Field(default=10, ge=0)
    retry_after_seconds: int = Field(default=1, ge=0, le=MAX_RETRY_AFTER_SECONDS)
    retry_only_if_retry_after_header: bool = False
    retry_on_statuses: FrozenSet[int] = DEFAULT_RETRY_STATUSES
    retry_on_timeout: bool = False
    retry_header: Optional[str] = None
    callback: Optional[Callable[..., Any]] = None

    @classmethod
    def from_options(
        cls,
        options: Union["RetryPolicy", Mapping[str, Any], None] = None,
    ) -> "RetryPolicy":
        """Build a policy from an options mapping (or pass a policy through)."""
        if isinstance(options, RetryPolicy):
            return options
        return cls.model_validate(dict(options or {}))

    def merge(self, overrides: Optional[Mapping[str, Any]] = None) -> "RetryPolicy":
        """Return a new policy with ``overrides`` applied on top of this one.

        Keys present in ``overrides`` win; the result is validated again.
        """
        if not overrides:
            return self
        return type(self).model_validate({**dict(self), **overrides})


@dataclass(frozen=True)
class CallState(MappingABC):
    """
    Per-call view of the effective policy plus the retry counter.

    Every retry produces a fresh copy via ``advance()``; nothing here is
    shared between concurrent calls. It is also a read-only mapping of the
    options bag, so other middleware in a stack can use ``options.get(...)``.
    """

    policy: RetryPolicy
    retry_count: int = 0

    @classmethod
    def start(
        cls,
        defaults: RetryPolicy,
        options: Optional[Mapping[str, Any]] = None,
    ) -> "CallState":
        """Merge per-call ``options`` over ``defaults``.

        A ``retry_count`` key in ``options`` seeds the counter. An outer
        middleware's ``CallState`` is accepted as options too.
        """
        if isinstance(options, CallState):
            options = options.to_options()
        overrides = dict(options or {})
        retry_count = int(overrides.pop(RETRY_COUNT, 0) or 0)
        if retry_count < 0:
            raise ValueError(f"{RETRY_COUNT} must be >= 0, got {retry_count}")
        return cls(policy=defaults.merge(overrides), retry_count=retry_count)

    @property
    def remaining_retries(self) -> int:
        return max(self.policy.max_retry_attempts - self.retry_count, 0)

    def advance(self) -> "CallState":
        return replace(self, retry_count=self.retry_count + 1)

    def to_options(self) -> Dict[str, Any]:
        """Flatten into an options bag, ``retry_count`` included."""
        options = dict(self.policy)
        options[RETRY_COUNT] = self.retry_count
        return options

    def __getitem__(self, key: str) -> Any:
        if key == RETRY_COUNT:
            return self.retry_count
        if key in RetryPolicy.model_fields:
            return getattr(self.policy, key)
        raise KeyError(key)

    def __iter__(self) -> Iterator[str]:
        return iter(self.to_options())

    def __len__(self) -> int:
        return len(RetryPolicy.model_fields) + 1
