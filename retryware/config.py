"""
Retry Configuration
===================
Build retry policies from environment variables.

Recognised variables (with the default ``RETRY_`` prefix):
    RETRY_ENABLED, RETRY_MAX_ATTEMPTS, RETRY_AFTER_SECONDS,
    RETRY_ONLY_IF_RETRY_AFTER_HEADER, RETRY_ON_STATUSES (comma list),
    RETRY_ON_TIMEOUT, RETRY_HEADER

Unset variables keep the policy defaults.
"""

import os
from typing import Any, Dict, Mapping, Optional

from .policy import (
    OPTIONS_MAX_RETRY_ATTEMPTS,
    OPTIONS_RETRY_AFTER_SECONDS,
    OPTIONS_RETRY_ENABLED,
    OPTIONS_RETRY_HEADER,
    OPTIONS_RETRY_ON_STATUS,
    OPTIONS_RETRY_ON_TIMEOUT,
    OPTIONS_RETRY_ONLY_IF_RETRY_AFTER_HEADER,
    RetryPolicy,
)

TRUE_VALUES = {"1", "true", "yes", "on"}

# Environment suffix -> option key
ENV_OPTIONS = {
    "ENABLED": OPTIONS_RETRY_ENABLED,
    "MAX_ATTEMPTS": OPTIONS_MAX_RETRY_ATTEMPTS,
    "AFTER_SECONDS": OPTIONS_RETRY_AFTER_SECONDS,
    "ONLY_IF_RETRY_AFTER_HEADER": OPTIONS_RETRY_ONLY_IF_RETRY_AFTER_HEADER,
    "ON_STATUSES": OPTIONS_RETRY_ON_STATUS,
    "ON_TIMEOUT": OPTIONS_RETRY_ON_TIMEOUT,
    "HEADER": OPTIONS_RETRY_HEADER,
}

BOOL_OPTIONS = {
    OPTIONS_RETRY_ENABLED,
    OPTIONS_RETRY_ONLY_IF_RETRY_AFTER_HEADER,
    OPTIONS_RETRY_ON_TIMEOUT,
}


def _parse(key: str, raw: str) -> Any:
    value = raw.strip()
    if key in BOOL_OPTIONS:
        return value.lower() in TRUE_VALUES
    if key == OPTIONS_RETRY_ON_STATUS:
        return [status.strip() for status in value.split(",") if status.strip()]
    if key == OPTIONS_RETRY_HEADER:
        return value or None
    return value


def options_from_env(
    prefix: str = "RETRY_",
    environ: Optional[Mapping[str, str]] = None,
) -> Dict[str, Any]:
    """Collect the retry options present in the environment."""
    environ = os.environ if environ is None else environ
    options: Dict[str, Any] = {}

    for suffix, key in ENV_OPTIONS.items():
        raw = environ.get(f"{prefix}{suffix}")
        if raw is not None:
            options[key] = _parse(key, raw)

    return options


def policy_from_env(
    prefix: str = "RETRY_",
    environ: Optional[Mapping[str, str]] = None,
    **overrides: Any,
) -> RetryPolicy:
    """
    Build a ``RetryPolicy`` from the environment.

    Keyword ``overrides`` (e.g. ``callback``) are applied last.
    """
    options = options_from_env(prefix, environ)
    options.update(overrides)
    return RetryPolicy.from_options(options)
