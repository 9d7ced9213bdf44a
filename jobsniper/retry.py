"""Retry decorator with exponential backoff for flaky HTTP calls.

Job boards throttle and flap constantly, so every outbound call in the
adapters, the scoring oracle and the notifiers goes through :func:`retry`.
Permanent HTTP failures (4xx other than 408/429) are not worth a second
attempt and are surfaced immediately via :func:`is_permanent_http_error`.
"""
from __future__ import annotations

import functools
import logging
import random
import time
from typing import Any, Callable, Optional, Tuple, Type

import requests

logger = logging.getLogger(__name__)

_sleep = time.sleep

_TRANSIENT_STATUS = frozenset({408, 425, 429, 500, 502, 503, 504})


def is_permanent_http_error(exc: BaseException) -> bool:
    """True for HTTP errors whose status code will not change on retry."""
    if not isinstance(exc, requests.HTTPError):
        return False
    resp = exc.response
    if resp is None:
        return False
    return resp.status_code not in _TRANSIENT_STATUS


def backoff_delay(attempt: int, base_delay: float, backoff_factor: float, max_delay: float) -> float:
    return min(base_delay * (backoff_factor ** (attempt - 1)), max_delay)


def retry(
    *,
    max_attempts: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
    backoff_factor: float = 2.0,
    jitter: bool = True,
    retryable: Tuple[Type[BaseException], ...] = (requests.RequestException, OSError),
    giveup: Optional[Callable[[BaseException], bool]] = is_permanent_http_error,
) -> Callable:
    """Retry the wrapped call on *retryable* exceptions.

    ``giveup(exc)`` returning True re-raises at once without sleeping.  The
    final failure is always re-raised so callers decide whether it is fatal.
    """

    def decorator(fn: Callable) -> Callable:
        @functools.wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            for attempt in range(1, max_attempts + 1):
                try:
                    return fn(*args, **kwargs)
                except retryable as exc:
                    if giveup is not None and giveup(exc):
                        raise
                    if attempt == max_attempts:
                        logger.debug("%s gave up after %d attempts: %s", fn.__qualname__, attempt, exc)
                        raise
                    delay = backoff_delay(attempt, base_delay, backoff_factor, max_delay)
                    if jitter:
                        delay *= 0.5 + random.random()
                    logger.warning(
                        "%s attempt %d/%d failed (%s), retrying in %.1fs",
                        fn.__qualname__, attempt, max_attempts, exc, delay,
                    )
                    _sleep(delay)
            raise RuntimeError("unreachable")  # pragma: no cover

        return wrapper

    return decorator
