"""
utils/retry.py — Retry helper for the per-step collectors.

Uses tenacity under the hood and logs each retry with structlog. Two
backoff shapes are supported:

  linear       delay * attempt            (0.4 s, 0.8 s, ...)
  exponential  delay * 2^(attempt - 1)    (0.4 s, 0.8 s, 1.6 s, ...)

Usage:
    from frequence_pipeline.utils.retry import retry_call

    payload = await retry_call(
        lambda: source.fetch(lat, lon),
        max_attempts=3,
        base_delay=0.4,
        backoff="linear",
    )
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Literal, TypeVar

import structlog
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
    wait_incrementing,
)

log = structlog.get_logger(__name__)

T = TypeVar("T")

Backoff = Literal["linear", "exponential"]


def _wait_strategy(backoff: Backoff, base_delay: float, max_delay: float):
    if backoff == "linear":
        return wait_incrementing(start=base_delay, increment=base_delay, max=max_delay)
    return wait_exponential(multiplier=base_delay, min=base_delay, max=max_delay)


async def retry_call(
    fn: Callable[[], Awaitable[T]],
    *,
    max_attempts: int = 3,
    base_delay: float = 0.4,
    max_delay: float = 30.0,
    backoff: Backoff = "linear",
    retry_on: type[Exception] | tuple[type[Exception], ...] = Exception,
    name: str | None = None,
) -> T:
    """
    Await fn() until it succeeds or max_attempts is reached.

    The last exception is re-raised unchanged once attempts are exhausted.

    Args:
        fn:           Zero-argument coroutine factory.
        max_attempts: Total attempts, including the first one.
        base_delay:   Delay unit in seconds (0 disables waiting).
        max_delay:    Cap on a single wait.
        backoff:      "linear" or "exponential".
        retry_on:     Exception type(s) that trigger a retry.
        name:         Label used in log records.
    """
    call_log = log.bind(function=name or getattr(fn, "__qualname__", "call"))
    try:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(max_attempts),
            wait=_wait_strategy(backoff, base_delay, max_delay),
            retry=retry_if_exception_type(retry_on),
            reraise=True,
        ):
            with attempt:
                attempt_num = attempt.retry_state.attempt_number
                if attempt_num > 1:
                    call_log.warning(
                        "retry_attempt",
                        attempt=attempt_num,
                        max_attempts=max_attempts,
                    )
                return await fn()
    except Exception as exc:
        call_log.error("retry_exhausted", max_attempts=max_attempts, error=str(exc))
        raise
    raise AssertionError("unreachable")  # pragma: no cover
