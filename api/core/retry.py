"""
Fixed-delay retry for operations that can fail transiently.

Only errors the caller classifies as transient are retried. Everything else
propagates on the first failure.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

T = TypeVar("T")

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    attempts: int
    delay_s: float

    def __post_init__(self) -> None:
        if self.attempts < 1:
            raise ValueError("RetryPolicy.attempts must be >= 1.")
        if self.delay_s < 0:
            raise ValueError("RetryPolicy.delay_s must be >= 0.")


# Bootstrap may race a slow-starting database, steady-state calls should not wait long.
INIT_POLICY = RetryPolicy(attempts=10, delay_s=1.0)
QUERY_POLICY = RetryPolicy(attempts=3, delay_s=1.0)


async def run_with_retry(
    operation: Callable[[], Awaitable[T]],
    *,
    policy: RetryPolicy,
    is_transient: Callable[[BaseException], bool],
    sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
) -> T:
    """
    Await `operation()` up to `policy.attempts` times.

    A transient failure on the last attempt is re-raised unchanged.
    """
    for attempt in range(1, policy.attempts + 1):
        try:
            return await operation()
        except Exception as exc:
            if not is_transient(exc) or attempt == policy.attempts:
                raise
            logger.warning(
                "Transient failure (attempt %d/%d), retrying in %.1fs: %s",
                attempt,
                policy.attempts,
                policy.delay_s,
                exc,
            )
            await sleep(policy.delay_s)

    raise AssertionError("unreachable")
