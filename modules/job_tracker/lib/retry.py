"""
Exponential backoff with jitter around a single blocking operation.

    executor = RetryExecutor(max_attempts=3, base_delay=1.0)
    result = await executor.run(lambda: extractor.fetch(employer))

The operation runs in a worker thread; the wait between attempts is an
asyncio sleep so other sources keep progressing.
"""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from typing import TypeVar

from . import logging_bridge

T = TypeVar("T")

LOG = logging.getLogger(__name__)


def backoff_delay(attempt: int, base_delay: float, jitter: float) -> float:
    """Delay after failed attempt `attempt` (1-based): base * 2**(attempt-1) + jitter."""
    return base_delay * (2 ** (attempt - 1)) + jitter


class RetryExecutor:
    def __init__(
        self,
        max_attempts: int = 3,
        base_delay: float = 1.0,
        max_jitter: float = 1.0,
        *,
        sleep: Callable[[float], Awaitable[None]] | None = None,
        rand: Callable[[], float] | None = None,
        label: str = "",
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self.max_attempts = int(max_attempts)
        self.base_delay = float(base_delay)
        self.max_jitter = float(max_jitter)
        self._sleep = sleep or asyncio.sleep
        self._rand = rand or random.random
        self.label = label

    async def run(self, op: Callable[[], T]) -> T:
        """
        Call `op` until it returns or `max_attempts` calls have failed, then
        re-raise the last error. Cancellation propagates immediately.
        """
        attempt = 0
        while True:
            attempt += 1
            try:
                return await asyncio.to_thread(op)
            except Exception as e:
                if attempt >= self.max_attempts:
                    raise
                delay = backoff_delay(attempt, self.base_delay, self._rand() * self.max_jitter)
                LOG.warning(
                    "%s attempt %d/%d failed (%r); retrying in %.2fs",
                    self.label or "operation", attempt, self.max_attempts, e, delay,
                )
                logging_bridge.activity({
                    "component": "job_tracker.retry",
                    "op": "retry",
                    "label": self.label,
                    "attempt": attempt,
                    "max_attempts": self.max_attempts,
                    "delay_ms": int(delay * 1000),
                    "error": repr(e),
                })
                await self._sleep(delay)
