from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Sequence, TypeVar

import structlog

logger = structlog.get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """Retry on a caller-supplied wait schedule.

    The i-th retry waits ``waits[i]`` seconds, so a schedule of N durations
    allows N + 1 attempts. Only errors accepted by ``should_retry`` are retried;
    anything else propagates from the failing attempt.
    """

    waits: Sequence[float]
    should_retry: Callable[[Exception], bool]
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep

    async def run(self, operation: Callable[[], Awaitable[T]], **log_context: object) -> T:
        for attempt, wait in enumerate(self.waits, start=1):
            try:
                return await operation()
            except Exception as exc:
                if not self.should_retry(exc):
                    raise
                logger.info(
                    "Attempt failed; retrying after wait",
                    attempt=attempt,
                    wait_seconds=wait,
                    error=str(exc),
                    **log_context,
                )
            await self.sleep(wait)
        return await operation()
