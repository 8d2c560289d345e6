"""Async retry with exponential backoff and jitter."""
from __future__ import annotations

import asyncio
import logging
import random
from typing import Awaitable, Callable, Optional, TypeVar

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

MAX_JITTER_MS = 1000


def backoff_delay_ms(attempt: int, base_delay_ms: float) -> float:
    """Delay before retrying after the given 1-based ``attempt`` failed."""

    return base_delay_ms * 2 ** (attempt - 1) + random.uniform(0, MAX_JITTER_MS)


async def retry(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int = 3,
    base_delay_ms: float = 1000,
    should_retry: Optional[Callable[[Exception], bool]] = None,
) -> T:
    """Await ``operation`` up to ``max_attempts`` times and re-raise the last error."""

    attempts = max(1, max_attempts)
    for attempt in range(1, attempts + 1):
        try:
            return await operation()
        except Exception as exc:  # noqa: BLE001 - broad for retry wrapper
            if attempt == attempts or (should_retry is not None and not should_retry(exc)):
                raise
            delay_ms = backoff_delay_ms(attempt, base_delay_ms)
            LOGGER.debug(
                "retrying operation",
                extra={"attempt": attempt, "delay_ms": round(delay_ms), "reason": str(exc)},
            )
            await asyncio.sleep(delay_ms / 1000.0)
    raise AssertionError("unreachable")
