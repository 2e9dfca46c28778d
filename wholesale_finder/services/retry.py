# wholesale_finder/services/retry.py

"""Retry with exponential backoff, plus the shared randomized delays."""

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from typing import TypeVar

from wholesale_finder.config.settings import Settings

logger = logging.getLogger("wholesale_finder.retry")

T = TypeVar("T")


async def pause(seconds: float) -> None:
    """Suspend the current task; every artificial delay goes through here."""
    await asyncio.sleep(seconds)


async def random_delay(min_seconds: float, max_seconds: float) -> float:
    """Sleep for a uniformly random duration and return it."""
    delay = random.uniform(min_seconds, max_seconds)
    await pause(delay)
    return delay


def backoff_delay(
    attempt: int,
    base_delay: float,
    max_jitter: float,
) -> float:
    """Delay before retry number ``attempt + 1`` (attempt is 0-based)."""
    return base_delay * (2 ** attempt) + random.uniform(0, max_jitter)


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int | None = None,
    base_delay: float | None = None,
    *,
    max_jitter: float | None = None,
    retry_on: tuple[type[BaseException], ...] = (Exception,),
    label: str = "operation",
) -> T:
    """Run ``operation`` until it succeeds or ``max_attempts`` is spent.

    Between attempts waits ``base_delay * 2**attempt + jitter`` seconds.
    Exceptions outside ``retry_on`` propagate immediately; after the final
    attempt the last error is re-raised unchanged.
    """
    attempts = max_attempts if max_attempts is not None else Settings.MAX_RETRIES
    delay_base = (
        base_delay if base_delay is not None else Settings.RETRY_BASE_DELAY
    )
    jitter = (
        max_jitter if max_jitter is not None else Settings.RETRY_MAX_JITTER
    )
    if attempts < 1:
        msg = f"max_attempts must be >= 1, got {attempts}"
        raise ValueError(msg)

    for attempt in range(attempts):
        try:
            return await operation()
        except retry_on as exc:
            if attempt + 1 >= attempts:
                logger.error(
                    "%s failed after %d attempt(s): %s",
                    label,
                    attempts,
                    exc,
                )
                raise
            delay = backoff_delay(attempt, delay_base, jitter)
            logger.warning(
                "%s failed on attempt %d/%d (%s), retrying in %.2fs",
                label,
                attempt + 1,
                attempts,
                exc,
                delay,
            )
            await pause(delay)

    # Unreachable: the loop either returns or raises.
    msg = f"{label} exhausted retries without an outcome"
    raise RuntimeError(msg)
