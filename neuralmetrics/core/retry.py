from __future__ import annotations

import asyncio
import inspect
import random
from typing import Any, Awaitable, Callable, Iterable, Optional, TypeVar

T = TypeVar("T")


def backoff_delay(base: float, attempt: int, cap: Optional[float] = None) -> float:
    """``base * 2**attempt`` for the 0-based ``attempt``, optionally capped."""
    delay = base * 2**attempt
    return delay if cap is None else min(delay, cap)


async def retry_async(
    func: Callable[[], Awaitable[T]],
    *,
    attempts: int = 5,
    base_delay: float = 0.5,
    max_delay: float = 10.0,
    jitter: float = 0.1,
    retry_on: Iterable[type[BaseException]] = (Exception,),
    on_retry: Optional[Callable[[int, BaseException, float], Any]] = None,
) -> T:
    """Await ``func`` up to ``attempts`` times, backing off between failures.

    Only exceptions in ``retry_on`` are retried; the last one is re-raised.
    ``on_retry(attempt, exc, delay)`` may be sync or async.
    """
    if attempts < 1:
        raise ValueError("attempts must be >= 1")
    retry_on = tuple(retry_on)
    attempt = 0
    while True:
        try:
            return await func()
        except retry_on as exc:  # type: ignore[misc]
            attempt += 1
            if attempt >= attempts:
                raise
            delay = backoff_delay(base_delay, attempt - 1, max_delay)
            delay += random.uniform(0, delay * jitter)
            if on_retry is not None:
                outcome = on_retry(attempt, exc, delay)
                if inspect.isawaitable(outcome):
                    await outcome
            await asyncio.sleep(delay)
