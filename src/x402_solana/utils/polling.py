"""
Bounded polling helper.

Repeatedly fetches a value at a fixed interval until a predicate accepts it
or a wall-clock deadline passes. The caller receives the last observed value
either way, so a timeout is a result rather than an exception.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, Optional, TypeVar

T = TypeVar("T")

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PollResult(Generic[T]):
    """Terminal state of a poll"""

    value: Optional[T]
    done: bool
    attempts: int
    elapsed: float

    @property
    def timed_out(self) -> bool:
        return not self.done


async def poll_until(
    fetch: Callable[[], Awaitable[Optional[T]]],
    is_done: Callable[[Optional[T]], bool],
    *,
    interval: float,
    timeout: float,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> PollResult[T]:
    """
    Poll ``fetch`` until ``is_done`` accepts its result or ``timeout`` elapses.

    Errors raised by ``fetch`` are logged and count as an empty observation;
    the previous value is kept.

    Args:
        fetch: Coroutine factory returning the current observation
        is_done: Predicate marking an observation as terminal
        interval: Seconds to wait between attempts
        timeout: Overall bound in seconds
        clock: Monotonic clock, injectable for tests
        sleep: Async sleep, injectable for tests

    Returns:
        PollResult with the last observed value
    """
    start = clock()
    attempts = 0
    last: Optional[T] = None

    while True:
        attempts += 1
        try:
            value = await fetch()
        except Exception as e:
            logger.warning("Poll attempt %d failed: %s", attempts, e)
        else:
            if value is not None:
                last = value
            if is_done(value):
                return PollResult(value=last, done=True, attempts=attempts, elapsed=clock() - start)

        if clock() - start >= timeout:
            return PollResult(value=last, done=False, attempts=attempts, elapsed=clock() - start)
        await sleep(interval)
