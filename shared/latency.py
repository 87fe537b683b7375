"""
Injectable latency strategies used to simulate network round trips.
"""

import asyncio
from typing import Awaitable, Callable

DelayStrategy = Callable[[], Awaitable[None]]


def fixed_delay(milliseconds: float) -> DelayStrategy:
    """Return a strategy that sleeps for a fixed duration.

    ``asyncio.sleep`` is a cancellation point, so an aborted request never
    leaves a sleeper behind.
    """
    if milliseconds < 0:
        raise ValueError("delay must be non-negative")

    seconds = milliseconds / 1000

    async def _delay() -> None:
        await asyncio.sleep(seconds)

    return _delay


async def no_delay() -> None:
    """Strategy that yields control once without waiting."""
    await asyncio.sleep(0)
