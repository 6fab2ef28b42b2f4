"""
Pacing for calls against a recovering or rate-limited service.

Adapted from the per-key sliding window limiter: instead of rejecting a
caller that is over the limit, the caller waits until the interval since the
previous call finished has elapsed.

Usage:
    pacer = Pacer(interval=5)
    for entry in entries:
        async with pacer:
            await replay(entry)
"""

import asyncio
import time
from typing import Awaitable, Callable, Optional

from squad_stats.utils.logger import setup_logger

logger = setup_logger(__name__)

class Pacer:
    """Keeps at least `interval` seconds between the end of one paced call
    and the start of the next."""
    
    def __init__(
        self,
        interval: float,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.interval = max(0.0, float(interval))
        self._sleep = sleep or asyncio.sleep
        self._clock = clock or time.monotonic
        self._last_finished: Optional[float] = None
    
    async def wait(self) -> float:
        """Wait for the next slot, returning the number of seconds slept."""
        if self._last_finished is None or self.interval <= 0:
            return 0.0
        remaining = self.interval - (self._clock() - self._last_finished)
        if remaining <= 0:
            return 0.0
        logger.debug(f"Pacing next call by {remaining:.2f}s")
        await self._sleep(remaining)
        return remaining
    
    def mark(self):
        """Record that a paced call just finished."""
        self._last_finished = self._clock()
    
    def reset(self):
        """Forget the previous call so the next one goes out immediately."""
        self._last_finished = None
    
    async def __aenter__(self) -> 'Pacer':
        await self.wait()
        return self
    
    async def __aexit__(self, *_: object) -> None:
        self.mark()
