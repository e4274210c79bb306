"""
Clock and scheduler abstractions for the protection layer

Block expiry and the cleanup sweep are deferred callbacks. Production code
runs them on the asyncio event loop; tests drive them with ManualClock.
"""

import asyncio
import heapq
import itertools
import logging
import time
from typing import Callable, List, Optional, Protocol, Tuple

logger = logging.getLogger(__name__)


class Clock(Protocol):
    def now(self) -> float:
        ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[[], None]) -> None:
        ...


class SystemClock:
    """Wall clock in epoch seconds"""

    def now(self) -> float:
        return time.time()


class LoopScheduler:
    """
    Fire-and-forget scheduler backed by the running asyncio loop.

    There is no cancellation handle: a block removed early is cleared through
    the registry, and the late timer finds nothing to remove.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    def call_later(self, delay: float, callback: Callable[[], None]) -> None:
        loop = self._loop or asyncio.get_running_loop()
        loop.call_later(max(delay, 0.0), callback)


class ManualClock:
    """
    Virtual clock that is also a scheduler.

    Time only moves through advance(); callbacks due within the advanced span
    fire in deadline order, with the clock set to each deadline as it fires.
    """

    def __init__(self, start: float = 1_700_000_000.0):
        self._now = start
        self._queue: List[Tuple[float, int, Callable[[], None]]] = []
        self._seq = itertools.count()

    def now(self) -> float:
        return self._now

    def call_later(self, delay: float, callback: Callable[[], None]) -> None:
        heapq.heappush(self._queue, (self._now + max(delay, 0.0), next(self._seq), callback))

    @property
    def pending(self) -> int:
        return len(self._queue)

    def advance(self, seconds: float) -> int:
        """Move time forward, firing due callbacks. Returns how many fired."""
        target = self._now + seconds
        fired = 0
        while self._queue and self._queue[0][0] <= target:
            deadline, _, callback = heapq.heappop(self._queue)
            self._now = max(self._now, deadline)
            callback()
            fired += 1
        self._now = target
        return fired
