"""
Periodic eviction of stale attempt and suspicion entries.

Blocks are left alone: each one expires through its own scheduled unblock.
"""

import logging
from typing import Iterable

from ..core.clock import Clock, Scheduler
from ..core.structured_logging import log_security_event
from .attempt_tracker import AttemptTracker
from .block_registry import BlockRegistry
from .suspicion_ledger import SuspicionLedger


class CleanupScheduler:
    def __init__(
        self,
        trackers: Iterable[AttemptTracker],
        ledger: SuspicionLedger,
        registry: BlockRegistry,
        clock: Clock,
        scheduler: Scheduler,
        logger: logging.Logger,
        max_age_seconds: float = 24 * 60 * 60,
        interval_seconds: float = 60 * 60,
    ):
        self._trackers = list(trackers)
        self._ledger = ledger
        self._registry = registry
        self._clock = clock
        self._scheduler = scheduler
        self._logger = logger
        self.max_age_seconds = max_age_seconds
        self.interval_seconds = interval_seconds
        self._running = False
        self.sweeps = 0

    @property
    def running(self) -> bool:
        return self._running

    def sweep(self, now: float) -> int:
        """Evict entries idle for longer than max_age. Returns how many went."""
        evicted = sum(t.evict_stale(now, self.max_age_seconds) for t in self._trackers)
        evicted += self._ledger.evict_stale(now, self.max_age_seconds)
        self.sweeps += 1

        log_security_event(
            self._logger, "protection_cache_cleaned", "info",
            count=evicted,
            suspicious_ips=len(self._ledger),
            rate_limit_entries=sum(len(t) for t in self._trackers),
            blocked_ips=len(self._registry),
        )
        return evicted

    def start(self) -> None:
        if self._running:
            return
        self._running = True
        self._scheduler.call_later(self.interval_seconds, self._tick)

    def stop(self) -> None:
        # Already-armed tick still fires but does nothing and does not re-arm
        self._running = False

    def _tick(self) -> None:
        if not self._running:
            return
        try:
            self.sweep(self._clock.now())
        finally:
            self._scheduler.call_later(self.interval_seconds, self._tick)
