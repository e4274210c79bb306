"""
Protection state store

One instance per process, built explicitly and handed to the middleware.
All maps are mutated synchronously inside a single event-loop turn, which is
what makes them safe without locks; a multi-threaded host would need to
guard every access.
"""

import logging
from typing import Optional

from ..core.clock import Clock, LoopScheduler, Scheduler, SystemClock
from ..core.config import ProtectionSettings
from ..core.logger import security_logger
from .attempt_tracker import AttemptTracker
from .block_registry import BlockRegistry
from .classifier import RequestClassifier
from .cleanup import CleanupScheduler
from .signatures import SignatureTable
from .stats import ProtectionSnapshot, StatsReporter
from .suspicion_ledger import SuspicionLedger


class ProtectionState:
    def __init__(
        self,
        settings: Optional[ProtectionSettings] = None,
        clock: Optional[Clock] = None,
        scheduler: Optional[Scheduler] = None,
        logger: Optional[logging.Logger] = None,
        table: Optional[SignatureTable] = None,
    ):
        self.settings = settings or ProtectionSettings()
        self.clock = clock or SystemClock()
        self.scheduler = scheduler or LoopScheduler()
        self.logger = logger or security_logger

        s = self.settings
        self.registry = BlockRegistry(self.scheduler, self.logger)
        self.brute_force = AttemptTracker(s.max_attempts, s.window_seconds, name="brute_force")
        self.enumeration = AttemptTracker(
            s.enumeration_max_attempts, s.enumeration_window_seconds, name="enumeration"
        )
        self.classifier = RequestClassifier(table)
        self.ledger = SuspicionLedger(
            self.registry, self.logger,
            block_threshold=s.block_threshold,
            block_duration_seconds=s.block_duration_seconds,
        )
        trackers = (self.brute_force, self.enumeration)
        self.cleanup = CleanupScheduler(
            trackers, self.ledger, self.registry, self.clock, self.scheduler, self.logger,
            max_age_seconds=s.max_age_seconds,
            interval_seconds=s.cleanup_interval_seconds,
        )
        self.stats = StatsReporter(trackers, self.ledger, self.registry, top_n=s.top_n)

    def now(self) -> float:
        return self.clock.now()

    def snapshot(self) -> ProtectionSnapshot:
        return self.stats.snapshot()

    def unblock(self, source: str) -> bool:
        return self.registry.unblock(source)

    def reset(self) -> None:
        """Drop all counters, suspicion records and blocks."""
        self.registry.clear()
        self.brute_force.clear()
        self.enumeration.clear()
        self.ledger.clear()
