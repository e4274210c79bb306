"""
Block registry - the admission gate

Holds at most one active block per source. Each block schedules its own
one-shot unblock at `unblock_at`; the registry never cancels timers, so an
early administrative clear leaves a timer that later finds nothing to do.
"""

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional

from ..core.clock import Scheduler
from ..core.structured_logging import log_security_event


class BlockReason(str, Enum):
    BRUTE_FORCE = "brute_force"
    SUSPICIOUS_ACTIVITY = "suspicious_activity"


@dataclass
class BlockEntry:
    source: str
    blocked_at: float
    unblock_at: float
    reason: BlockReason

    def remaining(self, now: float) -> float:
        return self.unblock_at - now


class BlockRegistry:
    def __init__(self, scheduler: Scheduler, logger: logging.Logger):
        self._scheduler = scheduler
        self._logger = logger
        self._entries: Dict[str, BlockEntry] = {}
        self._on_unblock: Dict[str, List[Callable[[], None]]] = {}
        self.block_count = 0
        self.reblock_count = 0

    def __len__(self) -> int:
        return len(self._entries)

    def entries(self) -> List[BlockEntry]:
        return list(self._entries.values())

    def get(self, source: str, now: float) -> Optional[BlockEntry]:
        """Active entry for source; an entry past unblock_at is released here."""
        entry = self._entries.get(source)
        if entry is not None and now >= entry.unblock_at:
            self._release(source, entry, "expired")
            return None
        return entry

    def is_blocked(self, source: str, now: float) -> bool:
        return self.get(source, now) is not None

    def retry_after(self, source: str, now: float) -> int:
        entry = self.get(source, now)
        if entry is None:
            return 0
        return max(1, math.ceil(entry.remaining(now)))

    def block(
        self,
        source: str,
        reason: BlockReason,
        duration: float,
        now: float,
        on_unblock: Optional[Callable[[], None]] = None,
    ) -> BlockEntry:
        """
        Block source for `duration` seconds.

        Blocking an already-blocked source returns the existing entry and
        schedules nothing; it is only counted in reblock_count. Its
        on_unblock still runs when the existing block is lifted.
        """
        if duration <= 0:
            raise ValueError("block duration must be positive")

        existing = self.get(source, now)
        if existing is not None:
            self.reblock_count += 1
            if on_unblock is not None:
                self._on_unblock.setdefault(source, []).append(on_unblock)
            log_security_event(
                self._logger, "reblock_ignored", "debug",
                source=source, reason=existing.reason.value,
            )
            return existing

        entry = BlockEntry(source=source, blocked_at=now, unblock_at=now + duration, reason=reason)
        self._entries[source] = entry
        self._on_unblock[source] = [on_unblock] if on_unblock is not None else []
        self.block_count += 1

        self._scheduler.call_later(duration, lambda: self._expire(source, entry))

        log_security_event(
            self._logger, "source_blocked", "error",
            source=source, reason=reason.value, retry_after=math.ceil(duration),
        )
        return entry

    def unblock(self, source: str) -> bool:
        """Administrative clear; True if a block was removed."""
        entry = self._entries.get(source)
        if entry is None:
            return False
        self._release(source, entry, "cleared")
        return True

    def clear(self) -> None:
        for source, entry in list(self._entries.items()):
            self._release(source, entry, "cleared")

    def _expire(self, source: str, entry: BlockEntry) -> None:
        # A stale timer must not lift a newer block for the same source
        if self._entries.get(source) is entry:
            self._release(source, entry, "expired")

    def _release(self, source: str, entry: BlockEntry, how: str) -> None:
        del self._entries[source]
        for callback in self._on_unblock.pop(source, []):
            callback()
        log_security_event(
            self._logger, f"source_unblocked_{how}", "info",
            source=source, reason=entry.reason.value,
        )
