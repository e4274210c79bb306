"""
Per-source suspicion scores.

Every signature match adds one to the source's score, repeats included;
matched_categories only records which distinct categories were seen.
Reaching block_threshold moves the source into the block registry and the
ledger record is discarded.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple

from ..core.structured_logging import log_security_event
from .block_registry import BlockReason, BlockRegistry


@dataclass
class SuspicionRecord:
    source: str
    first_seen: float
    last_seen: float
    score: int = 0
    matched_categories: Set[str] = field(default_factory=set)


class SuspicionLedger:
    def __init__(
        self,
        registry: BlockRegistry,
        logger: logging.Logger,
        block_threshold: int = 3,
        block_duration_seconds: float = 3600,
    ):
        if block_threshold <= 0:
            raise ValueError("block_threshold must be positive")
        self._registry = registry
        self._logger = logger
        self.block_threshold = block_threshold
        self.block_duration_seconds = block_duration_seconds
        self._records: Dict[str, SuspicionRecord] = {}

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, source: str) -> bool:
        return source in self._records

    def get(self, source: str) -> Optional[SuspicionRecord]:
        return self._records.get(source)

    def records(self) -> List[SuspicionRecord]:
        return list(self._records.values())

    def record_match(
        self, source: str, category: str, now: float, pattern: Optional[str] = None
    ) -> Tuple[SuspicionRecord, bool]:
        """
        Add one match for source.

        Returns:
            (record, escalated) - escalated is True when this match reached
            the threshold and the source is now blocked.
        """
        record = self._records.get(source)
        if record is None:
            record = SuspicionRecord(source=source, first_seen=now, last_seen=now)
            self._records[source] = record

        record.score += 1
        record.matched_categories.add(category)
        record.last_seen = max(record.last_seen, now)

        log_security_event(
            self._logger, "suspicious_activity", "warning",
            source=source, category=category, pattern=pattern, count=record.score,
        )

        if record.score < self.block_threshold:
            return record, False

        self._registry.block(
            source, BlockReason.SUSPICIOUS_ACTIVITY, self.block_duration_seconds, now
        )
        # Superseded by the block entry
        del self._records[source]
        log_security_event(
            self._logger, "suspicion_escalated", "error",
            source=source, count=record.score,
            category=",".join(sorted(record.matched_categories)),
        )
        return record, True

    def evict_stale(self, now: float, max_age: float) -> int:
        stale = [s for s, record in self._records.items() if now - record.last_seen > max_age]
        for source in stale:
            del self._records[source]
        return len(stale)

    def clear(self) -> None:
        self._records.clear()
