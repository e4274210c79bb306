"""
Read-only protection statistics
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from .attempt_tracker import AttemptTracker
from .block_registry import BlockRegistry
from .suspicion_ledger import SuspicionLedger


@dataclass
class SuspiciousSource:
    source: str
    score: int
    category_count: int


@dataclass
class ProtectionSnapshot:
    suspicious_count: int
    blocked_count: int
    attempt_entry_count: int
    reblock_count: int = 0
    top_suspicious: List[SuspiciousSource] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class StatsReporter:
    def __init__(
        self,
        trackers: Iterable[AttemptTracker],
        ledger: SuspicionLedger,
        registry: BlockRegistry,
        top_n: int = 10,
    ):
        self._trackers = list(trackers)
        self._ledger = ledger
        self._registry = registry
        self.top_n = top_n

    def snapshot(self, top_n: Optional[int] = None) -> ProtectionSnapshot:
        limit = self.top_n if top_n is None else top_n
        ranked = sorted(self._ledger.records(), key=lambda r: r.score, reverse=True)
        return ProtectionSnapshot(
            suspicious_count=len(self._ledger),
            blocked_count=len(self._registry),
            attempt_entry_count=sum(len(t) for t in self._trackers),
            reblock_count=self._registry.reblock_count,
            top_suspicious=[
                SuspiciousSource(r.source, r.score, len(r.matched_categories))
                for r in ranked[:limit]
            ],
        )
