"""
Per-key attempt counters with a hard (non-sliding) window.

Crossing the window boundary discards the previous count entirely, so a
burst straddling the boundary can reach twice `max_attempts` before
rejection.
"""

import math
from dataclasses import dataclass
from typing import Dict, Optional

from .errors import ThresholdExceeded


@dataclass
class AttemptRecord:
    key: str
    count: int
    window_start: float
    last_attempt: float

    def reset_at(self, window_seconds: float) -> float:
        return self.window_start + window_seconds


class AttemptTracker:
    """
    Counts attempts per key inside a fixed window.

    Used twice: brute-force prevention keyed by "<ip>:<endpoint>" and
    enumeration throttling keyed by "enum:<ip>".
    """

    def __init__(self, max_attempts: int, window_seconds: float, name: str = "attempts"):
        if max_attempts <= 0 or window_seconds <= 0:
            raise ValueError("max_attempts and window_seconds must be positive")
        self.max_attempts = max_attempts
        self.window_seconds = window_seconds
        self.name = name
        self._records: Dict[str, AttemptRecord] = {}

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, key: str) -> bool:
        return key in self._records

    def get(self, key: str) -> Optional[AttemptRecord]:
        return self._records.get(key)

    def record_attempt(self, key: str, now: float) -> AttemptRecord:
        record = self._records.get(key)
        if record is None or now - record.window_start > self.window_seconds:
            record = AttemptRecord(key=key, count=1, window_start=now, last_attempt=now)
            self._records[key] = record
        else:
            record.count += 1
            record.last_attempt = max(record.last_attempt, now)
        return record

    def check(self, key: str, now: float) -> AttemptRecord:
        """Record an attempt; raise ThresholdExceeded once past max_attempts."""
        record = self.record_attempt(key, now)
        if record.count > self.max_attempts:
            retry_after = max(1, math.ceil(record.reset_at(self.window_seconds) - now))
            raise ThresholdExceeded(key, record.count, self.max_attempts, retry_after)
        return record

    def remaining(self, record: AttemptRecord) -> int:
        return max(0, self.max_attempts - record.count)

    def reset(self, key: str) -> bool:
        return self._records.pop(key, None) is not None

    def evict_stale(self, now: float, max_age: float) -> int:
        stale = [key for key, record in self._records.items() if now - record.last_attempt > max_age]
        for key in stale:
            del self._records[key]
        return len(stale)

    def clear(self) -> None:
        self._records.clear()
