"""
Unit tests for hard-window attempt counting.
"""
import pytest

from request_shield.security.attempt_tracker import AttemptTracker
from request_shield.security.errors import ThresholdExceeded

T0 = 1_000_000.0


class TestAttemptTracker:
    def test_counts_within_window(self):
        tracker = AttemptTracker(max_attempts=5, window_seconds=900)
        for i in range(7):
            record = tracker.record_attempt("203.0.113.5:/login", T0 + i)
        assert record.count == 7
        assert record.window_start == T0
        assert record.last_attempt == T0 + 6

    def test_resets_after_window(self):
        tracker = AttemptTracker(max_attempts=5, window_seconds=900)
        for i in range(4):
            tracker.record_attempt("k", T0 + i)

        record = tracker.record_attempt("k", T0 + 901)
        assert record.count == 1
        assert record.window_start == T0 + 901

    def test_window_boundary_is_inclusive(self):
        tracker = AttemptTracker(max_attempts=5, window_seconds=900)
        tracker.record_attempt("k", T0)
        assert tracker.record_attempt("k", T0 + 900).count == 2

    def test_hard_window_allows_boundary_burst(self):
        tracker = AttemptTracker(max_attempts=5, window_seconds=900)
        tracker.check("k", T0)
        for i in range(4):
            tracker.check("k", T0 + 899 + i * 0.1)
        # Nine attempts in under two seconds, none rejected
        for i in range(5):
            record = tracker.check("k", T0 + 900.5 + i * 0.1)
        assert record.count == 5

    def test_keys_are_independent(self):
        tracker = AttemptTracker(max_attempts=5, window_seconds=900)
        tracker.record_attempt("a", T0)
        tracker.record_attempt("a", T0 + 1)
        assert tracker.record_attempt("b", T0 + 2).count == 1
        assert len(tracker) == 2

    def test_check_raises_past_limit(self):
        tracker = AttemptTracker(max_attempts=5, window_seconds=900)
        for i in range(5):
            tracker.check("k", T0 + i)

        with pytest.raises(ThresholdExceeded) as exc_info:
            tracker.check("k", T0 + 100)
        exc = exc_info.value
        assert exc.count == 6
        assert exc.limit == 5
        assert exc.retry_after == 800

    def test_remaining(self):
        tracker = AttemptTracker(max_attempts=5, window_seconds=900)
        record = tracker.record_attempt("k", T0)
        assert tracker.remaining(record) == 4
        for i in range(6):
            record = tracker.record_attempt("k", T0 + i)
        assert tracker.remaining(record) == 0

    def test_evict_stale(self):
        tracker = AttemptTracker(max_attempts=5, window_seconds=900)
        tracker.record_attempt("old", T0)
        tracker.record_attempt("fresh", T0 + 80_000)

        evicted = tracker.evict_stale(T0 + 86_401, max_age=86_400)
        assert evicted == 1
        assert "old" not in tracker
        assert "fresh" in tracker

    def test_reset(self):
        tracker = AttemptTracker(max_attempts=5, window_seconds=900)
        tracker.record_attempt("k", T0)
        assert tracker.reset("k") is True
        assert tracker.reset("k") is False
        assert tracker.get("k") is None

    def test_invalid_parameters(self):
        with pytest.raises(ValueError):
            AttemptTracker(max_attempts=0, window_seconds=900)
        with pytest.raises(ValueError):
            AttemptTracker(max_attempts=5, window_seconds=0)
