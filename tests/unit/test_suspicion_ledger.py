"""
Unit tests for suspicion scoring and escalation.
"""
import logging

import pytest

from request_shield.security.block_registry import BlockReason, BlockRegistry
from request_shield.security.suspicion_ledger import SuspicionLedger

SOURCE = "203.0.113.5"


@pytest.fixture
def registry(clock, test_logger):
    return BlockRegistry(clock, test_logger)


@pytest.fixture
def ledger(registry, test_logger):
    return SuspicionLedger(registry, test_logger, block_threshold=3, block_duration_seconds=3600)


class TestSuspicionLedger:
    def test_first_match_creates_record(self, ledger, clock):
        record, escalated = ledger.record_match(SOURCE, "path_traversal", clock.now())
        assert escalated is False
        assert record.score == 1
        assert record.matched_categories == {"path_traversal"}
        assert record.first_seen == record.last_seen == clock.now()

    def test_below_threshold_stays_suspicious(self, ledger, registry, clock):
        ledger.record_match(SOURCE, "path_traversal", clock.now())
        clock.advance(5)
        record, escalated = ledger.record_match(SOURCE, "sql_injection", clock.now())

        assert escalated is False
        assert record.score == 2
        assert record.last_seen > record.first_seen
        assert registry.is_blocked(SOURCE, clock.now()) is False

    def test_threshold_match_blocks(self, ledger, registry, clock):
        ledger.record_match(SOURCE, "path_traversal", clock.now())
        ledger.record_match(SOURCE, "sql_injection", clock.now())
        record, escalated = ledger.record_match(SOURCE, "xss", clock.now())

        assert escalated is True
        assert record.score == 3
        entry = registry.get(SOURCE, clock.now())
        assert entry.reason is BlockReason.SUSPICIOUS_ACTIVITY
        assert entry.unblock_at - entry.blocked_at == 3600
        # Superseded by the block
        assert SOURCE not in ledger

    def test_repeated_category_still_scores(self, ledger, clock):
        ledger.record_match(SOURCE, "path_traversal", clock.now())
        record, _ = ledger.record_match(SOURCE, "path_traversal", clock.now())
        assert record.score == 2
        assert record.matched_categories == {"path_traversal"}

    def test_repeats_escalate_too(self, ledger, registry, clock):
        for _ in range(3):
            _, escalated = ledger.record_match(SOURCE, "sensitive_path", clock.now())
        assert escalated is True
        assert registry.is_blocked(SOURCE, clock.now())

    def test_sources_are_independent(self, ledger, clock):
        ledger.record_match(SOURCE, "xss", clock.now())
        ledger.record_match(SOURCE, "xss", clock.now())
        record, escalated = ledger.record_match("198.51.100.7", "xss", clock.now())
        assert escalated is False
        assert record.score == 1
        assert len(ledger) == 2

    def test_clean_after_unblock(self, ledger, registry, clock):
        for category in ("xss", "sql_injection", "path_traversal"):
            ledger.record_match(SOURCE, category, clock.now())
        clock.advance(3600)

        assert registry.is_blocked(SOURCE, clock.now()) is False
        record, escalated = ledger.record_match(SOURCE, "xss", clock.now())
        assert escalated is False
        assert record.score == 1

    def test_evict_stale(self, ledger, clock):
        ledger.record_match(SOURCE, "xss", clock.now())
        clock.advance(80_000)
        ledger.record_match("198.51.100.7", "xss", clock.now())
        clock.advance(10_000)

        assert ledger.evict_stale(clock.now(), 86_400) == 1
        assert SOURCE not in ledger
        assert "198.51.100.7" in ledger

    def test_match_is_logged(self, ledger, clock, caplog):
        with caplog.at_level(logging.DEBUG, logger="tests.protection"):
            ledger.record_match(SOURCE, "path_traversal", clock.now(), pattern=r"\.\.[/\\]")

        record = next(r for r in caplog.records if getattr(r, "event", None) == "suspicious_activity")
        assert record.source == SOURCE
        assert record.category == "path_traversal"
        assert record.count == 1
        assert record.pattern == r"\.\.[/\\]"

    def test_invalid_threshold(self, registry, test_logger):
        with pytest.raises(ValueError):
            SuspicionLedger(registry, test_logger, block_threshold=0)
