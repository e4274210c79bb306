"""
Protection state machine: signatures, counters, suspicion and blocks
"""
from .attempt_tracker import AttemptRecord, AttemptTracker
from .block_registry import BlockEntry, BlockReason, BlockRegistry
from .classifier import RequestClassifier
from .cleanup import CleanupScheduler
from .errors import (
    BlockedSource,
    ClassificationError,
    OversizedRequest,
    ProtectionError,
    ThresholdExceeded,
)
from .signatures import Severity, Signature, SignatureTable
from .state import ProtectionState
from .stats import ProtectionSnapshot, StatsReporter
from .suspicion_ledger import SuspicionLedger, SuspicionRecord
