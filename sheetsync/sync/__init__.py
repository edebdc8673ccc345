"""Synchronization components for mirroring sources."""

from sheetsync.sync.broadcaster import Broadcaster
from sheetsync.sync.canonical_selector import select_canonical
from sheetsync.sync.change_detector import ChangeDetector, FingerprintCache
from sheetsync.sync.fingerprint import FingerprintError, fingerprint
from sheetsync.sync.models import BroadcastResult, ChangeDecision, CycleReport
from sheetsync.sync.scheduler import CycleScheduler
from sheetsync.sync.sync_coordinator import SyncCoordinator

__all__ = [
    "BroadcastResult",
    "Broadcaster",
    "ChangeDecision",
    "ChangeDetector",
    "CycleReport",
    "CycleScheduler",
    "FingerprintCache",
    "FingerprintError",
    "SyncCoordinator",
    "fingerprint",
    "select_canonical",
]
