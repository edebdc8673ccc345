"""Change detection for freshly fetched snapshots."""

import threading
from datetime import datetime

import structlog

from sheetsync.errors import NotFoundError, WriteCheckpointError
from sheetsync.models.snapshot import Checkpoint, Snapshot, SourceConfig
from sheetsync.storage.checkpoint_store import CheckpointStore
from sheetsync.sync.fingerprint import fingerprint
from sheetsync.sync.models import ChangeDecision

log = structlog.stdlib.get_logger()


class FingerprintCache:
    """
    In-process map of source id to last persisted fingerprint.

    Advisory only: entries are written after the checkpoint store accepted a
    write, and a miss always falls through to the store.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._fingerprints: dict[str, str] = {}

    def get(self, source_id: str) -> str | None:
        with self._lock:
            return self._fingerprints.get(source_id)

    def put(self, source_id: str, value: str) -> None:
        with self._lock:
            self._fingerprints[source_id] = value

    def invalidate(self, source_id: str) -> None:
        with self._lock:
            self._fingerprints.pop(source_id, None)

    def clear(self) -> None:
        with self._lock:
            self._fingerprints.clear()


class ChangeDetector:
    """Compares fetched snapshots against stored checkpoints and persists changes."""

    def __init__(self, store: CheckpointStore, cache: FingerprintCache | None = None):
        """
        Initialize the change detector.

        Args:
            store: Checkpoint store, the source of truth for fingerprints
            cache: Optional advisory fingerprint cache
        """
        self._store = store
        self._cache = cache

    def detect(
        self,
        source: SourceConfig,
        snapshot: Snapshot,
        canonical: Checkpoint | None = None,
    ) -> ChangeDecision:
        """
        Decide whether a fetched snapshot differs from the source's checkpoint.

        A source is changed when it has no checkpoint or when its stored
        fingerprint differs from the fresh one. When the fresh content equals
        the canonical checkpoint of the previous cycle, the source only
        received the last broadcast, and the decision carries the canonical
        timestamp so the echo cannot outrank the original change.

        Args:
            source: Source that was polled
            snapshot: Content just fetched from the source
            canonical: Canonical checkpoint as of the end of the previous cycle

        Returns:
            ChangeDecision for the source

        Raises:
            CheckpointStoreError: If the stored checkpoint cannot be read
        """
        current = fingerprint(snapshot)

        if self._cache is not None and self._cache.get(source.id) == current:
            return ChangeDecision(
                source=source,
                snapshot=snapshot,
                fingerprint=current,
                previous_fingerprint=current,
                changed=False,
            )

        try:
            previous: str | None = self._store.read_checkpoint(source.id).fingerprint
        except NotFoundError:
            previous = None

        if previous == current:
            if self._cache is not None:
                self._cache.put(source.id, current)
            return ChangeDecision(
                source=source,
                snapshot=snapshot,
                fingerprint=current,
                previous_fingerprint=previous,
                changed=False,
            )

        adopted = None
        if canonical is not None and canonical.fingerprint == current:
            adopted = canonical.timestamp

        log.info(
            "change_detected",
            source_id=source.id,
            first_seen=previous is None,
            echo_of=canonical.source_id if adopted else None,
            fingerprint=current,
        )
        return ChangeDecision(
            source=source,
            snapshot=snapshot,
            fingerprint=current,
            previous_fingerprint=previous,
            changed=True,
            adopted_timestamp=adopted,
        )

    def persist(self, decision: ChangeDecision, timestamp: datetime) -> Checkpoint:
        """
        Write the checkpoint for a changed source.

        Args:
            decision: A decision with changed=True
            timestamp: Time of the change; replaced by the adopted timestamp for echoes

        Returns:
            The stored checkpoint

        Raises:
            WriteCheckpointError: If the store rejects the write
        """
        source_id = decision.source.id
        try:
            checkpoint = self._store.write_checkpoint(
                source_id,
                decision.snapshot,
                decision.fingerprint,
                decision.adopted_timestamp or timestamp,
            )
        except WriteCheckpointError:
            if self._cache is not None:
                self._cache.invalidate(source_id)
            raise

        if self._cache is not None:
            self._cache.put(source_id, decision.fingerprint)

        log.info(
            "checkpoint_updated",
            source_id=source_id,
            timestamp=checkpoint.timestamp.isoformat(),
        )
        return checkpoint
