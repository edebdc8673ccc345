"""Synchronization coordinator for running one poll and broadcast cycle."""

import enum
import threading
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Sequence

import structlog

from sheetsync.errors import (
    CheckpointStoreError,
    FatalError,
    FetchError,
    NotFoundError,
)
from sheetsync.gateway.base import SourceGateway
from sheetsync.models.config import SyncConfig
from sheetsync.models.snapshot import Checkpoint, SourceConfig
from sheetsync.storage.checkpoint_store import CheckpointStore
from sheetsync.sync.broadcaster import Broadcaster
from sheetsync.sync.canonical_selector import select_canonical
from sheetsync.sync.change_detector import ChangeDetector, FingerprintCache
from sheetsync.sync.fingerprint import FingerprintError
from sheetsync.sync.models import CycleReport

log = structlog.stdlib.get_logger()

# How often the fan-in barrier re-checks cancellation and the deadline
_FAN_IN_POLL_SECONDS = 0.05


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PollStatus(enum.Enum):
    CHANGED = "changed"
    UNCHANGED = "unchanged"
    FETCH_FAILED = "fetch_failed"
    CHECKPOINT_FAILED = "checkpoint_failed"
    ABORTED = "aborted"


@dataclass(frozen=True)
class PollOutcome:
    source_id: str
    status: PollStatus
    error: str | None = None


class SyncCoordinator:
    """Runs poll, detect, persist, select and broadcast over all sources."""

    def __init__(
        self,
        gateway: SourceGateway,
        store: CheckpointStore,
        cycle_timeout: float | None = None,
        parallel_broadcast: bool = True,
        clock: Callable[[], datetime] = utcnow,
        cache: FingerprintCache | None = None,
    ):
        """
        Initialize sync coordinator.

        Args:
            gateway: Gateway to the replicated sources
            store: Checkpoint store
            cycle_timeout: Deadline in seconds for the poll phase, None to wait for all workers
            parallel_broadcast: Push the canonical snapshot to sources concurrently
            clock: Returns the cycle timestamp, read once per cycle and recorded
                with every checkpoint that cycle changes
            cache: Advisory fingerprint cache, a fresh one if None
        """
        self._gateway = gateway
        self._store = store
        self._cycle_timeout = cycle_timeout
        self._clock = clock
        self._cache = cache if cache is not None else FingerprintCache()
        self._detector = ChangeDetector(store, self._cache)
        self._broadcaster = Broadcaster(gateway, parallel=parallel_broadcast)
        self._cycle_count = 0
        self._last_canonical: Checkpoint | None = None

        log.info(
            "sync_coordinator_initialized",
            cycle_timeout=cycle_timeout,
            parallel_broadcast=parallel_broadcast,
        )

    @classmethod
    def from_config(
        cls, config: SyncConfig, gateway: SourceGateway, store: CheckpointStore
    ) -> "SyncCoordinator":
        return cls(
            gateway=gateway,
            store=store,
            cycle_timeout=config.cycle_timeout_seconds,
            parallel_broadcast=config.parallel_broadcast,
        )

    @property
    def cycle_count(self) -> int:
        return self._cycle_count

    def initialize(self, sources: Sequence[SourceConfig], reset: bool = True) -> None:
        """
        Prepare for the first cycle.

        Clears all checkpoints (when reset is True) and checks that the
        gateway can reach the sources. Checkpoints are not written here; the
        first cycle records every source as first seen.

        Raises:
            FatalError: If the store cannot be reset or no source is reachable
        """
        log.info("initializing_sync", source_ids=[s.id for s in sources], reset=reset)

        if reset:
            try:
                self._store.reset()
            except CheckpointStoreError as e:
                log.error("checkpoint_store_unavailable", error=str(e))
                raise FatalError(f"Checkpoint store unavailable: {e}") from e

        self._cache.clear()
        self._last_canonical = None

        reachable = []
        for source in sources:
            try:
                self._gateway.check_access(source)
                reachable.append(source.id)
            except FetchError as e:
                log.warning("source_unreachable_at_startup", source_id=source.id, error=str(e))

        if not reachable:
            raise FatalError("No source is reachable through the gateway")

        log.info("sync_initialized", reachable=reachable)

    def run_cycle(
        self,
        sources: Sequence[SourceConfig],
        cancel_event: threading.Event | None = None,
    ) -> CycleReport:
        """
        Run one synchronization cycle.

        This method:
        1. Polls every source on its own worker and persists changed checkpoints
        2. Waits for all workers (fan-in), honoring the cycle deadline
        3. Selects the canonical checkpoint
        4. Broadcasts its snapshot to every source

        Per-source failures are recorded in the report and never raised.

        Args:
            sources: Every configured source
            cancel_event: Optional event that aborts the rest of the cycle

        Returns:
            CycleReport describing the cycle
        """
        self._cycle_count += 1
        cycle_log = log.bind(cycle=self._cycle_count)
        started = time.monotonic()
        report = CycleReport(cycle_number=self._cycle_count, start_time=utcnow())
        cycle_log.info("cycle_started", source_count=len(sources))

        try:
            aborted = self._poll_all(sources, cancel_event, report, cycle_log)

            if aborted:
                report.aborted = True
                cycle_log.warning("cycle_aborted", changed=report.changed_sources)
            else:
                self._select_and_broadcast(sources, cancel_event, report, cycle_log)
        except Exception as e:
            report.errors.append(f"Cycle failed: {e}")
            cycle_log.exception("cycle_failed", error=str(e))

        report.end_time = utcnow()
        report.duration_seconds = time.monotonic() - started
        cycle_log.info(
            "cycle_completed",
            changed=report.changed_sources,
            fetch_failures=report.fetch_failures,
            checkpoint_failures=report.checkpoint_failures,
            canonical_source_id=report.canonical_source_id,
            broadcast_failures=report.broadcast_failures,
            aborted=report.aborted,
            duration_seconds=report.duration_seconds,
        )
        return report

    def _poll_all(
        self,
        sources: Sequence[SourceConfig],
        cancel_event: threading.Event | None,
        report: CycleReport,
        cycle_log: structlog.stdlib.BoundLogger,
    ) -> bool:
        """Fan out one worker per source and wait for all of them. Returns True if aborted."""
        if not sources:
            return False

        abort = threading.Event()
        if cancel_event is not None and cancel_event.is_set():
            abort.set()
        canonical = self._last_canonical
        # One timestamp per cycle: same-cycle changes tie and resolve by source id
        cycle_time = self._clock()
        deadline = (
            time.monotonic() + self._cycle_timeout if self._cycle_timeout is not None else None
        )

        executor = ThreadPoolExecutor(max_workers=len(sources), thread_name_prefix="poll")
        try:
            futures: list[Future] = [
                executor.submit(self._poll_source, source, canonical, cycle_time, abort)
                for source in sources
            ]
            pending = set(futures)
            while pending:
                _, pending = wait(
                    pending, timeout=_FAN_IN_POLL_SECONDS, return_when=FIRST_COMPLETED
                )
                if abort.is_set() or not pending:
                    continue
                if cancel_event is not None and cancel_event.is_set():
                    cycle_log.warning("cycle_cancel_requested", pending=len(pending))
                    abort.set()
                elif deadline is not None and time.monotonic() >= deadline:
                    cycle_log.warning(
                        "cycle_deadline_exceeded",
                        timeout_seconds=self._cycle_timeout,
                        pending=len(pending),
                    )
                    report.errors.append(
                        f"Poll phase exceeded {self._cycle_timeout}s deadline"
                    )
                    abort.set()
        finally:
            # Late workers skip persistence once abort is set and stop retrying;
            # joining them keeps cycles single-flight
            executor.shutdown(wait=True)

        for future in futures:
            self._record_outcome(future.result(), report)

        return abort.is_set()

    def _poll_source(
        self,
        source: SourceConfig,
        canonical: Checkpoint | None,
        cycle_time: datetime,
        abort: threading.Event,
    ) -> PollOutcome:
        """Fetch, detect and persist one source. Never raises."""
        try:
            snapshot = self._gateway.fetch(source, cancel_event=abort)
        except FetchError as e:
            if abort.is_set():
                log.warning("source_fetch_abandoned", source_id=source.id, error=str(e))
                return PollOutcome(source.id, PollStatus.ABORTED)
            log.warning("source_fetch_failed", source_id=source.id, error=str(e))
            return PollOutcome(source.id, PollStatus.FETCH_FAILED, str(e))

        if abort.is_set():
            return PollOutcome(source.id, PollStatus.ABORTED)

        try:
            decision = self._detector.detect(source, snapshot, canonical)
        except (CheckpointStoreError, FingerprintError) as e:
            log.error("change_detection_failed", source_id=source.id, error=str(e))
            return PollOutcome(source.id, PollStatus.CHECKPOINT_FAILED, str(e))

        if not decision.changed:
            return PollOutcome(source.id, PollStatus.UNCHANGED)

        if abort.is_set():
            log.warning("checkpoint_write_skipped_cycle_aborted", source_id=source.id)
            return PollOutcome(source.id, PollStatus.ABORTED)

        try:
            self._detector.persist(decision, cycle_time)
        except CheckpointStoreError as e:
            log.error("checkpoint_update_abandoned", source_id=source.id, error=str(e))
            return PollOutcome(source.id, PollStatus.CHECKPOINT_FAILED, str(e))

        return PollOutcome(source.id, PollStatus.CHANGED)

    def _record_outcome(self, outcome: PollOutcome, report: CycleReport) -> None:
        if outcome.status is PollStatus.CHANGED:
            report.changed_sources.append(outcome.source_id)
        elif outcome.status is PollStatus.UNCHANGED:
            report.unchanged_sources.append(outcome.source_id)
        elif outcome.status is PollStatus.FETCH_FAILED:
            report.fetch_failures.append(outcome.source_id)
        elif outcome.status is PollStatus.CHECKPOINT_FAILED:
            report.checkpoint_failures.append(outcome.source_id)

        if outcome.error:
            report.errors.append(f"{outcome.source_id}: {outcome.error}")

    def _select_and_broadcast(
        self,
        sources: Sequence[SourceConfig],
        cancel_event: threading.Event | None,
        report: CycleReport,
        cycle_log: structlog.stdlib.BoundLogger,
    ) -> None:
        try:
            canonical = select_canonical(self._store.list_checkpoints())
        except NotFoundError:
            cycle_log.info("broadcast_skipped_no_checkpoint")
            return
        except CheckpointStoreError as e:
            report.errors.append(f"Canonical selection failed: {e}")
            cycle_log.error("canonical_selection_failed", error=str(e))
            return

        report.canonical = canonical
        self._last_canonical = canonical
        cycle_log.info(
            "canonical_selected",
            source_id=canonical.source_id,
            timestamp=canonical.timestamp.isoformat(),
            fingerprint=canonical.fingerprint,
        )

        results = self._broadcaster.broadcast(canonical.snapshot, sources, cancel_event)
        report.broadcast_results = results
        for result in results:
            if result.error:
                report.errors.append(f"{result.source_id}: {result.error}")
