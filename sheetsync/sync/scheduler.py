"""Fixed-interval scheduler driving synchronization cycles."""

import math
import threading
import time
from typing import Callable, Sequence

import structlog

from sheetsync.models.snapshot import SourceConfig
from sheetsync.sync.sync_coordinator import SyncCoordinator

log = structlog.stdlib.get_logger()


class CycleScheduler:
    """
    Fires one cycle per tick on the calling thread.

    Cycles never overlap. A tick that falls while a cycle is still running is
    skipped and logged rather than queued.
    """

    def __init__(
        self,
        coordinator: SyncCoordinator,
        monotonic: Callable[[], float] = time.monotonic,
    ):
        self._coordinator = coordinator
        self._monotonic = monotonic
        self._stop_event = threading.Event()
        self.skipped_ticks = 0

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()

    def stop(self) -> None:
        """Stop the loop and abort the remaining work of the running cycle."""
        if not self._stop_event.is_set():
            log.info("scheduler_stop_requested")
        self._stop_event.set()

    def run_forever(
        self,
        interval: float,
        sources: Sequence[SourceConfig],
        max_cycles: int | None = None,
    ) -> int:
        """
        Run a cycle at every tick of a fixed period until stopped.

        Args:
            interval: Tick period in seconds
            sources: Every configured source
            max_cycles: Stop after this many cycles; None runs until stop()

        Returns:
            Number of cycles run
        """
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")

        log.info(
            "scheduler_started",
            interval_seconds=interval,
            source_count=len(sources),
            max_cycles=max_cycles,
        )

        cycles = 0
        next_tick = self._monotonic()

        while not self._stop_event.is_set():
            delay = next_tick - self._monotonic()
            if delay > 0 and self._stop_event.wait(delay):
                break

            report = self._coordinator.run_cycle(sources, cancel_event=self._stop_event)
            cycles += 1
            if max_cycles is not None and cycles >= max_cycles:
                break

            next_tick += interval
            now = self._monotonic()
            # A tick landing exactly on the end of the cycle is still on time
            if next_tick < now:
                missed = math.ceil((now - next_tick) / interval)
                next_tick += missed * interval
                self.skipped_ticks += missed
                log.warning(
                    "ticks_skipped",
                    skipped=missed,
                    cycle=report.cycle_number,
                    cycle_duration_seconds=report.duration_seconds,
                    interval_seconds=interval,
                )

        log.info("scheduler_stopped", cycles=cycles, skipped_ticks=self.skipped_ticks)
        return cycles
