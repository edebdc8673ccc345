"""Broadcast of the canonical snapshot to every source."""

import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Sequence

import structlog

from sheetsync.errors import WriteError
from sheetsync.gateway.base import SourceGateway
from sheetsync.models.snapshot import Snapshot, SourceConfig
from sheetsync.sync.models import BroadcastResult

log = structlog.stdlib.get_logger()


class Broadcaster:
    """Clears and rewrites every source with the canonical snapshot."""

    def __init__(self, gateway: SourceGateway, parallel: bool = True):
        """
        Initialize the broadcaster.

        Args:
            gateway: Gateway used to clear and write sources
            parallel: Push to all sources concurrently instead of one by one
        """
        self._gateway = gateway
        self._parallel = parallel

    def broadcast(
        self,
        snapshot: Snapshot,
        sources: Sequence[SourceConfig],
        cancel_event: threading.Event | None = None,
    ) -> list[BroadcastResult]:
        """
        Push a snapshot to all sources, including the one it came from.

        A failure on one source is logged and recorded and does not stop the
        others. Sources not yet started when cancel_event is set are skipped.

        Args:
            snapshot: Canonical snapshot
            sources: Every configured source
            cancel_event: Optional event that aborts the remaining pushes

        Returns:
            One BroadcastResult per source, in the order of sources
        """
        log.info("broadcast_started", source_count=len(sources), row_count=len(snapshot))

        if self._parallel and len(sources) > 1:
            with ThreadPoolExecutor(
                max_workers=len(sources), thread_name_prefix="broadcast"
            ) as executor:
                results = list(
                    executor.map(lambda s: self._push(s, snapshot, cancel_event), sources)
                )
        else:
            results = [self._push(source, snapshot, cancel_event) for source in sources]

        log.info(
            "broadcast_completed",
            succeeded=sum(1 for r in results if r.success),
            failed=[r.source_id for r in results if not r.success and not r.skipped],
            skipped=[r.source_id for r in results if r.skipped],
        )
        return results

    def _push(
        self,
        source: SourceConfig,
        snapshot: Snapshot,
        cancel_event: threading.Event | None,
    ) -> BroadcastResult:
        if cancel_event is not None and cancel_event.is_set():
            log.warning("broadcast_skipped_cancelled", source_id=source.id)
            return BroadcastResult(source_id=source.id, success=False, skipped=True)

        try:
            self._gateway.clear(source, cancel_event)
            self._gateway.write(source, snapshot, cancel_event)
        except WriteError as e:
            log.error("broadcast_to_source_failed", source_id=source.id, error=str(e))
            return BroadcastResult(source_id=source.id, success=False, error=str(e))

        log.debug("broadcast_to_source_succeeded", source_id=source.id)
        return BroadcastResult(source_id=source.id, success=True)
