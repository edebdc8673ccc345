"""
SQLite-backed checkpoint store.

Checkpoints are split over two tables keyed by source id, one holding the
snapshot blob and fingerprint and one holding the write timestamp. Both are
upserted inside one transaction so neither can be stale relative to the other.
"""

import json
import sqlite3
import threading
from datetime import datetime, timezone
from pathlib import Path

import structlog

from sheetsync.errors import CheckpointStoreError, NotFoundError, WriteCheckpointError
from sheetsync.models.snapshot import Checkpoint, Snapshot
from sheetsync.storage.checkpoint_store import CheckpointStore

log = structlog.stdlib.get_logger()

MEMORY_PATH = ":memory:"

_SELECT_CHECKPOINTS = """
    SELECT b.source_id, b.snapshot, b.fingerprint, t.written_at
    FROM checkpoint_blobs b
    JOIN checkpoint_timestamps t ON b.source_id = t.source_id
"""


def format_timestamp(timestamp: datetime) -> str:
    """Render a timestamp as fixed-width UTC ISO-8601 so text order is time order."""
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    return timestamp.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f+00:00")


class SqliteCheckpointStore(CheckpointStore):
    """
    SQLite implementation of the checkpoint store.

    One connection is shared by all poll workers of a cycle and serialized by
    a lock; each write_checkpoint call is its own transaction.
    """

    def __init__(self, db_path: str | Path, auto_init: bool = True):
        """
        Initialize the SQLite checkpoint store.

        Args:
            db_path: Path to the SQLite database file, or ":memory:"
            auto_init: Whether to create tables automatically

        Raises:
            CheckpointStoreError: If the database cannot be opened
        """
        self.db_path = str(db_path)
        self._lock = threading.RLock()
        self.conn: sqlite3.Connection | None = None
        self._connect()

        if auto_init:
            self._init_schema()

    def _connect(self) -> None:
        """Establish database connection."""
        try:
            if self.db_path != MEMORY_PATH:
                Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
            self.conn = sqlite3.connect(self.db_path, check_same_thread=False)
        except (sqlite3.Error, OSError) as e:
            raise CheckpointStoreError(f"Cannot open checkpoint store {self.db_path}: {e}") from e

        self.conn.row_factory = sqlite3.Row
        log.debug("checkpoint_store_connected", db_path=self.db_path)

    def _init_schema(self) -> None:
        """Create the blob and timestamp tables if missing."""
        with self._lock:
            try:
                with self.conn:
                    self.conn.execute("""
                        CREATE TABLE IF NOT EXISTS checkpoint_blobs (
                            source_id TEXT PRIMARY KEY,
                            snapshot TEXT NOT NULL,
                            fingerprint TEXT NOT NULL
                        )
                    """)
                    self.conn.execute("""
                        CREATE TABLE IF NOT EXISTS checkpoint_timestamps (
                            source_id TEXT PRIMARY KEY,
                            written_at TEXT NOT NULL
                        )
                    """)
            except sqlite3.Error as e:
                raise CheckpointStoreError(f"Cannot initialize checkpoint schema: {e}") from e
        log.debug("checkpoint_schema_initialized", db_path=self.db_path)

    def write_checkpoint(
        self,
        source_id: str,
        snapshot: Snapshot,
        fingerprint: str,
        timestamp: datetime,
    ) -> Checkpoint:
        written_at = format_timestamp(timestamp)
        try:
            checkpoint = Checkpoint(
                source_id=source_id,
                snapshot=snapshot,
                fingerprint=fingerprint,
                timestamp=timestamp,
            )
            payload = json.dumps(snapshot, separators=(",", ":"), ensure_ascii=False)
        except (ValueError, TypeError) as e:
            raise WriteCheckpointError(f"Invalid checkpoint for {source_id}: {e}") from e

        with self._lock:
            try:
                # Connection context manager commits both upserts or rolls both back
                with self.conn:
                    self.conn.execute(
                        """
                        INSERT INTO checkpoint_blobs (source_id, snapshot, fingerprint)
                        VALUES (?, ?, ?)
                        ON CONFLICT(source_id) DO UPDATE SET
                            snapshot = excluded.snapshot,
                            fingerprint = excluded.fingerprint
                        """,
                        (source_id, payload, fingerprint),
                    )
                    self.conn.execute(
                        """
                        INSERT INTO checkpoint_timestamps (source_id, written_at)
                        VALUES (?, ?)
                        ON CONFLICT(source_id) DO UPDATE SET
                            written_at = excluded.written_at
                        """,
                        (source_id, written_at),
                    )
            except sqlite3.Error as e:
                log.error("checkpoint_write_failed", source_id=source_id, error=str(e))
                raise WriteCheckpointError(
                    f"Failed to write checkpoint for {source_id}: {e}"
                ) from e

        log.debug(
            "checkpoint_written",
            source_id=source_id,
            fingerprint=fingerprint,
            written_at=written_at,
        )
        return checkpoint

    def read_checkpoint(self, source_id: str) -> Checkpoint:
        row = self._fetch_one(_SELECT_CHECKPOINTS + " WHERE b.source_id = ?", (source_id,))
        if row is None:
            raise NotFoundError(f"No checkpoint for source {source_id}")
        return self._row_to_checkpoint(row)

    def read_latest_checkpoint(self) -> Checkpoint:
        row = self._fetch_one(
            _SELECT_CHECKPOINTS + " ORDER BY t.written_at DESC, b.source_id ASC LIMIT 1",
            (),
        )
        if row is None:
            raise NotFoundError("No checkpoint exists yet")
        return self._row_to_checkpoint(row)

    def list_checkpoints(self) -> list[Checkpoint]:
        with self._lock:
            try:
                rows = self.conn.execute(
                    _SELECT_CHECKPOINTS + " ORDER BY b.source_id ASC"
                ).fetchall()
            except sqlite3.Error as e:
                raise CheckpointStoreError(f"Failed to list checkpoints: {e}") from e
        return [self._row_to_checkpoint(row) for row in rows]

    def reset(self) -> None:
        with self._lock:
            try:
                with self.conn:
                    self.conn.execute("DELETE FROM checkpoint_blobs")
                    self.conn.execute("DELETE FROM checkpoint_timestamps")
            except sqlite3.Error as e:
                raise CheckpointStoreError(f"Failed to reset checkpoint store: {e}") from e
        log.info("checkpoint_store_reset", db_path=self.db_path)

    def close(self) -> None:
        with self._lock:
            if self.conn is not None:
                self.conn.close()
                self.conn = None
                log.debug("checkpoint_store_closed", db_path=self.db_path)

    def _fetch_one(self, query: str, params: tuple) -> sqlite3.Row | None:
        with self._lock:
            try:
                return self.conn.execute(query, params).fetchone()
            except sqlite3.Error as e:
                raise CheckpointStoreError(f"Checkpoint query failed: {e}") from e

    def _row_to_checkpoint(self, row: sqlite3.Row) -> Checkpoint:
        try:
            return Checkpoint(
                source_id=row["source_id"],
                snapshot=json.loads(row["snapshot"]),
                fingerprint=row["fingerprint"],
                timestamp=datetime.fromisoformat(row["written_at"]),
            )
        except ValueError as e:
            raise CheckpointStoreError(
                f"Corrupt checkpoint for source {row['source_id']}: {e}"
            ) from e
