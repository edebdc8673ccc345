"""Checkpoint store contract."""

from abc import ABC, abstractmethod
from datetime import datetime

from sheetsync.models.snapshot import Checkpoint, Snapshot


class CheckpointStore(ABC):
    """
    Persists, per source, the latest known snapshot with its fingerprint and
    write timestamp.

    Exactly one checkpoint exists per source. Implementations must make
    write_checkpoint all-or-nothing: when it raises, readers see the previous
    checkpoint (or none), never a mix of old and new fields.
    """

    @abstractmethod
    def write_checkpoint(
        self,
        source_id: str,
        snapshot: Snapshot,
        fingerprint: str,
        timestamp: datetime,
    ) -> Checkpoint:
        """
        Upsert the checkpoint of a source in a single transaction.

        Returns:
            The checkpoint as stored

        Raises:
            WriteCheckpointError: If the upsert fails
        """

    @abstractmethod
    def read_checkpoint(self, source_id: str) -> Checkpoint:
        """
        Read the checkpoint of one source.

        Raises:
            NotFoundError: If the source has no checkpoint yet
            CheckpointStoreError: If the read fails
        """

    @abstractmethod
    def read_latest_checkpoint(self) -> Checkpoint:
        """
        Read the checkpoint with the greatest timestamp.

        Ties are broken by the lexicographically smallest source id.

        Raises:
            NotFoundError: If no checkpoint exists
            CheckpointStoreError: If the read fails
        """

    @abstractmethod
    def list_checkpoints(self) -> list[Checkpoint]:
        """Return every checkpoint, ordered by source id."""

    @abstractmethod
    def reset(self) -> None:
        """Delete every checkpoint. Used to establish a clean baseline at startup."""

    def close(self) -> None:
        """Release any held resources."""
