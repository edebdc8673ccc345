"""Checkpoint persistence"""

from sheetsync.storage.checkpoint_store import CheckpointStore
from sheetsync.storage.sqlite_store import SqliteCheckpointStore

__all__ = ["CheckpointStore", "SqliteCheckpointStore"]
