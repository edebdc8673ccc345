"""Exception hierarchy for the synchronization engine.

Steady-state errors (fetch, write, checkpoint) are contained per source by the
coordinator. Only FatalError and ConfigurationError stop the process.
"""


class SheetSyncError(Exception):
    """Base exception for all synchronization failures."""


class SourceError(SheetSyncError):
    """Base for errors tied to a single source."""

    def __init__(self, source_id: str, message: str):
        super().__init__(f"[{source_id}] {message}")
        self.source_id = source_id


class FetchError(SourceError):
    """Raised when a source cannot be read (transport, auth or timeout)."""


class WriteError(SourceError):
    """Raised when a source cannot be cleared or written."""


class CheckpointStoreError(SheetSyncError):
    """Base for checkpoint persistence failures."""


class WriteCheckpointError(CheckpointStoreError):
    """Raised when a checkpoint upsert fails. No partial state is left behind."""


class NotFoundError(CheckpointStoreError):
    """Raised when a requested checkpoint does not exist."""


class FatalError(SheetSyncError):
    """Raised at startup when the gateway or the store is unusable."""


class ConfigurationError(SheetSyncError):
    """Raised when configuration is invalid or missing."""
