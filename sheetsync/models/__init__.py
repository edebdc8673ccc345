"""Data models for the sheet synchronization service."""

from sheetsync.models.config import (
    AppConfig,
    CheckpointStoreConfig,
    LoggingConfig,
    SheetsConfig,
    SyncConfig,
)
from sheetsync.models.snapshot import (
    DEFAULT_RANGE,
    CellValue,
    Checkpoint,
    Snapshot,
    SourceConfig,
)

__all__ = [
    "AppConfig",
    "CellValue",
    "Checkpoint",
    "CheckpointStoreConfig",
    "DEFAULT_RANGE",
    "LoggingConfig",
    "SheetsConfig",
    "Snapshot",
    "SourceConfig",
    "SyncConfig",
]
