"""Centralized provider module for gateway and checkpoint store implementations.

This module provides factory functions for creating SourceGateway and
CheckpointStore instances. Modify these functions to swap implementations
without changing the synchronization engine.

Default implementations:
- SourceGateway: GoogleSheetsGateway (Sheets REST API, service account auth)
- CheckpointStore: SqliteCheckpointStore (local database file)
"""

import structlog

from sheetsync.errors import CheckpointStoreError, FatalError
from sheetsync.gateway.base import SourceGateway
from sheetsync.gateway.sheets_client import GoogleSheetsGateway
from sheetsync.models.config import CheckpointStoreConfig, SheetsConfig
from sheetsync.storage.checkpoint_store import CheckpointStore
from sheetsync.storage.sqlite_store import SqliteCheckpointStore

log = structlog.stdlib.get_logger()


def get_gateway(config: SheetsConfig) -> SourceGateway:
    """Get the configured source gateway implementation.

    Default: GoogleSheetsGateway authenticated with the service account file
    named in config.credentials_file.

    Args:
        config: Sheets gateway configuration

    Returns:
        SourceGateway instance

    Raises:
        FatalError: If the gateway cannot be constructed
    """
    log.info(
        "initializing_gateway",
        provider="GoogleSheets",
        credentials_file=config.credentials_file,
    )
    gateway = GoogleSheetsGateway.from_config(config)
    log.info("gateway_initialized_successfully", provider="GoogleSheets")
    return gateway


def get_checkpoint_store(config: CheckpointStoreConfig) -> CheckpointStore:
    """Get the configured checkpoint store implementation.

    Example - Swap to a server database:
        return MySqlCheckpointStore(dsn=config.path)

    Args:
        config: Checkpoint store configuration

    Returns:
        CheckpointStore instance

    Raises:
        FatalError: If the store type is unknown or the store cannot be opened
    """
    if config.type != "sqlite":
        error_msg = f"Unsupported checkpoint store type: {config.type}"
        log.error("get_checkpoint_store_failed", error=error_msg)
        raise FatalError(error_msg)

    if not config.path or not config.path.strip():
        error_msg = "checkpoint_store.path cannot be empty"
        log.error("get_checkpoint_store_failed", error=error_msg)
        raise FatalError(error_msg)

    try:
        log.info("initializing_checkpoint_store", provider="sqlite", path=config.path)
        store = SqliteCheckpointStore(config.path)
    except CheckpointStoreError as e:
        log.error(
            "get_checkpoint_store_failed",
            path=config.path,
            error=str(e),
            error_type=type(e).__name__,
        )
        raise FatalError(f"Failed to open checkpoint store at '{config.path}': {e}") from e

    log.info("checkpoint_store_initialized_successfully", path=config.path)
    return store
