#!/usr/bin/env python3
"""
Continuous synchronization service for mirrored spreadsheets.

This script:
- Resets the checkpoint store to a clean baseline
- Polls every configured sheet at a fixed interval
- Persists the most recently changed snapshot and broadcasts it to every sheet

Runs until interrupted (Ctrl+C / SIGTERM). Startup failures exit with code 1;
failures during a cycle are logged and retried on the next tick.

Usage:
    python scripts/run_sync.py [--config CONFIG_PATH] [--once] [--no-reset]
"""

import argparse
import signal
import sys

import structlog

from sheetsync.errors import ConfigurationError, FatalError
from sheetsync.providers import get_checkpoint_store, get_gateway
from sheetsync.sync.scheduler import CycleScheduler
from sheetsync.sync.sync_coordinator import SyncCoordinator
from sheetsync.utils.config_loader import ConfigLoader
from sheetsync.utils.logging_config import configure_logging

log = structlog.stdlib.get_logger()


def run_service(
    config_path: str | None = None,
    once: bool = False,
    reset: bool | None = None,
) -> int:
    """
    Run the synchronization service.

    Args:
        config_path: Optional path to configuration file
        once: Run a single cycle and exit
        reset: Override sync.reset_on_start from the configuration

    Returns:
        Process exit code
    """
    try:
        config_loader = ConfigLoader()
        config = config_loader.load_config(config_path)
    except ConfigurationError as e:
        log.error("startup_failed", stage="configuration", error=str(e))
        return 1

    configure_logging(
        log_level=config.logging.log_level,
        json_logs=config.logging.json_logs,
        log_file=config.logging.log_file,
    )
    config_loader.validate_config(config)

    try:
        gateway = get_gateway(config.sheets)
        store = get_checkpoint_store(config.checkpoint_store)
    except FatalError as e:
        log.error("startup_failed", stage="providers", error=str(e))
        return 1

    coordinator = SyncCoordinator.from_config(config.sync, gateway, store)
    scheduler = CycleScheduler(coordinator)

    original_sigint = signal.getsignal(signal.SIGINT)
    original_sigterm = signal.getsignal(signal.SIGTERM)

    def _handle_shutdown_signal(signum, frame):
        log.info("shutdown_signal_received", signal=signum)
        scheduler.stop()

    signal.signal(signal.SIGINT, _handle_shutdown_signal)
    signal.signal(signal.SIGTERM, _handle_shutdown_signal)

    try:
        coordinator.initialize(
            config.sources,
            reset=config.sync.reset_on_start if reset is None else reset,
        )
        cycles = scheduler.run_forever(
            config.sync.interval_seconds,
            config.sources,
            max_cycles=1 if once else None,
        )
    except FatalError as e:
        log.error("startup_failed", stage="initialization", error=str(e))
        return 1
    finally:
        signal.signal(signal.SIGINT, original_sigint)
        signal.signal(signal.SIGTERM, original_sigterm)
        gateway.close()
        store.close()

    log.info("service_exited", cycles=cycles)
    return 0


def main():
    """Main entry point for the synchronization service."""
    parser = argparse.ArgumentParser(
        description="Keep a set of Google Sheets mirror-consistent"
    )
    parser.add_argument(
        "--config",
        type=str,
        help="Path to configuration file",
        default=None,
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single synchronization cycle and exit",
    )
    parser.add_argument(
        "--no-reset",
        action="store_true",
        help="Keep existing checkpoints instead of clearing them at startup",
    )

    args = parser.parse_args()

    sys.exit(
        run_service(
            config_path=args.config,
            once=args.once,
            reset=False if args.no_reset else None,
        )
    )


if __name__ == "__main__":
    main()
