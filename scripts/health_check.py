#!/usr/bin/env python3
"""
Health check script for the sheet synchronization service.

This script checks:
- Configuration validation
- Checkpoint store accessibility and the current canonical checkpoint
- Reachability of every configured sheet
- Whether every sheet currently matches the canonical checkpoint

Run it from cron or a container probe; it only reads from the sheets.

Usage:
    python scripts/health_check.py [--config CONFIG_PATH] [--json]

Exit codes:
    0: All checks passed
    1: One or more checks failed
"""

import argparse
import json
import sys
from datetime import datetime, timezone

import structlog

from sheetsync.errors import (
    CheckpointStoreError,
    ConfigurationError,
    FatalError,
    FetchError,
    NotFoundError,
)
from sheetsync.models.config import AppConfig
from sheetsync.models.snapshot import Checkpoint
from sheetsync.providers import get_checkpoint_store, get_gateway
from sheetsync.sync.fingerprint import fingerprint
from sheetsync.utils.config_loader import ConfigLoader

log = structlog.stdlib.get_logger()

STATUS_SYMBOLS = {"pass": "✓", "fail": "✗", "warn": "⚠", "skip": "○"}


class HealthChecker:
    """Performs health checks on the gateway, the checkpoint store and the sheets."""

    def __init__(self, config_path: str | None = None):
        self.config_path = config_path
        self.config: AppConfig | None = None
        self.canonical: Checkpoint | None = None
        self.results: dict[str, dict] = {}

    def _record(self, check_name: str, status: str, message: str, **details) -> bool:
        self.results[check_name] = {"status": status, "message": message, "details": details}
        return status != "fail"

    def check_configuration(self) -> bool:
        """Check if configuration loads and validates."""
        log.info("checking_configuration")
        try:
            config_loader = ConfigLoader()
            self.config = config_loader.load_config(self.config_path)
        except ConfigurationError as e:
            return self._record("configuration", "fail", f"Configuration error: {e}")

        warnings = config_loader.validate_config(self.config)
        return self._record(
            "configuration",
            "warn" if warnings else "pass",
            "Configuration loaded successfully",
            source_count=len(self.config.sources),
            interval_seconds=self.config.sync.interval_seconds,
            warnings=warnings,
        )

    def check_checkpoint_store(self) -> bool:
        """Check that the checkpoint store opens and report the canonical checkpoint."""
        if self.config is None:
            return self._record("checkpoint_store", "skip", "Configuration not loaded")

        log.info("checking_checkpoint_store")
        try:
            store = get_checkpoint_store(self.config.checkpoint_store)
        except FatalError as e:
            return self._record("checkpoint_store", "fail", f"Checkpoint store error: {e}")

        try:
            latest = store.read_latest_checkpoint()
        except NotFoundError:
            return self._record(
                "checkpoint_store", "warn", "Checkpoint store is empty; no cycle has run yet"
            )
        except CheckpointStoreError as e:
            return self._record("checkpoint_store", "fail", f"Checkpoint store error: {e}")
        finally:
            store.close()

        self.canonical = latest
        return self._record(
            "checkpoint_store",
            "pass",
            "Checkpoint store is accessible",
            canonical_source_id=latest.source_id,
            canonical_timestamp=latest.timestamp.isoformat(),
        )

    def check_sheets(self) -> bool:
        """Check every sheet is reachable and whether it matches the canonical checkpoint."""
        if self.config is None:
            return self._record("sheets", "skip", "Configuration not loaded")

        log.info("checking_sheets", source_count=len(self.config.sources))
        try:
            gateway = get_gateway(self.config.sheets)
        except FatalError as e:
            return self._record("sheets", "fail", f"Sheets gateway error: {e}")

        canonical = self.canonical
        unreachable: list[str] = []
        diverged: list[str] = []
        try:
            for source in self.config.sources:
                try:
                    snapshot = gateway.fetch(source)
                except FetchError:
                    unreachable.append(source.id)
                    continue
                if canonical is not None and fingerprint(snapshot) != canonical.fingerprint:
                    diverged.append(source.id)
        finally:
            gateway.close()

        if unreachable:
            status, message = "fail", "Some sheets are unreachable"
        elif diverged:
            status, message = "warn", "Some sheets differ from the canonical checkpoint"
        else:
            status, message = "pass", "All sheets reachable and in sync"

        return self._record("sheets", status, message, unreachable=unreachable, diverged=diverged)

    def run_all_checks(self) -> bool:
        """Run every check in order. Returns True if none failed."""
        checks = [self.check_configuration, self.check_checkpoint_store, self.check_sheets]
        return all([check() for check in checks])

    def get_summary(self) -> dict:
        """Summarize all health check results."""
        statuses = [r["status"] for r in self.results.values()]
        return {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "overall_status": "unhealthy" if "fail" in statuses else "healthy",
            "total_checks": len(statuses),
            "passed": statuses.count("pass"),
            "failed": statuses.count("fail"),
            "warnings": statuses.count("warn"),
            "skipped": statuses.count("skip"),
            "checks": self.results,
        }


def render_summary(summary: dict) -> str:
    """Human-readable report of a health check summary."""
    lines = [
        f"sheetsync health: {summary['overall_status'].upper()} at {summary['timestamp']}",
        f"{summary['passed']} passed, {summary['failed']} failed, "
        f"{summary['warnings']} warnings, {summary['skipped']} skipped",
    ]
    for name, result in summary["checks"].items():
        symbol = STATUS_SYMBOLS.get(result["status"], "?")
        lines.append(f"{symbol} {name}: {result['message']}")
        lines.extend(f"    {key} = {value}" for key, value in result["details"].items())
    return "\n".join(lines)


def main():
    parser = argparse.ArgumentParser(description="Health check for the sheet sync service")
    parser.add_argument("--config", default=None, help="Path to configuration file")
    parser.add_argument("--json", action="store_true", help="Print the summary as JSON")
    args = parser.parse_args()

    checker = HealthChecker(config_path=args.config)
    healthy = checker.run_all_checks()
    summary = checker.get_summary()

    print(json.dumps(summary, indent=2) if args.json else render_summary(summary))
    sys.exit(0 if healthy else 1)


if __name__ == "__main__":
    main()
