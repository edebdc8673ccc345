"""YAML configuration loading for the sheet synchronization service.

Resolution order for the file: an explicit path, then
``$APP_CONFIG_DIR/$APP_ENV.yaml``, then ``$APP_CONFIG_DIR/default.yaml``
(``APP_CONFIG_DIR`` defaults to ``./config``). ``${VAR}`` references in any
string value are replaced from the environment before validation.
"""

import os
import re
from pathlib import Path
from typing import Any

import structlog
import yaml
from pydantic import ValidationError

from sheetsync.errors import ConfigurationError
from sheetsync.models.config import AppConfig

log = structlog.stdlib.get_logger()

SUPPORTED_STORES = ("sqlite",)

ENV_REFERENCE = re.compile(r"\$\{([^}]+)\}")


def expand_env_references(value: Any) -> Any:
    """
    Replace ``${VAR}`` in every string nested in value.

    Raises:
        ConfigurationError: If a referenced variable is not set
    """
    if isinstance(value, dict):
        return {key: expand_env_references(item) for key, item in value.items()}
    if isinstance(value, list):
        return [expand_env_references(item) for item in value]
    if not isinstance(value, str):
        return value

    def lookup(match: re.Match) -> str:
        name = match.group(1)
        resolved = os.environ.get(name)
        if resolved is None:
            raise ConfigurationError(
                f"Required environment variable not set: {name}. "
                f"Export {name} before starting the service."
            )
        return resolved

    return ENV_REFERENCE.sub(lookup, value)


class ConfigLoader:
    """Reads the YAML configuration and validates it into an AppConfig."""

    def __init__(self, config_dir: str | Path | None = None, env: str | None = None):
        """
        Args:
            config_dir: Directory searched when no explicit path is given
            env: Environment name selecting <env>.yaml in config_dir
        """
        self.config_dir = Path(config_dir or os.getenv("APP_CONFIG_DIR") or Path.cwd() / "config")
        self.env = env or os.getenv("APP_ENV", "default")

    def load_config(self, config_path: str | None = None) -> AppConfig:
        """Load, expand and validate the configuration.

        Args:
            config_path: YAML file to load. If None, the file is picked from config_dir.

        Returns:
            AppConfig: Validated application configuration

        Raises:
            ConfigurationError: If the file is missing, unreadable or invalid
        """
        path = Path(config_path) if config_path else self._resolve_path()
        log.info("loading_configuration", config_path=str(path))

        raw = expand_env_references(self._read_mapping(path))
        try:
            config = AppConfig(**raw)
        except ValidationError as e:
            log.error("configuration_validation_failed", config_path=str(path), error=str(e))
            raise ConfigurationError(f"Configuration validation failed: {e}") from e

        log.info(
            "configuration_loaded_successfully",
            source_count=len(config.sources),
            interval_seconds=config.sync.interval_seconds,
        )
        return config

    def _resolve_path(self) -> Path:
        for candidate in (self.config_dir / f"{self.env}.yaml", self.config_dir / "default.yaml"):
            if candidate.exists():
                return candidate

        raise ConfigurationError(
            f"Configuration file not found in {self.config_dir}: "
            f"expected {self.env}.yaml or default.yaml"
        )

    @staticmethod
    def _read_mapping(path: Path) -> dict[str, Any]:
        try:
            data = yaml.safe_load(path.read_text())
        except FileNotFoundError as e:
            raise ConfigurationError(f"Configuration file not found: {path}") from e
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Failed to parse YAML file {path}: {e}") from e
        except OSError as e:
            raise ConfigurationError(f"Cannot read configuration file {path}: {e}") from e

        if data is None:
            raise ConfigurationError(f"Configuration file is empty: {path}")
        if not isinstance(data, dict):
            raise ConfigurationError(f"Configuration root must be a mapping: {path}")
        return data

    def validate_config(self, config: AppConfig) -> list[str]:
        """Return warnings for settings that are valid but likely mistaken.

        Args:
            config: Application configuration to check

        Returns:
            Warning messages, empty when nothing looks off
        """
        sync = config.sync
        timeout = sync.cycle_timeout_seconds
        warnings = []

        if timeout is not None and timeout >= sync.interval_seconds:
            warnings.append(
                f"cycle_timeout_seconds ({timeout}) is not shorter than "
                f"interval_seconds ({sync.interval_seconds}); overrunning cycles will skip ticks"
            )
        if timeout is not None and config.sheets.request_timeout_seconds > timeout:
            warnings.append(
                f"sheets.request_timeout_seconds ({config.sheets.request_timeout_seconds}) "
                f"exceeds cycle_timeout_seconds ({timeout})"
            )
        if config.checkpoint_store.type not in SUPPORTED_STORES:
            warnings.append(
                f"checkpoint_store.type '{config.checkpoint_store.type}' is not supported. "
                f"Supported types: {list(SUPPORTED_STORES)}"
            )
        if len(config.sources) == 1:
            warnings.append("only one source configured; nothing to mirror")

        if warnings:
            log.warning("configuration_validation_warnings", warnings=warnings)
        return warnings
