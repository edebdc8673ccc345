"""Configuration models for the sheet synchronization service."""

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from sheetsync.models.snapshot import SourceConfig

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class SyncConfig(BaseModel):
    """Configuration for the polling cycle."""

    interval_seconds: float = Field(
        default=1.0, gt=0, description="Fixed period between cycle ticks"
    )
    cycle_timeout_seconds: float | None = Field(
        default=None,
        gt=0,
        description="Deadline for the poll phase of one cycle. None waits for all workers.",
    )
    parallel_broadcast: bool = Field(
        default=True, description="Broadcast to sources concurrently"
    )
    reset_on_start: bool = Field(
        default=True, description="Clear all checkpoints before the first cycle"
    )


class SheetsConfig(BaseModel):
    """Configuration for the Google Sheets gateway."""

    credentials_file: str = Field(
        default="credentials.json", description="Service account credentials JSON file"
    )
    base_url: str = Field(
        default="https://sheets.googleapis.com/v4/spreadsheets",
        description="Sheets API values endpoint root",
    )
    value_input_option: str = Field(
        default="RAW", description="RAW for plain text, USER_ENTERED to let Sheets parse input"
    )
    request_timeout_seconds: float = Field(
        default=30.0, gt=0, description="Deadline for each in-flight HTTP call"
    )
    max_retries: int = Field(default=3, ge=0, le=10, description="Retries per API call")
    retry_base_delay: float = Field(
        default=1.0, ge=0, description="Initial backoff delay in seconds"
    )

    @field_validator("value_input_option")
    @classmethod
    def validate_value_input_option(cls, v: str) -> str:
        """Only the two input options the Sheets API accepts are allowed."""
        normalized = v.upper()
        if normalized not in ("RAW", "USER_ENTERED"):
            raise ValueError("value_input_option must be RAW or USER_ENTERED")
        return normalized


class CheckpointStoreConfig(BaseModel):
    """Configuration for checkpoint persistence."""

    type: str = Field(default="sqlite", description="Checkpoint store backend")
    path: str = Field(default="./data/checkpoints.db", description="Database file path")


class LoggingConfig(BaseModel):
    """Log output settings passed to configure_logging."""

    log_level: str = Field(default="INFO", description="Root level name, e.g. INFO or DEBUG")
    json_logs: bool = Field(default=True, description="JSON lines instead of console output")
    log_file: str | None = Field(
        default=None, description="Rotating log file written in addition to stdout"
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        normalized = v.upper()
        if normalized not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {list(LOG_LEVELS)}")
        return normalized


class AppConfig(BaseSettings):
    """Root configuration.

    Values come from the YAML file passed in by ConfigLoader. Fields the file
    leaves out are read from the environment, e.g. APP_SYNC__INTERVAL_SECONDS=2.
    """

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    sources: list[SourceConfig] = Field(default=..., min_length=1)
    sync: SyncConfig = Field(default_factory=SyncConfig)
    sheets: SheetsConfig = Field(default_factory=SheetsConfig)
    checkpoint_store: CheckpointStoreConfig = Field(default_factory=CheckpointStoreConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator("sources")
    @classmethod
    def validate_unique_source_ids(cls, v: list[SourceConfig]) -> list[SourceConfig]:
        """Source ids key the checkpoint tables, so they must be unique."""
        ids = [source.id for source in v]
        duplicates = sorted({source_id for source_id in ids if ids.count(source_id) > 1})
        if duplicates:
            raise ValueError(f"duplicate source ids: {duplicates}")
        return v
