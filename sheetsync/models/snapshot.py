"""Pydantic models for sources, snapshots and checkpoints."""

from datetime import datetime, timezone
from typing import Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

CellValue = Union[str, int, float, bool, None]

# Rows of columns, order significant.
Snapshot = list[list[CellValue]]

DEFAULT_RANGE = "Sheet1!A1:D10"


class SourceConfig(BaseModel):
    """One replica taking part in synchronization."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default=..., min_length=1, description="Opaque source identifier")
    range: str = Field(
        default=DEFAULT_RANGE,
        min_length=1,
        description="A1 range descriptor that is read and written",
    )


class Checkpoint(BaseModel):
    """Latest known snapshot of a source with its fingerprint and write timestamp."""

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "source_id": "1sWkUx69XVCdWpa9N6FLv-8emYdSMSLIIZJ8QhtlCAdg",
                "snapshot": [["1", "2"], ["3", "4"]],
                "fingerprint": "0" * 64,
                "timestamp": "2024-01-15T14:30:00.000000+00:00",
            }
        },
    )

    source_id: str = Field(default=..., min_length=1, description="Owning source")
    snapshot: Snapshot = Field(default_factory=list, description="Snapshot content")
    fingerprint: str = Field(
        default=..., min_length=64, max_length=64, description="SHA-256 hex digest"
    )
    timestamp: datetime = Field(default=..., description="When the change was recorded (UTC)")

    @field_validator("timestamp")
    @classmethod
    def ensure_utc(cls, v: datetime) -> datetime:
        """Treat naive timestamps as UTC and normalize aware ones to UTC."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)
