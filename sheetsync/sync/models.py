"""Data models for synchronization cycles."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from sheetsync.models.snapshot import Checkpoint, Snapshot, SourceConfig


class ChangeDecision(BaseModel):
    """Outcome of comparing a freshly fetched snapshot with the stored checkpoint."""

    model_config = ConfigDict(frozen=True)

    source: SourceConfig = Field(..., description="Source that was polled")
    snapshot: Snapshot = Field(default_factory=list, description="Freshly fetched content")
    fingerprint: str = Field(..., description="Fingerprint of the fetched content")
    previous_fingerprint: str | None = Field(
        default=None, description="Fingerprint on file, None when no checkpoint existed"
    )
    changed: bool = Field(..., description="True if a checkpoint write is required")
    adopted_timestamp: datetime | None = Field(
        default=None,
        description="Timestamp to persist with when the change is an echo of the last broadcast",
    )

    @property
    def is_first_seen(self) -> bool:
        """True when the source had no checkpoint yet."""
        return self.previous_fingerprint is None


class BroadcastResult(BaseModel):
    """Result of pushing the canonical snapshot to one source."""

    source_id: str = Field(..., description="Destination source")
    success: bool = Field(..., description="True if both clear and write completed")
    skipped: bool = Field(default=False, description="True if cancelled before starting")
    error: str | None = Field(default=None, description="Failure message")


class CycleReport(BaseModel):
    """Report of one poll, detect, persist, select and broadcast pass."""

    cycle_number: int = Field(..., ge=1, description="Sequence number within this process")
    start_time: datetime = Field(..., description="Cycle start timestamp")
    end_time: datetime | None = Field(default=None, description="Cycle end timestamp")
    duration_seconds: float = Field(default=0.0, ge=0.0, description="Cycle duration")
    changed_sources: list[str] = Field(
        default_factory=list, description="Sources whose checkpoint was written"
    )
    unchanged_sources: list[str] = Field(
        default_factory=list, description="Sources whose fingerprint matched"
    )
    fetch_failures: list[str] = Field(
        default_factory=list, description="Sources that could not be read"
    )
    checkpoint_failures: list[str] = Field(
        default_factory=list, description="Sources whose checkpoint write failed"
    )
    canonical: Checkpoint | None = Field(
        default=None, description="Checkpoint selected as canonical, None if none exists"
    )
    broadcast_results: list[BroadcastResult] = Field(default_factory=list)
    aborted: bool = Field(default=False, description="True if cancelled or past its deadline")
    errors: list[str] = Field(
        default_factory=list, description="Errors encountered during the cycle"
    )

    @property
    def canonical_source_id(self) -> str | None:
        return self.canonical.source_id if self.canonical else None

    @property
    def broadcast_failures(self) -> list[str]:
        return [r.source_id for r in self.broadcast_results if not r.success and not r.skipped]

    @property
    def success(self) -> bool:
        """Check if the cycle completed without errors."""
        return not self.errors and not self.aborted
