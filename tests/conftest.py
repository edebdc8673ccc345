"""Shared fixtures for synchronization tests."""

import copy
import threading
from datetime import datetime, timedelta, timezone

import pytest

from sheetsync.errors import FetchError, WriteError
from sheetsync.gateway.base import SourceGateway
from sheetsync.models.snapshot import Snapshot, SourceConfig
from sheetsync.storage.sqlite_store import SqliteCheckpointStore

INITIAL_CONTENT: Snapshot = [[1, 2], [3, 4]]


class InMemoryGateway(SourceGateway):
    """Gateway over a dict of source id to snapshot, with injectable failures."""

    def __init__(self, contents: dict[str, Snapshot]):
        self._lock = threading.Lock()
        self.contents = {key: copy.deepcopy(value) for key, value in contents.items()}
        self.fail_fetch: set[str] = set()
        self.fail_write: set[str] = set()
        self.calls: list[tuple[str, str]] = []
        self.fetch_delay: dict[str, float] = {}

    def set_content(self, source_id: str, snapshot: Snapshot) -> None:
        with self._lock:
            self.contents[source_id] = copy.deepcopy(snapshot)

    def calls_for(self, operation: str) -> list[str]:
        with self._lock:
            return [source_id for op, source_id in self.calls if op == operation]

    def fetch(
        self, source: SourceConfig, cancel_event: threading.Event | None = None
    ) -> Snapshot:
        delay = self.fetch_delay.get(source.id)
        if delay:
            (cancel_event or threading.Event()).wait(delay)
        with self._lock:
            self.calls.append(("fetch", source.id))
            if source.id in self.fail_fetch:
                raise FetchError(source.id, "simulated fetch failure")
            return copy.deepcopy(self.contents.get(source.id, []))

    def clear(
        self, source: SourceConfig, cancel_event: threading.Event | None = None
    ) -> None:
        with self._lock:
            self.calls.append(("clear", source.id))
            if source.id in self.fail_write:
                raise WriteError(source.id, "simulated clear failure")
            self.contents[source.id] = []

    def write(
        self,
        source: SourceConfig,
        snapshot: Snapshot,
        cancel_event: threading.Event | None = None,
    ) -> None:
        with self._lock:
            self.calls.append(("write", source.id))
            if source.id in self.fail_write:
                raise WriteError(source.id, "simulated write failure")
            self.contents[source.id] = copy.deepcopy(snapshot)


class StepClock:
    """Deterministic clock advancing by one second per call."""

    def __init__(self, start: datetime | None = None):
        self._lock = threading.Lock()
        self.now = start or datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        with self._lock:
            self.now += timedelta(seconds=1)
            return self.now


@pytest.fixture
def sources() -> list[SourceConfig]:
    return [SourceConfig(id=source_id) for source_id in ("A", "B", "C")]


@pytest.fixture
def gateway(sources: list[SourceConfig]) -> InMemoryGateway:
    return InMemoryGateway({source.id: INITIAL_CONTENT for source in sources})


@pytest.fixture
def store(tmp_path):
    checkpoint_store = SqliteCheckpointStore(tmp_path / "checkpoints.db")
    yield checkpoint_store
    checkpoint_store.close()
