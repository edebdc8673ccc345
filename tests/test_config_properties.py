"""Property-based tests for configuration models."""

import pytest
import structlog
from hypothesis import given
from hypothesis import strategies as st
from pydantic import ValidationError

from sheetsync.models import AppConfig, LoggingConfig, SheetsConfig, SourceConfig, SyncConfig
from sheetsync.models.snapshot import DEFAULT_RANGE

log = structlog.stdlib.get_logger()


@given(st.floats(min_value=0.001, max_value=3600, allow_nan=False))
def test_positive_interval_accepted(interval: float):
    """Any positive interval is a valid tick period."""
    assert SyncConfig(interval_seconds=interval).interval_seconds == interval


@given(st.floats(max_value=0, allow_nan=False))
def test_non_positive_interval_rejected(interval: float):
    with pytest.raises(ValidationError):
        SyncConfig(interval_seconds=interval)


def test_sync_defaults():
    config = SyncConfig()

    assert config.interval_seconds == 1.0
    assert config.cycle_timeout_seconds is None
    assert config.parallel_broadcast is True
    assert config.reset_on_start is True


@given(
    st.lists(
        st.text(alphabet="abcdefghij0123456789-_", min_size=1, max_size=10),
        min_size=1,
        max_size=6,
    )
)
def test_duplicate_source_ids_rejected(ids: list[str]):
    """Source ids key checkpoints, so a config is valid only when they are unique."""
    sources = [{"id": source_id} for source_id in ids]

    if len(set(ids)) == len(ids):
        assert [s.id for s in AppConfig(sources=sources).sources] == ids
    else:
        with pytest.raises(ValidationError, match="duplicate source ids"):
            AppConfig(sources=sources)


def test_empty_source_list_rejected():
    with pytest.raises(ValidationError):
        AppConfig(sources=[])


def test_source_defaults_to_standard_range():
    source = SourceConfig(id="abc")

    assert source.range == DEFAULT_RANGE


def test_source_id_must_not_be_empty():
    with pytest.raises(ValidationError):
        SourceConfig(id="")


@pytest.mark.parametrize("option,expected", [("raw", "RAW"), ("User_Entered", "USER_ENTERED")])
def test_value_input_option_normalized(option, expected):
    assert SheetsConfig(value_input_option=option).value_input_option == expected


def test_unknown_value_input_option_rejected():
    with pytest.raises(ValidationError, match="RAW or USER_ENTERED"):
        SheetsConfig(value_input_option="FORMATTED")


def test_environment_variable_loading(monkeypatch):
    """Settings are read from APP_ prefixed variables with __ for nesting."""
    log.info("test_environment_variable_loading")
    monkeypatch.setenv("APP_SOURCES", '[{"id": "sheet-a"}, {"id": "sheet-b", "range": "Data!A1:B2"}]')
    monkeypatch.setenv("APP_SYNC__INTERVAL_SECONDS", "2.5")
    monkeypatch.setenv("APP_SHEETS__CREDENTIALS_FILE", "/secrets/sa.json")
    monkeypatch.setenv("APP_CHECKPOINT_STORE__PATH", "/var/lib/sheetsync/checkpoints.db")

    config = AppConfig()

    assert [s.id for s in config.sources] == ["sheet-a", "sheet-b"]
    assert config.sources[1].range == "Data!A1:B2"
    assert config.sync.interval_seconds == 2.5
    assert config.sheets.credentials_file == "/secrets/sa.json"
    assert config.checkpoint_store.path == "/var/lib/sheetsync/checkpoints.db"


def test_init_arguments_override_environment(monkeypatch):
    monkeypatch.setenv("APP_SOURCES", '[{"id": "from-env"}]')

    config = AppConfig(sources=[{"id": "from-file"}])

    assert [s.id for s in config.sources] == ["from-file"]


@given(st.sampled_from(["debug", "Info", "WARNING", "error", "critical"]))
def test_log_level_normalized(level: str):
    assert LoggingConfig(log_level=level).log_level == level.upper()


def test_unknown_log_level_rejected():
    with pytest.raises(ValidationError, match="log_level"):
        LoggingConfig(log_level="VERBOSE")
