"""Tests for YAML configuration loading and validation warnings."""

from pathlib import Path

import pytest
import yaml

from sheetsync.errors import ConfigurationError
from sheetsync.utils.config_loader import ConfigLoader, expand_env_references

REPO_CONFIG_DIR = Path(__file__).resolve().parent.parent / "config"


def _write_config(path: Path, data) -> str:
    path.write_text(yaml.safe_dump(data))
    return str(path)


def _base_config(**overrides) -> dict:
    config = {"sources": [{"id": "sheet-a"}, {"id": "sheet-b"}]}
    config.update(overrides)
    return config


def test_shipped_default_config_loads(monkeypatch):
    monkeypatch.setenv("SHEET_ID_A", "id-a")
    monkeypatch.setenv("SHEET_ID_B", "id-b")
    monkeypatch.setenv("SHEET_ID_C", "id-c")

    loader = ConfigLoader()
    config = loader.load_config(str(REPO_CONFIG_DIR / "default.yaml"))

    assert [s.id for s in config.sources] == ["id-a", "id-b", "id-c"]
    assert config.sync.interval_seconds == 1.0
    assert config.sync.cycle_timeout_seconds == 0.9
    assert config.checkpoint_store.type == "sqlite"
    assert loader.validate_config(config) == []


def test_env_var_substitution_inside_strings(tmp_path, monkeypatch):
    monkeypatch.setenv("SHEETS_DIR", "/secrets")
    path = _write_config(
        tmp_path / "config.yaml",
        _base_config(sheets={"credentials_file": "${SHEETS_DIR}/sa.json"}),
    )

    config = ConfigLoader().load_config(path)

    assert config.sheets.credentials_file == "/secrets/sa.json"


def test_missing_env_var_raises(tmp_path, monkeypatch):
    monkeypatch.delenv("UNSET_SHEET_ID", raising=False)
    path = _write_config(tmp_path / "config.yaml", {"sources": [{"id": "${UNSET_SHEET_ID}"}]})

    with pytest.raises(ConfigurationError, match="UNSET_SHEET_ID"):
        ConfigLoader().load_config(path)


def test_missing_file_raises(tmp_path):
    with pytest.raises(ConfigurationError, match="not found"):
        ConfigLoader().load_config(str(tmp_path / "absent.yaml"))


def test_empty_file_raises(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("")

    with pytest.raises(ConfigurationError, match="empty"):
        ConfigLoader().load_config(str(path))


def test_non_mapping_root_raises(tmp_path):
    path = tmp_path / "list.yaml"
    path.write_text("- a\n- b\n")

    with pytest.raises(ConfigurationError, match="mapping"):
        ConfigLoader().load_config(str(path))


def test_malformed_yaml_raises(tmp_path):
    path = tmp_path / "broken.yaml"
    path.write_text("sources: [unclosed\n")

    with pytest.raises(ConfigurationError, match="parse"):
        ConfigLoader().load_config(str(path))


def test_invalid_values_raise_configuration_error(tmp_path):
    path = _write_config(tmp_path / "config.yaml", _base_config(sync={"interval_seconds": 0}))

    with pytest.raises(ConfigurationError, match="validation failed"):
        ConfigLoader().load_config(path)


def test_environment_specific_file_preferred(tmp_path, monkeypatch):
    _write_config(tmp_path / "default.yaml", {"sources": [{"id": "default"}]})
    _write_config(tmp_path / "staging.yaml", {"sources": [{"id": "staging"}]})
    monkeypatch.setenv("APP_CONFIG_DIR", str(tmp_path))
    monkeypatch.setenv("APP_ENV", "staging")

    config = ConfigLoader().load_config()

    assert config.sources[0].id == "staging"


def test_falls_back_to_default_file(tmp_path, monkeypatch):
    _write_config(tmp_path / "default.yaml", {"sources": [{"id": "default"}]})
    monkeypatch.setenv("APP_CONFIG_DIR", str(tmp_path))
    monkeypatch.setenv("APP_ENV", "production")

    config = ConfigLoader().load_config()

    assert config.sources[0].id == "default"


def test_no_config_dir_raises(tmp_path, monkeypatch):
    monkeypatch.setenv("APP_CONFIG_DIR", str(tmp_path / "nowhere"))

    with pytest.raises(ConfigurationError, match="default.yaml"):
        ConfigLoader().load_config()


def test_validate_config_warnings(tmp_path):
    path = _write_config(
        tmp_path / "config.yaml",
        {
            "sources": [{"id": "only"}],
            "sync": {"interval_seconds": 1.0, "cycle_timeout_seconds": 2.0},
            "sheets": {"request_timeout_seconds": 5.0},
            "checkpoint_store": {"type": "mysql"},
        },
    )
    loader = ConfigLoader()

    warnings = loader.validate_config(loader.load_config(path))

    assert len(warnings) == 4
    assert any("cycle_timeout_seconds" in w and "interval_seconds" in w for w in warnings)
    assert any("request_timeout_seconds" in w for w in warnings)
    assert any("mysql" in w for w in warnings)
    assert any("one source" in w for w in warnings)


def test_expand_env_references_in_nested_values(monkeypatch):
    monkeypatch.setenv("SHEET_HOST", "sheets.example.test")
    monkeypatch.setenv("SHEET_VERSION", "v4")

    expanded = expand_env_references(
        {"sheets": {"base_url": "https://${SHEET_HOST}/${SHEET_VERSION}"}, "ids": ["${SHEET_VERSION}", 3]}
    )

    assert expanded == {"sheets": {"base_url": "https://sheets.example.test/v4"}, "ids": ["v4", 3]}


def test_explicit_config_dir_and_env(tmp_path):
    _write_config(tmp_path / "ci.yaml", {"sources": [{"id": "ci"}]})

    config = ConfigLoader(config_dir=tmp_path, env="ci").load_config()

    assert config.sources[0].id == "ci"
