"""Tests for settings loading: file keys, environment, precedence."""

import json
from pathlib import Path

import pytest

from lnprune.config.loader import camel_to_snake, convert_keys, load_settings
from lnprune.config.schema import Settings


def test_camel_and_kebab_keys_become_snake() -> None:
    assert camel_to_snake("retentionBlocks") == "retention_blocks"
    assert camel_to_snake("http-timeout") == "http_timeout"
    assert camel_to_snake("level") == "level"
    assert convert_keys({"logging": {"logFile": "x"}, "items": [{"aB": 1}]}) == {
        "logging": {"log_file": "x"},
        "items": [{"a_b": 1}],
    }


def test_missing_file_gives_defaults(tmp_path: Path) -> None:
    settings = load_settings(tmp_path / "absent.json")
    assert settings.retention_blocks == 288
    assert settings.handoff_poll_interval == 0.1
    assert settings.logging.level == "INFO"
    assert settings.logging.file is None


def test_file_values_loaded(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"retentionBlocks": 1000, "logging": {"level": "DEBUG", "file": "/tmp/lnprune.log"}}))
    settings = load_settings(path)
    assert settings.retention_blocks == 1000
    assert settings.logging.level == "DEBUG"
    assert settings.logging.file == Path("/tmp/lnprune.log")


def test_environment_variables(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("LNPRUNE_RETENTION_BLOCKS", "500")
    monkeypatch.setenv("LNPRUNE_LOGGING__LEVEL", "WARNING")
    settings = load_settings(tmp_path / "absent.json")
    assert settings.retention_blocks == 500
    assert settings.logging.level == "WARNING"


def test_file_wins_over_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Values in the file take precedence; env still fills unset fields."""
    monkeypatch.setenv("LNPRUNE_RETENTION_BLOCKS", "500")
    monkeypatch.setenv("LNPRUNE_HTTP_TIMEOUT", "5")
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"retention-blocks": 42}))
    settings = load_settings(path)
    assert settings.retention_blocks == 42
    assert settings.http_timeout == 5


@pytest.mark.parametrize(
    "content",
    ["{not json", "[1, 2]", json.dumps({"retentionBlocks": -1})],
)
def test_bad_file_names_the_path(tmp_path: Path, content: str) -> None:
    path = tmp_path / "config.json"
    path.write_text(content)
    with pytest.raises(ValueError, match="config.json"):
        load_settings(path)


def test_settings_reject_nonsense() -> None:
    with pytest.raises(ValueError):
        Settings(handoff_poll_interval=0)
