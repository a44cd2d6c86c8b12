"""Tests for receiver configuration loading."""

from pathlib import Path

import pytest

from plantrace.config import ReceiverConfig, load_config, parse_duration
from plantrace.errors import ConfigError

_YAML = """\
postgres:
  conn_str: "postgresql://svc@db:5432/app"
  init_command: "LOAD 'auto_explain'"
  pull_command: "SELECT id, plan FROM plan_trace_pull()"
  pull_interval: 1m30s
"""


@pytest.fixture(autouse=True)
def _clear_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Environment overrides must not leak in from the host."""
    for name in (
        "PLANTRACE_CONN_STR",
        "PLANTRACE_INIT_COMMAND",
        "PLANTRACE_PULL_COMMAND",
        "PLANTRACE_PULL_INTERVAL",
        "PLANTRACE_CONFIG",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    path = tmp_path / "receiver.yaml"
    path.write_text(_YAML, encoding="utf-8")
    return path


def test_load_config_from_yaml(config_file: Path) -> None:
    config = load_config(config_file)
    assert config.conn_str == "postgresql://svc@db:5432/app"
    assert config.init_command == "LOAD 'auto_explain'"
    assert config.pull_interval == 90.0
    assert config.host_name == "PostgreSQL"
    assert config.attribute_value_max_length is None


def test_env_overrides_file(config_file: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PLANTRACE_CONN_STR", "postgresql://other/db")
    monkeypatch.setenv("PLANTRACE_PULL_INTERVAL", "250ms")
    config = load_config(config_file)
    assert config.conn_str == "postgresql://other/db"
    assert config.pull_interval == pytest.approx(0.25)


def test_config_path_from_env(config_file: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PLANTRACE_CONFIG", str(config_file))
    assert load_config().pull_command.startswith("SELECT")


def test_missing_file_is_config_error(tmp_path: Path) -> None:
    with pytest.raises(ConfigError, match="not found"):
        load_config(tmp_path / "nope.yaml")


def test_missing_pull_command() -> None:
    with pytest.raises(ConfigError, match="pull_command"):
        ReceiverConfig.from_dict({"conn_str": "postgresql://x"})


def test_flat_mapping_is_accepted() -> None:
    config = ReceiverConfig.from_dict(
        {"conn_str": "postgresql://x", "pull_command": "SELECT 1, '{}'", "pull_interval": 5}
    )
    assert config.pull_interval == 5.0


def test_invalid_yaml(tmp_path: Path) -> None:
    path = tmp_path / "bad.yaml"
    path.write_text("postgres: [unclosed", encoding="utf-8")
    with pytest.raises(ConfigError, match="Invalid YAML"):
        load_config(path)


@pytest.mark.parametrize(
    ("value", "seconds"),
    [(10, 10.0), ("10s", 10.0), ("500ms", 0.5), ("1h", 3600.0), ("1m30s", 90.0), ("2.5", 2.5)],
)
def test_parse_duration(value, seconds) -> None:
    assert parse_duration(value) == pytest.approx(seconds)


@pytest.mark.parametrize("value", ["", "10x", "s", "-1s", 0, True, None, "10s junk"])
def test_parse_duration_rejects(value) -> None:
    with pytest.raises(ConfigError):
        parse_duration(value)
