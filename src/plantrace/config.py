"""
Configuration for the PostgreSQL plan trace receiver.

The receiver is configured from a YAML file (default resource/config/receiver.yaml)
whose keys mirror the collector receiver block:

    postgres:
      conn_str: "postgresql://user@localhost:5432/app"
      init_command: "LOAD 'auto_explain'"
      pull_command: "SELECT id, plan FROM plan_trace_pull()"
      pull_interval: 10s

Environment variables PLANTRACE_CONN_STR, PLANTRACE_INIT_COMMAND,
PLANTRACE_PULL_COMMAND and PLANTRACE_PULL_INTERVAL override the file so the
same image can run against different databases.
"""

import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from .errors import ConfigError

# Name of the synthesized root span covering the whole query.
QUERY_SPAN_NAME = "CloudSQLQuery"
# Host name reported in the process identity of every batch.
DEFAULT_HOST_NAME = "PostgreSQL"
DEFAULT_SERVICE_NAME = "plantrace"
DEFAULT_PULL_INTERVAL_S = 10.0

_ENV_OVERRIDES = {
    "conn_str": "PLANTRACE_CONN_STR",
    "init_command": "PLANTRACE_INIT_COMMAND",
    "pull_command": "PLANTRACE_PULL_COMMAND",
    "pull_interval": "PLANTRACE_PULL_INTERVAL",
}

_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")
_DURATION_UNITS_S = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}


def get_resources_root() -> Path:
    """Return the directory holding config/receiver.yaml.

    PLANTRACE_ROOT wins; otherwise resource/ next to the project's pyproject.toml,
    falling back to resource/ in the working directory.
    """
    env_root = os.environ.get("PLANTRACE_ROOT")
    if env_root:
        return Path(env_root).resolve()
    here = Path(__file__).resolve().parent
    for candidate in here.parents:
        if (candidate / "pyproject.toml").is_file():
            return candidate / "resource"
    return Path.cwd() / "resource"


def default_config_path() -> Path:
    """Config file used when --config is not given (PLANTRACE_CONFIG wins)."""
    env_path = os.environ.get("PLANTRACE_CONFIG", "").strip()
    if env_path:
        return Path(env_path)
    return get_resources_root() / "config" / "receiver.yaml"


def load_yaml(path: Path, default: Any = None) -> Any:
    """Load a YAML mapping; return default when the file does not exist."""
    if default is None:
        default = {}
    if not path.exists():
        return default
    try:
        with path.open(encoding="utf-8") as f:
            data: Any = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    if data is None:
        return default
    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a mapping at top level")
    return data


def parse_duration(value: Any) -> float:
    """Parse a pull interval into seconds.

    Numbers are taken as seconds; strings use Go duration syntax
    ("500ms", "10s", "1m30s", "1h"). A bare numeric string is seconds too.
    """
    if isinstance(value, bool):
        raise ConfigError(f"Invalid duration: {value!r}")
    if isinstance(value, (int, float)):
        seconds = float(value)
    elif isinstance(value, str):
        text = value.strip()
        try:
            seconds = float(text)
        except ValueError:
            pos = 0
            seconds = 0.0
            for match in _DURATION_PART.finditer(text):
                if match.start() != pos:
                    break
                seconds += float(match.group(1)) * _DURATION_UNITS_S[match.group(2)]
                pos = match.end()
            if pos == 0 or pos != len(text):
                raise ConfigError(f"Invalid duration: {value!r}") from None
    else:
        raise ConfigError(f"Invalid duration: {value!r}")
    if seconds <= 0:
        raise ConfigError(f"Duration must be positive: {value!r}")
    return seconds


def _optional_positive_int(raw: Any, key: str) -> int | None:
    if raw is None:
        return None
    if isinstance(raw, bool) or not isinstance(raw, int) or raw <= 0:
        raise ConfigError(f"{key} must be a positive integer")
    return raw


@dataclass
class ReceiverConfig:
    """Opaque configuration record handed to the poll-tick driver."""

    conn_str: str
    pull_command: str
    init_command: str = ""
    pull_interval: float = DEFAULT_PULL_INTERVAL_S
    host_name: str = DEFAULT_HOST_NAME
    service_name: str = DEFAULT_SERVICE_NAME
    attribute_value_max_length: int | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ReceiverConfig":
        """Build config from a mapping (the `postgres` block or the whole file)."""
        block = data.get("postgres", data)
        if not isinstance(block, dict):
            raise ConfigError("postgres must be a mapping")
        values = dict(block)
        for key, env_name in _ENV_OVERRIDES.items():
            env_value = os.environ.get(env_name, "").strip()
            if env_value:
                values[key] = env_value

        conn_str = values.get("conn_str")
        if not isinstance(conn_str, str) or not conn_str.strip():
            raise ConfigError("conn_str is required")
        pull_command = values.get("pull_command")
        if not isinstance(pull_command, str) or not pull_command.strip():
            raise ConfigError("pull_command is required")
        init_command = values.get("init_command") or ""
        if not isinstance(init_command, str):
            raise ConfigError("init_command must be a string")
        host_name = values.get("host_name") or DEFAULT_HOST_NAME
        service_name = values.get("service_name") or DEFAULT_SERVICE_NAME
        if not isinstance(host_name, str) or not isinstance(service_name, str):
            raise ConfigError("host_name and service_name must be strings")

        return cls(
            conn_str=conn_str.strip(),
            pull_command=pull_command.strip(),
            init_command=init_command.strip(),
            pull_interval=parse_duration(values.get("pull_interval", DEFAULT_PULL_INTERVAL_S)),
            host_name=host_name,
            service_name=service_name,
            attribute_value_max_length=_optional_positive_int(
                values.get("attribute_value_max_length"), "attribute_value_max_length"
            ),
        )


def load_config(path: Path | str | None = None) -> ReceiverConfig:
    """Load receiver config from YAML, applying environment overrides."""
    config_path = Path(path) if path else default_config_path()
    if path and not config_path.exists():
        raise ConfigError(f"Config file not found: {config_path}")
    return ReceiverConfig.from_dict(load_yaml(config_path))
