"""
Configuration for pipe sinks.

Sources, in order of precedence:
1. An explicit config file (YAML or JSON)
2. The PIPE_SINK_CONFIG environment variable
3. ./pipe_sink.yaml in the current directory or any parent
4. PIPE_SINK_* environment variables

Environment Variables:
    PIPE_SINK_CONFIG: Path to a config file
    PIPE_SINK_RECORD_SIZE: Record size in bytes
    PIPE_SINK_COMMAND: Shell command fed with the records
    PIPE_SINK_UNBUFFERED: Flush after every write (1/true/yes)
    PIPE_SINK_BUFFER_SIZE: Writer buffer size in bytes
    PIPE_SINK_SHELL: Shell used to run the command
"""

import io
import json
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import yaml

from pipe_sink.process_pipe import DEFAULT_SHELL

CONFIG_FILENAME = "pipe_sink.yaml"

_TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass
class PipeSinkConfig:
    """Configuration for a PipeSink."""
    record_size: int = 1  # Bytes per record
    command: str = ""  # Passed verbatim to sh -c
    unbuffered: bool = False
    buffer_size: int = io.DEFAULT_BUFFER_SIZE
    shell: str = DEFAULT_SHELL

    def validate(self) -> None:
        """
        Check the values a sink cannot start without.

        Raises:
            ValueError: A value is out of range or missing
        """
        if isinstance(self.record_size, bool) or not isinstance(self.record_size, int):
            raise ValueError(f"record_size must be an integer, got {self.record_size!r}")
        if self.record_size <= 0:
            raise ValueError(f"record_size must be positive, got {self.record_size}")
        if not isinstance(self.command, str) or not self.command:
            raise ValueError("command must be a non-empty string")
        if self.buffer_size <= 0:
            raise ValueError(f"buffer_size must be positive, got {self.buffer_size}")

    @classmethod
    def from_env(cls) -> "PipeSinkConfig":
        """Create config from environment variables."""
        return cls(
            record_size=int(os.environ.get("PIPE_SINK_RECORD_SIZE", "1")),
            command=os.environ.get("PIPE_SINK_COMMAND", ""),
            unbuffered=_parse_bool(os.environ.get("PIPE_SINK_UNBUFFERED", "")),
            buffer_size=int(
                os.environ.get("PIPE_SINK_BUFFER_SIZE", str(io.DEFAULT_BUFFER_SIZE))
            ),
            shell=os.environ.get("PIPE_SINK_SHELL", DEFAULT_SHELL),
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PipeSinkConfig":
        """
        Build a config from a mapping.

        Settings may sit at the top level or under a ``sink`` key.
        Unknown keys are ignored.
        """
        section = data.get("sink", data) if data else {}
        known = {f.name for f in fields(cls)}
        values: Dict[str, Any] = {k: v for k, v in section.items() if k in known}
        if "unbuffered" in values and isinstance(values["unbuffered"], str):
            values["unbuffered"] = _parse_bool(values["unbuffered"])
        for key in ("record_size", "buffer_size"):
            if key in values and isinstance(values[key], str):
                values[key] = int(values[key])
        return cls(**values)


def load_config(config_path: Optional[Union[str, Path]] = None) -> PipeSinkConfig:
    """
    Load sink configuration.

    Search order:
    1. Provided config_path
    2. PIPE_SINK_CONFIG environment variable
    3. ./pipe_sink.yaml in current directory
    4. pipe_sink.yaml in parent directories (walk up the tree)

    Args:
        config_path: Optional explicit path to config file

    Returns:
        PipeSinkConfig instance; environment defaults if no file is found

    Raises:
        FileNotFoundError: An explicit or PIPE_SINK_CONFIG path does not exist
    """
    if config_path:
        return _load_from_path(Path(config_path))

    env_path = os.environ.get("PIPE_SINK_CONFIG")
    if env_path:
        return _load_from_path(Path(env_path))

    current = Path.cwd()
    while True:
        config_file = current / CONFIG_FILENAME
        if config_file.exists():
            return _load_from_path(config_file)

        # Stop at filesystem root
        if current == current.parent:
            break
        current = current.parent

    return PipeSinkConfig.from_env()


def _load_from_path(path: Path) -> PipeSinkConfig:
    """Load config from a specific path"""
    with open(path, "r", encoding="utf-8") as f:
        if path.suffix == ".json":
            data = json.load(f)
        else:
            data = yaml.safe_load(f)
    return PipeSinkConfig.from_dict(data or {})


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in _TRUE_VALUES
