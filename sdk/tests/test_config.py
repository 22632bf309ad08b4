"""Tests for pipe_sink.config module."""

import io
import json
import os

import pytest

from pipe_sink.config import CONFIG_FILENAME, PipeSinkConfig, load_config


class TestPipeSinkConfig:
    """Tests for the PipeSinkConfig dataclass."""

    def test_defaults(self):
        config = PipeSinkConfig()
        assert config.record_size == 1
        assert config.command == ""
        assert config.unbuffered is False
        assert config.buffer_size == io.DEFAULT_BUFFER_SIZE
        assert config.shell == "/bin/sh"

    def test_validate_ok(self):
        PipeSinkConfig(record_size=4, command="cat").validate()

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"record_size": 0, "command": "cat"},
            {"record_size": -3, "command": "cat"},
            {"record_size": "4", "command": "cat"},
            {"record_size": 4, "command": ""},
            {"record_size": 4, "command": "cat", "buffer_size": 0},
        ],
    )
    def test_validate_rejects(self, kwargs):
        with pytest.raises(ValueError):
            PipeSinkConfig(**kwargs).validate()

    def test_from_env(self):
        os.environ["PIPE_SINK_RECORD_SIZE"] = "16"
        os.environ["PIPE_SINK_COMMAND"] = "cat > /dev/null"
        os.environ["PIPE_SINK_UNBUFFERED"] = "yes"
        os.environ["PIPE_SINK_BUFFER_SIZE"] = "1024"
        os.environ["PIPE_SINK_SHELL"] = "/bin/bash"

        config = PipeSinkConfig.from_env()

        assert config == PipeSinkConfig(
            record_size=16,
            command="cat > /dev/null",
            unbuffered=True,
            buffer_size=1024,
            shell="/bin/bash",
        )

    def test_from_dict_top_level(self):
        config = PipeSinkConfig.from_dict({"record_size": 8, "command": "cat", "extra": 1})
        assert config.record_size == 8
        assert config.command == "cat"

    def test_from_dict_sink_section(self):
        config = PipeSinkConfig.from_dict(
            {"sink": {"record_size": "2", "unbuffered": "true", "command": "cat"}}
        )
        assert config.record_size == 2
        assert config.unbuffered is True


class TestLoadConfig:
    """Tests for load_config()."""

    def test_explicit_yaml(self, temp_dir):
        path = temp_dir / "custom.yaml"
        path.write_text("sink:\n  record_size: 4\n  command: cat > /dev/null\n  unbuffered: true\n")

        config = load_config(path)

        assert config.record_size == 4
        assert config.command == "cat > /dev/null"
        assert config.unbuffered is True

    def test_explicit_json(self, temp_dir):
        path = temp_dir / "custom.json"
        path.write_text(json.dumps({"record_size": 12, "command": "wc -c"}))

        config = load_config(str(path))

        assert config.record_size == 12
        assert config.command == "wc -c"

    def test_missing_explicit_path(self, temp_dir):
        with pytest.raises(FileNotFoundError):
            load_config(temp_dir / "missing.yaml")

    def test_env_path(self, temp_dir):
        path = temp_dir / "env.yaml"
        path.write_text("record_size: 3\ncommand: cat\n")
        os.environ["PIPE_SINK_CONFIG"] = str(path)

        assert load_config().record_size == 3

    def test_search_parent_directories(self, temp_dir, monkeypatch):
        (temp_dir / CONFIG_FILENAME).write_text("record_size: 5\ncommand: cat\n")
        nested = temp_dir / "a" / "b"
        nested.mkdir(parents=True)
        monkeypatch.chdir(nested)
        os.environ.pop("PIPE_SINK_CONFIG", None)

        assert load_config().record_size == 5

    def test_empty_file(self, temp_dir):
        path = temp_dir / "empty.yaml"
        path.write_text("")

        assert load_config(path) == PipeSinkConfig()

    def test_falls_back_to_env(self, temp_dir, monkeypatch):
        monkeypatch.chdir(temp_dir)
        os.environ.pop("PIPE_SINK_CONFIG", None)
        os.environ["PIPE_SINK_RECORD_SIZE"] = "7"

        assert load_config().record_size == 7
