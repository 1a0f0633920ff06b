"""Tests for configuration loading, logging setup and the system prompt."""

import json
import logging
from pathlib import Path

import pytest

from enchant_agent.config import (
    DEFAULT_MODEL,
    AgentConfig,
    EnchantConfig,
    load_config,
    load_user_config,
)
from enchant_agent.errors import ConfigError
from enchant_agent.logging_utils import abbreviate, configure_logging
from enchant_agent.permissions import PermissionMode
from enchant_agent.prompt import build_system_prompt


def write_config(directory: Path, data) -> Path:
    path = directory / ".enchant" / "enchant.json"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


class TestLoadConfig:
    """Tests for load_config()."""

    def test_missing_file_gives_defaults(self, tmp_path):
        config = load_config(tmp_path / "none.json")
        assert config == EnchantConfig()

    def test_full_file(self, tmp_path):
        path = write_config(
            tmp_path,
            {
                "default_model": "some-model",
                "permissions": {"bash": {"allow": ["cargo build", "git log *"]}},
                "mcpServers": {"files": {"command": "serve", "permission": "allow_automatic"}},
            },
        )
        config = load_config(path)
        assert config.default_model == "some-model"
        assert config.bash_allow == ["cargo build", "git log *"]
        assert config.mcp_servers[0].name == "files"
        assert config.mcp_servers[0].permission == "allow_automatic"

    def test_empty_file(self, tmp_path):
        path = tmp_path / "enchant.json"
        path.write_text("")
        assert load_config(path) == EnchantConfig()

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "enchant.json"
        path.write_text("{nope")
        with pytest.raises(ConfigError):
            load_config(path)

    @pytest.mark.parametrize(
        "data",
        [
            [],
            {"default_model": 3},
            {"permissions": []},
            {"permissions": {"bash": "yes"}},
            {"permissions": {"bash": {"allow": "cargo build"}}},
            {"permissions": {"bash": {"allow": [1]}}},
            {"mcpServers": 5},
        ],
    )
    def test_wrong_shapes(self, tmp_path, data):
        path = tmp_path / "enchant.json"
        path.write_text(json.dumps(data))
        with pytest.raises(ConfigError):
            load_config(path)


class TestMerge:
    """Tests for layering a project config over the user config."""

    def test_merge(self):
        base = EnchantConfig.from_dict(
            {
                "default_model": "base-model",
                "permissions": {"bash": {"allow": ["make"]}},
                "mcpServers": {"a": {"command": "a1"}, "b": {"command": "b1"}},
            }
        )
        overlay = EnchantConfig.from_dict(
            {
                "permissions": {"bash": {"allow": ["cargo build"]}},
                "mcpServers": {"b": {"command": "b2"}, "c": {"command": "c1"}},
            }
        )
        merged = base.merge(overlay)
        assert merged.default_model == "base-model"
        assert merged.bash_allow == ["cargo build", "make"]
        assert [(s.name, s.command) for s in merged.mcp_servers] == [("a", "a1"), ("b", "b2"), ("c", "c1")]

    def test_overlay_model_wins(self):
        merged = EnchantConfig(default_model="x").merge(EnchantConfig(default_model="y"))
        assert merged.default_model == "y"

    def test_load_user_config(self, tmp_path):
        home = tmp_path / "home"
        project = tmp_path / "project"
        write_config(home, {"permissions": {"bash": {"allow": ["make"]}}})
        write_config(project, {"permissions": {"bash": {"allow": ["npm test"]}}})
        config = load_user_config(home=home, project_dir=project)
        assert config.bash_allow == ["npm test", "make"]

    def test_project_equal_to_home_not_loaded_twice(self, tmp_path):
        write_config(tmp_path, {"permissions": {"bash": {"allow": ["make"]}}})
        config = load_user_config(home=tmp_path, project_dir=tmp_path)
        assert config.bash_allow == ["make"]


class TestAgentConfig:
    def test_defaults(self):
        config = AgentConfig()
        assert config.model == DEFAULT_MODEL
        assert config.mode is PermissionMode.MANUAL
        assert config.bash_timeout > 0


class TestLogging:
    """Tests for logging helpers."""

    @pytest.fixture(autouse=True)
    def restore_logger(self, monkeypatch):
        monkeypatch.delenv("ENCHANT_LOG_LEVEL", raising=False)
        monkeypatch.delenv("ENCHANT_LOG_FILE", raising=False)
        logger = logging.getLogger("enchant_agent")
        handlers, level, propagate = logger.handlers[:], logger.level, logger.propagate
        yield
        for handler in logger.handlers:
            if handler not in handlers:
                handler.close()
        logger.handlers, logger.level, logger.propagate = handlers, level, propagate

    def test_nothing_configured_by_default(self):
        logger = logging.getLogger("enchant_agent")
        before = logger.handlers[:]
        configure_logging()
        assert logger.handlers == before

    def test_level_from_env(self, monkeypatch):
        monkeypatch.setenv("ENCHANT_LOG_LEVEL", "debug")
        configure_logging()
        logger = logging.getLogger("enchant_agent")
        assert logger.level == logging.DEBUG
        assert logger.propagate is False
        assert len(logger.handlers) == 1

    def test_log_file(self, tmp_path):
        log_file = tmp_path / "logs" / "enchant.log"
        configure_logging("info", str(log_file))
        logging.getLogger("enchant_agent.test").info("hello file")
        for handler in logging.getLogger("enchant_agent").handlers:
            handler.flush()
        assert "hello file" in log_file.read_text()

    def test_log_file_from_env_defaults_to_warning(self, tmp_path, monkeypatch):
        """A file alone keeps the conversation terminal free of logs."""
        log_file = tmp_path / "enchant.log"
        monkeypatch.setenv("ENCHANT_LOG_FILE", str(log_file))
        configure_logging()
        logger = logging.getLogger("enchant_agent")
        assert logger.level == logging.WARNING
        assert isinstance(logger.handlers[0], logging.FileHandler)
        logging.getLogger("enchant_agent.test").warning("to the file")
        logger.handlers[0].flush()
        assert "to the file" in log_file.read_text()

    def test_invalid_level(self):
        with pytest.raises(ValueError):
            configure_logging("loud")

    def test_abbreviate_text(self):
        assert abbreviate(None) == ""
        assert abbreviate("a\nb") == "a\\nb"
        assert abbreviate("x" * 10, limit=4) == "xxxx...(+6 chars)"

    def test_abbreviate_structures(self):
        assert abbreviate({"b": 1, "a": "x\ny"}) == '{"a": "x\\ny", "b": 1}'
        assert abbreviate(["ls", object()], limit=8).startswith('["ls", "')


class TestPrompt:
    def test_working_directory_substituted(self, tmp_path):
        prompt = build_system_prompt(tmp_path)
        assert f"The current working directory is: {tmp_path}" in prompt
        assert "$working_directory" not in prompt
