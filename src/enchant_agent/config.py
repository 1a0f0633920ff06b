"""Configuration.

User configuration lives in ``~/.enchant/enchant.json``; a project can add
``<project>/.enchant/enchant.json`` on top of it::

    {
      "default_model": "claude-sonnet-4-20250514",
      "permissions": {"bash": {"allow": ["cargo build", "git log *"]}},
      "mcpServers": {
        "files": {"command": "npx", "args": ["-y", "some-server"], "permission": "allow_automatic"}
      }
    }
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from enchant_agent.errors import ConfigError
from enchant_agent.mcp.config import McpServerConfig, parse_servers
from enchant_agent.permissions import PermissionMode
from enchant_agent.tools.bash import DEFAULT_TIMEOUT

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "claude-sonnet-4-20250514"
CONFIG_DIR_NAME = ".enchant"
CONFIG_FILE_NAME = "enchant.json"


@dataclass
class AgentConfig:
    """Settings for one session."""

    model: str = DEFAULT_MODEL
    max_tokens: int = 4096
    mode: PermissionMode = PermissionMode.MANUAL
    bash_timeout: int = DEFAULT_TIMEOUT


@dataclass
class EnchantConfig:
    """Contents of an enchant.json file."""

    default_model: str | None = None
    bash_allow: list[str] = field(default_factory=list)
    mcp_servers: list[McpServerConfig] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> "EnchantConfig":
        if not isinstance(data, dict):
            raise ConfigError("Configuration must be a JSON object")

        default_model = data.get("default_model")
        if default_model is not None and not isinstance(default_model, str):
            raise ConfigError("'default_model' must be a string")

        permissions = data.get("permissions")
        if permissions is None:
            permissions = {}
        if not isinstance(permissions, dict):
            raise ConfigError("'permissions' must be an object")
        bash = permissions.get("bash")
        if bash is None:
            bash = {}
        if not isinstance(bash, dict):
            raise ConfigError("'permissions.bash' must be an object")
        allow = bash.get("allow")
        if allow is None:
            allow = []
        if not isinstance(allow, list) or not all(isinstance(rule, str) for rule in allow):
            raise ConfigError("'permissions.bash.allow' must be a list of strings")

        return cls(
            default_model=default_model,
            bash_allow=list(allow),
            mcp_servers=parse_servers(data.get("mcpServers")),
        )

    def merge(self, overlay: "EnchantConfig") -> "EnchantConfig":
        """Layer overlay on top of this config.

        The overlay's model wins when set, allowlists are concatenated
        (overlay first) and same-named MCP servers are replaced.
        """
        servers = {server.name: server for server in self.mcp_servers}
        order = [server.name for server in self.mcp_servers]
        for server in overlay.mcp_servers:
            if server.name not in servers:
                order.append(server.name)
            servers[server.name] = server

        return EnchantConfig(
            default_model=overlay.default_model or self.default_model,
            bash_allow=overlay.bash_allow + self.bash_allow,
            mcp_servers=[servers[name] for name in order],
        )


def load_config(path: Path | str) -> EnchantConfig:
    """Load one config file. A missing file yields the defaults.

    Raises:
        ConfigError: If the file is not valid JSON or has the wrong shape.
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        logger.debug("config not found path=%s", path)
        return EnchantConfig()
    except OSError as exc:
        raise ConfigError(f"Unable to read config {path}: {exc}") from exc

    try:
        data = json.loads(text) if text.strip() else {}
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Invalid JSON in {path}: {exc}") from exc

    config = EnchantConfig.from_dict(data)
    logger.debug(
        "config loaded path=%s allow=%s servers=%s",
        path,
        len(config.bash_allow),
        len(config.mcp_servers),
    )
    return config


def load_user_config(home: Path | None = None, project_dir: Path | None = None) -> EnchantConfig:
    """Load the user config and overlay the project config if present."""
    home = home or Path.home()
    config = load_config(home / CONFIG_DIR_NAME / CONFIG_FILE_NAME)
    if project_dir is not None:
        project_file = project_dir / CONFIG_DIR_NAME / CONFIG_FILE_NAME
        if project_file.resolve() != (home / CONFIG_DIR_NAME / CONFIG_FILE_NAME).resolve():
            config = config.merge(load_config(project_file))
    return config
