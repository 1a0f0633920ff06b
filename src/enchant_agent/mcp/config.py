"""MCP server configuration entries."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Any

from enchant_agent.errors import ConfigError

logger = logging.getLogger(__name__)


@dataclass
class McpServerConfig:
    name: str
    command: str
    args: list[str] = field(default_factory=list)
    env: dict[str, str] | None = None
    cwd: str | None = None
    disabled: bool = False
    transport: str | None = None
    permission: str | None = None
    """Policy applied to every tool of this server: implicit, allow_automatic,
    require_approval (default) or never."""

    @property
    def command_line(self) -> str:
        return " ".join([self.command] + self.args)

    def validate(self) -> None:
        """Raise ConfigError if the entry cannot be started."""
        if not self.name or not self.name.strip():
            raise ConfigError("MCP server config missing 'name'")
        if not self.command or not self.command.strip():
            raise ConfigError(f"MCP server '{self.name}' missing 'command'")


def _expand_env(value: str) -> str:
    return os.path.expandvars(value)


def _parse_server(name: str, cfg: Any) -> McpServerConfig:
    if not isinstance(cfg, dict):
        raise ConfigError(f"MCP server '{name}' must be an object")

    command = cfg.get("command") or ""
    args = cfg.get("args", []) or []
    env = cfg.get("env")
    cwd = cfg.get("cwd")

    if isinstance(args, str):
        args = [args]
    if not isinstance(args, list):
        raise ConfigError(f"MCP server '{name}': 'args' must be a list")
    if env is not None and not isinstance(env, dict):
        raise ConfigError(f"MCP server '{name}': 'env' must be an object")

    if env:
        env = {str(k): _expand_env(str(v)) for k, v in env.items()}
    if cwd:
        cwd = _expand_env(str(cwd))

    return McpServerConfig(
        name=name,
        command=_expand_env(str(command)),
        args=[_expand_env(str(a)) for a in args],
        env=env,
        cwd=cwd,
        disabled=bool(cfg.get("disabled", False)),
        transport=cfg.get("transport"),
        permission=cfg.get("permission"),
    )


def parse_servers(raw_servers: Any) -> list[McpServerConfig]:
    """Parse the ``mcpServers`` section.

    Accepts either a mapping of name to entry, or a list of entries that
    carry their own ``name``. Entries without a name or command are kept
    here and rejected when servers are started.
    """
    if raw_servers is None:
        return []
    if isinstance(raw_servers, dict):
        return [_parse_server(str(name), cfg) for name, cfg in raw_servers.items()]
    if isinstance(raw_servers, list):
        servers = []
        for cfg in raw_servers:
            name = cfg.get("name", "") if isinstance(cfg, dict) else ""
            servers.append(_parse_server(str(name or ""), cfg))
        return servers
    raise ConfigError("'mcpServers' must be an object or a list")
