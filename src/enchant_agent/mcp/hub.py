"""MCP Hub - starts configured servers and owns their connections.

Discovery is strictly sequential so that servers never interleave output
while their catalogues are being read. Any failure aborts the whole pass
and closes every server started so far.
"""

from __future__ import annotations

import logging
from typing import Iterable

from enchant_agent.mcp.client import McpClient
from enchant_agent.mcp.config import McpServerConfig
from enchant_agent.mcp.tool import McpTool
from enchant_agent.permissions import parse_permission

logger = logging.getLogger(__name__)


class MCPHub:
    """Owns the clients of all started MCP servers and their tools."""

    def __init__(self):
        self.clients: list[McpClient] = []
        self.tools: list[McpTool] = []
        self._seen: set[str] = set()

    @classmethod
    def discover(cls, configs: Iterable[McpServerConfig]) -> "MCPHub":
        """Validate every config, then start the servers one after another.

        Raises:
            ConfigError: If any server lacks a name or command. Nothing is started.
            McpError: If a server fails to start or list its tools.
        """
        configs = list(configs)
        for config in configs:
            config.validate()

        hub = cls()
        try:
            for config in configs:
                hub.install(config)
        except BaseException:
            hub.close()
            raise
        return hub

    def install(self, config: McpServerConfig) -> list[McpTool]:
        """Start one server and register its tools. Returns the tools added."""
        config.validate()
        if config.disabled:
            logger.info("mcp skip disabled server=%s", config.name)
            return []
        if config.transport and config.transport != "stdio":
            logger.warning("mcp skip server=%s transport=%s", config.name, config.transport)
            return []

        client = McpClient.spawn(config)
        self.clients.append(client)
        permission = parse_permission(config.permission)

        added: list[McpTool] = []
        for definition in client.list_tools():
            tool = McpTool(definition, client, permission)
            if tool.name in self._seen:
                logger.debug("mcp duplicate tool name=%s skipped", tool.name)
                continue
            self._seen.add(tool.name)
            self.tools.append(tool)
            added.append(tool)

        logger.info("mcp installed server=%s tools=%s", config.name, len(added))
        return added

    def close(self) -> None:
        """Close every client, most recent first."""
        while self.clients:
            self.clients.pop().close()

    def __enter__(self) -> "MCPHub":
        return self

    def __exit__(self, *args) -> None:
        self.close()
