"""Capability servers over MCP (JSON-RPC on stdio)."""

from enchant_agent.mcp.client import (
    CLIENT_NAME,
    PROTOCOL_VERSION,
    ConnectionState,
    McpClient,
    McpToolDef,
)
from enchant_agent.mcp.config import McpServerConfig, parse_servers
from enchant_agent.mcp.hub import MCPHub
from enchant_agent.mcp.tool import McpTool, qualified_name

__all__ = [
    "CLIENT_NAME",
    "PROTOCOL_VERSION",
    "ConnectionState",
    "MCPHub",
    "McpClient",
    "McpServerConfig",
    "McpTool",
    "McpToolDef",
    "parse_servers",
    "qualified_name",
]
