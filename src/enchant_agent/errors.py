"""Exception hierarchy.

Anything derived from ToolError is something the model can act on: the
session turns it into a textual tool result. ModelError and ConfigError are
hard failures that propagate to the caller.
"""

from __future__ import annotations

from typing import Any


class EnchantError(Exception):
    """Base class for all errors raised by enchant_agent."""


class ToolError(EnchantError):
    """A tool call failed in a way that is reported back to the model."""


class ArgumentError(ToolError):
    """Tool arguments do not match the tool's declared input shape."""


class ToolNotFoundError(ToolError):
    """The model requested a tool that is not registered."""

    def __init__(self, name: str):
        super().__init__(f"Tool not found: {name}")
        self.name = name


class ShellParseError(ToolError):
    """A shell command uses a construct outside the supported subset."""


class McpError(ToolError):
    """A capability server failed."""

    def __init__(self, server_name: str, message: str):
        super().__init__(message)
        self.server_name = server_name


class McpConnectionError(McpError):
    """The server could not be started or its streams broke."""


class McpProtocolError(McpError):
    """The server sent something that is not valid for the protocol."""


class McpCallError(McpError):
    """The server answered a request with an error object."""

    def __init__(self, server_name: str, error: Any):
        super().__init__(server_name, f"MCP error from '{server_name}': {error}")
        self.error = error


class ConfigError(EnchantError):
    """Configuration is missing or malformed."""


class ModelError(EnchantError):
    """The language model call failed (network, auth, quota)."""


__all__ = [
    "ArgumentError",
    "ConfigError",
    "EnchantError",
    "McpCallError",
    "McpConnectionError",
    "McpError",
    "McpProtocolError",
    "ModelError",
    "ShellParseError",
    "ToolError",
    "ToolNotFoundError",
]
