"""A tool backed by a remote MCP server."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from enchant_agent.errors import ArgumentError
from enchant_agent.mcp.client import McpClient, McpToolDef
from enchant_agent.permissions import Permission
from enchant_agent.tools.base import Tool, ToolDescriptor

if TYPE_CHECKING:
    from enchant_agent.session import Session


def qualified_name(server_name: str, tool_name: str) -> str:
    return f"{server_name}.{tool_name}"


class McpTool(Tool):
    """Remote tool exposed under ``<server>.<tool>``.

    Every tool of a server shares the server's configured permission.
    """

    def __init__(self, definition: McpToolDef, client: McpClient, permission: Permission):
        self.definition = definition
        self.client = client
        self.permission = permission
        self.name = qualified_name(definition.server, definition.name)
        self.description = definition.description

    def descriptor(self) -> ToolDescriptor:
        return ToolDescriptor(
            name=self.name,
            description=self.description,
            input_schema=self.definition.input_schema,
        )

    def requires_permission(self, session: "Session | None", arguments: Any) -> Permission:
        return self.permission

    def describe(self, arguments: Any) -> str:
        try:
            rendered = json.dumps(arguments, sort_keys=True)
        except (TypeError, ValueError):
            rendered = repr(arguments)
        return f"{self.name}({rendered})"

    def execute(self, arguments: Any) -> str:
        if arguments is None:
            arguments = {}
        if not isinstance(arguments, dict):
            raise ArgumentError(f"Arguments for {self.name} must be a JSON object")
        return self.client.call_tool(self.definition.name, arguments)
