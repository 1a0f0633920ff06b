"""Tools the model can call.

Key classes:
- Tool: the five-method contract every tool implements
- TypedTool: a Tool whose input is a pydantic model
- ToolRegistry: ordered, name-keyed collection handed to the session
- ReadTool, WriteTool, EditTool, LsTool, GlobTool, GrepTool: filesystem access
- BashTool: shell commands, classified by the shell sandbox
"""

from __future__ import annotations

from pathlib import Path

from enchant_agent.tools.base import Tool, ToolDescriptor, ToolInput, ToolPreview, TypedTool
from enchant_agent.tools.bash import DEFAULT_TIMEOUT, BashTool, CommandResult
from enchant_agent.tools.file_system import (
    EditTool,
    GlobTool,
    GrepTool,
    LsTool,
    ReadTool,
    WriteTool,
)
from enchant_agent.tools.registry import ToolRegistry


def default_tools(
    timeout: int = DEFAULT_TIMEOUT,
    cwd: Path | str | None = None,
) -> list[Tool]:
    """The local tools, in the order they are offered to the model."""
    return [
        BashTool(timeout=timeout, cwd=cwd),
        ReadTool(),
        WriteTool(),
        EditTool(),
        LsTool(),
        GlobTool(),
        GrepTool(),
    ]


__all__ = [
    "BashTool",
    "CommandResult",
    "EditTool",
    "GlobTool",
    "GrepTool",
    "LsTool",
    "ReadTool",
    "Tool",
    "ToolDescriptor",
    "ToolInput",
    "ToolPreview",
    "ToolRegistry",
    "TypedTool",
    "WriteTool",
    "default_tools",
]
