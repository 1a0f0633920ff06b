"""Enchant: a terminal coding agent with a permissioned tool loop.

This package provides:
- A session controller that drives a model through tool-calling turns
- A permission model with manual, automatic and aggressive modes
- A restricted shell sandbox that classifies commands before they run
- Filesystem tools and remote tools from MCP capability servers

Key Components:
- Session: the turn state machine driven by a UI
- ToolRegistry: the ordered set of tools offered to the model
- MCPHub: starts configured MCP servers and exposes their tools
- AnthropicModel: ModelClient backed by the Anthropic API

Example:
    from enchant_agent import AnthropicModel, Session, ToolRegistry, default_tools

    session = Session(ToolRegistry(default_tools()), AnthropicModel())
    session.submit("List the Python files here")
    result = session.run_until_blocked()
"""

__version__ = "0.1.0"

from enchant_agent.config import AgentConfig, EnchantConfig, load_config, load_user_config
from enchant_agent.errors import (
    ArgumentError,
    ConfigError,
    EnchantError,
    McpCallError,
    McpConnectionError,
    McpError,
    McpProtocolError,
    ModelError,
    ShellParseError,
    ToolError,
    ToolNotFoundError,
)
from enchant_agent.mcp import MCPHub, McpClient, McpServerConfig, McpTool
from enchant_agent.model import AnthropicModel, Message, ModelClient, ModelResponse, ToolCall
from enchant_agent.permissions import Permission, PermissionMode
from enchant_agent.session import (
    PendingToolCall,
    PermissionRequest,
    Session,
    StepResult,
    StepStatus,
)
from enchant_agent.tools import Tool, ToolDescriptor, ToolPreview, ToolRegistry, TypedTool, default_tools

__all__ = [
    "__version__",
    # Session
    "Session",
    "StepResult",
    "StepStatus",
    "PendingToolCall",
    "PermissionRequest",
    # Model
    "AnthropicModel",
    "Message",
    "ModelClient",
    "ModelResponse",
    "ToolCall",
    # Permissions
    "Permission",
    "PermissionMode",
    # Tools
    "Tool",
    "ToolDescriptor",
    "ToolPreview",
    "ToolRegistry",
    "TypedTool",
    "default_tools",
    # MCP
    "MCPHub",
    "McpClient",
    "McpServerConfig",
    "McpTool",
    # Config
    "AgentConfig",
    "EnchantConfig",
    "load_config",
    "load_user_config",
    # Errors
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
