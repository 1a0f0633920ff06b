"""Minimal MCP stdio client: newline-delimited JSON-RPC 2.0.

Supported subset:
- initialize / notifications/initialized
- tools/list
- tools/call

One request is outstanding at a time. Lines that do not answer the pending
request (server notifications, stale responses) are skipped. The server
process is killed when the client is closed.
"""

from __future__ import annotations

import json
import logging
import os
import subprocess
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from mcp import types
from pydantic import ValidationError

from enchant_agent.errors import (
    McpCallError,
    McpConnectionError,
    McpProtocolError,
    ToolError,
)
from enchant_agent.logging_utils import abbreviate
from enchant_agent.mcp.config import McpServerConfig

logger = logging.getLogger(__name__)

PROTOCOL_VERSION = "2024-11-05"
CLIENT_NAME = "enchant"
DEFAULT_INPUT_SCHEMA: dict[str, Any] = {"type": "object"}


class ConnectionState(Enum):
    SPAWNED = "spawned"
    INITIALIZED = "initialized"
    READY = "ready"
    CLOSED = "closed"


@dataclass
class McpToolDef:
    """A tool advertised by a server."""

    server: str
    name: str
    description: str | None = None
    input_schema: dict[str, Any] = field(default_factory=lambda: dict(DEFAULT_INPUT_SCHEMA))


def _result_text(result: Any) -> str:
    """Join text blocks of a tools/call result, falling back to raw JSON."""
    if isinstance(result, dict) and "content" in result:
        content = result["content"]
        if isinstance(content, list):
            texts = [
                block["text"]
                for block in content
                if isinstance(block, dict)
                and block.get("type") == "text"
                and isinstance(block.get("text"), str)
            ]
            if texts:
                return "\n".join(texts)
        return json.dumps(content)
    return json.dumps(result)


class McpClient:
    """Connection to one MCP server subprocess."""

    def __init__(self, server_name: str, process: subprocess.Popen):
        self.server_name = server_name
        self.process = process
        self.state = ConnectionState.SPAWNED
        self._next_id = 1
        self._lock = threading.Lock()

    @classmethod
    def spawn(cls, config: McpServerConfig) -> "McpClient":
        """Start the server and complete the handshake.

        Raises:
            McpConnectionError: If the process cannot start or its pipes
                cannot be attached.
            McpError: If the handshake fails. The process is killed first.
        """
        env = dict(os.environ)
        if config.env:
            env.update(config.env)

        logger.info("mcp spawn server=%s command=%s", config.name, config.command_line)
        try:
            process = subprocess.Popen(
                [config.command, *config.args],
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=None,
                env=env,
                cwd=config.cwd,
                text=True,
                encoding="utf-8",
                bufsize=1,
            )
        except OSError as exc:
            raise McpConnectionError(
                config.name, f"Failed to start MCP server '{config.name}': {exc}"
            ) from exc

        client = cls(config.name, process)
        if process.stdin is None or process.stdout is None:
            client.close()
            raise McpConnectionError(
                config.name, f"Failed to open stdio for MCP server '{config.name}'"
            )

        try:
            client.initialize()
        except BaseException:
            client.close()
            raise
        return client

    # =========================================================================
    # Framing
    # =========================================================================

    def _write(self, message: dict[str, Any]) -> None:
        line = json.dumps(message) + "\n"
        try:
            self.process.stdin.write(line)
            self.process.stdin.flush()
        except (OSError, ValueError) as exc:
            raise McpConnectionError(
                self.server_name, f"MCP server '{self.server_name}' write failed: {exc}"
            ) from exc

    def _read_response(self, request_id: int) -> Any:
        while True:
            try:
                line = self.process.stdout.readline()
            except (OSError, ValueError) as exc:
                raise McpConnectionError(
                    self.server_name, f"MCP server '{self.server_name}' read failed: {exc}"
                ) from exc
            if not line:
                raise McpConnectionError(
                    self.server_name, f"MCP server '{self.server_name}' closed stdout"
                )

            line = line.strip()
            if not line:
                continue
            try:
                message = json.loads(line)
            except json.JSONDecodeError as exc:
                raise McpProtocolError(
                    self.server_name, f"MCP parse error: {exc}. line={abbreviate(line)!r}"
                ) from exc

            if not isinstance(message, dict) or "method" in message:
                continue
            message_id = message.get("id")
            if isinstance(message_id, bool) or message_id != request_id:
                logger.debug("mcp skip server=%s id=%s", self.server_name, message_id)
                continue

            if "error" in message:
                raise McpCallError(self.server_name, message["error"])
            return message.get("result")

    def _request(self, method: str, params: dict[str, Any]) -> Any:
        if self.state is ConnectionState.CLOSED:
            raise McpConnectionError(
                self.server_name, f"MCP server '{self.server_name}' connection is closed"
            )
        with self._lock:
            request_id = self._next_id
            self._next_id += 1
            request = types.JSONRPCRequest(
                jsonrpc="2.0", id=request_id, method=method, params=params
            )
            logger.debug("mcp request server=%s id=%s method=%s", self.server_name, request_id, method)
            self._write(request.model_dump(by_alias=True, mode="json", exclude_none=True))
            return self._read_response(request_id)

    def _notify(self, method: str) -> None:
        notification = types.JSONRPCNotification(jsonrpc="2.0", method=method, params=None)
        with self._lock:
            self._write(notification.model_dump(by_alias=True, mode="json", exclude_none=True))

    def _require_ready(self) -> None:
        if self.state is not ConnectionState.READY:
            raise McpConnectionError(
                self.server_name,
                f"MCP server '{self.server_name}' is not ready (state={self.state.value})",
            )

    # =========================================================================
    # Protocol
    # =========================================================================

    def initialize(self) -> Any:
        """Perform the handshake. Must run before any other request."""
        from enchant_agent import __version__

        if self.state is not ConnectionState.SPAWNED:
            raise McpProtocolError(
                self.server_name, f"MCP server '{self.server_name}' already initialized"
            )
        client_info = types.Implementation(name=CLIENT_NAME, version=__version__)
        result = self._request(
            "initialize",
            {
                "protocolVersion": PROTOCOL_VERSION,
                "capabilities": {},
                "clientInfo": client_info.model_dump(by_alias=True, exclude_none=True),
            },
        )
        self.state = ConnectionState.INITIALIZED

        # Advisory only.
        try:
            self._notify("notifications/initialized")
        except McpConnectionError as exc:
            logger.debug("mcp initialized notification failed server=%s error=%s", self.server_name, exc)

        self.state = ConnectionState.READY
        logger.info("mcp initialized server=%s", self.server_name)
        return result

    def list_tools(self) -> list[McpToolDef]:
        """Fetch the server's tool catalogue."""
        self._require_ready()
        result = self._request("tools/list", {})
        tools = result.get("tools") if isinstance(result, dict) else None
        if not isinstance(tools, list):
            raise McpProtocolError(
                self.server_name,
                f"MCP '{self.server_name}' tools/list returned unexpected shape: "
                f"{abbreviate(result)}",
            )

        defs: list[McpToolDef] = []
        for entry in tools:
            if not isinstance(entry, dict):
                raise McpProtocolError(
                    self.server_name, f"MCP '{self.server_name}' tool entry is not an object: {entry!r}"
                )
            if entry.get("inputSchema") is None:
                entry = {**entry, "inputSchema": dict(DEFAULT_INPUT_SCHEMA)}
            try:
                tool = types.Tool.model_validate(entry)
            except ValidationError as exc:
                raise McpProtocolError(
                    self.server_name, f"MCP '{self.server_name}' invalid tool entry: {exc}"
                ) from exc
            # Read the schema by its wire name; the attribute name differs across mcp releases.
            defs.append(
                McpToolDef(
                    server=self.server_name,
                    name=tool.name,
                    description=tool.description,
                    input_schema=dict(entry["inputSchema"]),
                )
            )
        logger.debug("mcp tools server=%s count=%s", self.server_name, len(defs))
        return defs

    def call_tool(self, name: str, arguments: dict[str, Any] | None = None) -> str:
        """Call a tool and return its text output."""
        self._require_ready()
        result = self._request(
            "tools/call",
            {"name": name, "arguments": arguments if arguments is not None else {}},
        )
        text = _result_text(result)
        if isinstance(result, dict) and result.get("isError") is True:
            raise ToolError(text)
        return text

    # =========================================================================
    # Lifetime
    # =========================================================================

    def close(self) -> None:
        """Kill the server process and release its pipes. Idempotent."""
        if self.state is ConnectionState.CLOSED:
            return
        self.state = ConnectionState.CLOSED
        process = self.process
        if process.poll() is None:
            process.kill()
        for stream in (process.stdin, process.stdout):
            if stream is None:
                continue
            try:
                stream.close()
            except OSError as exc:
                logger.debug("mcp close stream server=%s error=%s", self.server_name, exc)
        try:
            process.wait(timeout=5)
        except subprocess.TimeoutExpired:
            logger.warning("mcp server did not exit after kill server=%s", self.server_name)
        logger.info("mcp closed server=%s", self.server_name)

    @property
    def closed(self) -> bool:
        return self.state is ConnectionState.CLOSED

    def __enter__(self) -> "McpClient":
        return self

    def __exit__(self, *args) -> None:
        self.close()

    def __del__(self) -> None:
        if getattr(self, "state", ConnectionState.CLOSED) is not ConnectionState.CLOSED:
            self.close()
