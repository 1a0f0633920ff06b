"""Conversation messages and the language model interface.

The session only depends on the ModelClient protocol. AnthropicModel is the
production implementation on top of the Anthropic Messages API.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Protocol, Sequence

import anthropic

from enchant_agent.config import DEFAULT_MODEL
from enchant_agent.errors import ModelError
from enchant_agent.tools.base import ToolDescriptor

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolCall:
    """A tool invocation requested by the model."""

    call_id: str
    name: str
    arguments: Any

    def to_dict(self) -> dict:
        return {"call_id": self.call_id, "name": self.name, "arguments": self.arguments}

    @classmethod
    def from_dict(cls, data: dict) -> "ToolCall":
        return cls(call_id=data["call_id"], name=data["name"], arguments=data.get("arguments"))


@dataclass
class Message:
    """A message in the conversation history."""

    role: str  # "system", "user", "assistant", "tool"
    content: str = ""
    tool_calls: list[ToolCall] = field(default_factory=list)
    call_id: str | None = None  # tool results only
    tool_name: str | None = None  # tool results only
    is_error: bool = False

    @classmethod
    def user(cls, text: str) -> "Message":
        return cls(role="user", content=text)

    @classmethod
    def assistant(cls, text: str, tool_calls: Sequence[ToolCall] = ()) -> "Message":
        return cls(role="assistant", content=text, tool_calls=list(tool_calls))

    @classmethod
    def tool_result(cls, call_id: str, tool_name: str, content: str, is_error: bool = False) -> "Message":
        return cls(role="tool", content=content, call_id=call_id, tool_name=tool_name, is_error=is_error)

    def to_dict(self) -> dict:
        """Convert to serializable dict."""
        data: dict[str, Any] = {"role": self.role, "content": self.content}
        if self.tool_calls:
            data["tool_calls"] = [call.to_dict() for call in self.tool_calls]
        if self.role == "tool":
            data["call_id"] = self.call_id
            data["tool_name"] = self.tool_name
            data["is_error"] = self.is_error
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Message":
        """Create from serialized dict."""
        return cls(
            role=data["role"],
            content=data.get("content", ""),
            tool_calls=[ToolCall.from_dict(c) for c in data.get("tool_calls", [])],
            call_id=data.get("call_id"),
            tool_name=data.get("tool_name"),
            is_error=data.get("is_error", False),
        )


@dataclass
class ModelResponse:
    """One reply from the model."""

    text: str = ""
    tool_calls: list[ToolCall] = field(default_factory=list)
    usage_total: int | None = None


class ModelClient(Protocol):
    """Anything that can answer a conversation with text and tool calls."""

    def complete(
        self,
        system: str,
        messages: Sequence[Message],
        tools: Sequence[ToolDescriptor],
    ) -> ModelResponse:
        """Send the conversation and return the reply.

        Raises:
            ModelError: If the call fails.
        """
        ...


_WIRE_NAME = re.compile(r"^[a-zA-Z0-9_-]{1,64}$")


def _sanitize(name: str) -> str:
    if _WIRE_NAME.match(name):
        return name
    return re.sub(r"[^a-zA-Z0-9_-]", "_", name)[:64] or "tool"


class _WireNames:
    """Maps tool names to names the API accepts (no dots) and back."""

    def __init__(self, names: Sequence[str]):
        self._to_wire: dict[str, str] = {}
        self._from_wire: dict[str, str] = {}
        for name in names:
            wire = _sanitize(name)
            base, n = wire, 1
            while wire in self._from_wire:
                n += 1
                suffix = f"_{n}"
                wire = base[: 64 - len(suffix)] + suffix
            self._to_wire[name] = wire
            self._from_wire[wire] = name

    def to_wire(self, name: str) -> str:
        return self._to_wire.get(name) or _sanitize(name)

    def from_wire(self, wire: str) -> str:
        return self._from_wire.get(wire, wire)


class AnthropicModel:
    """ModelClient backed by the Anthropic Messages API."""

    def __init__(
        self,
        model: str = DEFAULT_MODEL,
        max_tokens: int = 4096,
        client: anthropic.Anthropic | None = None,
    ):
        self.model = model
        self.max_tokens = max_tokens
        self._client = client or anthropic.Anthropic()

    def complete(
        self,
        system: str,
        messages: Sequence[Message],
        tools: Sequence[ToolDescriptor],
    ) -> ModelResponse:
        names = _WireNames([t.name for t in tools])
        kwargs: dict[str, Any] = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "system": system,
            "messages": self._to_api(messages, names),
        }
        if tools:
            kwargs["tools"] = [
                {
                    "name": names.to_wire(t.name),
                    "description": t.description or "",
                    "input_schema": t.input_schema,
                }
                for t in tools
            ]

        logger.debug("model request model=%s messages=%s tools=%s", self.model, len(messages), len(tools))
        try:
            response = self._client.messages.create(**kwargs)
        except anthropic.APIError as exc:
            raise ModelError(f"Model call failed: {exc}") from exc

        text_parts = []
        tool_calls = []
        for block in response.content:
            if block.type == "text":
                text_parts.append(block.text)
            elif block.type == "tool_use":
                tool_calls.append(
                    ToolCall(call_id=block.id, name=names.from_wire(block.name), arguments=block.input)
                )

        usage_total = None
        usage = getattr(response, "usage", None)
        if usage is not None:
            usage_total = (usage.input_tokens or 0) + (usage.output_tokens or 0)

        logger.debug("model response tool_calls=%s usage=%s", len(tool_calls), usage_total)
        return ModelResponse(text="".join(text_parts), tool_calls=tool_calls, usage_total=usage_total)

    @staticmethod
    def _to_api(messages: Sequence[Message], names: _WireNames) -> list[dict]:
        """Convert history to API format.

        Consecutive tool results become one user turn of tool_result blocks.
        """
        api: list[dict] = []
        for message in messages:
            if message.role == "user":
                api.append({"role": "user", "content": message.content})
            elif message.role == "assistant":
                blocks: list[dict] = []
                if message.content:
                    blocks.append({"type": "text", "text": message.content})
                for call in message.tool_calls:
                    blocks.append(
                        {
                            "type": "tool_use",
                            "id": call.call_id,
                            "name": names.to_wire(call.name),
                            "input": call.arguments if isinstance(call.arguments, dict) else {},
                        }
                    )
                if not blocks:
                    blocks.append({"type": "text", "text": "(no content)"})
                api.append({"role": "assistant", "content": blocks})
            elif message.role == "tool":
                block = {
                    "type": "tool_result",
                    "tool_use_id": message.call_id,
                    "content": message.content,
                    "is_error": message.is_error,
                }
                previous = api[-1] if api else None
                if (
                    previous is not None
                    and previous["role"] == "user"
                    and isinstance(previous["content"], list)
                    and previous["content"]
                    and previous["content"][0].get("type") == "tool_result"
                ):
                    previous["content"].append(block)
                else:
                    api.append({"role": "user", "content": [block]})
            # System messages are sent through the system parameter.
        return api
