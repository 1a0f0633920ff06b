"""Base classes for tools.

A Tool is anything the model can call: local filesystem helpers, the shell
sandbox, or a remote capability server. Every tool shares one contract:

- descriptor(): name, description and JSON input schema shown to the model
- requires_permission(): the trust level of one particular call
- describe(): a one-line human description, used in prompts and history
- preview(): an optional rendering of the effect (e.g. a diff), best effort
- execute(): perform the call and return its textual result

TypedTool binds a pydantic model as the input shape so that the schema and
the validation come from one place.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, ValidationError

from enchant_agent.errors import ArgumentError
from enchant_agent.permissions import Permission

if TYPE_CHECKING:
    from enchant_agent.session import Session


@dataclass(frozen=True)
class ToolDescriptor:
    """What the model sees of a tool."""

    name: str
    description: str | None = None
    input_schema: dict[str, Any] = field(default_factory=lambda: {"type": "object"})

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "input_schema": self.input_schema,
        }


@dataclass(frozen=True)
class ToolPreview:
    """A preview of what a call would change."""

    kind: str  # "edit" (unified diff) or "write" (new content)
    text: str


class Tool(ABC):
    """Base class for all tools."""

    name: str = "unnamed_tool"
    description: str | None = None

    def descriptor(self) -> ToolDescriptor:
        return ToolDescriptor(name=self.name, description=self.description)

    @abstractmethod
    def requires_permission(self, session: "Session | None", arguments: Any) -> Permission:
        """Return the permission level of a call.

        Raises:
            ToolError: If the arguments cannot be classified.
        """

    def describe(self, arguments: Any) -> str:
        """Human-readable description of a call. Never raises."""
        return f"Execute {self.name}"

    def preview(self, arguments: Any) -> ToolPreview | None:
        """Best-effort preview of a call, or None."""
        return None

    @abstractmethod
    def execute(self, arguments: Any) -> str:
        """Perform the call.

        Raises:
            ToolError: If the call fails in a way the model should hear about.
        """

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(name='{self.name}')>"


class ToolInput(BaseModel):
    """Base for tool input models; unknown fields are rejected."""

    model_config = ConfigDict(extra="forbid")


InputT = TypeVar("InputT", bound=ToolInput)


def _format_validation_error(tool_name: str, exc: ValidationError) -> str:
    problems = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err.get("loc", ())) or "(arguments)"
        problems.append(f"{location}: {err.get('msg', 'invalid value')}")
    return f"Invalid arguments for {tool_name}: " + "; ".join(problems)


class TypedTool(Tool, Generic[InputT]):
    """A tool whose arguments are validated against a pydantic model.

    Subclasses set `input_model` and implement `run()`. They can refine
    `check_permission()`, `describe_input()` and `preview_input()`, which all
    receive validated input.
    """

    input_model: type[InputT]
    permission: Permission = Permission.IMPLICIT

    def descriptor(self) -> ToolDescriptor:
        return ToolDescriptor(
            name=self.name,
            description=self.description,
            input_schema=self.input_model.model_json_schema(),
        )

    def parse_input(self, arguments: Any) -> InputT:
        """Validate raw arguments into the input model.

        Raises:
            ArgumentError: If the arguments do not conform.
        """
        if arguments is None:
            arguments = {}
        if isinstance(arguments, str):
            try:
                arguments = json.loads(arguments) if arguments.strip() else {}
            except json.JSONDecodeError as exc:
                raise ArgumentError(f"Invalid arguments for {self.name}: {exc}") from exc
        try:
            return self.input_model.model_validate(arguments)
        except ValidationError as exc:
            raise ArgumentError(_format_validation_error(self.name, exc)) from exc

    def requires_permission(self, session: "Session | None", arguments: Any) -> Permission:
        return self.check_permission(session, self.parse_input(arguments))

    def check_permission(self, session: "Session | None", params: InputT) -> Permission:
        return self.permission

    def describe(self, arguments: Any) -> str:
        try:
            params = self.parse_input(arguments)
        except ArgumentError:
            return f"Execute {self.name}"
        return self.describe_input(params)

    def describe_input(self, params: InputT) -> str:
        return f"Execute {self.name}"

    def preview(self, arguments: Any) -> ToolPreview | None:
        try:
            params = self.parse_input(arguments)
        except ArgumentError:
            return None
        return self.preview_input(params)

    def preview_input(self, params: InputT) -> ToolPreview | None:
        return None

    def execute(self, arguments: Any) -> str:
        return self.run(self.parse_input(arguments))

    @abstractmethod
    def run(self, params: InputT) -> str:
        """Perform the call with validated input."""


__all__ = ["Tool", "ToolDescriptor", "ToolInput", "ToolPreview", "TypedTool"]
