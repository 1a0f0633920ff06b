"""The session controller.

A Session owns one conversation. The driver submits user text, then calls
step() until it reports DONE. When the model asks for tool calls that need
the user's consent, step() returns NEEDS_PERMISSION with one request per
call; the driver answers each with approve() or deny() and calls step()
again. A batch of calls runs only once every request in it is answered.

A session is not thread-safe: one driver owns it and serialises every call.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable

from enchant_agent.errors import ToolError
from enchant_agent.logging_utils import abbreviate
from enchant_agent.model import Message, ModelClient, ToolCall
from enchant_agent.permissions import Permission, PermissionMode
from enchant_agent.prompt import build_system_prompt
from enchant_agent.shell import AllowRule, parse_rules
from enchant_agent.tools.base import ToolPreview
from enchant_agent.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)

PERMISSION_DENIED_MESSAGE = "Permission denied by user."


def refused_message(tool_name: str) -> str:
    return f"Permission denied: {tool_name} is not allowed to run."


def error_message(exc: BaseException) -> str:
    return f"Error: {exc}"


class StepStatus(Enum):
    DONE = "done"
    CONTINUE = "continue"
    NEEDS_PERMISSION = "needs_permission"


@dataclass(frozen=True)
class PermissionRequest:
    """A pending call the user has to approve or deny."""

    call_id: str
    tool_name: str
    description: str
    arguments: Any
    preview: ToolPreview | None = None


@dataclass
class StepResult:
    status: StepStatus
    requests: list[PermissionRequest] = field(default_factory=list)

    @property
    def done(self) -> bool:
        return self.status is StepStatus.DONE

    @property
    def needs_permission(self) -> bool:
        return self.status is StepStatus.NEEDS_PERMISSION


@dataclass
class PendingToolCall:
    """A call from the current batch.

    permission is computed once when the batch is created. error is set when
    the call could not be classified (unknown tool, bad arguments); such a
    call is never offered for approval and yields an error result.
    """

    call_id: str
    tool_name: str
    arguments: Any
    permission: Permission | None = None
    error: str | None = None


class Session:
    """One conversation between the user, the model and the tools."""

    def __init__(
        self,
        registry: ToolRegistry,
        model: ModelClient,
        system_prompt: str | None = None,
        mode: PermissionMode = PermissionMode.MANUAL,
        allowlist: Iterable[str | AllowRule] = (),
    ):
        self.registry = registry
        self.model = model
        self.system_prompt = system_prompt if system_prompt is not None else build_system_prompt()
        self.mode = mode
        self.allowlist: list[AllowRule] = parse_rules(allowlist)
        self.token_usage: int | None = None
        self._messages: list[Message] = []
        self._pending: list[PendingToolCall] = []
        self._approved: set[str] = set()
        self._denied: set[str] = set()

    # =========================================================================
    # Driver interface
    # =========================================================================

    def submit(self, text: str) -> None:
        """Append a user message."""
        self._messages.append(Message.user(text))

    submit_user_message = submit

    def step(self) -> StepResult:
        """Advance the conversation by one step.

        Raises:
            ModelError: If the model call fails. History is left as it was
                before the call.
        """
        if self._pending:
            return self._resolve()

        response = self.model.complete(self.system_prompt, self.messages, self.registry.descriptors())
        if response.usage_total is not None:
            self.token_usage = response.usage_total
        self._messages.append(Message.assistant(response.text, response.tool_calls))

        if not response.tool_calls:
            logger.debug("session turn done")
            return StepResult(StepStatus.DONE)

        self._pending = [self._classify(call) for call in response.tool_calls]
        logger.debug("session batch created calls=%s", len(self._pending))
        return self._resolve()

    advance_one_step = step

    def approve(self, call_id: str) -> None:
        """Approve a pending call. Approving twice is the same as once.

        Raises:
            KeyError: If no pending call has this id.
        """
        self._require_pending(call_id)
        self._denied.discard(call_id)
        self._approved.add(call_id)
        logger.debug("session approved call_id=%s", call_id)

    def deny(self, call_id: str) -> None:
        """Deny a pending call; it will not run.

        Raises:
            KeyError: If no pending call has this id.
        """
        self._require_pending(call_id)
        self._approved.discard(call_id)
        self._denied.add(call_id)
        logger.debug("session denied call_id=%s", call_id)

    def run_until_blocked(self, max_steps: int | None = None) -> StepResult:
        """Step until the turn is done or needs the user.

        With max_steps, stop after that many steps even if the model wants to
        continue; the last CONTINUE result is returned.
        """
        steps = 0
        while True:
            result = self.step()
            steps += 1
            if result.status is not StepStatus.CONTINUE:
                return result
            if max_steps is not None and steps >= max_steps:
                return result

    def cycle_mode(self) -> PermissionMode:
        self.mode = self.mode.next()
        return self.mode

    # =========================================================================
    # Read-only state
    # =========================================================================

    @property
    def messages(self) -> tuple[Message, ...]:
        return tuple(self._messages)

    @property
    def pending(self) -> tuple[PendingToolCall, ...]:
        return tuple(self._pending)

    @property
    def approved(self) -> frozenset[str]:
        return frozenset(self._approved)

    @property
    def denied(self) -> frozenset[str]:
        return frozenset(self._denied)

    @property
    def has_pending(self) -> bool:
        return bool(self._pending)

    def permission_requests(self) -> list[PermissionRequest]:
        """Requests for every unanswered call that needs consent in the current mode."""
        requests = []
        for call in self._pending:
            if call.call_id in self._approved or call.call_id in self._denied:
                continue
            if call.permission is None or not call.permission.requires_approval(self.mode):
                continue
            tool = self.registry.get(call.tool_name)
            requests.append(
                PermissionRequest(
                    call_id=call.call_id,
                    tool_name=call.tool_name,
                    description=tool.describe(call.arguments),
                    arguments=call.arguments,
                    preview=self._preview(tool, call.arguments),
                )
            )
        return requests

    # =========================================================================
    # Internals
    # =========================================================================

    def _classify(self, call: ToolCall) -> PendingToolCall:
        pending = PendingToolCall(call_id=call.call_id, tool_name=call.name, arguments=call.arguments)
        try:
            tool = self.registry.get(call.name)
            pending.permission = tool.requires_permission(self, call.arguments)
        except ToolError as exc:
            logger.warning("session cannot classify tool=%s error=%s", call.name, exc)
            pending.error = str(exc)
        except Exception as exc:
            logger.exception("session permission check crashed tool=%s", call.name)
            pending.error = str(exc)
        else:
            logger.debug(
                "session permission tool=%s permission=%s mode=%s",
                call.name,
                pending.permission.value,
                self.mode.value,
            )
        return pending

    @staticmethod
    def _preview(tool, arguments: Any) -> ToolPreview | None:
        try:
            return tool.preview(arguments)
        except Exception:
            logger.exception("session preview failed tool=%s", tool.name)
            return None

    def _require_pending(self, call_id: str) -> None:
        if not any(call.call_id == call_id for call in self._pending):
            raise KeyError(f"No pending tool call with id {call_id!r}")

    def _resolve(self) -> StepResult:
        requests = self.permission_requests()
        if requests:
            logger.debug("session needs permission calls=%s", len(requests))
            return StepResult(StepStatus.NEEDS_PERMISSION, requests)
        self._execute_batch()
        return StepResult(StepStatus.CONTINUE)

    def _execute_batch(self) -> None:
        try:
            results = [self._execute(call) for call in self._pending]
        finally:
            self._pending = []
            self._approved.clear()
            self._denied.clear()
        self._messages.extend(results)

    def _execute(self, call: PendingToolCall) -> Message:
        def result(content: str, is_error: bool = False) -> Message:
            return Message.tool_result(call.call_id, call.tool_name, content, is_error=is_error)

        if call.error is not None:
            return result(f"Error: {call.error}", is_error=True)
        if call.call_id in self._denied:
            return result(PERMISSION_DENIED_MESSAGE, is_error=True)
        if call.permission is not None and call.permission.is_refused():
            return result(refused_message(call.tool_name), is_error=True)

        try:
            output = self.registry.execute(call.tool_name, call.arguments)
        except ToolError as exc:
            logger.warning("tool failed tool=%s error=%s", call.tool_name, abbreviate(str(exc)))
            return result(error_message(exc), is_error=True)
        except Exception as exc:
            logger.exception("tool crashed tool=%s", call.tool_name)
            return result(error_message(exc), is_error=True)
        logger.debug("tool done tool=%s output=%s", call.tool_name, abbreviate(output))
        return result(output)


__all__ = [
    "PERMISSION_DENIED_MESSAGE",
    "PendingToolCall",
    "PermissionRequest",
    "Session",
    "StepResult",
    "StepStatus",
    "error_message",
    "refused_message",
]
