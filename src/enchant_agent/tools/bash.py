"""Bash tool: run shell commands that passed the sandbox parser.

Commands are parsed before they are classified and again before they run,
so a command outside the supported subset is never handed to bash.
"""

from __future__ import annotations

import logging
import os
import signal
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import Field

from enchant_agent.errors import ToolError
from enchant_agent.logging_utils import abbreviate
from enchant_agent.permissions import Permission
from enchant_agent.shell import classify, is_allowed, parse
from enchant_agent.tools.base import ToolInput, TypedTool

if TYPE_CHECKING:
    from enchant_agent.session import Session

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 120


@dataclass
class CommandResult:
    """Result of a command execution."""

    exit_code: int
    stdout: str
    stderr: str

    def __str__(self) -> str:
        """Format as readable output."""
        parts = []
        if self.stdout:
            parts.append(self.stdout)
        if self.stderr:
            parts.append(f"[stderr] {self.stderr}")
        parts.append(f"[exit code: {self.exit_code}]")
        return "\n".join(parts)


class BashInput(ToolInput):
    command: str = Field(description="Bash command to run.")


class BashTool(TypedTool[BashInput]):
    name = "Bash"
    description = (
        "Runs a bash command and returns its standard output. Only simple "
        "commands joined with |, &&, || and ; are supported: no redirections, "
        "subshells, command substitution or background jobs. A word that starts "
        "with # is rejected as a comment even when quoted; attach it to an option "
        "(grep -e'#include') or use a pattern such as '[#]include' instead."
    )
    input_model = BashInput

    def __init__(self, timeout: int = DEFAULT_TIMEOUT, cwd: Path | str | None = None):
        self.timeout = timeout
        self.cwd = Path(cwd) if cwd else None

    def check_permission(self, session: "Session | None", params: BashInput) -> Permission:
        expression = parse(params.command)
        permission = classify(expression)
        if permission is Permission.REQUIRE_APPROVAL and session is not None:
            if is_allowed(expression, session.allowlist):
                # Allowlisted: no prompt outside manual mode.
                permission = Permission.ALLOW_AUTOMATIC
        logger.debug("bash permission command=%s permission=%s", abbreviate(params.command), permission.value)
        return permission

    def describe_input(self, params: BashInput) -> str:
        return f"Bash({params.command})"

    def run(self, params: BashInput) -> str:
        parse(params.command)

        logger.debug("bash run command=%s cwd=%s", abbreviate(params.command), self.cwd)
        try:
            # Own process group, so a timeout can take down the whole pipeline.
            process = subprocess.Popen(
                ["bash", "-c", params.command],
                cwd=self.cwd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                start_new_session=True,
            )
        except OSError as exc:
            raise ToolError(f"Unable to start bash: {exc}") from exc

        timed_out = False
        try:
            stdout, stderr = process.communicate(timeout=self.timeout)
        except subprocess.TimeoutExpired:
            timed_out = True
        finally:
            _kill_process_group(process)

        if timed_out:
            process.communicate()
            logger.debug("bash timeout seconds=%s", self.timeout)
            raise ToolError(f"Command timed out after {self.timeout} seconds")

        result = CommandResult(
            exit_code=process.returncode,
            stdout=stdout,
            stderr=stderr,
        )
        logger.debug("bash result exit_code=%s", result.exit_code)
        if result.exit_code == 0:
            return result.stdout
        raise ToolError(str(result))


def _kill_process_group(process: subprocess.Popen) -> None:
    """SIGKILL everything left in the command's process group and reap bash."""
    try:
        os.killpg(process.pid, signal.SIGKILL)
    except (ProcessLookupError, PermissionError):
        pass
    if process.poll() is None:
        process.wait()
