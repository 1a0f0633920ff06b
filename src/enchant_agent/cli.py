"""Console driver: the `enchant` command."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Callable, Sequence, TextIO

from enchant_agent.config import DEFAULT_MODEL, AgentConfig, EnchantConfig, load_config, load_user_config
from enchant_agent.errors import ConfigError, McpError, ModelError
from enchant_agent.logging_utils import configure_logging
from enchant_agent.mcp import MCPHub
from enchant_agent.model import AnthropicModel, ModelClient
from enchant_agent.permissions import PermissionMode
from enchant_agent.prompt import build_system_prompt
from enchant_agent.session import PermissionRequest, Session, StepStatus
from enchant_agent.tools import ToolRegistry, default_tools

logger = logging.getLogger(__name__)

PROMPT = "> "
HELP_TEXT = "Commands: /mode (cycle manual/automatic), /exit"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="enchant", description="Run the enchant coding agent.")
    parser.add_argument("--model", help="Model name (default: from config)")
    group = parser.add_mutually_exclusive_group()
    group.add_argument("--auto", action="store_true", help="Run allow_automatic tools without asking")
    group.add_argument("--yolo", action="store_true", help="Run everything except refused tools without asking")
    parser.add_argument("--config", help="Config file to use instead of ~/.enchant/enchant.json")
    parser.add_argument("--log-level", default=None, help="Log level (or ENCHANT_LOG_LEVEL)")
    parser.add_argument("--log-file", default=None, help="Write logs to this file")
    return parser


def resolve_config(args: argparse.Namespace, cwd: Path) -> tuple[EnchantConfig, AgentConfig]:
    """Combine the config files and the command line.

    Raises:
        ConfigError: If a config file is invalid.
    """
    if args.config:
        config = load_config(args.config)
    else:
        config = load_user_config(project_dir=cwd)

    mode = PermissionMode.MANUAL
    if args.yolo:
        mode = PermissionMode.AGGRESSIVE
    elif args.auto:
        mode = PermissionMode.AUTOMATIC

    agent_config = AgentConfig(
        model=args.model or config.default_model or DEFAULT_MODEL,
        mode=mode,
    )
    return config, agent_config


def format_request(request: PermissionRequest) -> str:
    lines = [f"Permission required: {request.description}"]
    if request.preview is not None:
        lines.append(request.preview.text.rstrip("\n"))
    return "\n".join(lines)


def ask_yes_no(question: str, read: Callable[[str], str] = input) -> bool:
    """Ask until the answer is yes or no. EOF counts as no."""
    while True:
        try:
            answer = read(f"{question} [y]es / [n]o ").strip().lower()
        except EOFError:
            return False
        if answer in ("y", "yes"):
            return True
        if answer in ("n", "no"):
            return False


class ConsoleDriver:
    """Line-oriented loop over a Session."""

    def __init__(
        self,
        session: Session,
        read: Callable[[str], str] | None = None,
        out: TextIO | None = None,
    ):
        self.session = session
        self.read = read or input
        self.out = out or sys.stdout
        self._shown = len(session.messages)

    def write(self, text: str) -> None:
        print(text, file=self.out)

    def run(self) -> None:
        self.write(f"enchant ({self.session.mode.value} mode). {HELP_TEXT}")
        while True:
            try:
                line = self.read(PROMPT)
            except (EOFError, KeyboardInterrupt):
                self.write("")
                return
            line = line.strip()
            if not line:
                continue
            if line in ("/exit", "/quit"):
                return
            if line == "/mode":
                self.write(f"mode: {self.session.cycle_mode().value}")
                continue
            self.session.submit(line)
            self.run_turn()

    def run_turn(self) -> None:
        """Drive the session until the model is done with the turn."""
        while True:
            try:
                result = self.session.run_until_blocked()
            except ModelError as exc:
                self.write(f"Model error: {exc}")
                return
            finally:
                self._show_new_messages()

            if result.status is StepStatus.DONE:
                return
            for request in result.requests:
                self.write(format_request(request))
                if ask_yes_no("Allow?", self.read):
                    self.session.approve(request.call_id)
                else:
                    self.session.deny(request.call_id)

    def _show_new_messages(self) -> None:
        messages = self.session.messages
        for message in messages[self._shown:]:
            if message.role == "assistant" and message.content:
                self.write(message.content)
            elif message.role == "tool" and message.is_error:
                self.write(f"[{message.tool_name}] {message.content}")
        self._shown = len(messages)


def main(argv: Sequence[str] | None = None, model: ModelClient | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        configure_logging(args.log_level, args.log_file)
    except ValueError as exc:
        print(str(exc), file=sys.stderr)
        return 2

    cwd = Path.cwd()
    try:
        config, agent_config = resolve_config(args, cwd)
    except ConfigError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 1

    try:
        hub = MCPHub.discover(config.mcp_servers)
    except (ConfigError, McpError) as exc:
        print(f"MCP discovery failed: {exc}", file=sys.stderr)
        return 1

    with hub:
        registry = ToolRegistry(default_tools(timeout=agent_config.bash_timeout, cwd=cwd) + hub.tools)
        logger.info("cli start model=%s mode=%s tools=%s", agent_config.model, agent_config.mode.value, len(registry))
        session = Session(
            registry,
            model or AnthropicModel(agent_config.model, agent_config.max_tokens),
            system_prompt=build_system_prompt(cwd),
            mode=agent_config.mode,
            allowlist=config.bash_allow,
        )
        ConsoleDriver(session).run()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
