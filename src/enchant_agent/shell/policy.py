"""Classify parsed commands and check them against allowlist rules."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable

from enchant_agent.permissions import Permission
from enchant_agent.shell.tree import Expression, SimpleCommand

logger = logging.getLogger(__name__)

# Read-only programs without side effects; allowed whatever their arguments.
SAFE_PROGRAMS = frozenset(
    {
        "cat",
        "cd",
        "echo",
        "false",
        "grep",
        "head",
        "ls",
        "nl",
        "pwd",
        "tail",
        "true",
        "wc",
        "which",
    }
)

WILDCARD = "*"


def is_intrinsically_safe(command: SimpleCommand) -> bool:
    """Return True if the command can never need approval."""
    if command.program in SAFE_PROGRAMS:
        return True
    return command.program == "cargo" and command.args[:1] == ("check",)


def classify(expression: Expression) -> Permission:
    """IMPLICIT if every command is intrinsically safe, else REQUIRE_APPROVAL."""
    if all(is_intrinsically_safe(c) for c in expression.commands()):
        return Permission.IMPLICIT
    return Permission.REQUIRE_APPROVAL


@dataclass(frozen=True)
class AllowRule:
    """A user-authored pattern such as ``"cargo build"`` or ``"git log *"``.

    A trailing ``*`` turns the rule into a prefix rule: further arguments
    are accepted. A ``*`` anywhere else matches exactly one argument.
    """

    program: str
    args: tuple[str, ...] = ()
    prefix: bool = False

    @classmethod
    def parse(cls, text: str) -> "AllowRule | None":
        """Parse a rule string. Blank rules yield None."""
        tokens = text.split()
        if not tokens:
            return None
        program, args = tokens[0], tokens[1:]
        prefix = bool(args) and args[-1] == WILDCARD
        if prefix:
            args = args[:-1]
        return cls(program=program, args=tuple(args), prefix=prefix)

    def matches(self, command: SimpleCommand) -> bool:
        if command.program != self.program:
            return False
        if self.prefix:
            if len(command.args) < len(self.args):
                return False
        elif len(command.args) != len(self.args):
            return False
        return all(
            expected == WILDCARD or expected == actual
            for expected, actual in zip(self.args, command.args)
        )

    def __str__(self) -> str:
        parts = [self.program, *self.args]
        if self.prefix:
            parts.append(WILDCARD)
        return " ".join(parts)


def parse_rules(rules: Iterable[str | AllowRule]) -> list[AllowRule]:
    """Normalise a mix of rule strings and AllowRule objects, dropping blanks."""
    parsed: list[AllowRule] = []
    for rule in rules:
        if isinstance(rule, str):
            rule = AllowRule.parse(rule)
        if rule is not None:
            parsed.append(rule)
    return parsed


def is_allowed(expression: Expression, allowlist: Iterable[str | AllowRule]) -> bool:
    """Return True if every command of the expression matches some rule.

    An expression without commands is vacuously allowed.
    """
    rules = parse_rules(allowlist)
    for command in expression.commands():
        if not any(rule.matches(command) for rule in rules):
            logger.debug("shell not allowlisted command=%s", command)
            return False
    return True


__all__ = [
    "AllowRule",
    "SAFE_PROGRAMS",
    "WILDCARD",
    "classify",
    "is_allowed",
    "is_intrinsically_safe",
    "parse_rules",
]
