"""Parse command lines into the restricted shell AST.

Parsing fails closed: anything that is not explicitly recognised raises
ShellParseError naming the construct.
"""

from __future__ import annotations

import logging
import re
import shlex

from enchant_agent.errors import ShellParseError
from enchant_agent.shell.tree import Connector, Expression, Pipeline, SimpleCommand

logger = logging.getLogger(__name__)

_PUNCTUATION = "();<>|&\n"

_RESERVED_WORDS = frozenset(
    {
        "if", "then", "elif", "else", "fi",
        "for", "while", "until", "do", "done",
        "case", "esac", "select", "function", "coproc",
        "{", "}", "[[", "]]",
    }
)

_ASSIGNMENT = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(\[[^\]]*\])?\+?=")
_SEQUENCE = re.compile(r"^(;\n*|\n+)$")

_PIPE = "|"


def _tokenize(command: str) -> list[str]:
    lexer = shlex.shlex(command, posix=True, punctuation_chars=_PUNCTUATION)
    lexer.whitespace = " \t\r"
    lexer.whitespace_split = True
    lexer.commenters = ""
    try:
        return list(lexer)
    except ValueError as exc:
        raise ShellParseError(f"Unable to tokenize command: {exc}") from exc


def _is_operator(token: str) -> bool:
    return bool(token) and all(ch in _PUNCTUATION for ch in token)


def _operator(token: str) -> Connector | str:
    """Map an operator token to a connector or the pipe marker."""
    if _SEQUENCE.match(token):
        return Connector.SEQ

    # A newline right after &&, || or | continues the command.
    op = token.rstrip("\n")
    if op == "&&":
        return Connector.AND
    if op == "||":
        return Connector.OR
    if op == _PIPE:
        return _PIPE

    if "<" in op or ">" in op:
        raise ShellParseError(f"Redirections are not supported: {op!r}")
    if "(" in op or ")" in op:
        raise ShellParseError("Subshells and grouping are not supported")
    if op == "&":
        raise ShellParseError("Background execution (&) is not supported")
    raise ShellParseError(f"Unsupported operator: {op!r}")


def _build_command(words: list[str]) -> SimpleCommand:
    for word in words:
        if word.startswith("#"):
            raise ShellParseError("Comments are not supported")

    program = words[0]
    if not program:
        raise ShellParseError("Empty program name")
    if program == "!":
        raise ShellParseError("Negation (!) is not supported")
    if program == "time":
        raise ShellParseError("Timed pipelines (time) are not supported")
    if program in _RESERVED_WORDS:
        raise ShellParseError(f"Compound commands are not supported: {program!r}")
    if _ASSIGNMENT.match(program):
        raise ShellParseError("Variable assignments are not supported")

    return SimpleCommand(program=program, args=tuple(words[1:]))


def parse(command: str) -> Expression:
    """Parse a command line into an Expression.

    Raises:
        ShellParseError: If the command is empty, malformed, or uses a
            construct outside the supported subset.
    """
    if "`" in command or "$(" in command:
        raise ShellParseError("Command substitution is not supported")

    first: Pipeline | None = None
    rest: list[tuple[Connector, Pipeline]] = []
    connector: Connector | None = None
    pipeline: list[SimpleCommand] = []
    words: list[str] = []

    for token in _tokenize(command):
        if not _is_operator(token):
            words.append(token)
            continue

        op = _operator(token)
        if op == _PIPE:
            if not words:
                raise ShellParseError("Expected a command before '|'")
            pipeline.append(_build_command(words))
            words = []
            continue

        blank_line = op is Connector.SEQ and ";" not in token
        if words:
            pipeline.append(_build_command(words))
            words = []
        elif pipeline:
            if blank_line:
                # The pipe is still open; the command continues on the next line.
                continue
            raise ShellParseError("Expected a command after '|'")

        if not pipeline:
            if blank_line:
                # Blank line.
                continue
            raise ShellParseError(f"Expected a command before {op.value!r}")

        if first is None:
            first = tuple(pipeline)
        else:
            rest.append((connector, tuple(pipeline)))
        connector = op
        pipeline = []

    if words:
        pipeline.append(_build_command(words))
    elif pipeline:
        raise ShellParseError("Expected a command after '|'")

    if pipeline:
        if first is None:
            first = tuple(pipeline)
        else:
            rest.append((connector, tuple(pipeline)))
    elif connector in (Connector.AND, Connector.OR):
        raise ShellParseError(f"Expected a command after {connector.value!r}")

    if first is None:
        raise ShellParseError("Empty command")

    expression = Expression(first=first, rest=tuple(rest))
    logger.debug("shell parsed command=%r commands=%s", command, len(list(expression.commands())))
    return expression


__all__ = ["parse"]
