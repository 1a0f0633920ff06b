"""Minimal shell AST.

A small subset of bash, enough to classify command lines before they
are run:

- simple commands (words only, no redirections or assignments)
- pipelines: ``a | b | c``
- and/or lists: ``a && b``, ``a || b``
- sequences: ``a ; b`` and newlines

The tree is never executed, only inspected.
"""

from __future__ import annotations

import shlex
from dataclasses import dataclass
from enum import Enum
from typing import Iterator


class Connector(Enum):
    """Operator joining two pipelines."""

    AND = "&&"
    OR = "||"
    SEQ = ";"


@dataclass(frozen=True)
class SimpleCommand:
    """A program followed by its literal arguments."""

    program: str
    args: tuple[str, ...] = ()

    def __str__(self) -> str:
        return shlex.join([self.program, *self.args])


Pipeline = tuple[SimpleCommand, ...]


@dataclass(frozen=True)
class Expression:
    """A first pipeline followed by connector-joined pipelines."""

    first: Pipeline
    rest: tuple[tuple[Connector, Pipeline], ...] = ()

    def pipelines(self) -> Iterator[Pipeline]:
        yield self.first
        for _, pipeline in self.rest:
            yield pipeline

    def commands(self) -> Iterator[SimpleCommand]:
        """Every simple command of the expression, in source order."""
        for pipeline in self.pipelines():
            yield from pipeline

    def __str__(self) -> str:
        parts = [" | ".join(str(c) for c in self.first)]
        for connector, pipeline in self.rest:
            parts.append(connector.value)
            parts.append(" | ".join(str(c) for c in pipeline))
        return " ".join(parts)


__all__ = ["Connector", "Expression", "Pipeline", "SimpleCommand"]
