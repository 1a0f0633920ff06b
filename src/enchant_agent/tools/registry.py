"""Tool registry: ordered descriptors plus lookup by name."""

from __future__ import annotations

import logging
from typing import Any, Iterable, Iterator

from enchant_agent.errors import ToolNotFoundError
from enchant_agent.logging_utils import abbreviate
from enchant_agent.tools.base import Tool, ToolDescriptor

logger = logging.getLogger(__name__)


class ToolRegistry:
    """Holds the tools offered to the model.

    Order is preserved exactly as given; it is what the model sees. Names
    are matched exactly (case-sensitive). When two tools share a name the
    first one wins.
    """

    def __init__(self, tools: Iterable[Tool] = ()):
        self._tools: dict[str, Tool] = {}
        self._order: list[ToolDescriptor] = []
        for tool in tools:
            self.register(tool)

    def register(self, tool: Tool) -> bool:
        """Add a tool. Returns False if the name is already taken."""
        descriptor = tool.descriptor()
        if descriptor.name in self._tools:
            logger.warning("registry duplicate tool name=%s skipped", descriptor.name)
            return False
        self._tools[descriptor.name] = tool
        self._order.append(descriptor)
        return True

    def descriptors(self) -> list[ToolDescriptor]:
        return list(self._order)

    def names(self) -> list[str]:
        return [d.name for d in self._order]

    def get(self, name: str) -> Tool:
        """Look up a tool by exact name.

        Raises:
            ToolNotFoundError: If no tool has that name.
        """
        try:
            return self._tools[name]
        except KeyError:
            raise ToolNotFoundError(name) from None

    def execute(self, name: str, arguments: Any) -> str:
        tool = self.get(name)
        logger.debug("registry execute tool=%s args=%s", name, abbreviate(arguments))
        return tool.execute(arguments)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __iter__(self) -> Iterator[Tool]:
        return (self._tools[d.name] for d in self._order)

    def __len__(self) -> int:
        return len(self._order)

    def __repr__(self) -> str:
        return f"<ToolRegistry(tools={self.names()})>"
