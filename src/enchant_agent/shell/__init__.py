"""Shell command sandbox.

Commands are parsed into a restricted AST and classified before they are
ever handed to a real shell. Safety is allowlist-based validation only;
there is no process isolation.
"""

from enchant_agent.shell.parse import parse
from enchant_agent.shell.policy import (
    SAFE_PROGRAMS,
    AllowRule,
    classify,
    is_allowed,
    is_intrinsically_safe,
    parse_rules,
)
from enchant_agent.shell.tree import Connector, Expression, Pipeline, SimpleCommand

__all__ = [
    "AllowRule",
    "Connector",
    "Expression",
    "Pipeline",
    "SAFE_PROGRAMS",
    "SimpleCommand",
    "classify",
    "is_allowed",
    "is_intrinsically_safe",
    "parse",
    "parse_rules",
]
