"""Permission levels and operating modes.

Every tool call is tagged with a Permission. The session-wide PermissionMode
decides which of those levels need the user's approval:

    Permission        MANUAL   AUTOMATIC  AGGRESSIVE
    IMPLICIT          no       no         no
    ALLOW_AUTOMATIC   ask      no         no
    REQUIRE_APPROVAL  ask      ask        no
    NEVER             refuse   refuse     refuse
"""

from __future__ import annotations

import logging
from enum import Enum

logger = logging.getLogger(__name__)


class PermissionMode(Enum):
    """Session-wide policy for how permissions are enforced."""

    MANUAL = "manual"
    """Ask for everything that is not implicit."""

    AUTOMATIC = "automatic"
    """Auto-allow edits and allowlisted commands, ask for the rest."""

    AGGRESSIVE = "aggressive"
    """Never ask. Only NEVER is still refused."""

    def next(self) -> "PermissionMode":
        """Toggle between MANUAL and AUTOMATIC.

        AGGRESSIVE is not part of the cycle; it must be chosen
        explicitly when the session is created.
        """
        if self is PermissionMode.MANUAL:
            return PermissionMode.AUTOMATIC
        if self is PermissionMode.AUTOMATIC:
            return PermissionMode.MANUAL
        return self


class Permission(Enum):
    """Trust classification of a single tool call."""

    IMPLICIT = "implicit"
    """Always allow, never ask."""

    ALLOW_AUTOMATIC = "allow_automatic"
    """Ask in manual mode, allow in automatic and aggressive mode."""

    REQUIRE_APPROVAL = "require_approval"
    """Ask unless the mode is aggressive."""

    NEVER = "never"
    """Always refused, whatever the mode."""

    def requires_approval(self, mode: PermissionMode) -> bool:
        """Return True if a call with this permission must be approved under mode."""
        if self is Permission.IMPLICIT or self is Permission.NEVER:
            return False
        if self is Permission.ALLOW_AUTOMATIC:
            return mode is PermissionMode.MANUAL
        return mode is not PermissionMode.AGGRESSIVE

    def is_refused(self) -> bool:
        """Return True if calls with this permission are never executed."""
        return self is Permission.NEVER


def parse_permission(name: str | None) -> Permission:
    """Map a policy name from configuration to a Permission.

    Missing or unknown names fall back to REQUIRE_APPROVAL.
    """
    if not name:
        return Permission.REQUIRE_APPROVAL
    try:
        return Permission(name.strip().lower())
    except ValueError:
        logger.warning("unknown permission policy name=%s, using require_approval", name)
        return Permission.REQUIRE_APPROVAL


__all__ = ["Permission", "PermissionMode", "parse_permission"]
