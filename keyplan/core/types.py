"""
Keyplan Core - Shared types and enums.
"""

from __future__ import annotations

from enum import StrEnum


class GroupRights(StrEnum):
    """Rights of an account within a group."""

    MANAGER = "MANAGER"
    NORMAL = "NORMAL"


class AuthorizingGroupType(StrEnum):
    """Kinds of authorization a group can delegate to another group."""

    AUDITING = "AUDITING"
    DELEGATION = "DELEGATION"
    MEMBERSHIP = "MEMBERSHIP"
    PROVISIONING = "PROVISIONING"

    @property
    def description(self) -> str:
        """Lower case label used in messages."""
        return self.value.lower()

    @property
    def group_field(self) -> str:
        """Group attribute holding the current authorizing group."""
        return f"authorizingGroup{self.value.capitalize()}"


class RequestStatus(StrEnum):
    """Status of a modification request."""

    REQUESTED = "REQUESTED"
    ALLOWED = "ALLOWED"
    DENIED = "DENIED"


class RecoveryChoice(StrEnum):
    """Operator decision after an action failed."""

    RETRY = "Retry"
    CONTINUE = "Continue"
    ABORT = "Abort"
