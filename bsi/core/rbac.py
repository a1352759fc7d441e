"""
Static role → permission policy table and the permission check.

The table is immutable at runtime: the only way a user's effective
permissions change is a role change.
"""

from __future__ import annotations

import enum
from types import MappingProxyType


class Role(str, enum.Enum):
    GUEST = "GUEST"
    MEMBER = "MEMBER"
    STRATEGIST = "STRATEGIST"


class Action(str, enum.Enum):
    READ_PUBLIC = "READ_PUBLIC"
    READ_OWN = "READ_OWN"
    WRITE_OWN = "WRITE_OWN"
    UPDATE_OWN = "UPDATE_OWN"
    DELETE_OWN = "DELETE_OWN"
    VOICE_REFLECT = "VOICE_REFLECT"
    AI_CHAT = "AI_CHAT"
    READ_ALL = "READ_ALL"
    READ_SYSTEM = "READ_SYSTEM"
    UPDATE_GLOBAL = "UPDATE_GLOBAL"
    RBAC_MANAGEMENT = "RBAC_MANAGEMENT"


# Holding READ_ALL satisfies every check (see has_permission).
ESCALATION_MARKER = Action.READ_ALL.value

RBAC_POLICIES: MappingProxyType[Role, frozenset[str]] = MappingProxyType(
    {
        Role.GUEST: frozenset({Action.READ_PUBLIC.value}),
        Role.MEMBER: frozenset(
            {
                Action.READ_OWN.value,
                Action.WRITE_OWN.value,
                Action.UPDATE_OWN.value,
                Action.DELETE_OWN.value,
                Action.VOICE_REFLECT.value,
                Action.AI_CHAT.value,
            }
        ),
        Role.STRATEGIST: frozenset(
            {
                Action.READ_ALL.value,
                Action.READ_SYSTEM.value,
                Action.UPDATE_GLOBAL.value,
                Action.RBAC_MANAGEMENT.value,
            }
        ),
    }
)


def permissions_for(role: Role | str) -> frozenset[str]:
    """Return the permission set for ``role``.

    Raises ``ValueError`` for a string that is not a known role.
    """
    return RBAC_POLICIES[Role(role)]


def has_permission(role: Role | str, action: Action | str) -> bool:
    """True if ``action`` is granted to ``role`` or the role holds READ_ALL."""
    perms = permissions_for(role)
    action = action.value if isinstance(action, Action) else action
    return action in perms or ESCALATION_MARKER in perms


# Stand-in for an invitation/approval workflow.
ELEVATED_EMAIL_MARKER = "admin"


def role_for_email(email: str) -> Role:
    """Emails containing ``admin`` get the elevated role, all others MEMBER."""
    return Role.STRATEGIST if ELEVATED_EMAIL_MARKER in email else Role.MEMBER
