"""Role hierarchy predicates (creator > admin > player)."""
from __future__ import annotations
from enum import Enum

from .errors import ValidationError


class Role(str, Enum):
    CREATOR = "creator"
    ADMIN = "admin"
    PLAYER = "player"


# Roles an invitation or a direct provisioning may carry
INVITABLE_ROLES = frozenset({Role.ADMIN, Role.PLAYER})


def parse_role(value) -> Role:
    """Convert raw input to a Role, rejecting unknown values."""
    if isinstance(value, Role):
        return value
    if not isinstance(value, str) or not value.strip():
        raise ValidationError("role is required", "INVALID_ROLE")
    try:
        return Role(value.strip().lower())
    except ValueError:
        raise ValidationError(
            f"role must be one of: {', '.join(r.value for r in Role)}",
            "INVALID_ROLE",
        )


def can_invite(role: Role) -> bool:
    return role in (Role.CREATOR, Role.ADMIN)


def can_provision_directly(role: Role) -> bool:
    return role is Role.CREATOR


def can_manage_organization(role: Role) -> bool:
    return role is Role.CREATOR


def can_assign_role(caller_role: Role, target_role: Role) -> bool:
    """Creator assigns admin or player, admin assigns player, nobody assigns creator."""
    if target_role is Role.CREATOR:
        return False
    if caller_role is Role.CREATOR:
        return target_role in INVITABLE_ROLES
    if caller_role is Role.ADMIN:
        return target_role is Role.PLAYER
    return False


def can_invite_role(caller_role: Role, target_role: Role, *, admin_may_invite_admin: bool = True) -> bool:
    """Invitation-specific assignment check.

    Same as can_assign_role, except that an admin may also invite another admin
    while ``admin_may_invite_admin`` is enabled.
    """
    if can_assign_role(caller_role, target_role):
        return True
    return admin_may_invite_admin and caller_role is Role.ADMIN and target_role is Role.ADMIN


def can_deactivate(caller_role: Role, target_role: Role) -> bool:
    if target_role is Role.CREATOR:
        return False
    if caller_role is Role.CREATOR:
        return True
    return caller_role is Role.ADMIN and target_role is Role.PLAYER
