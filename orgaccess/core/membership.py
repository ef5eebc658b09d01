"""Membership lifecycle: member listing and logical deactivation of profiles."""

from __future__ import annotations
import logging

from sqlalchemy import case

from orgaccess.db.models import Profile
from . import audit
from .context import ServiceContext
from .errors import AuthorizationError, NotFoundError, UpstreamError, ValidationError
from .identity import IdentityProviderError
from .roles import Role, can_deactivate, can_invite, parse_role
from .store import store_errors

logger = logging.getLogger(__name__)


def deactivate(ctx: ServiceContext, organization_id: str, caller_id: str, caller_role, target_user_id) -> str:
    """Deactivate a member and revoke their sessions.

    The profile row is kept (``is_active = false``) so historical activity
    still resolves.

    Returns:
        Confirmation message naming the member

    Raises:
        ValidationError: Missing or malformed target, or self-deactivation
        NotFoundError: No active profile with that id in the organization
        AuthorizationError: Role hierarchy forbids the action
        UpstreamError: Store failure, or sessions could not be revoked (profile already deactivated)
    """
    caller_role = parse_role(caller_role)
    if not isinstance(target_user_id, str) or not target_user_id.strip():
        raise ValidationError("targetUserId is required", "INVALID_TARGET")
    if target_user_id == caller_id:
        raise ValidationError("You cannot deactivate your own account", "SELF_DEACTIVATION")

    with store_errors(ctx.session, "looking up member"):
        target = (
            ctx.session.query(Profile)
            .filter_by(id=target_user_id, organization_id=organization_id, is_active=True)
            .first()
        )
    if not target:
        raise NotFoundError("Member not found", "MEMBER_NOT_FOUND")

    target_role = parse_role(target.role)
    if not can_deactivate(caller_role, target_role):
        raise AuthorizationError(
            f"{caller_role.value} cannot deactivate {target_role.value} accounts", "DEACTIVATE_FORBIDDEN"
        )

    display_name = target.full_name or target.email
    target_email = target.email

    now = ctx.now()
    with store_errors(ctx.session, "deactivating member"):
        updated = (
            ctx.session.query(Profile)
            .filter(
                Profile.id == target_user_id,
                Profile.organization_id == organization_id,
                Profile.is_active.is_(True),
            )
            .update({Profile.is_active: False, Profile.updated_at: now}, synchronize_session=False)
        )
        ctx.session.commit()
    if not updated:
        raise NotFoundError("Member not found", "MEMBER_NOT_FOUND")

    try:
        revoked = ctx.identity.revoke_sessions(target_user_id)
        revoke_error = None
    except IdentityProviderError as exc:
        revoked = 0
        revoke_error = exc
        logger.error("Profile %s deactivated but session revocation failed: %s", target_user_id, exc)

    audit.safe_record(
        ctx,
        organization_id,
        caller_id,
        "user.deactivated",
        target_id=target_user_id,
        target_type="profile",
        metadata={
            "target_role": target_role.value,
            "target_email": target_email,
            "sessions_revoked": revoke_error is None,
            "session_count": revoked,
        },
    )

    if revoke_error is not None:
        raise UpstreamError(
            f"{display_name} was deactivated but active sessions could not be revoked: {revoke_error}",
            "SESSION_REVOKE_FAILED",
        ) from revoke_error

    logger.info("Profile %s deactivated by %s (%d session(s) revoked)", target_user_id, caller_id, revoked)
    return f"{display_name} has been deactivated"


def list_members(ctx: ServiceContext, organization_id: str, caller_role) -> list[Profile]:
    """Active members of an organization, creator first, then admins, then players."""
    caller_role = parse_role(caller_role)
    if not can_invite(caller_role):
        raise AuthorizationError("Admin or Creator role is required to list members", "MEMBERS_FORBIDDEN")

    rank = case(
        (Profile.role == Role.CREATOR.value, 0),
        (Profile.role == Role.ADMIN.value, 1),
        else_=2,
    )
    with store_errors(ctx.session, "listing members"):
        return (
            ctx.session.query(Profile)
            .filter_by(organization_id=organization_id, is_active=True)
            .order_by(rank, Profile.created_at)
            .all()
        )
