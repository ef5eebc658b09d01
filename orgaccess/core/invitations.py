"""
Invitation lifecycle: issue, revoke, redeem.

States:
    pending -> accepted   (redeem, terminal)
    pending -> revoked    (inviter action, terminal)
    pending -> expired    (derived once expires_at has passed, terminal)

Expiry is never swept in the background. A ``pending`` row past ``expires_at``
reads as expired everywhere, and operations that touch it correct the stored
status on the way.
"""

from __future__ import annotations
import hashlib
import logging
import secrets
from datetime import timedelta
from typing import Optional

from sqlalchemy.exc import IntegrityError

from orgaccess.config import ALLOWED_INVITE_EXPIRY_HOURS
from orgaccess.db.models import Invitation, InvitationStatus, Organization, Profile
from . import audit
from .context import ServiceContext
from .errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from .provisioning_service import find_active_profile, provision_account
from .roles import INVITABLE_ROLES, can_invite, can_invite_role, parse_role
from .store import rollback_quietly, store_errors
from .validators import validate_email, validate_name, validate_password

logger = logging.getLogger(__name__)

TOKEN_BYTES = 32
LIST_LIMIT = 50

PENDING = InvitationStatus.PENDING.value
ACCEPTED = InvitationStatus.ACCEPTED.value
EXPIRED = InvitationStatus.EXPIRED.value
REVOKED = InvitationStatus.REVOKED.value

# Same message for unknown, used, revoked and expired tokens
INVITE_NOT_FOUND = "Invitation not found. The link is invalid or has expired."


def generate_token() -> str:
    return secrets.token_urlsafe(TOKEN_BYTES)


def build_invite_url(site_url: str, token: str) -> str:
    return f"{site_url.rstrip('/')}/invite/accept?token={token}"


def _fingerprint(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()[:12]


def _parse_expiry_hours(ctx: ServiceContext, expires_hours) -> int:
    if expires_hours is None:
        return ctx.settings.default_invite_expiry_hours
    if isinstance(expires_hours, str) and expires_hours.strip().isdigit():
        expires_hours = int(expires_hours.strip())
    if isinstance(expires_hours, bool) or not isinstance(expires_hours, int) \
            or expires_hours not in ALLOWED_INVITE_EXPIRY_HOURS:
        raise ValidationError(
            f"expiresHours must be one of {', '.join(str(h) for h in ALLOWED_INVITE_EXPIRY_HOURS)}",
            "INVALID_EXPIRY",
        )
    return expires_hours


def _expire_stale(ctx: ServiceContext, **filters) -> int:
    """Mark pending rows past expires_at as expired. Caller commits."""
    now = ctx.now()
    return (
        ctx.session.query(Invitation)
        .filter(Invitation.status == PENDING, Invitation.expires_at <= now)
        .filter_by(**filters)
        .update({Invitation.status: EXPIRED, Invitation.updated_at: now}, synchronize_session=False)
    )


def issue(
    ctx: ServiceContext,
    organization_id: str,
    caller_role,
    email,
    role,
    expires_hours,
    invited_by: str,
) -> tuple[Invitation, str]:
    """Create a pending invitation and its redemption URL.

    Args:
        ctx: Service context
        organization_id: Caller's organization
        caller_role: Caller's role
        email: Invitee email
        role: Role the invitee receives (admin or player)
        expires_hours: One of 24, 48, 72, 168; None selects the configured default
        invited_by: Caller's profile id

    Returns:
        Tuple of (invitation, invite_url)

    Raises:
        AuthorizationError: Caller may not invite, or may not invite this role
        ValidationError: Malformed email, role or expiry
        ConflictError: Email already a member, or a pending invitation exists
        UpstreamError: Store failure
    """
    caller_role = parse_role(caller_role)
    if not can_invite(caller_role):
        raise AuthorizationError("Admin or Creator role is required to invite", "INVITE_FORBIDDEN")

    email = validate_email(email)
    role = parse_role(role)
    hours = _parse_expiry_hours(ctx, expires_hours)
    if role not in INVITABLE_ROLES:
        raise ValidationError("role must be admin or player", "INVALID_ROLE")
    if not can_invite_role(caller_role, role, admin_may_invite_admin=ctx.settings.admin_may_invite_admin):
        raise AuthorizationError(
            f"{caller_role.value} cannot invite {role.value} accounts", "ROLE_FORBIDDEN"
        )

    with store_errors(ctx.session, "issuing invitation"):
        if find_active_profile(ctx, organization_id, email):
            raise ConflictError("This email address is already a member of the organization", "ALREADY_MEMBER")

        now = ctx.now()
        _expire_stale(ctx, organization_id=organization_id, email=email)
        pending = (
            ctx.session.query(Invitation)
            .filter_by(organization_id=organization_id, email=email, status=PENDING)
            .first()
        )
        if pending:
            ctx.session.commit()
            raise ConflictError("An invitation for this email address is already pending", "INVITE_EXISTS")

        invitation = Invitation(
            organization_id=organization_id,
            email=email,
            role=role.value,
            token=generate_token(),
            invited_by=invited_by,
            status=PENDING,
            expires_at=now + timedelta(hours=hours),
            created_at=now,
            updated_at=now,
        )
        try:
            ctx.session.add(invitation)
            ctx.session.commit()
        except IntegrityError as exc:
            rollback_quietly(ctx.session)
            raise ConflictError("An invitation for this email address is already pending", "INVITE_EXISTS") from exc
        invitation_id, token = invitation.id, invitation.token

    invite_url = build_invite_url(ctx.settings.site_url, token)
    logger.info(
        "Invitation %s issued for %s as %s (token_hash=%s)",
        invitation_id, email, role.value, _fingerprint(token),
    )

    audit.safe_record(
        ctx,
        organization_id,
        invited_by,
        "invitation.sent",
        target_id=invitation_id,
        target_type="invitation",
        metadata={"email": email, "role": role.value, "expires_hours": hours},
    )
    return invitation, invite_url


def revoke(
    ctx: ServiceContext,
    organization_id: str,
    invitation_id,
    caller_role,
    actor_id: Optional[str] = None,
) -> Invitation:
    """Revoke a pending invitation. Revoking an already revoked one is a no-op.

    Raises:
        AuthorizationError: Caller may not manage invitations
        NotFoundError: No such invitation in the organization
        ConflictError: Invitation already accepted or expired
        UpstreamError: Store failure
    """
    caller_role = parse_role(caller_role)
    if not can_invite(caller_role):
        raise AuthorizationError("Admin or Creator role is required to revoke invitations", "INVITE_FORBIDDEN")
    if not invitation_id:
        raise ValidationError("invitationId is required", "INVALID_INVITATION")

    with store_errors(ctx.session, "revoking invitation"):
        invitation = (
            ctx.session.query(Invitation)
            .filter_by(id=invitation_id, organization_id=organization_id)
            .first()
        )
        if not invitation:
            raise NotFoundError("Invitation not found", "INVITE_NOT_FOUND")
        if invitation.status == REVOKED:
            return invitation
        details = {"email": invitation.email, "role": invitation.role}

        now = ctx.now()
        revoked = (
            ctx.session.query(Invitation)
            .filter(
                Invitation.id == invitation_id,
                Invitation.organization_id == organization_id,
                Invitation.status == PENDING,
                Invitation.expires_at > now,
            )
            .update({Invitation.status: REVOKED, Invitation.updated_at: now}, synchronize_session=False)
        )
        if not revoked:
            _expire_stale(ctx, id=invitation_id)
        ctx.session.commit()

        if not revoked:
            # reloaded after commit; a concurrent revoke counts as success
            if invitation.status == REVOKED:
                return invitation
            raise ConflictError(f"Invitation is already {invitation.status}", "INVITE_NOT_PENDING")

    logger.info("Invitation %s revoked", invitation_id)
    audit.safe_record(
        ctx,
        organization_id,
        actor_id,
        "invitation.revoked",
        target_id=invitation_id,
        target_type="invitation",
        metadata=details,
    )
    return invitation


def _find_redeemable(ctx: ServiceContext, token: str) -> Invitation:
    with store_errors(ctx.session, "looking up invitation"):
        invitation = ctx.session.query(Invitation).filter_by(token=token).first()
        if invitation is None or invitation.status != PENDING:
            raise NotFoundError(INVITE_NOT_FOUND, "INVITE_NOT_FOUND")
        if invitation.is_expired(ctx.now()):
            _expire_stale(ctx, id=invitation.id)
            ctx.session.commit()
            raise NotFoundError(INVITE_NOT_FOUND, "INVITE_NOT_FOUND")
    return invitation


def redeem(ctx: ServiceContext, token, password, full_name) -> Profile:
    """Exchange a valid token plus credentials for a new profile.

    The profile insert and the conditional ``pending -> accepted`` update commit
    together. A concurrent redeemer loses either at the conditional update
    (NotFoundError) or at the active-profile unique index (ConflictError); the
    loser's identity is compensated in both cases.

    Raises:
        ValidationError: Missing token or name, or short password
        NotFoundError: Token unknown, used, revoked or expired
        ConflictError: An active profile already exists for the email
    """
    if not isinstance(token, str) or not token.strip():
        raise ValidationError("token is required", "INVALID_TOKEN")
    token = token.strip()
    password = validate_password(password)
    full_name = validate_name(full_name)

    invitation = _find_redeemable(ctx, token)
    invitation_id = invitation.id
    organization_id = invitation.organization_id
    email = invitation.email
    role = parse_role(invitation.role)

    with store_errors(ctx.session, "checking existing members"):
        existing = find_active_profile(ctx, organization_id, email)
    if existing:
        raise ConflictError("This email address is already registered", "EMAIL_EXISTS")

    def claim(profile: Profile) -> None:
        now = ctx.now()
        claimed = (
            ctx.session.query(Invitation)
            .filter(
                Invitation.id == invitation_id,
                Invitation.status == PENDING,
                Invitation.expires_at > now,
            )
            .update(
                {Invitation.status: ACCEPTED, Invitation.accepted_at: now, Invitation.updated_at: now},
                synchronize_session=False,
            )
        )
        if claimed != 1:
            raise NotFoundError(INVITE_NOT_FOUND, "INVITE_NOT_FOUND")

    profile = provision_account(
        ctx,
        organization_id=organization_id,
        email=email,
        password=password,
        full_name=full_name,
        role=role,
        created_by=invitation.invited_by,
        finalize=claim,
    )
    logger.info("Invitation %s accepted by profile %s (token_hash=%s)", invitation_id, profile.id, _fingerprint(token))

    audit.safe_record(
        ctx,
        organization_id,
        profile.id,
        "invitation.accepted",
        target_id=invitation_id,
        target_type="invitation",
        metadata={"role": role.value, "email": email},
    )
    return profile


def list_invitations(ctx: ServiceContext, organization_id: str, caller_role, limit: int = LIST_LIMIT) -> list[Invitation]:
    """Newest invitations of an organization, with stale pending rows corrected."""
    caller_role = parse_role(caller_role)
    if not can_invite(caller_role):
        raise AuthorizationError("Admin or Creator role is required to list invitations", "INVITE_FORBIDDEN")

    with store_errors(ctx.session, "listing invitations"):
        if _expire_stale(ctx, organization_id=organization_id):
            ctx.session.commit()

        return (
            ctx.session.query(Invitation)
            .filter_by(organization_id=organization_id)
            .order_by(Invitation.created_at.desc())
            .limit(limit)
            .all()
        )


def preview(ctx: ServiceContext, token) -> dict:
    """Public summary of a redeemable invitation, shown before the invitee signs up."""
    if not isinstance(token, str) or not token.strip():
        raise ValidationError("token is required", "INVALID_TOKEN")

    invitation = _find_redeemable(ctx, token.strip())
    with store_errors(ctx.session, "loading organization"):
        organization = ctx.session.get(Organization, invitation.organization_id)
    return {
        "email": invitation.email,
        "role": invitation.role,
        "organizationName": organization.name if organization else None,
        "expiresAt": invitation.to_dict(ctx.now())["expiresAt"],
    }
