"""
Account provisioning: identity provider account + local profile as one unit.

The identity provider and the relational store share no transaction, so
provisioning runs as a saga:

    1. create the account at the identity provider
    2. insert the profile (plus any caller-supplied store writes) and commit
    3. on failure after step 1, delete the account again (compensation)

If the compensation itself fails the caller receives ``RollbackFailure``, which
names the orphaned account so an operator can reconcile it.

Used directly by creators (``provision``), by invitation redemption
(``provision_account``) and by the operator CLI (``found_organization``).
"""

from __future__ import annotations
import logging
from typing import Callable, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from orgaccess.db.models import Organization, Profile
from . import audit
from .context import ServiceContext
from .errors import (
    AuthorizationError,
    ConflictError,
    RollbackFailure,
    ServiceError,
    UpstreamError,
    ValidationError,
)
from .identity import IdentityProviderError, UserAlreadyExistsError, UserNotFoundError
from .store import rollback_quietly, store_errors
from .roles import INVITABLE_ROLES, Role, can_provision_directly, parse_role
from .validators import validate_email, validate_name, validate_password, validate_slug

logger = logging.getLogger(__name__)


def find_active_profile(ctx: ServiceContext, organization_id: str, email: str) -> Optional[Profile]:
    return (
        ctx.session.query(Profile)
        .filter_by(organization_id=organization_id, email=email, is_active=True)
        .first()
    )


def _create_identity(ctx: ServiceContext, *, email: str, password: str, full_name: str,
                     organization_id: str, role: Role) -> str:
    try:
        return ctx.identity.create_account(
            email=email,
            password=password,
            full_name=full_name,
            organization_id=organization_id,
            role=role.value,
        )
    except UserAlreadyExistsError as exc:
        raise ConflictError("An account with this email already exists", "ACCOUNT_EXISTS") from exc
    except IdentityProviderError as exc:
        raise UpstreamError(f"Identity provider failed to create the account: {exc}", "IDP_ERROR") from exc


def _as_service_error(exc: Exception) -> Exception:
    """Map a failure inside the store step to the error the caller sees."""
    if isinstance(exc, ServiceError):
        return exc
    if isinstance(exc, IntegrityError):
        return ConflictError("This email address is already in use", "EMAIL_EXISTS")
    if isinstance(exc, SQLAlchemyError):
        return UpstreamError(f"Failed to store profile: {exc.__class__.__name__}", "STORE_ERROR")
    return exc


def _compensate(ctx: ServiceContext, account_id: str, original: Exception) -> None:
    """Delete the just-created identity after a failed store step."""
    try:
        ctx.identity.delete_account(account_id)
    except UserNotFoundError:
        logger.warning("Identity %s already gone during rollback", account_id)
        return
    except Exception as exc:
        logger.error(
            "ROLLBACK_FAILURE orphaned identity %s after %s: %s",
            account_id, original.__class__.__name__, exc,
            exc_info=True,
        )
        raise RollbackFailure(original, account_id, exc) from exc
    logger.warning("Rolled back identity %s after failed provisioning: %s", account_id, original)


def provision_account(
    ctx: ServiceContext,
    *,
    organization_id: str,
    email: str,
    password: str,
    full_name: str,
    role: Role,
    created_by: Optional[str],
    finalize: Optional[Callable[[Profile], None]] = None,
) -> Profile:
    """Run the provisioning saga for already validated input.

    Args:
        ctx: Service context
        organization_id: Organization the profile belongs to
        email: Normalized email
        password: Initial password, handed to the identity provider only
        full_name: Display name
        role: Role of the new profile
        created_by: Profile id of the creator, None for system provisioning
        finalize: Extra store writes run after the profile insert and before
            commit; raising rolls the whole unit back and compensates

    Returns:
        The committed Profile

    Raises:
        ConflictError: Account or active profile already exists
        UpstreamError: Identity provider or store failure
        RollbackFailure: Compensation failed after a store failure
    """
    try:
        account_id = _create_identity(
            ctx,
            email=email,
            password=password,
            full_name=full_name,
            organization_id=organization_id,
            role=role,
        )
    except ServiceError:
        rollback_quietly(ctx.session)
        raise

    try:
        profile = Profile(
            id=account_id,
            organization_id=organization_id,
            role=role.value,
            full_name=full_name,
            email=email,
            created_by=created_by,
            is_active=True,
            created_at=ctx.now(),
            updated_at=ctx.now(),
        )
        ctx.session.add(profile)
        ctx.session.flush()
        if finalize is not None:
            finalize(profile)
        ctx.session.commit()
    except Exception as exc:
        rollback_quietly(ctx.session)
        error = _as_service_error(exc)
        _compensate(ctx, account_id, error)
        if error is exc:
            raise
        raise error from exc

    logger.info("Provisioned profile %s (%s) in organization %s", account_id, role.value, organization_id)
    return profile


def provision(
    ctx: ServiceContext,
    organization_id: str,
    caller_role,
    email,
    password,
    full_name,
    role,
    created_by: Optional[str],
) -> Profile:
    """Create an admin or player account directly (creator only).

    Raises:
        AuthorizationError: Caller is not a creator
        ValidationError: Missing/malformed input, short password, or role not admin/player
        ConflictError: Active profile already exists for the email
        UpstreamError: Identity provider or store failure
        RollbackFailure: Compensation failed
    """
    caller_role = parse_role(caller_role)
    if not can_provision_directly(caller_role):
        raise AuthorizationError("Creator role is required to create accounts", "CREATOR_REQUIRED")

    email = validate_email(email)
    password = validate_password(password)
    full_name = validate_name(full_name)
    role = parse_role(role)
    if role not in INVITABLE_ROLES:
        raise ValidationError("role must be admin or player", "INVALID_ROLE")

    with store_errors(ctx.session, "checking existing members"):
        existing = find_active_profile(ctx, organization_id, email)
    if existing:
        raise ConflictError("This email address is already in use", "EMAIL_EXISTS")

    profile = provision_account(
        ctx,
        organization_id=organization_id,
        email=email,
        password=password,
        full_name=full_name,
        role=role,
        created_by=created_by,
    )

    audit.safe_record(
        ctx,
        organization_id,
        created_by,
        "user.created",
        target_id=profile.id,
        target_type="profile",
        metadata={"role": role.value, "email": email, "full_name": full_name},
    )
    return profile


def found_organization(ctx: ServiceContext, name, slug, email, password, full_name) -> tuple[Organization, Profile]:
    """Create an organization together with its founding creator.

    This is the only path that mints a ``creator`` profile.

    Raises:
        ValidationError: Malformed input
        ConflictError: Slug already taken
        UpstreamError: Identity provider or store failure
        RollbackFailure: Compensation failed
    """
    name = validate_name(name, "name")
    slug = validate_slug(slug)
    email = validate_email(email)
    password = validate_password(password)
    full_name = validate_name(full_name)

    with store_errors(ctx.session, "creating organization"):
        if ctx.session.query(Organization).filter_by(slug=slug).first():
            raise ConflictError(f"Organization slug '{slug}' is already taken", "SLUG_EXISTS")

        organization = Organization(name=name, slug=slug, created_at=ctx.now(), updated_at=ctx.now())
        try:
            ctx.session.add(organization)
            ctx.session.flush()
        except IntegrityError as exc:
            rollback_quietly(ctx.session)
            raise ConflictError(f"Organization slug '{slug}' is already taken", "SLUG_EXISTS") from exc

    creator = provision_account(
        ctx,
        organization_id=organization.id,
        email=email,
        password=password,
        full_name=full_name,
        role=Role.CREATOR,
        created_by=None,
    )

    audit.safe_record(
        ctx,
        organization.id,
        None,
        "organization.created",
        target_id=organization.id,
        target_type="organization",
        metadata={"name": name, "slug": slug},
    )
    audit.safe_record(
        ctx,
        organization.id,
        None,
        "user.created",
        target_id=creator.id,
        target_type="profile",
        metadata={"role": Role.CREATOR.value, "email": email, "full_name": full_name},
    )
    return organization, creator
