"""Organization settings. The slug is fixed at founding; only the name changes."""

from __future__ import annotations
import logging

from orgaccess.db.models import Organization
from . import audit
from .context import ServiceContext
from .errors import AuthorizationError, NotFoundError
from .roles import can_manage_organization, parse_role
from .store import store_errors
from .validators import validate_name

logger = logging.getLogger(__name__)


def get_organization(ctx: ServiceContext, organization_id: str) -> Organization:
    with store_errors(ctx.session, "loading organization"):
        organization = ctx.session.get(Organization, organization_id)
    if organization is None:
        raise NotFoundError("Organization not found", "ORGANIZATION_NOT_FOUND")
    return organization


def rename(ctx: ServiceContext, organization_id: str, caller_id: str, caller_role, name) -> Organization:
    """Change the organization's display name (creator only).

    Raises:
        AuthorizationError: Caller is not the creator
        ValidationError: Missing or malformed name
        NotFoundError: Organization does not exist
        UpstreamError: Store failure
    """
    caller_role = parse_role(caller_role)
    if not can_manage_organization(caller_role):
        raise AuthorizationError("Creator role is required to rename the organization", "CREATOR_REQUIRED")
    name = validate_name(name, "name")

    organization = get_organization(ctx, organization_id)
    previous = organization.name
    if previous == name:
        return organization

    with store_errors(ctx.session, "renaming organization"):
        organization.name = name
        organization.updated_at = ctx.now()
        ctx.session.commit()

    logger.info("Organization %s renamed", organization.slug)
    audit.safe_record(
        ctx,
        organization_id,
        caller_id,
        "organization.renamed",
        target_id=organization_id,
        target_type="organization",
        metadata={"from": previous, "to": name},
    )
    return organization
