"""Organization endpoints for the caller's own organization."""

from flask import Blueprint, jsonify

from orgaccess.core import organizations
from . import field, json_body, service_context
from .decorators import get_caller, require_bearer_token


bp = Blueprint("organization", __name__, url_prefix="/api/organization")


@bp.route("", methods=["GET"])
@require_bearer_token
def get_organization():
    caller = get_caller()
    organization = organizations.get_organization(service_context(), caller.organization_id)
    return jsonify({"success": True, "organization": organization.to_dict()})


@bp.route("", methods=["PATCH"])
@require_bearer_token
def rename_organization():
    """Rename the organization (creator only). The slug never changes."""
    caller = get_caller()
    payload = json_body()

    organization = organizations.rename(
        service_context(),
        caller.organization_id,
        caller.id,
        caller.role,
        field(payload, "name"),
    )
    return jsonify({"success": True, "organization": organization.to_dict()})
