"""Member endpoints: listing, direct provisioning and deactivation."""

from flask import Blueprint, jsonify

from orgaccess.core import membership, provisioning_service
from . import field, json_body, service_context
from .decorators import get_caller, require_bearer_token


bp = Blueprint("members", __name__, url_prefix="/api/members")


@bp.route("", methods=["GET"])
@require_bearer_token
def list_members():
    caller = get_caller()
    members = membership.list_members(service_context(), caller.organization_id, caller.role)
    return jsonify({"success": True, "members": [member.to_summary() for member in members]})


@bp.route("", methods=["POST"])
@require_bearer_token
def create_member():
    """Create an admin or player account directly (creator only)."""
    caller = get_caller()
    payload = json_body()

    profile = provisioning_service.provision(
        service_context(),
        caller.organization_id,
        caller.role,
        field(payload, "email"),
        field(payload, "password"),
        field(payload, "fullName", "full_name"),
        field(payload, "role"),
        created_by=caller.id,
    )
    return jsonify({"success": True, "user": profile.to_summary()}), 201


@bp.route("/deactivate", methods=["POST"])
@require_bearer_token
def deactivate_member():
    """Deactivate a member of the caller's organization."""
    caller = get_caller()
    payload = json_body()

    message = membership.deactivate(
        service_context(),
        caller.organization_id,
        caller.id,
        caller.role,
        field(payload, "targetUserId", "target_user_id"),
    )
    return jsonify({"success": True, "message": message})
