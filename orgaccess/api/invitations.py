"""Invitation endpoints.

Inviter routes require a bearer token. ``/accept`` and ``/preview`` are public:
the invitation token in the body or query string is the credential.
"""

from flask import Blueprint, jsonify, request

from orgaccess.core import invitations
from . import field, json_body, service_context
from .decorators import get_caller, require_bearer_token


bp = Blueprint("invitations", __name__, url_prefix="/api/invitations")


@bp.route("", methods=["POST"])
@require_bearer_token
def create_invitation():
    caller = get_caller()
    payload = json_body()
    ctx = service_context()

    invitation, invite_url = invitations.issue(
        ctx,
        caller.organization_id,
        caller.role,
        field(payload, "email"),
        field(payload, "role"),
        field(payload, "expiresHours", "expires_hours"),
        invited_by=caller.id,
    )
    body = invitation.to_dict(ctx.now())
    return jsonify({
        "success": True,
        "invitation": {
            "id": body["id"],
            "email": body["email"],
            "role": body["role"],
            "expiresAt": body["expiresAt"],
            "inviteUrl": invite_url,
        },
    }), 201


@bp.route("", methods=["GET"])
@require_bearer_token
def list_invitations():
    caller = get_caller()
    ctx = service_context()
    rows = invitations.list_invitations(ctx, caller.organization_id, caller.role)
    now = ctx.now()
    return jsonify({"success": True, "invitations": [row.to_dict(now) for row in rows]})


@bp.route("/<invitation_id>/revoke", methods=["POST"])
@require_bearer_token
def revoke_invitation(invitation_id):
    caller = get_caller()
    invitations.revoke(
        service_context(),
        caller.organization_id,
        invitation_id,
        caller.role,
        actor_id=caller.id,
    )
    return jsonify({"success": True, "ok": True})


@bp.route("/accept", methods=["POST"])
def accept_invitation():
    """Redeem an invitation token (public)."""
    payload = json_body()
    profile = invitations.redeem(
        service_context(),
        field(payload, "token"),
        field(payload, "password"),
        field(payload, "fullName", "full_name"),
    )
    return jsonify({
        "success": True,
        "message": "Account created successfully",
        "email": profile.email,
    }), 201


@bp.route("/preview", methods=["GET"])
def preview_invitation():
    """Summary of a redeemable invitation (public)."""
    summary = invitations.preview(service_context(), request.args.get("token"))
    return jsonify({"success": True, "invitation": summary})
