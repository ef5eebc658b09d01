"""Audit logging for mutating actions (ActivityLog rows)."""

from __future__ import annotations
import hashlib
import hmac
import json
import logging
from typing import Any, Literal, Optional

from sqlalchemy.orm import Session

from orgaccess.db.models import ActivityLog
from .context import ServiceContext
from .store import rollback_quietly

logger = logging.getLogger(__name__)

Action = Literal[
    "organization.created",
    "user.created",
    "user.deactivated",
    "invitation.sent",
    "invitation.accepted",
    "invitation.revoked",
    "organization.renamed",
]


def _sign_event(event: dict[str, Any], signing_key: str) -> str:
    """Generate HMAC-SHA256 signature for audit event."""
    if not signing_key:
        return ""
    # Canonical JSON representation for signing
    canonical = json.dumps(event, sort_keys=True, separators=(",", ":"), default=str)
    return hmac.new(signing_key.encode("utf-8"), canonical.encode("utf-8"), hashlib.sha256).hexdigest()


def record(
    ctx: ServiceContext,
    organization_id: str,
    actor_id: Optional[str],
    action: Action,
    target_id: Optional[str] = None,
    target_type: Optional[str] = None,
    metadata: Optional[dict[str, Any]] = None,
) -> ActivityLog:
    """Append one signed ActivityLog row and commit it.

    Args:
        ctx: Service context (store session, settings, clock)
        organization_id: Tenant the action belongs to
        actor_id: Profile that performed the action, None for system actions
        action: Action tag (user.created, invitation.sent, ...)
        target_id: Affected entity id
        target_type: Affected entity type (profile, invitation, organization)
        metadata: Free-form event details

    Raises:
        ValueError: If organization_id or action is missing
    """
    if not organization_id:
        raise ValueError("organization_id is required for audit events")
    if not action:
        raise ValueError("action is required for audit events")

    entry = ActivityLog(
        organization_id=organization_id,
        actor_id=actor_id,
        action=action,
        target_id=target_id,
        target_type=target_type,
        details=metadata or {},
        created_at=ctx.now(),
    )
    entry.signature = _sign_event(entry.canonical_event(), ctx.settings.audit_log_signing_key)

    ctx.session.add(entry)
    ctx.session.commit()
    return entry


def safe_record(
    ctx: ServiceContext,
    organization_id: str,
    actor_id: Optional[str],
    action: Action,
    target_id: Optional[str] = None,
    target_type: Optional[str] = None,
    metadata: Optional[dict[str, Any]] = None,
) -> Optional[ActivityLog]:
    """Record an audit event, never raising.

    The triggering operation has already committed when this runs, so a failed
    audit write is rolled back on its own and only logged.

    Returns:
        The stored entry, or None if logging failed
    """
    try:
        return record(
            ctx,
            organization_id,
            actor_id,
            action,
            target_id=target_id,
            target_type=target_type,
            metadata=metadata,
        )
    except Exception as exc:
        rollback_quietly(ctx.session)
        logger.warning("[audit] Failed to log %s event for %s:%s: %s", action, target_type, target_id, exc)
        return None


def verify_signatures(session: Session, signing_key: str) -> tuple[int, int]:
    """Verify all signatures in the activity log.

    Returns:
        Tuple of (total_events, valid_signatures)
    """
    total = 0
    valid = 0
    for entry in session.query(ActivityLog).order_by(ActivityLog.created_at).yield_per(500):
        total += 1
        if not entry.signature:
            continue
        computed = _sign_event(entry.canonical_event(), signing_key)
        if computed and hmac.compare_digest(entry.signature, computed):
            valid += 1
    return total, valid
