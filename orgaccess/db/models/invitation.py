import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import Index

from orgaccess.db import db, utcnow


class InvitationStatus(Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    EXPIRED = "expired"
    REVOKED = "revoked"


class Invitation(db.Model):
    __tablename__ = 'invitations'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    organization_id = db.Column(db.String(36), db.ForeignKey('organizations.id'), nullable=False)
    email = db.Column(db.String(254), nullable=False)
    role = db.Column(db.String(16), nullable=False)  # admin or player
    token = db.Column(db.String(128), unique=True, nullable=False)
    invited_by = db.Column(db.String(64), db.ForeignKey('profiles.id'), nullable=False)
    status = db.Column(db.String(16), nullable=False, default=InvitationStatus.PENDING.value)
    expires_at = db.Column(db.DateTime, nullable=False)
    accepted_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow)

    __table_args__ = (
        # one pending invitation per email inside an organization
        Index(
            'uq_invitations_org_email_pending',
            organization_id,
            email,
            unique=True,
            sqlite_where=status == InvitationStatus.PENDING.value,
            postgresql_where=status == InvitationStatus.PENDING.value,
        ),
    )

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at <= now

    def effective_status(self, now: datetime) -> str:
        """Stored status, except that a pending row past expires_at reads as expired."""
        if self.status == InvitationStatus.PENDING.value and self.is_expired(now):
            return InvitationStatus.EXPIRED.value
        return self.status

    def to_dict(self, now: datetime) -> dict:
        return {
            'id': self.id,
            'email': self.email,
            'role': self.role,
            'status': self.effective_status(now),
            'invitedBy': self.invited_by,
            'expiresAt': _isoformat(self.expires_at),
            'acceptedAt': _isoformat(self.accepted_at),
            'createdAt': _isoformat(self.created_at),
        }

    def __repr__(self):
        return f'<Invitation {self.email} ({self.status})>'


def _isoformat(value):
    return value.isoformat() + 'Z' if value else None
