import uuid

from orgaccess.db import db, utcnow


class ActivityLog(db.Model):
    """Append-only record of a mutating action. Rows are never updated or deleted."""
    __tablename__ = 'activity_logs'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    organization_id = db.Column(db.String(36), db.ForeignKey('organizations.id'), nullable=False)
    actor_id = db.Column(db.String(64), nullable=True)  # null for system actions
    action = db.Column(db.String(64), nullable=False)
    target_id = db.Column(db.String(64), nullable=True)
    target_type = db.Column(db.String(32), nullable=True)
    # "metadata" is reserved on declarative models
    details = db.Column('metadata', db.JSON, nullable=False, default=dict)
    signature = db.Column(db.String(64), nullable=False, default='')
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    def canonical_event(self) -> dict:
        """Fields covered by the signature."""
        return {
            'organization_id': self.organization_id,
            'actor_id': self.actor_id,
            'action': self.action,
            'target_id': self.target_id,
            'target_type': self.target_type,
            'metadata': self.details or {},
            'created_at': self.created_at.isoformat(),
        }

    def __repr__(self):
        return f'<ActivityLog {self.action} {self.target_type}:{self.target_id}>'
