from sqlalchemy import Index, true

from orgaccess.db import db, utcnow


class Profile(db.Model):
    __tablename__ = 'profiles'

    # shared with the identity provider's account id
    id = db.Column(db.String(64), primary_key=True)
    organization_id = db.Column(db.String(36), db.ForeignKey('organizations.id'), nullable=False)
    role = db.Column(db.String(16), nullable=False)  # creator, admin or player
    full_name = db.Column(db.String(128), nullable=True)
    email = db.Column(db.String(254), nullable=False)
    created_by = db.Column(db.String(64), db.ForeignKey('profiles.id'), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    last_seen_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow)

    __table_args__ = (
        # one active profile per email inside an organization
        Index(
            'uq_profiles_org_email_active',
            organization_id,
            email,
            unique=True,
            sqlite_where=is_active == true(),
            postgresql_where=is_active == true(),
        ),
    )

    def to_summary(self) -> dict:
        return {
            'id': self.id,
            'email': self.email,
            'fullName': self.full_name,
            'role': self.role,
        }

    def __repr__(self):
        return f'<Profile {self.email} ({self.role})>'
