from orgaccess.db.models.organization import Organization
from orgaccess.db.models.profile import Profile
from orgaccess.db.models.invitation import Invitation, InvitationStatus
from orgaccess.db.models.activity_log import ActivityLog

__all__ = ['Organization', 'Profile', 'Invitation', 'InvitationStatus', 'ActivityLog']
