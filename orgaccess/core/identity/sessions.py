"""Keycloak session management operations."""
from __future__ import annotations
import logging
from typing import List, Dict

from .client import KeycloakClient
from .exceptions import KeycloakAPIError

logger = logging.getLogger(__name__)


class SessionService:
    """Service for managing Keycloak user sessions."""

    def __init__(self, client: KeycloakClient):
        """Initialize session service.

        Args:
            client: Authenticated Keycloak client
        """
        self.client = client

    def get_user_sessions(self, realm: str, user_id: str) -> List[Dict]:
        """Get all active sessions for a user."""
        resp = self.client.get(f"/admin/realms/{realm}/users/{user_id}/sessions")
        try:
            sessions = resp.json()
        except ValueError as exc:
            raise KeycloakAPIError(resp.status_code, "Malformed sessions response", resp.url) from exc
        return sessions or []

    def revoke_user_sessions(self, realm: str, user_id: str) -> int:
        """Revoke all active sessions for a user.

        Args:
            realm: Realm name
            user_id: User ID

        Returns:
            Number of sessions revoked
        """
        active_sessions = self.get_user_sessions(realm, user_id)
        if not active_sessions:
            return 0

        self.client.post(f"/admin/realms/{realm}/users/{user_id}/logout")
        logger.info("Revoked %d active session(s) for %s", len(active_sessions), user_id)
        return len(active_sessions)
