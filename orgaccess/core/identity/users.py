"""Keycloak account operations used by provisioning."""
from __future__ import annotations
import logging
from typing import Optional

from .client import KeycloakClient
from .exceptions import KeycloakAPIError, UserAlreadyExistsError, UserNotFoundError

logger = logging.getLogger(__name__)


class UserService:
    """Service for managing Keycloak user accounts."""

    def __init__(self, client: KeycloakClient):
        """Initialize user service.

        Args:
            client: Authenticated Keycloak client
        """
        self.client = client

    def create_account(
        self,
        realm: str,
        email: str,
        password: str,
        full_name: str,
        attributes: Optional[dict] = None,
    ) -> str:
        """Create an enabled account with a permanent password.

        Args:
            realm: Realm name
            email: Email address, also used as username
            password: Initial password (never stored locally)
            full_name: Display name
            attributes: Extra user attributes (organization, role)

        Returns:
            Keycloak user id

        Raises:
            UserAlreadyExistsError: Username or email already taken in the realm
        """
        first, _, last = full_name.partition(" ")
        payload = {
            "username": email,
            "email": email,
            "firstName": first,
            "lastName": last,
            "enabled": True,
            "emailVerified": True,
            "credentials": [{"type": "password", "value": password, "temporary": False}],
            "attributes": {key: [str(value)] for key, value in (attributes or {}).items()},
        }
        try:
            resp = self.client.post(f"/admin/realms/{realm}/users", json=payload)
        except KeycloakAPIError as exc:
            if exc.status_code == 409:
                raise UserAlreadyExistsError(f"Account '{email}' already exists") from exc
            raise

        # Keycloak answers 201 with the new resource in the Location header
        location = resp.headers.get("Location", "")
        user_id = location.rstrip("/").rsplit("/", 1)[-1]
        if not user_id:
            raise KeycloakAPIError(resp.status_code, "Location header missing from create response", resp.url)
        logger.info("Account created at identity provider (id=%s)", user_id)
        return user_id

    def delete_account(self, realm: str, user_id: str) -> None:
        """Delete an account.

        Raises:
            UserNotFoundError: If the account does not exist
        """
        try:
            self.client.delete(f"/admin/realms/{realm}/users/{user_id}")
        except KeycloakAPIError as exc:
            if exc.status_code == 404:
                raise UserNotFoundError(f"Account {user_id} not found") from exc
            raise
        logger.info("Account deleted at identity provider (id=%s)", user_id)
