"""Identity provider facade consumed by the core services.

The services only need three calls (create account, delete account, revoke
sessions). ``KeycloakIdentityProvider`` implements them on top of the Keycloak
Admin API; tests substitute any object with the same methods.
"""
from __future__ import annotations
from typing import Protocol

from .client import KeycloakClient, REQUEST_TIMEOUT
from .sessions import SessionService
from .users import UserService


class IdentityProvider(Protocol):
    def create_account(self, *, email: str, password: str, full_name: str,
                       organization_id: str, role: str) -> str: ...

    def delete_account(self, account_id: str) -> None: ...

    def revoke_sessions(self, account_id: str) -> int: ...


class KeycloakIdentityProvider:
    """Keycloak-backed IdentityProvider bound to one realm."""

    def __init__(self, client: KeycloakClient, realm: str):
        self.client = client
        self.realm = realm
        self.users = UserService(client)
        self.sessions = SessionService(client)

    @classmethod
    def from_settings(cls, cfg) -> "KeycloakIdentityProvider":
        """Build a provider from AppConfig without contacting Keycloak."""
        client = KeycloakClient(cfg.keycloak_url, timeout=REQUEST_TIMEOUT)
        client.use_service_account(
            cfg.keycloak_service_realm,
            cfg.keycloak_service_client_id,
            cfg.keycloak_service_client_secret,
        )
        return cls(client, cfg.keycloak_realm)

    def create_account(self, *, email: str, password: str, full_name: str,
                       organization_id: str, role: str) -> str:
        return self.users.create_account(
            self.realm,
            email,
            password,
            full_name,
            attributes={"organization_id": organization_id, "role": role},
        )

    def delete_account(self, account_id: str) -> None:
        self.users.delete_account(self.realm, account_id)

    def revoke_sessions(self, account_id: str) -> int:
        return self.sessions.revoke_user_sessions(self.realm, account_id)
