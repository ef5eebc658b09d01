"""Keycloak Admin API adapter.

Architecture:
- client.py: HTTP client with service-account authentication and auto-refresh
- users.py: Account create/delete
- sessions.py: Session listing and revocation
- provider.py: IdentityProvider facade used by the core services
- exceptions.py: Typed exceptions for error handling

Usage:
    from orgaccess.core.identity import KeycloakIdentityProvider

    provider = KeycloakIdentityProvider.from_settings(cfg)
    account_id = provider.create_account(email=..., password=..., full_name=...,
                                         organization_id=..., role="player")
"""
from .client import KeycloakClient, REQUEST_TIMEOUT
from .exceptions import (
    IdentityProviderError,
    KeycloakAPIError,
    KeycloakUnavailableError,
    UserAlreadyExistsError,
    UserNotFoundError,
)
from .provider import IdentityProvider, KeycloakIdentityProvider
from .sessions import SessionService
from .users import UserService

__all__ = [
    "KeycloakClient",
    "REQUEST_TIMEOUT",
    "IdentityProviderError",
    "KeycloakAPIError",
    "KeycloakUnavailableError",
    "UserAlreadyExistsError",
    "UserNotFoundError",
    "IdentityProvider",
    "KeycloakIdentityProvider",
    "SessionService",
    "UserService",
]
