"""
Flask decorators for bearer-token authentication.

Validates JWT access tokens issued by Keycloak and resolves the caller's
profile, which supplies the organization and role every operation needs.

Security:
- RSA-SHA256 signature verification via JWKS (RFC 7517)
- Expiration and issuer validation (RFC 7519)
- JWKS client cached per app in app.extensions (1-hour key refresh)
"""

import logging
from functools import wraps
from typing import Dict

import jwt
from jwt import PyJWKClient
from jwt.exceptions import (
    ExpiredSignatureError,
    InvalidIssuerError,
    InvalidSignatureError,
    DecodeError,
    PyJWKClientConnectionError,
    PyJWKClientError,
)
from flask import request, current_app, g

from orgaccess.core.errors import AuthenticationError, AuthorizationError, UpstreamError
from orgaccess.core.store import store_errors
from orgaccess.db import db
from orgaccess.db.models import Profile

logger = logging.getLogger(__name__)

JWKS_EXTENSION = "orgaccess.jwks"


class TokenValidationError(Exception):
    """Exception raised when JWT token validation fails."""
    pass


def get_jwks_client() -> PyJWKClient:
    """
    Get the JWKS client of the current app, building it on first use.

    Returns:
        PyJWKClient: Configured client for the Keycloak realm
    """
    jwks_client = current_app.extensions.get(JWKS_EXTENSION)

    if jwks_client is None:
        cfg = current_app.config["APP_CONFIG"]
        jwks_url = f"{cfg.keycloak_server_url}/protocol/openid-connect/certs"

        logger.info(f"Initializing JWKS client for: {jwks_url}")

        jwks_client = PyJWKClient(
            jwks_url,
            cache_keys=True,
            max_cached_keys=16,   # Keycloak rotates keys
            lifespan=3600,
            headers={"User-Agent": "orgaccess/1.0"},
        )
        current_app.extensions[JWKS_EXTENSION] = jwks_client

    return jwks_client


def validate_jwt_token(token: str) -> Dict[str, object]:
    """
    Validate JWT Bearer token.

    Validations performed:
    1. Signature verification (RSA-SHA256 via JWKS)
    2. Expiration (exp claim)
    3. Issuer (iss claim)
    4. Subject present (sub claim)

    Args:
        token: JWT token string (without "Bearer " prefix)

    Returns:
        dict: Validated token claims

    Raises:
        TokenValidationError: If any validation fails
        UpstreamError: If the JWKS endpoint cannot be reached
    """
    cfg = current_app.config["APP_CONFIG"]

    try:
        signing_key = get_jwks_client().get_signing_key_from_jwt(token)
        claims = jwt.decode(
            token,
            signing_key.key,
            algorithms=["RS256"],
            issuer=cfg.keycloak_issuer,
            options={
                "verify_signature": True,
                "verify_exp": True,
                "verify_iss": True,
                "verify_aud": False,
                "require": ["exp", "iat", "sub"],
            },
            leeway=5,
        )
    except ExpiredSignatureError:
        raise TokenValidationError("Token expired (exp claim)")
    except InvalidIssuerError as e:
        raise TokenValidationError(f"Invalid issuer: {e}")
    except InvalidSignatureError:
        raise TokenValidationError("Invalid signature (token tampered or wrong key)")
    except DecodeError as e:
        raise TokenValidationError(f"Token decode error (malformed JWT): {e}")
    except PyJWKClientConnectionError as e:
        logger.error(f"JWKS endpoint unreachable: {e}")
        raise UpstreamError("Identity provider signing keys are unavailable", "JWKS_UNAVAILABLE") from e
    except PyJWKClientError as e:
        raise TokenValidationError(f"Signing key unavailable: {e}")
    except Exception as e:
        logger.error(f"JWT validation failed: {e}")
        raise TokenValidationError(f"Token validation failed: {e}")

    logger.debug(f"JWT validated for subject: {claims.get('sub')}")
    return claims


def require_bearer_token(fn):
    """
    Decorator requiring a valid bearer token that maps to an active profile.

    On success ``g.caller`` holds the caller's Profile and ``g.oauth_claims``
    the validated claims.

    Raises:
        AuthenticationError: Missing, malformed, invalid or expired token (401)
        AuthorizationError: Token subject has no active profile (403)
        UpstreamError: Signing keys or the store are unavailable (500)
    """
    @wraps(fn)
    def wrapper(*args, **kwargs):
        auth_header = request.headers.get("Authorization", "")

        if not auth_header:
            logger.warning("Request missing Authorization header")
            raise AuthenticationError("Authorization header required. Use 'Authorization: Bearer <token>'")

        if not auth_header.startswith("Bearer "):
            logger.warning(f"Invalid Authorization format: {auth_header[:20]}")
            raise AuthenticationError("Invalid Authorization header format. Expected 'Bearer <token>'")

        token = auth_header[7:].strip()
        if not token:
            raise AuthenticationError("Bearer token is empty")

        try:
            claims = validate_jwt_token(token)
        except TokenValidationError as e:
            logger.warning(f"JWT validation failed: {e}")
            raise AuthenticationError(str(e), "INVALID_TOKEN")

        with store_errors(db.session, "resolving caller profile"):
            profile = db.session.get(Profile, claims["sub"])
        if profile is None or not profile.is_active:
            raise AuthorizationError("Profile not found or inactive", "PROFILE_NOT_FOUND")

        g.caller = profile
        g.oauth_claims = claims
        return fn(*args, **kwargs)

    return wrapper


def get_caller() -> Profile:
    """Profile resolved by @require_bearer_token for the current request."""
    return g.caller
