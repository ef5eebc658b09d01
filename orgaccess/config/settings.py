"""Settings loader with environment variable and Docker secrets integration."""
from __future__ import annotations
import logging
import os
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

SECRETS_DIR = Path("/run/secrets")

# Invitation lifetimes a caller may choose from, in hours
ALLOWED_INVITE_EXPIRY_HOURS = (24, 48, 72, 168)


def _load_secret_from_file(secret_name: str, env_var: str | None = None) -> str | None:
    """
    Load secret from /run/secrets (Docker secrets pattern).

    Priority:
    1. /run/secrets/{secret_name} (Docker secrets mount)
    2. Environment variable (fallback)

    Args:
        secret_name: Name of the secret file in /run/secrets
        env_var: Optional environment variable name to check as fallback

    Returns:
        Secret value or None if not found
    """
    secret_file = SECRETS_DIR / secret_name

    if secret_file.exists() and secret_file.is_file():
        try:
            secret_value = secret_file.read_text().strip()
            if secret_value:
                logger.info("[settings] Loaded %s from %s", secret_name, SECRETS_DIR)
                return secret_value
        except OSError as exc:
            logger.warning("[settings] Failed to read %s/%s: %s", SECRETS_DIR, secret_name, exc)

    if env_var:
        secret_value = os.getenv(env_var)
        if secret_value:
            return secret_value

    return None


@dataclass
class AppConfig:
    """Application configuration container."""
    # Mode
    demo_mode: bool

    # Store
    database_url: str = "sqlite:///orgaccess.sqlite"

    # Base URL of the frontend that serves /invite/accept
    site_url: str = ""

    # Keycloak
    keycloak_url: str = ""
    keycloak_realm: str = "demo"
    keycloak_service_realm: str = "demo"
    keycloak_issuer: str = ""
    keycloak_server_url: str = ""

    # Service Account
    keycloak_service_client_id: str = "automation-cli"
    keycloak_service_client_secret: str = ""

    # Invitations
    default_invite_expiry_hours: int = 72
    admin_may_invite_admin: bool = True

    # Audit
    audit_log_signing_key: str = ""

    log_level: str = "INFO"


def _get_or_default(var_name: str, demo_default: str | None = None, demo_mode: bool = False) -> str:
    """Get environment variable, falling back to a demo default in demo mode only."""
    value = os.environ.get(var_name)
    if value:
        return value

    if demo_mode and demo_default is not None:
        logger.info("[demo-mode] Using default for %s", var_name)
        return demo_default

    raise RuntimeError(f"Environment variable {var_name} is required in production mode.")


def _env_bool(var_name: str, default: bool) -> bool:
    return os.environ.get(var_name, str(default)).strip().lower() == "true"


def load_settings() -> AppConfig:
    """Load application settings from environment and /run/secrets."""
    demo_mode = _env_bool("DEMO_MODE", False)

    database_url = os.environ.get("DATABASE_URL", "sqlite:///orgaccess.sqlite")
    site_url = _get_or_default("SITE_URL", demo_default="http://localhost:5173", demo_mode=demo_mode).rstrip("/")

    # Keycloak URLs
    keycloak_url = _get_or_default("KEYCLOAK_URL", demo_default="http://127.0.0.1:8080", demo_mode=demo_mode)
    keycloak_realm = os.environ.get("KEYCLOAK_REALM", "demo")
    keycloak_service_realm = os.environ.get("KEYCLOAK_SERVICE_REALM", keycloak_realm)
    keycloak_issuer = os.environ.get("KEYCLOAK_ISSUER", f"{keycloak_url.rstrip('/')}/realms/{keycloak_realm}")
    keycloak_server_url = os.environ.get("KEYCLOAK_SERVER_URL", keycloak_issuer)

    # Service account
    keycloak_service_client_id = os.environ.get("KEYCLOAK_SERVICE_CLIENT_ID", "automation-cli")
    keycloak_service_client_secret = _load_secret_from_file(
        "keycloak_service_client_secret",
        "KEYCLOAK_SERVICE_CLIENT_SECRET",
    )
    if not keycloak_service_client_secret:
        if not demo_mode:
            raise RuntimeError("KEYCLOAK_SERVICE_CLIENT_SECRET not found in /run/secrets or environment")
        keycloak_service_client_secret = "demo-service-secret"

    # Audit log signing key
    audit_log_signing_key = _load_secret_from_file("audit_log_signing_key", "AUDIT_LOG_SIGNING_KEY") or ""
    if not audit_log_signing_key and demo_mode:
        audit_log_signing_key = os.environ.get(
            "AUDIT_LOG_SIGNING_KEY_DEMO", "demo-audit-signing-key-change-in-production"
        )
        logger.info("[demo-mode] Using demo AUDIT_LOG_SIGNING_KEY")

    # Invitations
    try:
        default_invite_expiry_hours = int(os.environ.get("INVITE_DEFAULT_EXPIRY_HOURS", "72"))
    except ValueError:
        raise RuntimeError("INVITE_DEFAULT_EXPIRY_HOURS must be an integer")
    if default_invite_expiry_hours not in ALLOWED_INVITE_EXPIRY_HOURS:
        raise RuntimeError(
            f"INVITE_DEFAULT_EXPIRY_HOURS must be one of {ALLOWED_INVITE_EXPIRY_HOURS}"
        )
    admin_may_invite_admin = _env_bool("ADMIN_MAY_INVITE_ADMIN", True)

    log_level = os.environ.get("LOG_LEVEL", "INFO").upper()

    mode_label = "DEMO" if demo_mode else "PRODUCTION"
    logger.info("[settings] Mode=%s; realm=%s; site_url=%s", mode_label, keycloak_realm, site_url)
    if demo_mode:
        logger.warning("[settings] Demo credentials in use. Do not deploy with these defaults.")

    return AppConfig(
        demo_mode=demo_mode,
        database_url=database_url,
        site_url=site_url,
        keycloak_url=keycloak_url,
        keycloak_realm=keycloak_realm,
        keycloak_service_realm=keycloak_service_realm,
        keycloak_issuer=keycloak_issuer,
        keycloak_server_url=keycloak_server_url,
        keycloak_service_client_id=keycloak_service_client_id,
        keycloak_service_client_secret=keycloak_service_client_secret,
        default_invite_expiry_hours=default_invite_expiry_hours,
        admin_may_invite_admin=admin_may_invite_admin,
        audit_log_signing_key=audit_log_signing_key,
        log_level=log_level,
    )
