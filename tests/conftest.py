"""Pytest shared fixtures: in-memory store, fake identity provider, JWT keys."""
import pathlib
import sys
from datetime import datetime, timedelta

# Add project root to Python path
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest
import requests
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.backends import default_backend

from orgaccess.api import decorators
from orgaccess.config import AppConfig
from orgaccess.core import provisioning_service
from orgaccess.core.context import ServiceContext
from orgaccess.core.identity import KeycloakUnavailableError
from orgaccess.db import db
from orgaccess.flask_app import create_app

ISSUER = "https://sso.example.test/realms/demo"


# ─────────────────────────────────────────────────────────────────────────────
# Network Guard Rails
# ─────────────────────────────────────────────────────────────────────────────
@pytest.fixture(autouse=True)
def _block_network(monkeypatch):
    """Unit tests never reach a live Keycloak; tests that need HTTP stub it themselves."""

    def _fail(*args, **kwargs):
        raise RuntimeError(f"Unexpected HTTP call in unit test: {args[:2]}")

    monkeypatch.setattr(requests, "request", _fail)
    monkeypatch.setattr(requests, "post", _fail)
    monkeypatch.setattr(requests, "get", _fail)


# ─────────────────────────────────────────────────────────────────────────────
# Test Doubles
# ─────────────────────────────────────────────────────────────────────────────
class FakeIdentityProvider:
    """In-memory identity provider recording every call."""

    def __init__(self):
        self.accounts = {}
        self.deleted = []
        self.revoked = []
        self.create_calls = 0
        self.fail_create = None
        self.fail_delete = None
        self.fail_revoke = None
        self.sessions_per_account = 1

    def create_account(self, *, email, password, full_name, organization_id, role):
        self.create_calls += 1
        if self.fail_create:
            raise self.fail_create
        account_id = f"kc-{self.create_calls}"
        self.accounts[account_id] = {
            "email": email,
            "full_name": full_name,
            "organization_id": organization_id,
            "role": role,
        }
        return account_id

    def delete_account(self, account_id):
        if self.fail_delete:
            raise self.fail_delete
        self.accounts.pop(account_id, None)
        self.deleted.append(account_id)

    def revoke_sessions(self, account_id):
        if self.fail_revoke:
            raise self.fail_revoke
        self.revoked.append(account_id)
        return self.sessions_per_account


class FrozenClock:
    """Controllable naive-UTC clock."""

    def __init__(self, start=datetime(2026, 1, 5, 12, 0, 0)):
        self.current = start

    def __call__(self):
        return self.current

    def advance(self, **delta):
        self.current += timedelta(**delta)


# ─────────────────────────────────────────────────────────────────────────────
# Application & Store
# ─────────────────────────────────────────────────────────────────────────────
@pytest.fixture()
def identity():
    return FakeIdentityProvider()


@pytest.fixture()
def clock():
    return FrozenClock()


@pytest.fixture()
def settings():
    return AppConfig(
        demo_mode=True,
        database_url="sqlite://",
        site_url="https://app.example.test",
        keycloak_url="https://sso.example.test",
        keycloak_realm="demo",
        keycloak_service_realm="demo",
        keycloak_issuer=ISSUER,
        keycloak_server_url=ISSUER,
        keycloak_service_client_secret="test-secret",
        audit_log_signing_key="test-audit-key",
        log_level="WARNING",
    )


@pytest.fixture()
def app(settings, identity, clock):
    """Flask app on a fresh in-memory SQLite store."""
    flask_app = create_app(settings, identity_provider=identity)
    flask_app.config.update(TESTING=True, ORGACCESS_CLOCK=clock)

    with flask_app.app_context():
        yield flask_app
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app):
    with app.test_client() as client:
        yield client


@pytest.fixture()
def ctx(app, identity, settings, clock):
    return ServiceContext(session=db.session, identity=identity, settings=settings, clock=clock)


# ─────────────────────────────────────────────────────────────────────────────
# Organization & Members
# ─────────────────────────────────────────────────────────────────────────────
@pytest.fixture()
def founded(ctx):
    """Organization 'acme' with its creator."""
    return provisioning_service.found_organization(
        ctx, "Acme Games", "acme", "owner@acme.test", "creator-pass-1", "Olive Owner"
    )


@pytest.fixture()
def organization(founded):
    return founded[0]


@pytest.fixture()
def creator(founded):
    return founded[1]


@pytest.fixture()
def admin(ctx, organization, creator):
    return provisioning_service.provision(
        ctx, organization.id, "creator", "ada@acme.test", "admin-pass-1", "Ada Admin", "admin", creator.id
    )


@pytest.fixture()
def player(ctx, organization, creator):
    return provisioning_service.provision(
        ctx, organization.id, "creator", "pat@acme.test", "player-pass-1", "Pat Player", "player", creator.id
    )


# ─────────────────────────────────────────────────────────────────────────────
# Authentication
# ─────────────────────────────────────────────────────────────────────────────
@pytest.fixture()
def auth_headers(monkeypatch):
    """Bearer headers for a profile; the token's subject is the profile id."""
    monkeypatch.setattr(decorators, "validate_jwt_token", lambda token: {"sub": token})

    def _headers(profile):
        return {"Authorization": f"Bearer {profile.id}"}

    return _headers


@pytest.fixture(scope="session")
def rsa_key_pair():
    """Generate RSA key pair for JWT signing in tests."""
    private_key = rsa.generate_private_key(
        public_exponent=65537,
        key_size=2048,
        backend=default_backend()
    )

    private_pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption()
    )

    return {
        "private_key": private_key,
        "private_pem": private_pem,
        "public_key": private_key.public_key(),
    }


@pytest.fixture()
def unavailable_idp():
    return KeycloakUnavailableError("GET /admin/realms/demo failed: timed out")
