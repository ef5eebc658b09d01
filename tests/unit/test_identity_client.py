"""Tests for the Keycloak Admin API adapter with requests stubbed out."""
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
import requests

from orgaccess.core import membership, provisioning_service
from orgaccess.core.context import ServiceContext
from orgaccess.core.errors import UpstreamError
from orgaccess.core.identity import (
    KeycloakAPIError,
    KeycloakClient,
    KeycloakIdentityProvider,
    KeycloakUnavailableError,
    REQUEST_TIMEOUT,
    UserAlreadyExistsError,
    UserNotFoundError,
)
from orgaccess.db import db
from orgaccess.db.models import ActivityLog, Profile


def _response(status_code=200, payload=None, headers=None, url="http://kc/admin"):
    resp = MagicMock()
    resp.status_code = status_code
    resp.json.return_value = payload
    resp.headers = headers or {}
    resp.url = url
    resp.text = str(payload)
    return resp


@pytest.fixture
def token_endpoint(monkeypatch):
    calls = []

    def fake_post(url, data=None, timeout=None, **kwargs):
        calls.append({"url": url, "data": data, "timeout": timeout})
        return _response(200, {"access_token": "svc-token", "expires_in": 300})

    monkeypatch.setattr(requests, "post", fake_post)
    return calls


@pytest.fixture
def provider(token_endpoint):
    cfg = SimpleNamespace(
        keycloak_url="http://kc",
        keycloak_realm="demo",
        keycloak_service_realm="demo",
        keycloak_service_client_id="automation-cli",
        keycloak_service_client_secret="secret",
    )
    return KeycloakIdentityProvider.from_settings(cfg)


def test_from_settings_does_not_contact_keycloak(provider, token_endpoint):
    assert token_endpoint == []


def test_create_account_returns_id_from_location(provider, token_endpoint, monkeypatch):
    sent = {}

    def fake_request(method, url, headers=None, timeout=None, **kwargs):
        sent.update(method=method, url=url, headers=headers, timeout=timeout, json=kwargs.get("json"))
        return _response(201, headers={"Location": "http://kc/admin/realms/demo/users/abc-123"})

    monkeypatch.setattr(requests, "request", fake_request)

    account_id = provider.create_account(
        email="ada@acme.test", password="secret-pass", full_name="Ada Lovelace",
        organization_id="org-1", role="admin",
    )

    assert account_id == "abc-123"
    assert sent["method"] == "POST"
    assert sent["url"] == "http://kc/admin/realms/demo/users"
    assert sent["headers"]["Authorization"] == "Bearer svc-token"
    assert sent["timeout"] == REQUEST_TIMEOUT
    assert sent["json"]["firstName"] == "Ada"
    assert sent["json"]["lastName"] == "Lovelace"
    assert sent["json"]["credentials"][0]["temporary"] is False
    assert sent["json"]["attributes"] == {"organization_id": ["org-1"], "role": ["admin"]}
    assert token_endpoint[0]["url"] == "http://kc/realms/demo/protocol/openid-connect/token"


def test_create_account_conflict(provider, monkeypatch):
    monkeypatch.setattr(requests, "request", lambda *a, **k: _response(409, {"errorMessage": "User exists"}))
    with pytest.raises(UserAlreadyExistsError):
        provider.create_account(email="a@b.test", password="p" * 8, full_name="A", organization_id="o", role="player")


def test_create_account_without_location_fails(provider, monkeypatch):
    monkeypatch.setattr(requests, "request", lambda *a, **k: _response(201, headers={}))
    with pytest.raises(KeycloakAPIError):
        provider.create_account(email="a@b.test", password="p" * 8, full_name="A", organization_id="o", role="player")


def test_timeout_surfaces_as_unavailable(provider, monkeypatch):
    def timeout(*args, **kwargs):
        raise requests.Timeout("read timed out")

    monkeypatch.setattr(requests, "request", timeout)
    with pytest.raises(KeycloakUnavailableError):
        provider.delete_account("abc-123")


def test_transport_errors_surface_as_unavailable(provider, monkeypatch):
    def redirect_loop(*args, **kwargs):
        raise requests.TooManyRedirects("Exceeded 30 redirects.")

    monkeypatch.setattr(requests, "request", redirect_loop)
    with pytest.raises(KeycloakUnavailableError):
        provider.delete_account("abc-123")


def test_token_endpoint_transport_error(monkeypatch):
    def broken_body(*args, **kwargs):
        raise requests.exceptions.ChunkedEncodingError("connection broken")

    monkeypatch.setattr(requests, "post", broken_body)
    with pytest.raises(KeycloakUnavailableError):
        KeycloakClient("http://kc").authenticate_service_account("demo", "automation-cli", "secret")


def test_delete_missing_account(provider, monkeypatch):
    monkeypatch.setattr(requests, "request", lambda *a, **k: _response(404, {"error": "User not found"}))
    with pytest.raises(UserNotFoundError):
        provider.delete_account("abc-123")


def test_revoke_sessions_logs_out_active_sessions(provider, monkeypatch):
    calls = []

    def fake_request(method, url, **kwargs):
        calls.append((method, url))
        if method == "GET":
            return _response(200, [{"id": "s1"}, {"id": "s2"}])
        return _response(204)

    monkeypatch.setattr(requests, "request", fake_request)

    assert provider.revoke_sessions("abc-123") == 2
    assert calls == [
        ("GET", "http://kc/admin/realms/demo/users/abc-123/sessions"),
        ("POST", "http://kc/admin/realms/demo/users/abc-123/logout"),
    ]


def test_revoke_sessions_without_sessions_skips_logout(provider, monkeypatch):
    calls = []

    def fake_request(method, url, **kwargs):
        calls.append(method)
        return _response(200, [])

    monkeypatch.setattr(requests, "request", fake_request)
    assert provider.revoke_sessions("abc-123") == 0
    assert calls == ["GET"]


def test_token_is_reused_until_expiry(provider, token_endpoint, monkeypatch):
    monkeypatch.setattr(requests, "request", lambda *a, **k: _response(204))
    provider.delete_account("one")
    provider.delete_account("two")
    assert len(token_endpoint) == 1


def test_token_endpoint_failure(monkeypatch):
    monkeypatch.setattr(requests, "post", lambda *a, **k: _response(401, {"error": "unauthorized_client"}))
    client = KeycloakClient("http://kc")
    with pytest.raises(KeycloakAPIError) as exc:
        client.authenticate_service_account("demo", "automation-cli", "wrong")
    assert exc.value.status_code == 401


def test_unauthenticated_client_refuses_requests():
    with pytest.raises(KeycloakAPIError):
        KeycloakClient("http://kc").get("/admin/realms/demo/users")


def test_provision_maps_keycloak_timeout_to_upstream(app, provider, settings, founded, monkeypatch):
    organization, creator = founded

    def timeout(*args, **kwargs):
        raise requests.ConnectionError("connection refused")

    monkeypatch.setattr(requests, "request", timeout)
    ctx = ServiceContext(session=db.session, identity=provider, settings=settings)

    with pytest.raises(UpstreamError) as exc:
        provisioning_service.provision(
            ctx, organization.id, "creator", "new@acme.test", "long-enough-1", "Nina New", "player", creator.id
        )
    assert exc.value.error_code == "IDP_ERROR"


def test_token_endpoint_non_json_body(monkeypatch):
    resp = _response(200)
    resp.json.side_effect = ValueError("Expecting value: line 1 column 1 (char 0)")
    monkeypatch.setattr(requests, "post", lambda *a, **k: resp)

    with pytest.raises(KeycloakAPIError) as exc:
        KeycloakClient("http://kc").authenticate_service_account("demo", "automation-cli", "secret")
    assert "Malformed token response" in exc.value.message


def test_token_endpoint_without_access_token(monkeypatch):
    monkeypatch.setattr(requests, "post", lambda *a, **k: _response(200, {"expires_in": 300}))

    with pytest.raises(KeycloakAPIError):
        KeycloakClient("http://kc").authenticate_service_account("demo", "automation-cli", "secret")


def test_revoke_sessions_non_json_body(provider, monkeypatch):
    resp = _response(200)
    resp.json.side_effect = ValueError("Expecting value")
    monkeypatch.setattr(requests, "request", lambda *a, **k: resp)

    with pytest.raises(KeycloakAPIError):
        provider.revoke_sessions("abc-123")


def test_deactivate_records_audit_when_session_transport_breaks(app, provider, settings, founded, monkeypatch):
    organization, creator = founded
    member = Profile(
        id="kc-member", organization_id=organization.id, role="player",
        full_name="Mo Member", email="mo@acme.test", is_active=True,
    )
    db.session.add(member)
    db.session.commit()

    def broken_body(*args, **kwargs):
        raise requests.exceptions.ChunkedEncodingError("connection broken")

    monkeypatch.setattr(requests, "request", broken_body)
    ctx = ServiceContext(session=db.session, identity=provider, settings=settings)

    with pytest.raises(UpstreamError) as exc:
        membership.deactivate(ctx, organization.id, creator.id, "creator", "kc-member")

    assert exc.value.error_code == "SESSION_REVOKE_FAILED"
    assert db.session.get(Profile, "kc-member").is_active is False
    entry = db.session.query(ActivityLog).filter_by(action="user.deactivated").one()
    assert entry.details["sessions_revoked"] is False
