"""Tests for health check endpoints."""
from sqlalchemy.exc import OperationalError

from orgaccess.db import db


def test_health_check(client):
    """Test basic health check endpoint."""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.data == b"ok"
    assert response.content_type.startswith("text/plain")


def test_readiness_check(client):
    """Store answers SELECT 1."""
    response = client.get("/ready")
    assert response.status_code == 200
    assert response.data == b"ready"


def test_readiness_check_store_down(client, monkeypatch):
    def broken_execute(*args, **kwargs):
        raise OperationalError("SELECT 1", {}, Exception("database is locked"))

    monkeypatch.setattr(db.session, "execute", broken_execute)
    response = client.get("/ready")
    assert response.status_code == 503
