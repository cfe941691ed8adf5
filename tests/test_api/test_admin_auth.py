from __future__ import annotations

import pytest
from fastapi.testclient import TestClient
from pydantic import SecretStr

from app.config import settings
from app.core.security import hash_password, verify_password
from app.main import app


@pytest.fixture
def client(monkeypatch):
    monkeypatch.setattr(settings, "admin_password_hash", SecretStr(hash_password("ride-on", "a1b2c3d4")))
    return TestClient(app)


def test_password_hash_round_trip_and_malformed_hashes():
    stored = hash_password("ride-on", "a1b2c3d4", iterations=1000)
    assert stored.startswith("pbkdf2_sha256$1000$a1b2c3d4$")
    assert verify_password("ride-on", stored) is True
    assert verify_password("wrong", stored) is False
    assert verify_password("ride-on", "md5$abc") is False
    assert verify_password("ride-on", "pbkdf2_sha256$many$a1b2$00") is False


def test_login_issues_token_accepted_by_me(client):
    response = client.post(
        "/api/v1/auth/login", json={"email": settings.admin_email.upper(), "password": "ride-on"}
    )

    assert response.status_code == 200
    body = response.json()
    assert body["token_type"] == "bearer"
    assert body["expires_in"] == 12 * 60 * 60
    assert body["admin"]["role"] == "billing_admin"

    me = client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {body['access_token']}"})
    assert me.status_code == 200
    assert me.json()["email"] == settings.admin_email


def test_login_rejects_wrong_password(client):
    response = client.post(
        "/api/v1/auth/login", json={"email": settings.admin_email, "password": "nope"}
    )
    assert response.status_code == 401


def test_login_unavailable_without_password_hash(monkeypatch):
    monkeypatch.setattr(settings, "admin_password_hash", SecretStr(""))
    response = TestClient(app).post(
        "/api/v1/auth/login", json={"email": settings.admin_email, "password": "ride-on"}
    )
    assert response.status_code == 503
