"""
Integration tests for the /api/auth router.

Covers:
  - Registration (viewer role, duplicate email, weak passwords)
  - JSON login and the OAuth2 form endpoint
  - Token checks on protected routes
  - Password change
"""

import pytest
from fastapi.testclient import TestClient

from expense_api.services.auth import create_access_token, decode_access_token


pytestmark = pytest.mark.usefixtures("db")

TEST_PASSWORD = "Passw0rd!"  # set on every conftest profile


class TestRegister:
    def test_register_creates_viewer_and_returns_token(self, client: TestClient):
        resp = client.post(
            "/api/auth/register",
            json={"email": "New.Person@Example.com", "password": "Sunday2025", "name": "New Person"},
        )
        assert resp.status_code == 201
        body = resp.json()
        assert body["token_type"] == "bearer"
        assert body["user"]["email"] == "new.person@example.com"
        assert body["user"]["role"] == "viewer"

        claims = decode_access_token(body["access_token"])
        assert claims["sub"] == body["user"]["id"]
        assert claims["role"] == "viewer"

    def test_register_duplicate_email_returns_409(self, client: TestClient, viewer_user):
        resp = client.post(
            "/api/auth/register",
            json={"email": viewer_user.email, "password": "Sunday2025", "name": "Someone"},
        )
        assert resp.status_code == 409
        assert resp.json()["error"]["code"] == "EMAIL_EXISTS"

    @pytest.mark.parametrize("password", ["short1A", "alllowercase1", "ALLUPPERCASE1", "NoDigitsHere"])
    def test_register_weak_password_rejected(self, client: TestClient, password):
        resp = client.post(
            "/api/auth/register",
            json={"email": "weak@example.com", "password": password, "name": "Weak"},
        )
        assert resp.status_code == 400
        error = resp.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        assert any(d["field"] == "password" for d in error["details"])


class TestLogin:
    def test_login_returns_token_and_records_last_login(self, client: TestClient, db, viewer_user):
        resp = client.post(
            "/api/auth/login",
            json={"email": "VIEWER@example.com", "password": TEST_PASSWORD},
        )
        assert resp.status_code == 200
        assert resp.json()["user"]["email"] == viewer_user.email

        db.refresh(viewer_user)
        assert viewer_user.last_login is not None

    def test_login_wrong_password_returns_401(self, client: TestClient, viewer_user):
        resp = client.post(
            "/api/auth/login",
            json={"email": viewer_user.email, "password": "Wrong-Passw0rd"},
        )
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "INVALID_CREDENTIALS"

    def test_login_unknown_email_returns_401(self, client: TestClient):
        resp = client.post(
            "/api/auth/login",
            json={"email": "nobody@example.com", "password": TEST_PASSWORD},
        )
        assert resp.status_code == 401

    def test_token_form_endpoint(self, client: TestClient, admin_user):
        resp = client.post(
            "/api/auth/token",
            data={"username": admin_user.email, "password": TEST_PASSWORD},
        )
        assert resp.status_code == 200
        assert resp.json()["user"]["role"] == "admin"


class TestCurrentUser:
    def test_me_returns_profile(self, client: TestClient, viewer_user, viewer_headers):
        resp = client.get("/api/auth/me", headers=viewer_headers)
        assert resp.status_code == 200
        assert resp.json()["id"] == str(viewer_user.id)

    def test_me_without_token_returns_401(self, client: TestClient):
        resp = client.get("/api/auth/me")
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "UNAUTHORIZED"

    def test_me_with_garbage_token_returns_401(self, client: TestClient):
        resp = client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
        assert resp.status_code == 401

    def test_token_for_deleted_profile_returns_401(self, client: TestClient):
        token = create_access_token(
            {"sub": "00000000-0000-0000-0000-000000000000", "email": "gone@example.com", "role": "admin"}
        )
        resp = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 401


class TestChangePassword:
    def test_change_password_then_login_with_new_one(self, client: TestClient, viewer_user, viewer_headers):
        resp = client.post(
            "/api/auth/change-password",
            json={"current_password": TEST_PASSWORD, "new_password": "Brand-New-Passw0rd"},
            headers=viewer_headers,
        )
        assert resp.status_code == 200

        login = client.post(
            "/api/auth/login",
            json={"email": viewer_user.email, "password": "Brand-New-Passw0rd"},
        )
        assert login.status_code == 200

    def test_change_password_wrong_current_returns_401(self, client: TestClient, viewer_headers):
        resp = client.post(
            "/api/auth/change-password",
            json={"current_password": "not-it", "new_password": "Brand-New-Passw0rd"},
            headers=viewer_headers,
        )
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "INVALID_CREDENTIALS"
