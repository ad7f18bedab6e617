"""API tests for the authentication endpoints."""

from __future__ import annotations

import pytest

from tests.factories.user import DEFAULT_PASSWORD, UserFactory
from tokenauth.services._shared.errors import LedgerUnavailableError
from tokenauth.services.throttle import RequestThrottle

BASE = "/api/v1/auth"


def _login(client, username: str, password: str = DEFAULT_PASSWORD):
    return client.post(f"{BASE}/login", json={"username": username, "password": password})


def _bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def user():
    return UserFactory(username="walter", email="walter@example.com")


@pytest.fixture()
def tokens(client, user):
    resp = _login(client, "walter")
    assert resp.status_code == 200
    return resp.get_json()["data"]


class TestRegister:
    def test_register_returns_token_pair(self, client):
        resp = client.post(
            f"{BASE}/register",
            json={"username": "newbie", "email": "newbie@example.com", "password": DEFAULT_PASSWORD},
        )

        assert resp.status_code == 201
        assert resp.headers["Cache-Control"] == "no-store"
        data = resp.get_json()["data"]
        assert data["username"] == "newbie"
        assert data["roles"] == ["ROLE_USER"]
        assert data["token_type"] == "Bearer"
        assert data["access_token"] and data["refresh_token"]
        assert "password" not in data

    def test_register_hr_grants_hr_role(self, client):
        resp = client.post(
            f"{BASE}/register/hr",
            json={"username": "recruiter", "email": "hr@example.com", "password": DEFAULT_PASSWORD},
        )

        assert resp.status_code == 201
        assert resp.headers["Cache-Control"] == "no-store"
        assert resp.get_json()["data"]["roles"] == ["ROLE_HR"]

    def test_weak_password_lists_violations(self, client):
        resp = client.post(
            f"{BASE}/register",
            json={"username": "weakling", "email": "weak@example.com", "password": "Password123!"},
        )

        assert resp.status_code == 422
        body = resp.get_json()
        assert resp.mimetype == "application/problem+json"
        assert body["code"] == "registration_rejected"
        assert body["details"]["violations"]

    def test_missing_fields(self, client):
        resp = client.post(f"{BASE}/register", json={"username": "x"})
        assert resp.status_code == 422
        assert resp.get_json()["code"] == "validation_error"

    def test_duplicate_username(self, client, user):
        resp = client.post(
            f"{BASE}/register",
            json={"username": "walter", "email": "w2@example.com", "password": DEFAULT_PASSWORD},
        )
        assert resp.status_code == 409
        assert resp.get_json()["code"] == "conflict"


class TestLogin:
    def test_login_success(self, client, user):
        resp = _login(client, "walter")

        assert resp.status_code == 200
        assert resp.headers["Cache-Control"] == "no-store"
        data = resp.get_json()["data"]
        assert data["email"] == "walter@example.com"
        assert data["expires_in"] == 15 * 60

    @pytest.mark.parametrize("username, password", [("walter", "bad"), ("ghost", DEFAULT_PASSWORD)])
    def test_invalid_credentials_are_indistinguishable(self, client, user, username, password):
        resp = _login(client, username, password)
        assert resp.status_code == 401
        assert resp.get_json()["code"] == "invalid_credentials"
        assert resp.get_json()["detail"] == "Invalid username or password"

    def test_ledger_outage_is_a_503(self, client, user, components, monkeypatch):
        def down(record):
            raise LedgerUnavailableError("down")

        monkeypatch.setattr(components.lifecycle.ledger, "insert", down)
        resp = _login(client, "walter")
        assert resp.status_code == 503
        assert resp.get_json()["code"] == "service_unavailable"


class TestRefresh:
    def test_refresh_rotates(self, client, tokens):
        resp = client.post(f"{BASE}/refresh", json={"refresh_token": tokens["refresh_token"]})

        assert resp.status_code == 200
        rotated = resp.get_json()["data"]
        assert rotated["refresh_token"] != tokens["refresh_token"]

    def test_reuse_is_refused(self, client, tokens):
        client.post(f"{BASE}/refresh", json={"refresh_token": tokens["refresh_token"]})
        resp = client.post(f"{BASE}/refresh", json={"refresh_token": tokens["refresh_token"]})

        assert resp.status_code == 401
        assert resp.get_json()["code"] == "token_revoked"

    def test_access_token_is_refused(self, client, tokens):
        resp = client.post(f"{BASE}/refresh", json={"refresh_token": tokens["access_token"]})
        assert resp.status_code == 401
        assert resp.get_json()["code"] == "not_a_refresh_token"

    def test_garbage(self, client):
        resp = client.post(f"{BASE}/refresh", json={"refresh_token": "garbage"})
        assert resp.status_code == 401
        assert resp.get_json()["code"] == "invalid_token"


class TestLogout:
    def test_logout_revokes_refresh_token(self, client, tokens):
        resp = client.post(f"{BASE}/logout", json={"token": tokens["refresh_token"]})
        assert resp.status_code == 200
        assert resp.get_json()["data"] == {"revoked_sessions": 0}

        again = client.post(f"{BASE}/refresh", json={"refresh_token": tokens["refresh_token"]})
        assert again.status_code == 401

    def test_logout_all_sessions(self, client, tokens):
        _login(client, "walter")
        resp = client.post(
            f"{BASE}/logout", json={"token": tokens["refresh_token"], "all_sessions": True}
        )
        assert resp.get_json()["data"] == {"revoked_sessions": 1}

    @pytest.mark.parametrize(
        "which, code", [("access_token", "not_a_refresh_token"), ("refresh_token", "token_revoked")]
    )
    def test_logout_all_sessions_needs_live_refresh_token(self, client, tokens, which, code):
        client.post(f"{BASE}/refresh", json={"refresh_token": tokens["refresh_token"]})
        live = _login(client, "walter").get_json()["data"]

        resp = client.post(f"{BASE}/logout", json={"token": tokens[which], "all_sessions": True})

        assert resp.status_code == 401
        assert resp.get_json()["code"] == code
        still = client.post(f"{BASE}/refresh", json={"refresh_token": live["refresh_token"]})
        assert still.status_code == 200

    def test_logout_twice_is_fine(self, client, tokens):
        client.post(f"{BASE}/logout", json={"token": tokens["refresh_token"]})
        resp = client.post(f"{BASE}/logout", json={"token": tokens["refresh_token"]})
        assert resp.status_code == 200


class TestWhoAmI:
    def test_whoami(self, client, tokens, user):
        resp = client.get(f"{BASE}/whoami", headers=_bearer(tokens["access_token"]))

        assert resp.status_code == 200
        data = resp.get_json()["data"]
        assert data["id"] == str(user.id)
        assert data["username"] == "walter"
        assert data["roles"] == ["ROLE_USER"]

    def test_missing_header(self, client):
        resp = client.get(f"{BASE}/whoami")
        assert resp.status_code == 401
        assert resp.get_json()["code"] == "unauthorized"

    @pytest.mark.parametrize("which", ["refresh_token", "garbage"])
    def test_rejects_non_access_tokens(self, client, tokens, which):
        token = tokens.get(which, "not.a.jwt")
        resp = client.get(f"{BASE}/whoami", headers=_bearer(token))
        assert resp.status_code == 401
        assert resp.get_json()["code"] == "invalid_token"


class TestThrottle:
    def test_login_is_throttled_per_client(self, client, user, components, monkeypatch):
        monkeypatch.setattr(
            components, "throttle", RequestThrottle(limit=2, refresh_period=60, timeout_duration=30)
        )

        assert _login(client, "walter").status_code == 200
        assert _login(client, "walter", "wrong").status_code == 401
        blocked = _login(client, "walter")

        assert blocked.status_code == 429
        assert blocked.get_json()["code"] == "too_many_requests"
        assert 1 <= int(blocked.headers["Retry-After"]) <= 30

    def test_other_clients_are_unaffected(self, client, user, components, monkeypatch):
        monkeypatch.setattr(components, "throttle", RequestThrottle(limit=1))

        _login(client, "walter")
        assert _login(client, "walter").status_code == 429
        other = client.post(
            f"{BASE}/login",
            json={"username": "walter", "password": DEFAULT_PASSWORD},
            environ_base={"REMOTE_ADDR": "10.9.9.9"},
        )
        assert other.status_code == 200
