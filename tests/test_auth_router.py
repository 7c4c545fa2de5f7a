from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from hometrace_auth.core.config import (
    AppConfig,
    AuthConfig,
    LoggingConfig,
    RateLimitConfig,
    SecurityConfig,
    StorageConfig,
)
from web_api import create_app


@dataclass
class _Outbox:
    resets: list[dict[str, str]] = field(default_factory=list)
    invites: list[dict[str, str]] = field(default_factory=list)

    def send_password_reset(self, *, user_id: str, email: str, token: str) -> None:
        self.resets.append({"user_id": user_id, "email": email, "token": token})

    def send_invite(self, *, invite_id: str, email: str, token: str) -> None:
        self.invites.append({"invite_id": invite_id, "email": email, "token": token})


@dataclass
class _App:
    app: object
    outbox: _Outbox

    def client(self) -> TestClient:
        return TestClient(self.app)


def _config(tmp_path: Path, *, stateless: bool = False) -> AppConfig:
    return AppConfig(
        auth=AuthConfig(
            secret_key="router-test-secret-key",
            admin_email="admin@hometrace.test",
            admin_password="admin-password",
            stateless_identity_enabled=stateless,
        ),
        rate_limit=RateLimitConfig(),
        storage=StorageConfig(runtime_dir=str(tmp_path)),
        logging=LoggingConfig(level="INFO"),
        security=SecurityConfig(cors_allowed_origins=["http://localhost:3000"]),
    )


@pytest.fixture
def harness(tmp_path: Path) -> _App:
    outbox = _Outbox()
    return _App(app=create_app(_config(tmp_path), notifier=outbox), outbox=outbox)


def _register(client: TestClient, email: str, role: str = "BUYER"):
    return client.post(
        "/api/auth/register",
        json={"email": email, "password": "correct-horse", "name": "Pat", "role": role},
    )


def test_health_is_public(harness: _App) -> None:
    response = harness.client().get("/api/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_register_signs_in_and_me_returns_identity(harness: _App) -> None:
    client = harness.client()

    registered = _register(client, "Buyer@Example.com")
    me = client.get("/api/auth/me")

    assert registered.status_code == 201
    body = registered.json()
    assert body["success"] is True
    assert body["data"]["user"]["email"] == "buyer@example.com"
    assert body["data"]["identity_token"] is None
    assert client.cookies.get("access_token")
    assert client.cookies.get("refresh_token")
    assert me.status_code == 200
    assert me.json()["data"]["email"] == "buyer@example.com"
    assert me.json()["data"]["session_id"] == body["data"]["session_id"]


def test_register_rejects_duplicate_email_and_admin_role(harness: _App) -> None:
    client = harness.client()
    _register(client, "dup@example.com")

    duplicate = _register(harness.client(), "dup@example.com")
    admin = _register(harness.client(), "boss@example.com", role="ADMIN")

    assert duplicate.status_code == 409
    assert duplicate.json()["error"]["code"] == "DUPLICATE_EMAIL"
    assert admin.status_code == 400
    assert admin.json()["error"]["code"] == "VALIDATION_ERROR"


def test_invalid_payload_uses_error_envelope(harness: _App) -> None:
    response = harness.client().post("/api/auth/login", json={"email": "x"})

    assert response.status_code == 400
    assert response.json()["success"] is False
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


def test_login_with_bootstrap_admin(harness: _App) -> None:
    client = harness.client()

    response = client.post(
        "/api/auth/login",
        json={"email": "admin@hometrace.test", "password": "admin-password"},
    )

    assert response.status_code == 200
    assert response.json()["data"]["user"]["role"] == "ADMIN"
    assert client.get("/api/auth/me").json()["data"]["role"] == "ADMIN"


def test_login_failures_are_rate_limited(harness: _App) -> None:
    client = harness.client()
    payload = {"email": "admin@hometrace.test", "password": "wrong"}

    statuses = [client.post("/api/auth/login", json=payload).status_code for _ in range(5)]
    limited = client.post("/api/auth/login", json=payload)

    assert statuses == [401] * 5
    assert limited.status_code == 429
    assert limited.json()["error"]["code"] == "RATE_LIMIT_EXCEEDED"
    assert limited.headers["X-RateLimit-Limit"] == "5"
    assert limited.headers["X-RateLimit-Remaining"] == "0"


def test_sixth_login_is_limited_even_with_correct_password(harness: _App) -> None:
    client = harness.client()
    wrong = {"email": "admin@hometrace.test", "password": "wrong"}
    correct = {"email": "admin@hometrace.test", "password": "admin-password"}

    for _ in range(5):
        client.post("/api/auth/login", json=wrong)
    limited = client.post("/api/auth/login", json=correct)

    assert limited.status_code == 429
    assert limited.json()["error"]["code"] == "RATE_LIMIT_EXCEEDED"
    assert "access_token" not in limited.cookies


def test_protected_api_without_credentials(harness: _App) -> None:
    response = harness.client().get("/api/auth/sessions")

    assert response.status_code == 401
    assert response.json() == {
        "success": False,
        "error": {"code": "UNAUTHORIZED", "message": "Authentication required"},
    }


def test_refresh_issues_new_access_cookie(harness: _App) -> None:
    client = harness.client()
    session_id = _register(client, "refresh@example.com").json()["data"]["session_id"]
    refresh_token = client.cookies.get("refresh_token")

    response = client.post("/api/auth/refresh")

    assert response.status_code == 200
    assert response.json()["data"]["session_id"] == session_id
    assert "access_token=" in response.headers["set-cookie"]
    assert client.cookies.get("refresh_token") == refresh_token


def test_refresh_from_body_for_cookieless_clients(harness: _App) -> None:
    client = harness.client()
    _register(client, "body@example.com")
    refresh_token = client.cookies.get("refresh_token")

    response = harness.client().post("/api/auth/refresh", json={"refresh_token": refresh_token})

    assert response.status_code == 200


def test_refresh_with_unknown_token_clears_cookies(harness: _App) -> None:
    response = harness.client().post("/api/auth/refresh", json={"refresh_token": "f" * 64})

    assert response.status_code == 401
    assert response.json()["error"]["code"] == "INVALID_TOKEN"
    assert "refresh_token=" in response.headers["set-cookie"]


def test_logout_revokes_session_and_clears_cookies(harness: _App) -> None:
    client = harness.client()
    _register(client, "logout@example.com")
    access_token = client.cookies.get("access_token")

    response = client.post("/api/auth/logout")
    replay = harness.client().get(
        "/api/auth/me", headers={"Authorization": f"Bearer {access_token}"}
    )

    assert response.status_code == 200
    assert client.cookies.get("access_token") is None
    assert replay.status_code == 401
    assert replay.json()["error"]["code"] == "INVALID_TOKEN"


def test_logout_without_session_still_succeeds(harness: _App) -> None:
    response = harness.client().post("/api/auth/logout")

    assert response.status_code == 200
    assert response.json()["data"]["message"] == "Logged out"


def test_list_and_revoke_sessions(harness: _App) -> None:
    laptop = harness.client()
    phone = harness.client()
    _register(laptop, "multi@example.com")
    phone_login = phone.post(
        "/api/auth/login", json={"email": "multi@example.com", "password": "correct-horse"}
    )
    phone_session = phone_login.json()["data"]["session_id"]

    listed = laptop.get("/api/auth/sessions").json()["data"]
    revoked = laptop.delete(f"/api/auth/sessions/{phone_session}")
    again = laptop.delete(f"/api/auth/sessions/{phone_session}")
    missing = laptop.delete("/api/auth/sessions/does-not-exist")

    assert len(listed["sessions"]) == 2
    current = [row for row in listed["sessions"] if row["is_current"]]
    assert [row["id"] for row in current] == [listed["current_session_id"]]
    assert "refresh_token_hash" not in listed["sessions"][0]
    assert revoked.status_code == 200
    assert again.status_code == 409
    assert again.json()["error"]["code"] == "CONFLICT"
    assert missing.status_code == 404
    assert phone.get("/api/auth/me").status_code == 401


def test_cannot_revoke_session_of_another_user(harness: _App) -> None:
    alice = harness.client()
    bob = harness.client()
    _register(alice, "alice@example.com")
    bob_session = _register(bob, "bob@example.com").json()["data"]["session_id"]

    response = alice.delete(f"/api/auth/sessions/{bob_session}")

    assert response.status_code == 403
    assert response.json()["error"]["code"] == "FORBIDDEN"
    assert bob.get("/api/auth/me").status_code == 200


def test_revoke_all_sessions_can_keep_current(harness: _App) -> None:
    laptop = harness.client()
    phone = harness.client()
    _register(laptop, "all@example.com")
    phone.post("/api/auth/login", json={"email": "all@example.com", "password": "correct-horse"})

    response = laptop.delete("/api/auth/sessions", params={"keep_current": "true"})

    assert response.status_code == 200
    assert response.json()["data"]["count"] == 1
    assert laptop.get("/api/auth/me").status_code == 200
    assert phone.get("/api/auth/me").status_code == 401

    everything = laptop.delete("/api/auth/sessions")
    assert everything.json()["data"]["count"] == 1
    assert laptop.get("/api/auth/me").status_code == 401


def test_forgot_password_does_not_reveal_accounts(harness: _App) -> None:
    client = harness.client()
    _register(harness.client(), "known@example.com")

    known = client.post("/api/auth/forgot-password", json={"email": "known@example.com"})
    unknown = client.post("/api/auth/forgot-password", json={"email": "nobody@example.com"})

    assert known.status_code == unknown.status_code == 200
    assert known.json() == unknown.json()
    assert [item["email"] for item in harness.outbox.resets] == ["known@example.com"]


def test_reset_password_revokes_sessions_and_signs_in(harness: _App) -> None:
    old_device = harness.client()
    _register(old_device, "reset@example.com")
    old_access = old_device.cookies.get("access_token")
    client = harness.client()
    client.post("/api/auth/forgot-password", json={"email": "reset@example.com"})
    token = harness.outbox.resets[-1]["token"]

    reset = client.post(
        "/api/auth/reset-password", json={"token": token, "password": "brand-new-secret"}
    )
    replay = harness.client().post(
        "/api/auth/reset-password", json={"token": token, "password": "another-secret"}
    )
    stale = harness.client().get("/api/auth/me", headers={"Authorization": f"Bearer {old_access}"})
    new_login = harness.client().post(
        "/api/auth/login", json={"email": "reset@example.com", "password": "brand-new-secret"}
    )

    assert reset.status_code == 200
    assert client.get("/api/auth/me").status_code == 200
    assert replay.status_code == 401
    assert replay.json()["error"]["code"] == "INVALID_TOKEN"
    assert stale.status_code == 401
    assert new_login.status_code == 200


def test_reset_password_rejects_other_token_kinds(harness: _App) -> None:
    client = harness.client()
    _register(client, "kinds@example.com")
    access_token = client.cookies.get("access_token")

    response = client.post(
        "/api/auth/reset-password", json={"token": access_token, "password": "brand-new-secret"}
    )

    assert response.status_code == 401


def test_invites_are_issued_by_realtors_and_validated(harness: _App) -> None:
    buyer = harness.client()
    realtor = harness.client()
    _register(buyer, "buyer@example.com")
    _register(realtor, "realtor@example.com", role="REALTOR")

    denied = buyer.post("/api/invites", json={"email": "friend@example.com"})
    created = realtor.post("/api/invites", json={"email": "Friend@Example.com"})
    token = harness.outbox.invites[-1]["token"]
    validated = harness.client().get("/api/invites/validate", params={"token": token})
    garbage = harness.client().get("/api/invites/validate", params={"token": "nope"})

    assert denied.status_code == 403
    assert created.status_code == 201
    assert created.json()["data"]["email"] == "friend@example.com"
    assert validated.status_code == 200
    assert validated.json()["data"] == {
        "valid": True,
        "email": "friend@example.com",
        "invite_id": created.json()["data"]["invite_id"],
    }
    assert garbage.status_code == 401


def test_protected_page_redirects_to_sign_in(harness: _App) -> None:
    response = harness.client().get("/client/homes", follow_redirects=False)

    assert response.status_code == 307
    assert response.headers["location"] == "/sign-in?redirect=%2Fclient%2Fhomes"


def test_stateless_mode_returns_identity_token(tmp_path: Path) -> None:
    app = create_app(_config(tmp_path, stateless=True), notifier=_Outbox())
    client = TestClient(app)

    body = _register(client, "mobile@example.com").json()
    identity_token = body["data"]["identity_token"]
    me = TestClient(app).get("/api/auth/me", headers={"Authorization": f"Bearer {identity_token}"})

    assert identity_token
    assert me.status_code == 200
    assert me.json()["data"]["session_id"] is None


def test_responses_carry_security_headers(harness: _App) -> None:
    response = harness.client().get("/api/health", headers={"X-Request-ID": "req-42"})

    assert response.headers["X-Request-ID"] == "req-42"
    assert response.headers["X-Frame-Options"] == "DENY"


def test_lifespan_starts_and_stops_sweeper(tmp_path: Path) -> None:
    app = create_app(_config(tmp_path), notifier=_Outbox())

    with TestClient(app) as client:
        assert client.get("/api/health").status_code == 200
