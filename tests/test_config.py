from __future__ import annotations

import pytest

from hometrace_auth.core.config import DEV_SECRET_KEY, AppConfig

_ENV_KEYS = [
    "APP_ENV",
    "AUTH_SECRET_KEY",
    "JWT_SECRET",
    "AUTH_COOKIE_SECURE",
    "RATE_LIMIT_LOGIN_MAX_REQUESTS",
    "RATE_LIMIT_LOGIN_WINDOW_MS",
    "RATE_LIMIT_MAX_REQUESTS",
    "AUTH_STATELESS_IDENTITY",
    "MONGODB_URI",
]


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


def test_defaults_outside_production() -> None:
    config = AppConfig.from_env()

    assert config.auth.secret_key == DEV_SECRET_KEY
    assert config.auth.issuer == "hometrace"
    assert config.auth.audience == "hometrace-users"
    assert config.auth.cookie_secure is False
    assert config.auth.stateless_identity_enabled is False
    assert config.rate_limit.policies["login"].limit == 5
    assert config.rate_limit.policies["forgot_password"].window_ms == 300_000
    assert config.rate_limit.default_policy.limit == 100
    assert config.storage.mongodb_uri == ""


def test_production_keeps_missing_secret_empty(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("APP_ENV", "production")

    config = AppConfig.from_env()

    assert config.auth.secret_key == ""
    assert config.auth.cookie_secure is True


def test_secret_falls_back_to_jwt_secret(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("JWT_SECRET", "legacy-secret")

    assert AppConfig.from_env().auth.secret_key == "legacy-secret"

    monkeypatch.setenv("AUTH_SECRET_KEY", "primary-secret")
    assert AppConfig.from_env().auth.secret_key == "primary-secret"


def test_rate_limit_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RATE_LIMIT_LOGIN_MAX_REQUESTS", "9")
    monkeypatch.setenv("RATE_LIMIT_LOGIN_WINDOW_MS", "1000")
    monkeypatch.setenv("RATE_LIMIT_MAX_REQUESTS", "42")
    monkeypatch.setenv("AUTH_STATELESS_IDENTITY", "true")

    config = AppConfig.from_env()

    assert config.rate_limit.policies["login"].limit == 9
    assert config.rate_limit.policies["login"].window_ms == 1000
    assert config.rate_limit.default_policy.limit == 42
    assert config.auth.stateless_identity_enabled is True
