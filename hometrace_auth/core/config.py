"""Application configuration loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass, field

DEV_SECRET_KEY = "development-secret-key-min-32-characters-long"


def _env_flag(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    return int(raw) if raw else default


@dataclass(frozen=True)
class AuthConfig:
    """Token signing and session lifetime configuration."""

    secret_key: str
    issuer: str = "hometrace"
    audience: str = "hometrace-users"
    access_token_ttl_seconds: int = 15 * 60
    password_reset_ttl_seconds: int = 60 * 60
    invite_ttl_seconds: int = 7 * 24 * 60 * 60
    identity_token_ttl_seconds: int = 7 * 24 * 60 * 60
    refresh_token_ttl_seconds: int = 7 * 24 * 60 * 60
    session_inactivity_seconds: int = 30 * 60
    stateless_identity_enabled: bool = False
    cookie_secure: bool = False
    admin_email: str = ""
    admin_password: str = ""


@dataclass(frozen=True)
class RateLimitPolicyConfig:
    """Fixed-window policy for a single action."""

    window_ms: int
    limit: int


def _default_policies() -> dict[str, RateLimitPolicyConfig]:
    return {
        "login": RateLimitPolicyConfig(window_ms=60_000, limit=5),
        "register": RateLimitPolicyConfig(window_ms=60_000, limit=3),
        "forgot_password": RateLimitPolicyConfig(window_ms=300_000, limit=3),
        "reset_password": RateLimitPolicyConfig(window_ms=300_000, limit=5),
        "refresh": RateLimitPolicyConfig(window_ms=60_000, limit=30),
        "invites": RateLimitPolicyConfig(window_ms=300_000, limit=10),
    }


@dataclass(frozen=True)
class RateLimitConfig:
    """Per-action rate limiting configuration."""

    policies: dict[str, RateLimitPolicyConfig] = field(default_factory=_default_policies)
    default_policy: RateLimitPolicyConfig = field(
        default_factory=lambda: RateLimitPolicyConfig(window_ms=60_000, limit=100)
    )
    sweep_interval_seconds: int = 300


@dataclass(frozen=True)
class StorageConfig:
    """Session and user persistence configuration."""

    mongodb_uri: str = ""
    mongodb_db: str = "hometrace"
    runtime_dir: str = "runtime"
    lookup_timeout_ms: int = 3000


@dataclass(frozen=True)
class LoggingConfig:
    """Structured logging configuration."""

    level: str = "INFO"


@dataclass(frozen=True)
class SecurityConfig:
    """API perimeter security settings."""

    cors_allowed_origins: list[str] = field(default_factory=list)
    request_max_bytes: int = 1024 * 1024


@dataclass(frozen=True)
class AppConfig:
    """Top-level application configuration."""

    auth: AuthConfig
    rate_limit: RateLimitConfig
    storage: StorageConfig
    logging: LoggingConfig
    security: SecurityConfig

    @staticmethod
    def from_env() -> "AppConfig":
        """Build app config from process environment."""
        production = os.getenv("APP_ENV", "development").strip().lower() == "production"
        secret_key = (
            os.getenv("AUTH_SECRET_KEY", "").strip() or os.getenv("JWT_SECRET", "").strip()
        )
        if not secret_key and not production:
            secret_key = DEV_SECRET_KEY

        policies = _default_policies()
        for action, policy in list(policies.items()):
            prefix = f"RATE_LIMIT_{action.upper()}"
            policies[action] = RateLimitPolicyConfig(
                window_ms=_env_int(f"{prefix}_WINDOW_MS", policy.window_ms),
                limit=_env_int(f"{prefix}_MAX_REQUESTS", policy.limit),
            )

        cors_allowed_origins = [
            origin.strip()
            for origin in os.getenv(
                "CORS_ALLOWED_ORIGINS",
                "http://localhost:3000,http://127.0.0.1:3000",
            ).split(",")
            if origin.strip()
        ]

        return AppConfig(
            auth=AuthConfig(
                secret_key=secret_key,
                issuer=os.getenv("AUTH_ISSUER", "hometrace").strip() or "hometrace",
                audience=os.getenv("AUTH_AUDIENCE", "hometrace-users").strip()
                or "hometrace-users",
                access_token_ttl_seconds=_env_int("AUTH_ACCESS_TOKEN_TTL_SECONDS", 900),
                password_reset_ttl_seconds=_env_int("AUTH_PASSWORD_RESET_TTL_SECONDS", 3600),
                invite_ttl_seconds=_env_int("AUTH_INVITE_TTL_SECONDS", 604800),
                identity_token_ttl_seconds=_env_int("AUTH_IDENTITY_TOKEN_TTL_SECONDS", 604800),
                refresh_token_ttl_seconds=_env_int("AUTH_REFRESH_TOKEN_TTL_SECONDS", 604800),
                session_inactivity_seconds=_env_int("AUTH_SESSION_INACTIVITY_SECONDS", 1800),
                stateless_identity_enabled=_env_flag("AUTH_STATELESS_IDENTITY"),
                cookie_secure=_env_flag("AUTH_COOKIE_SECURE", "1" if production else "0"),
                admin_email=os.getenv("AUTH_ADMIN_EMAIL", "").strip().lower(),
                admin_password=os.getenv("AUTH_ADMIN_PASSWORD", "").strip(),
            ),
            rate_limit=RateLimitConfig(
                policies=policies,
                default_policy=RateLimitPolicyConfig(
                    window_ms=_env_int("RATE_LIMIT_WINDOW_MS", 60_000),
                    limit=_env_int("RATE_LIMIT_MAX_REQUESTS", 100),
                ),
                sweep_interval_seconds=_env_int("RATE_LIMIT_SWEEP_INTERVAL_SECONDS", 300),
            ),
            storage=StorageConfig(
                mongodb_uri=os.getenv("MONGODB_URI", "").strip(),
                mongodb_db=os.getenv("MONGODB_DB", "hometrace").strip() or "hometrace",
                runtime_dir=os.getenv("RUNTIME_DIR", "runtime").strip() or "runtime",
                lookup_timeout_ms=_env_int("SESSION_LOOKUP_TIMEOUT_MS", 3000),
            ),
            logging=LoggingConfig(level=os.getenv("LOG_LEVEL", "INFO").strip() or "INFO"),
            security=SecurityConfig(
                cors_allowed_origins=cors_allowed_origins,
                request_max_bytes=_env_int("REQUEST_MAX_BYTES", 1024 * 1024),
            ),
        )
