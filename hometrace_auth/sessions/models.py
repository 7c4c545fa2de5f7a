"""Session records and the values exchanged with session consumers."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from pydantic import BaseModel


class RevokeReason(StrEnum):
    """Why a session stopped being usable."""

    MANUAL_REVOKE = "manual_revoke"
    LOGOUT_ALL_DEVICES = "logout_all_devices"
    EXPIRED = "expired"
    REPLACED = "replaced"
    LOGOUT = "logout"
    PASSWORD_CHANGE = "password_change"


class Session(BaseModel):
    """Server-side session row; only the refresh token hash is stored."""

    session_id: str
    user_id: str
    refresh_token_hash: str
    user_agent: str | None = None
    ip_address: str | None = None
    created_at: int
    last_used_at: int
    is_revoked: bool = False
    revoked_at: int | None = None
    revoked_reason: RevokeReason | None = None


class SessionView(BaseModel):
    """Session listing item; never carries the refresh token hash."""

    id: str
    created_at: int
    last_used_at: int
    user_agent: str | None = None
    ip_address: str | None = None
    is_current: bool = False


@dataclass(frozen=True)
class IdentityContext:
    """Per-request identity handed to downstream handlers."""

    user_id: str
    email: str
    role: str
    session_id: str | None = None

    def to_headers(self) -> dict[str, str]:
        headers = {
            "x-user-id": self.user_id,
            "x-user-email": self.email,
            "x-user-role": self.role,
        }
        if self.session_id:
            headers["x-session-id"] = self.session_id
        return headers


@dataclass(frozen=True)
class LoginResult:
    """Tokens minted for a freshly created session."""

    access_token: str
    refresh_token: str
    session_id: str


@dataclass(frozen=True)
class RefreshResult:
    """New access token plus the user it was minted for."""

    access_token: str
    session_id: str
    user: dict[str, str]
