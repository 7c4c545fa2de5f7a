"""Pydantic request models for authentication endpoints."""

from __future__ import annotations

from pydantic import BaseModel, Field

from hometrace_auth.users.models import UserRole


class LoginRequest(BaseModel):
    """Login request payload."""

    email: str = Field(min_length=3)
    password: str = Field(min_length=1)


class RegisterRequest(BaseModel):
    """Self-service registration payload."""

    email: str = Field(min_length=3, max_length=254, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    password: str = Field(min_length=8, max_length=128)
    name: str = Field(min_length=1, max_length=120)
    role: UserRole = UserRole.BUYER


class RefreshRequest(BaseModel):
    """Refresh payload for clients that cannot send cookies."""

    refresh_token: str | None = None


class ForgotPasswordRequest(BaseModel):
    """Password reset request payload."""

    email: str = Field(min_length=3)


class ResetPasswordRequest(BaseModel):
    """Password reset completion payload."""

    token: str = Field(min_length=1)
    password: str = Field(min_length=8, max_length=128)
