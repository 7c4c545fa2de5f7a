"""Pydantic API response models used in OpenAPI contracts."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

from hometrace_auth.sessions.models import SessionView


class ApiErrorBody(BaseModel):
    """Machine-readable error detail."""

    code: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error message")


class ApiErrorResponse(BaseModel):
    """Stable error envelope for API responses."""

    success: Literal[False] = False
    error: ApiErrorBody

    @classmethod
    def build(cls, code: str, message: str) -> "ApiErrorResponse":
        return cls(error=ApiErrorBody(code=str(code), message=message))


class HealthResponse(BaseModel):
    """Health check response payload."""

    status: Literal["ok"]


class UserPayload(BaseModel):
    id: str
    email: str
    name: str = ""
    role: str


class LoginData(BaseModel):
    user: UserPayload
    session_id: str
    identity_token: str | None = None


class LoginResponse(BaseModel):
    success: Literal[True] = True
    data: LoginData


class RefreshData(BaseModel):
    user: UserPayload
    session_id: str


class RefreshResponse(BaseModel):
    success: Literal[True] = True
    data: RefreshData


class MeData(BaseModel):
    user_id: str
    email: str
    role: str
    session_id: str | None = None


class MeResponse(BaseModel):
    success: Literal[True] = True
    data: MeData


class SessionsData(BaseModel):
    sessions: list[SessionView]
    current_session_id: str | None = None


class SessionsResponse(BaseModel):
    success: Literal[True] = True
    data: SessionsData


class MessageData(BaseModel):
    message: str
    count: int | None = None


class MessageResponse(BaseModel):
    """Acknowledgement for state-changing endpoints."""

    success: Literal[True] = True
    data: MessageData


class InviteValidationData(BaseModel):
    valid: bool
    email: str | None = None
    invite_id: str | None = None


class InviteValidationResponse(BaseModel):
    success: Literal[True] = True
    data: InviteValidationData


class InviteCreatedData(BaseModel):
    invite_id: str
    email: str
    expires_in: int


class InviteCreatedResponse(BaseModel):
    success: Literal[True] = True
    data: InviteCreatedData
