"""Public API response contracts."""

from hometrace_auth.api.contracts.models import (
    ApiErrorBody,
    ApiErrorResponse,
    HealthResponse,
    InviteCreatedResponse,
    InviteValidationResponse,
    LoginResponse,
    MeResponse,
    MessageResponse,
    RefreshResponse,
    SessionsResponse,
)

__all__ = [
    "ApiErrorBody",
    "ApiErrorResponse",
    "HealthResponse",
    "InviteCreatedResponse",
    "InviteValidationResponse",
    "LoginResponse",
    "MeResponse",
    "MessageResponse",
    "RefreshResponse",
    "SessionsResponse",
]
