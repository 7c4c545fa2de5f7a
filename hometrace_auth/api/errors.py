"""Shared API error types and helpers."""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from fastapi import HTTPException


class ApiErrorCode(StrEnum):
    """Machine-readable API error codes."""

    UNAUTHORIZED = "UNAUTHORIZED"
    INVALID_TOKEN = "INVALID_TOKEN"
    FORBIDDEN = "FORBIDDEN"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    DUPLICATE_EMAIL = "DUPLICATE_EMAIL"
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
    REQUEST_TOO_LARGE = "REQUEST_TOO_LARGE"
    INTERNAL_ERROR = "INTERNAL_ERROR"


ERROR_STATUS: dict[ApiErrorCode, int] = {
    ApiErrorCode.UNAUTHORIZED: 401,
    ApiErrorCode.INVALID_TOKEN: 401,
    ApiErrorCode.FORBIDDEN: 403,
    ApiErrorCode.VALIDATION_ERROR: 400,
    ApiErrorCode.NOT_FOUND: 404,
    ApiErrorCode.CONFLICT: 409,
    ApiErrorCode.DUPLICATE_EMAIL: 409,
    ApiErrorCode.RATE_LIMIT_EXCEEDED: 429,
    ApiErrorCode.REQUEST_TOO_LARGE: 413,
    ApiErrorCode.INTERNAL_ERROR: 500,
}


class ApiError(HTTPException):
    """HTTP exception carrying stable API error envelope."""

    def __init__(
        self,
        *,
        error_code: ApiErrorCode,
        message: str,
        status_code: int | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        """Build an HTTP exception with standard detail structure."""
        super().__init__(
            status_code=status_code or ERROR_STATUS[error_code],
            detail={"code": str(error_code), "message": message},
            headers=headers,
        )


def error_envelope(code: str, message: str) -> dict[str, Any]:
    """Return the uniform failure body."""
    return {"success": False, "error": {"code": code, "message": message}}


def to_error_payload(detail: Any, status_code: int) -> dict[str, Any]:
    """Normalize HTTP exception detail into stable error payload."""
    if isinstance(detail, dict):
        code = str(detail.get("code") or f"HTTP_{status_code}")
        message = str(detail.get("message") or detail.get("detail") or "HTTP error")
        return error_envelope(code, message)
    return error_envelope(f"HTTP_{status_code}", str(detail or "HTTP error"))
