"""Client metadata extracted from inbound requests."""

from __future__ import annotations

from fastapi import Request

from hometrace_auth.api.errors import ApiError, ApiErrorCode
from hometrace_auth.sessions.models import IdentityContext


def client_ip(request: Request) -> str | None:
    """First hop of ``X-Forwarded-For``, then ``X-Real-IP``, then the socket peer."""
    forwarded = request.headers.get("x-forwarded-for", "")
    first_hop = forwarded.split(",", 1)[0].strip()
    if first_hop:
        return first_hop
    real_ip = request.headers.get("x-real-ip", "").strip()
    if real_ip:
        return real_ip
    return request.client.host if request.client else None


def user_agent(request: Request) -> str | None:
    return request.headers.get("user-agent") or None


def require_identity(request: Request) -> IdentityContext:
    """Identity the gatekeeper attached to the request, or 401."""
    identity = getattr(request.state, "identity", None)
    if not isinstance(identity, IdentityContext):
        raise ApiError(error_code=ApiErrorCode.UNAUTHORIZED, message="Authentication required")
    return identity
