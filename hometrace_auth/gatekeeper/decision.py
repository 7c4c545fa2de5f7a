"""Per-request admission decision fusing tokens, sessions, roles and limits."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from urllib.parse import urlencode

from hometrace_auth.api.errors import ApiErrorCode
from hometrace_auth.gatekeeper.routes import RoutePolicy
from hometrace_auth.ratelimit import RateLimitStore, build_identifier, rate_limit_headers
from hometrace_auth.sessions import IdentityContext, SessionManager, token_from_request


class GateOutcome(StrEnum):
    PASS = "pass"
    REDIRECT = "redirect"
    REJECT = "reject"


class GateReason(StrEnum):
    """Reason codes for non-rejecting outcomes."""

    STATIC = "STATIC"
    PUBLIC = "PUBLIC"
    AUTHENTICATED = "AUTHENTICATED"
    ALREADY_SIGNED_IN = "ALREADY_SIGNED_IN"
    SIGN_IN_REQUIRED = "SIGN_IN_REQUIRED"
    ROLE_REDIRECT = "ROLE_REDIRECT"


@dataclass(frozen=True)
class GateDecision:
    """Terminal outcome for one request."""

    outcome: GateOutcome
    reason: str
    message: str = ""
    location: str | None = None
    identity: IdentityContext | None = None
    clear_cookies: bool = False
    headers: dict[str, str] = field(default_factory=dict)


_MESSAGES = {
    ApiErrorCode.UNAUTHORIZED: "Authentication required",
    ApiErrorCode.INVALID_TOKEN: "Invalid or expired token",
    ApiErrorCode.RATE_LIMIT_EXCEEDED: "Too many requests. Please try again later.",
}


def _reject(code: ApiErrorCode, headers: dict[str, str] | None = None) -> GateDecision:
    return GateDecision(
        outcome=GateOutcome.REJECT,
        reason=str(code),
        message=_MESSAGES[code],
        headers=headers or {},
    )


def _redirect(reason: GateReason, location: str, *, clear_cookies: bool = False) -> GateDecision:
    return GateDecision(
        outcome=GateOutcome.REDIRECT,
        reason=str(reason),
        location=location,
        clear_cookies=clear_cookies,
    )


def _pass(reason: GateReason, identity: IdentityContext | None = None) -> GateDecision:
    return GateDecision(outcome=GateOutcome.PASS, reason=str(reason), identity=identity)


class Gatekeeper:
    """Single admission point for every inbound request.

    API routes are rejected with a machine-readable code; page routes are
    redirected, including role mismatches, so restricted areas are never
    confirmed to exist.
    """

    def __init__(
        self,
        *,
        sessions: SessionManager,
        policy: RoutePolicy | None = None,
        rate_limiter: RateLimitStore | None = None,
    ) -> None:
        self._sessions = sessions
        self._policy = policy or RoutePolicy()
        self._rate_limiter = rate_limiter

    @property
    def policy(self) -> RoutePolicy:
        return self._policy

    def decide(
        self,
        path: str,
        *,
        method: str = "GET",
        access_cookie: str | None = None,
        authorization: str | None = None,
        client_ip: str | None = None,
    ) -> GateDecision:
        policy = self._policy
        if policy.is_static(path):
            return _pass(GateReason.STATIC)

        if policy.is_public_page(path):
            if access_cookie and policy.is_auth_entry(path):
                identity = self._sessions.get_session_user(access_cookie)
                if identity is not None:
                    return _redirect(
                        GateReason.ALREADY_SIGNED_IN, policy.landing_for(identity.role)
                    )
            return _pass(GateReason.PUBLIC)

        if policy.is_api(path):
            if policy.is_public_api(path):
                return _pass(GateReason.PUBLIC)
            return self._decide_api(path, method, access_cookie, authorization, client_ip)

        return self._decide_page(path, access_cookie)

    def _decide_api(
        self,
        path: str,
        method: str,
        access_cookie: str | None,
        authorization: str | None,
        client_ip: str | None,
    ) -> GateDecision:
        token = token_from_request(access_cookie, authorization)
        if not token:
            return _reject(ApiErrorCode.UNAUTHORIZED)
        identity = self._sessions.get_session_user(token)
        if identity is None:
            return _reject(ApiErrorCode.INVALID_TOKEN)

        action = self._policy.rate_limit_action(method, path)
        if action and self._rate_limiter is not None:
            result = self._rate_limiter.check(
                action, build_identifier(client_ip, identity.user_id)
            )
            if not result.allowed:
                return _reject(ApiErrorCode.RATE_LIMIT_EXCEEDED, rate_limit_headers(result))

        return _pass(GateReason.AUTHENTICATED, identity)

    def _decide_page(self, path: str, access_cookie: str | None) -> GateDecision:
        policy = self._policy
        identity = self._sessions.get_session_user(access_cookie) if access_cookie else None
        if identity is None:
            location = f"{policy.sign_in_path}?{urlencode({'redirect': path})}"
            return _redirect(GateReason.SIGN_IN_REQUIRED, location, clear_cookies=True)

        owner = policy.owner_of(path)
        if owner is not None and owner != identity.role:
            return _redirect(GateReason.ROLE_REDIRECT, policy.landing_for(identity.role))
        return _pass(GateReason.AUTHENTICATED, identity)
