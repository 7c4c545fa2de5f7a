"""HTTP middleware that runs the gatekeeper in front of every route."""

from __future__ import annotations

import logging
from typing import Callable

from fastapi import Request
from fastapi.responses import JSONResponse, RedirectResponse
from starlette.concurrency import run_in_threadpool

from hometrace_auth.api.contracts import ApiErrorResponse
from hometrace_auth.api.cookies import ACCESS_COOKIE, clear_auth_cookies
from hometrace_auth.api.errors import ERROR_STATUS, ApiErrorCode
from hometrace_auth.api.request_info import client_ip
from hometrace_auth.gatekeeper.decision import GateDecision, GateOutcome, Gatekeeper

LOGGER = logging.getLogger(__name__)

IDENTITY_HEADERS = frozenset({"x-user-id", "x-user-email", "x-user-role", "x-session-id"})


def _replace_identity_headers(request: Request, decision: GateDecision) -> None:
    """Drop client-supplied identity headers and inject the verified ones."""
    headers = [
        (name, value)
        for name, value in request.scope["headers"]
        if name.decode("latin-1").lower() not in IDENTITY_HEADERS
    ]
    if decision.identity is not None:
        headers.extend(
            (name.encode("latin-1"), value.encode("latin-1"))
            for name, value in decision.identity.to_headers().items()
        )
    request.scope["headers"] = headers


def _render(decision: GateDecision):
    if decision.outcome == GateOutcome.REJECT:
        code = ApiErrorCode(decision.reason)
        return JSONResponse(
            status_code=ERROR_STATUS[code],
            content=ApiErrorResponse.build(code, decision.message).model_dump(),
            headers=decision.headers or None,
        )
    response = RedirectResponse(url=decision.location or "/", status_code=307)
    if decision.clear_cookies:
        clear_auth_cookies(response)
    return response


def create_gatekeeper_middleware(gatekeeper: Gatekeeper) -> Callable:
    """Create middleware function that admits, redirects or rejects requests."""

    async def gatekeeper_middleware(request: Request, call_next: Callable):
        """Decide on the request and attach the verified identity to it."""
        # session lookups hit the store, keep them off the event loop
        decision = await run_in_threadpool(
            gatekeeper.decide,
            request.url.path,
            method=request.method,
            access_cookie=request.cookies.get(ACCESS_COOKIE),
            authorization=request.headers.get("authorization"),
            client_ip=client_ip(request),
        )
        _replace_identity_headers(request, decision)

        if decision.outcome != GateOutcome.PASS:
            LOGGER.info(
                "gatekeeper_reject"
                if decision.outcome == GateOutcome.REJECT
                else "gatekeeper_redirect",
                extra={
                    "path": request.url.path,
                    "method": request.method,
                    "reason": decision.reason,
                },
            )
            return _render(decision)

        request.state.identity = decision.identity
        return await call_next(request)

    return gatekeeper_middleware
