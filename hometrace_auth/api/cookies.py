"""Auth cookie names and helpers shared by the router and the gatekeeper."""

from __future__ import annotations

from starlette.responses import Response

ACCESS_COOKIE = "access_token"
REFRESH_COOKIE = "refresh_token"
# Pre-session cookie name still present in some browsers.
LEGACY_COOKIE = "auth-token"


def set_access_cookie(
    response: Response, access_token: str, *, secure: bool, max_age: int = 15 * 60
) -> None:
    response.set_cookie(
        ACCESS_COOKIE,
        access_token,
        max_age=max_age,
        path="/",
        httponly=True,
        secure=secure,
        samesite="lax",
    )


def set_auth_cookies(
    response: Response,
    access_token: str,
    refresh_token: str,
    *,
    secure: bool,
    access_max_age: int = 15 * 60,
    refresh_max_age: int = 7 * 24 * 60 * 60,
) -> None:
    """Attach access and refresh cookies to a response."""
    set_access_cookie(response, access_token, secure=secure, max_age=access_max_age)
    response.set_cookie(
        REFRESH_COOKIE,
        refresh_token,
        max_age=refresh_max_age,
        path="/",
        httponly=True,
        secure=secure,
        samesite="lax",
    )


def clear_auth_cookies(response: Response) -> None:
    """Expire every auth cookie, including the legacy one."""
    for name in (ACCESS_COOKIE, REFRESH_COOKIE, LEGACY_COOKIE):
        response.delete_cookie(name, path="/")
