from __future__ import annotations

from fastapi.routing import APIRoute

from web_api import app


def test_health_endpoint_contract_function() -> None:
    route = next(
        (
            candidate
            for candidate in app.routes
            if isinstance(candidate, APIRoute) and candidate.path == "/api/health"
        ),
        None,
    )

    assert route is not None
    payload = route.endpoint()
    assert payload.model_dump() == {"status": "ok"}


def test_openapi_contains_auth_rate_limit_contract() -> None:
    schema = app.openapi()
    login = schema["paths"]["/api/auth/login"]["post"]

    assert login["responses"]["429"]["content"]["application/json"]["schema"][
        "$ref"
    ].endswith("ApiErrorResponse")
    assert login["responses"]["200"]["content"]["application/json"]["schema"][
        "$ref"
    ].endswith("LoginResponse")


def test_openapi_contains_session_management_contracts() -> None:
    schema = app.openapi()

    revoke_one = schema["paths"]["/api/auth/sessions/{session_id}"]["delete"]
    for status in ("403", "404", "409"):
        assert revoke_one["responses"][status]["content"]["application/json"]["schema"][
            "$ref"
        ].endswith("ApiErrorResponse")
    assert "get" in schema["paths"]["/api/auth/sessions"]
    assert "delete" in schema["paths"]["/api/auth/sessions"]


def test_openapi_lists_password_and_invite_routes() -> None:
    paths = app.openapi()["paths"]

    for path in (
        "/api/auth/register",
        "/api/auth/forgot-password",
        "/api/auth/reset-password",
        "/api/invites",
        "/api/invites/validate",
    ):
        assert path in paths
