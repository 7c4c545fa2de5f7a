"""Authentication API router."""

from __future__ import annotations

import logging
from typing import cast

from fastapi import APIRouter, Body, Request, Response
from fastapi.responses import JSONResponse

from hometrace_auth.api.contracts import (
    ApiErrorResponse,
    LoginResponse,
    MeResponse,
    MessageResponse,
    RefreshResponse,
    SessionsResponse,
)
from hometrace_auth.api.cookies import (
    ACCESS_COOKIE,
    REFRESH_COOKIE,
    clear_auth_cookies,
    set_access_cookie,
    set_auth_cookies,
)
from hometrace_auth.api.errors import ERROR_STATUS, ApiError, ApiErrorCode
from hometrace_auth.api.request_info import client_ip, require_identity, user_agent
from hometrace_auth.auth.models import (
    ForgotPasswordRequest,
    LoginRequest,
    RefreshRequest,
    RegisterRequest,
    ResetPasswordRequest,
)
from hometrace_auth.auth.notifier import AccountNotifier
from hometrace_auth.core.config import AuthConfig
from hometrace_auth.ratelimit import RateLimitStore, build_identifier, enforce_rate_limit
from hometrace_auth.sessions import RevokeReason, SessionManager, token_from_request
from hometrace_auth.tokens import AuthError, PasswordResetClaims, TokenCodec, TokenKind
from hometrace_auth.users.models import UserRecord, UserRole
from hometrace_auth.users.repository import DuplicateEmailError, UserRepository

LOGGER = logging.getLogger(__name__)

SELF_SERVICE_ROLES = frozenset({UserRole.BUYER, UserRole.REALTOR})
FORGOT_PASSWORD_MESSAGE = "If an account exists for this email, a reset link has been sent."

_ERROR_RESPONSES = {
    400: {"model": ApiErrorResponse},
    401: {"model": ApiErrorResponse},
    429: {"model": ApiErrorResponse},
}


def _error_with_cleared_cookies(code: ApiErrorCode, message: str) -> JSONResponse:
    response = JSONResponse(
        status_code=ERROR_STATUS[code],
        content=ApiErrorResponse.build(code, message).model_dump(),
    )
    clear_auth_cookies(response)
    return response


def create_auth_router(
    *,
    sessions: SessionManager,
    users: UserRepository,
    codec: TokenCodec,
    rate_limiter: RateLimitStore,
    notifier: AccountNotifier,
    config: AuthConfig,
) -> APIRouter:
    """Build authentication router with login, session and password endpoints."""
    router = APIRouter(tags=["auth"])

    def start_session(user: UserRecord, request: Request, response: Response) -> LoginResponse:
        result = sessions.login(
            user.user_id,
            user.email,
            str(user.role),
            user_agent=user_agent(request),
            ip_address=client_ip(request),
        )
        set_auth_cookies(
            response,
            result.access_token,
            result.refresh_token,
            secure=config.cookie_secure,
            access_max_age=config.access_token_ttl_seconds,
            refresh_max_age=config.refresh_token_ttl_seconds,
        )
        identity_token = None
        if config.stateless_identity_enabled:
            identity_token = sessions.issue_identity_token(
                user.user_id, user.email, str(user.role)
            )
        return LoginResponse.model_validate(
            {
                "data": {
                    "user": user.public_view(),
                    "session_id": result.session_id,
                    "identity_token": identity_token,
                }
            }
        )

    @router.post("/api/auth/login", response_model=LoginResponse, responses=_ERROR_RESPONSES)
    def login(req: LoginRequest, request: Request, response: Response) -> LoginResponse:
        """Check credentials and open a new session."""
        enforce_rate_limit(rate_limiter, "login", build_identifier(client_ip(request)))
        user = users.verify_credentials(req.email, req.password)
        if user is None:
            raise ApiError(
                error_code=ApiErrorCode.UNAUTHORIZED,
                message="Invalid email or password",
            )
        return start_session(user, request, response)

    @router.post(
        "/api/auth/refresh",
        response_model=RefreshResponse,
        responses=_ERROR_RESPONSES,
    )
    def refresh(
        request: Request,
        response: Response,
        req: RefreshRequest | None = Body(default=None),
    ):
        """Mint a new access token for the session behind the refresh token."""
        enforce_rate_limit(rate_limiter, "refresh", build_identifier(client_ip(request)))
        refresh_token = request.cookies.get(REFRESH_COOKIE) or (
            req.refresh_token if req else None
        )
        result = sessions.refresh(refresh_token)
        if result is None:
            return _error_with_cleared_cookies(
                ApiErrorCode.INVALID_TOKEN, "Session expired. Please sign in again."
            )
        set_access_cookie(
            response,
            result.access_token,
            secure=config.cookie_secure,
            max_age=config.access_token_ttl_seconds,
        )
        return RefreshResponse.model_validate(
            {"data": {"user": result.user, "session_id": result.session_id}}
        )

    @router.post("/api/auth/logout", response_model=MessageResponse)
    def logout(request: Request, response: Response) -> MessageResponse:
        """Revoke the caller's session if there is one and clear auth cookies."""
        access_token = token_from_request(
            request.cookies.get(ACCESS_COOKIE), request.headers.get("authorization")
        )
        sessions.logout(access_token, request.cookies.get(REFRESH_COOKIE))
        clear_auth_cookies(response)
        return MessageResponse.model_validate({"data": {"message": "Logged out"}})

    @router.get("/api/auth/me", response_model=MeResponse, responses=_ERROR_RESPONSES)
    def me(request: Request) -> MeResponse:
        """Return the identity resolved for this request."""
        identity = require_identity(request)
        return MeResponse.model_validate(
            {
                "data": {
                    "user_id": identity.user_id,
                    "email": identity.email,
                    "role": identity.role,
                    "session_id": identity.session_id,
                }
            }
        )

    @router.get("/api/auth/sessions", response_model=SessionsResponse, responses=_ERROR_RESPONSES)
    def list_sessions(request: Request) -> SessionsResponse:
        """List the caller's active sessions."""
        identity = require_identity(request)
        rows = sessions.list_sessions(identity.user_id, identity.session_id)
        return SessionsResponse.model_validate(
            {"data": {"sessions": rows, "current_session_id": identity.session_id}}
        )

    @router.delete("/api/auth/sessions", response_model=MessageResponse, responses=_ERROR_RESPONSES)
    def revoke_all_sessions(
        request: Request, response: Response, keep_current: bool = False
    ) -> MessageResponse:
        """Sign out everywhere, optionally keeping the current device."""
        identity = require_identity(request)
        except_session_id = identity.session_id if keep_current else None
        count = sessions.revoke_all_sessions(
            identity.user_id,
            RevokeReason.LOGOUT_ALL_DEVICES,
            except_session_id=except_session_id,
        )
        if except_session_id is None:
            clear_auth_cookies(response)
        return MessageResponse.model_validate(
            {"data": {"message": "Sessions revoked", "count": count}}
        )

    @router.delete(
        "/api/auth/sessions/{session_id}",
        response_model=MessageResponse,
        responses={
            **_ERROR_RESPONSES,
            403: {"model": ApiErrorResponse},
            404: {"model": ApiErrorResponse},
            409: {"model": ApiErrorResponse},
        },
    )
    def revoke_session(session_id: str, request: Request, response: Response) -> MessageResponse:
        """Revoke one of the caller's own sessions."""
        identity = require_identity(request)
        session = sessions.find_session(session_id)
        if session is None:
            raise ApiError(error_code=ApiErrorCode.NOT_FOUND, message="Session not found")
        if session.user_id != identity.user_id:
            raise ApiError(
                error_code=ApiErrorCode.FORBIDDEN,
                message="Cannot revoke another user's session",
            )
        if session.is_revoked or not sessions.revoke_session(session_id):
            raise ApiError(error_code=ApiErrorCode.CONFLICT, message="Session already revoked")
        if session_id == identity.session_id:
            clear_auth_cookies(response)
        return MessageResponse.model_validate({"data": {"message": "Session revoked"}})

    @router.post(
        "/api/auth/register",
        status_code=201,
        response_model=LoginResponse,
        responses={**_ERROR_RESPONSES, 409: {"model": ApiErrorResponse}},
    )
    def register(req: RegisterRequest, request: Request, response: Response) -> LoginResponse:
        """Create a buyer or realtor account and sign it in."""
        enforce_rate_limit(rate_limiter, "register", build_identifier(client_ip(request)))
        if req.role not in SELF_SERVICE_ROLES:
            raise ApiError(
                error_code=ApiErrorCode.VALIDATION_ERROR,
                message="Role is not available for self-registration",
            )
        try:
            user = users.create_user(
                email=req.email, password=req.password, name=req.name, role=req.role
            )
        except DuplicateEmailError:
            raise ApiError(
                error_code=ApiErrorCode.DUPLICATE_EMAIL,
                message="An account with this email already exists",
            ) from None
        LOGGER.info("user_registered", extra={"user_id": user.user_id})
        return start_session(user, request, response)

    @router.post(
        "/api/auth/forgot-password",
        response_model=MessageResponse,
        responses=_ERROR_RESPONSES,
    )
    def forgot_password(req: ForgotPasswordRequest, request: Request) -> MessageResponse:
        """Send a reset link; the answer never reveals whether the email exists."""
        enforce_rate_limit(
            rate_limiter, "forgot_password", build_identifier(client_ip(request))
        )
        user = users.get_user_by_email(req.email)
        if user is not None and user.is_active:
            token = codec.issue(
                TokenKind.PASSWORD_RESET,
                PasswordResetClaims(user_id=user.user_id, email=user.email),
            )
            notifier.send_password_reset(user_id=user.user_id, email=user.email, token=token)
        return MessageResponse.model_validate({"data": {"message": FORGOT_PASSWORD_MESSAGE}})

    @router.post(
        "/api/auth/reset-password",
        response_model=LoginResponse,
        responses=_ERROR_RESPONSES,
    )
    def reset_password(
        req: ResetPasswordRequest, request: Request, response: Response
    ) -> LoginResponse:
        """Set a new password, sign out every device and open a fresh session."""
        enforce_rate_limit(
            rate_limiter, "reset_password", build_identifier(client_ip(request))
        )
        invalid = ApiError(
            error_code=ApiErrorCode.INVALID_TOKEN,
            message="Reset link is invalid or has expired",
        )
        try:
            claims = cast(PasswordResetClaims, codec.verify(TokenKind.PASSWORD_RESET, req.token))
        except AuthError:
            raise invalid from None
        user = users.get_user(claims.user_id)
        if user is None or not user.is_active or user.email != claims.email:
            raise invalid
        # a link issued before the last password change is spent
        if claims.iat <= user.password_changed_at:
            raise invalid

        users.set_password(user.user_id, req.password)
        sessions.revoke_all_sessions(user.user_id, RevokeReason.PASSWORD_CHANGE)
        return start_session(user, request, response)

    return router
