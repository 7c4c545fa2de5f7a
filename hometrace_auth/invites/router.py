"""Invite issuance and validation router."""

from __future__ import annotations

import uuid
from typing import cast

from fastapi import APIRouter, Query, Request

from hometrace_auth.api.contracts import (
    ApiErrorResponse,
    InviteCreatedResponse,
    InviteValidationResponse,
)
from hometrace_auth.api.errors import ApiError, ApiErrorCode
from hometrace_auth.api.request_info import require_identity
from hometrace_auth.auth.notifier import AccountNotifier
from hometrace_auth.invites.models import InviteRequest
from hometrace_auth.tokens import AuthError, InviteClaims, TokenCodec, TokenKind
from hometrace_auth.users.models import UserRole

INVITING_ROLES = frozenset({str(UserRole.REALTOR), str(UserRole.ADMIN)})


def create_invites_router(*, codec: TokenCodec, notifier: AccountNotifier) -> APIRouter:
    """Build invite router; issuance is throttled by the gatekeeper."""
    router = APIRouter(tags=["invites"])

    @router.post(
        "/api/invites",
        status_code=201,
        response_model=InviteCreatedResponse,
        responses={401: {"model": ApiErrorResponse}, 403: {"model": ApiErrorResponse}},
    )
    def create_invite(req: InviteRequest, request: Request) -> InviteCreatedResponse:
        identity = require_identity(request)
        if identity.role not in INVITING_ROLES:
            raise ApiError(
                error_code=ApiErrorCode.FORBIDDEN,
                message="Only realtors and admins can send invites",
            )
        invite_id = uuid.uuid4().hex
        email = req.email.strip().lower()
        token = codec.issue(TokenKind.INVITE, InviteClaims(invite_id=invite_id, email=email))
        notifier.send_invite(invite_id=invite_id, email=email, token=token)
        return InviteCreatedResponse.model_validate(
            {
                "data": {
                    "invite_id": invite_id,
                    "email": email,
                    "expires_in": codec.ttl_for(TokenKind.INVITE),
                }
            }
        )

    @router.get(
        "/api/invites/validate",
        response_model=InviteValidationResponse,
        responses={400: {"model": ApiErrorResponse}, 401: {"model": ApiErrorResponse}},
    )
    def validate_invite(token: str = Query(min_length=1)) -> InviteValidationResponse:
        """Check an invite link before showing the sign-up form."""
        try:
            claims = cast(InviteClaims, codec.verify(TokenKind.INVITE, token))
        except AuthError:
            raise ApiError(
                error_code=ApiErrorCode.INVALID_TOKEN,
                message="Invite is invalid or has expired",
            ) from None
        return InviteValidationResponse.model_validate(
            {"data": {"valid": True, "invite_id": claims.invite_id, "email": claims.email}}
        )

    return router
