"""Token kinds and the fixed claim set of each kind."""

from __future__ import annotations

from enum import StrEnum
from typing import Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class TokenKind(StrEnum):
    """Token purposes; the value is the ``type`` claim on the wire."""

    ACCESS = "access"
    IDENTITY = "identity"
    PASSWORD_RESET = "password-reset"
    INVITE = "invite"


class _Claims(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    iat: int = 0
    exp: int = 0


class AccessClaims(_Claims):
    """Short-lived credential bound to a server-side session."""

    type: Literal["access"] = "access"
    user_id: str = Field(min_length=1)
    email: str = Field(min_length=1)
    role: str = Field(min_length=1)
    session_id: str = Field(min_length=1)


class IdentityClaims(_Claims):
    """Stateless identity credential with no session binding."""

    type: Literal["identity"] = "identity"
    user_id: str = Field(min_length=1)
    email: str = Field(min_length=1)
    role: str = Field(min_length=1)


class PasswordResetClaims(_Claims):
    """Single-purpose credential authorizing one password change."""

    type: Literal["password-reset"] = "password-reset"
    user_id: str = Field(min_length=1)
    email: str = Field(min_length=1)


class InviteClaims(_Claims):
    """Credential carried by an invitation link."""

    type: Literal["invite"] = "invite"
    invite_id: str = Field(min_length=1)
    email: str = Field(min_length=1)


TokenClaims = Union[AccessClaims, IdentityClaims, PasswordResetClaims, InviteClaims]

CLAIMS_BY_KIND: dict[TokenKind, type[_Claims]] = {
    TokenKind.ACCESS: AccessClaims,
    TokenKind.IDENTITY: IdentityClaims,
    TokenKind.PASSWORD_RESET: PasswordResetClaims,
    TokenKind.INVITE: InviteClaims,
}

# Kinds presented by browsers/API clients carry an audience; link tokens do not.
AUDIENCE_KINDS = frozenset({TokenKind.ACCESS, TokenKind.IDENTITY})
