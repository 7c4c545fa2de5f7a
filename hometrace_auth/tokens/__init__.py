"""Token codec: issue and verify single-purpose signed tokens."""

from hometrace_auth.tokens.codec import TokenCodec, extract_bearer_token
from hometrace_auth.tokens.errors import (
    AuthError,
    ExpiredToken,
    InvalidIssuer,
    InvalidSignature,
    MalformedToken,
    SigningError,
    WrongTokenKind,
)
from hometrace_auth.tokens.models import (
    AccessClaims,
    IdentityClaims,
    InviteClaims,
    PasswordResetClaims,
    TokenClaims,
    TokenKind,
)

__all__ = [
    "AccessClaims",
    "AuthError",
    "ExpiredToken",
    "IdentityClaims",
    "InvalidIssuer",
    "InvalidSignature",
    "InviteClaims",
    "MalformedToken",
    "PasswordResetClaims",
    "SigningError",
    "TokenClaims",
    "TokenCodec",
    "TokenKind",
    "WrongTokenKind",
    "extract_bearer_token",
]
