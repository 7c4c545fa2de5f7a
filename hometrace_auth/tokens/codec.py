"""Sign and verify the four single-purpose token kinds."""

from __future__ import annotations

import time
from typing import Any, Callable

from pydantic import ValidationError

from hometrace_auth.core.config import AuthConfig
from hometrace_auth.core.security import (
    TokenFormatError,
    TokenSignatureError,
    build_signed_token,
    decode_signed_token,
)
from hometrace_auth.tokens.errors import (
    ExpiredToken,
    InvalidIssuer,
    InvalidSignature,
    MalformedToken,
    SigningError,
    WrongTokenKind,
)
from hometrace_auth.tokens.models import (
    AUDIENCE_KINDS,
    CLAIMS_BY_KIND,
    TokenClaims,
    TokenKind,
)

BEARER_PREFIX = "Bearer "

DEFAULT_TTL_SECONDS: dict[TokenKind, int] = {
    TokenKind.ACCESS: 15 * 60,
    TokenKind.IDENTITY: 7 * 24 * 60 * 60,
    TokenKind.PASSWORD_RESET: 60 * 60,
    TokenKind.INVITE: 7 * 24 * 60 * 60,
}


def extract_bearer_token(authorization: str | None) -> str | None:
    """Return the bearer token from an Authorization header value.

    The ``Bearer `` prefix is matched case-sensitively; any other header shape
    is treated as an absent credential rather than a malformed one.
    """
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        return None
    token = authorization[len(BEARER_PREFIX):].strip()
    return token or None


class TokenCodec:
    """Stateless signer/verifier sharing one issuer, audience and secret."""

    def __init__(
        self,
        *,
        secret_key: str,
        issuer: str,
        audience: str,
        ttl_seconds: dict[TokenKind, int] | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._secret_key = secret_key
        self._issuer = issuer
        self._audience = audience
        self._ttl_seconds = {**DEFAULT_TTL_SECONDS, **(ttl_seconds or {})}
        self._clock = clock

    @classmethod
    def from_config(
        cls, config: AuthConfig, *, clock: Callable[[], float] = time.time
    ) -> "TokenCodec":
        """Build codec from auth configuration."""
        return cls(
            secret_key=config.secret_key,
            issuer=config.issuer,
            audience=config.audience,
            ttl_seconds={
                TokenKind.ACCESS: config.access_token_ttl_seconds,
                TokenKind.IDENTITY: config.identity_token_ttl_seconds,
                TokenKind.PASSWORD_RESET: config.password_reset_ttl_seconds,
                TokenKind.INVITE: config.invite_ttl_seconds,
            },
            clock=clock,
        )

    def ttl_for(self, kind: TokenKind) -> int:
        return self._ttl_seconds[kind]

    def issue(
        self, kind: TokenKind, claims: TokenClaims, ttl_seconds: int | None = None
    ) -> str:
        """Sign claims of the given kind and return a compact token."""
        if not self._secret_key:
            raise SigningError("Token secret key is not configured")
        model = CLAIMS_BY_KIND[kind]
        if not isinstance(claims, model):
            raise SigningError(
                f"{type(claims).__name__} cannot be issued as a {kind} token"
            )

        if ttl_seconds is None:
            ttl_seconds = self._ttl_seconds[kind]
        now_ts = int(self._clock())
        payload: dict[str, Any] = claims.model_dump(exclude={"iat", "exp"})
        payload.update(
            {
                "iss": self._issuer,
                "iat": now_ts,
                "exp": now_ts + int(ttl_seconds),
            }
        )
        if kind in AUDIENCE_KINDS:
            payload["aud"] = self._audience
        return build_signed_token(payload, self._secret_key)

    def verify(self, kind: TokenKind, token: str) -> TokenClaims:
        """Verify token and return the claims of the expected kind.

        Raises:
            MalformedToken: token cannot be parsed or required claims are absent.
            InvalidSignature: signature does not match.
            InvalidIssuer: issuer or audience does not match this signer.
            WrongTokenKind: token was minted for another purpose.
            ExpiredToken: expiry has passed.
        """
        if not self._secret_key:
            raise SigningError("Token secret key is not configured")
        try:
            payload = decode_signed_token(token, self._secret_key)
        except TokenFormatError as exc:
            raise MalformedToken(str(exc)) from exc
        except TokenSignatureError as exc:
            raise InvalidSignature(str(exc)) from exc

        if payload.get("iss") != self._issuer:
            raise InvalidIssuer("Invalid token issuer")
        if payload.get("type") != kind.value:
            raise WrongTokenKind(f"Expected {kind} token")
        if kind in AUDIENCE_KINDS and not self._audience_matches(payload.get("aud")):
            raise InvalidIssuer("Invalid token audience")

        exp = payload.get("exp")
        if not isinstance(exp, int) or isinstance(exp, bool):
            raise MalformedToken("Token expiry claim is missing")
        if exp <= int(self._clock()):
            raise ExpiredToken("Token expired")

        try:
            return CLAIMS_BY_KIND[kind].model_validate(payload)  # type: ignore[return-value]
        except ValidationError as exc:
            raise MalformedToken("Token is missing required claims") from exc

    def _audience_matches(self, audience: Any) -> bool:
        if isinstance(audience, str):
            return audience == self._audience
        if isinstance(audience, list):
            return self._audience in audience
        return False
