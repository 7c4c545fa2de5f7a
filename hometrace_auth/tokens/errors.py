"""Typed failures raised by the token codec."""

from __future__ import annotations


class SigningError(RuntimeError):
    """Token could not be signed because of a configuration fault."""


class AuthError(Exception):
    """Base class for token verification failures."""


class MalformedToken(AuthError):
    """Token structure is broken or required claims are absent."""


class InvalidSignature(AuthError):
    """Token signature does not verify against the shared secret."""


class InvalidIssuer(AuthError):
    """Token was not issued by this signer or for this audience."""


class WrongTokenKind(AuthError):
    """Token is valid but was minted for a different purpose."""


class ExpiredToken(AuthError):
    """Token expiry has passed."""
