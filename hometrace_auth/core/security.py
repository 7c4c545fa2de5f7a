"""Security primitives for token signing, refresh secrets and password hashes."""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import json
import os
import secrets
from typing import Any

TOKEN_ALGORITHM = "HS256"


class TokenFormatError(ValueError):
    """Compact token could not be split or decoded."""


class TokenSignatureError(ValueError):
    """Compact token signature does not match its content."""


def b64url_encode(raw: bytes) -> str:
    """Return URL-safe base64 string without padding."""
    return base64.urlsafe_b64encode(raw).decode("utf-8").rstrip("=")


def b64url_decode(value: str) -> bytes:
    """Decode URL-safe base64 string with optional missing padding."""
    padding = "=" * (-len(value) % 4)
    try:
        return base64.urlsafe_b64decode((value + padding).encode("ascii"))
    except (binascii.Error, UnicodeEncodeError) as exc:
        raise TokenFormatError("Invalid base64url segment") from exc


def _json_segment(value: dict[str, Any]) -> str:
    return b64url_encode(json.dumps(value, separators=(",", ":")).encode("utf-8"))


def _decode_json_segment(segment: str) -> dict[str, Any]:
    try:
        value = json.loads(b64url_decode(segment).decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise TokenFormatError("Invalid token segment") from exc
    if not isinstance(value, dict):
        raise TokenFormatError("Token segment is not an object")
    return value


def build_signed_token(payload: dict[str, Any], secret_key: str) -> str:
    """Create compact HS256 token using the JWT 3-part structure."""
    header_part = _json_segment({"alg": TOKEN_ALGORITHM, "typ": "JWT"})
    payload_part = _json_segment(payload)
    signing_input = f"{header_part}.{payload_part}".encode("utf-8")
    signature = hmac.new(secret_key.encode("utf-8"), signing_input, hashlib.sha256).digest()
    return f"{header_part}.{payload_part}.{b64url_encode(signature)}"


def decode_signed_token(token: str, secret_key: str) -> dict[str, Any]:
    """Verify signature of a compact token and return its payload.

    Only the structure and signature are checked here; claim validation
    (issuer, type, expiry) belongs to the token codec.
    """
    parts = (token or "").split(".")
    if len(parts) != 3 or not all(parts):
        raise TokenFormatError("Malformed token")
    header_part, payload_part, signature_part = parts

    header = _decode_json_segment(header_part)
    if header.get("alg") != TOKEN_ALGORITHM:
        raise TokenSignatureError("Unsupported token algorithm")

    signing_input = f"{header_part}.{payload_part}".encode("utf-8")
    expected_sig = hmac.new(secret_key.encode("utf-8"), signing_input, hashlib.sha256).digest()
    if not hmac.compare_digest(expected_sig, b64url_decode(signature_part)):
        raise TokenSignatureError("Invalid token signature")

    return _decode_json_segment(payload_part)


def generate_refresh_token() -> str:
    """Return a fresh opaque refresh token (32 random bytes, hex)."""
    return secrets.token_hex(32)


def hash_refresh_token(token: str) -> str:
    """Hash raw refresh token for storage/comparison."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def hash_password(password: str) -> str:
    """Hash password using PBKDF2-HMAC-SHA256 with random salt."""
    salt = os.urandom(16)
    derived = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, 120_000)
    return f"pbkdf2_sha256$120000${b64url_encode(salt)}${b64url_encode(derived)}"


def verify_password(password: str, stored_hash: str) -> bool:
    """Verify password against a stored PBKDF2 hash."""
    try:
        algo, rounds_raw, salt_b64, digest_b64 = stored_hash.split("$", 3)
        if algo != "pbkdf2_sha256":
            return False
        rounds = int(rounds_raw)
        salt = b64url_decode(salt_b64)
        expected = b64url_decode(digest_b64)
    except ValueError:
        return False

    derived = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, rounds)
    return hmac.compare_digest(derived, expected)
