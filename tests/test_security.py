from __future__ import annotations

import hashlib
import hmac

import pytest

from hometrace_auth.core.security import (
    TokenFormatError,
    TokenSignatureError,
    b64url_decode,
    b64url_encode,
    build_signed_token,
    decode_signed_token,
    generate_refresh_token,
    hash_password,
    hash_refresh_token,
    verify_password,
)


def test_signed_token_round_trip() -> None:
    token = build_signed_token({"sub": "u1", "n": 1}, "secret")

    assert token.count(".") == 2
    assert decode_signed_token(token, "secret") == {"sub": "u1", "n": 1}


def test_decode_rejects_wrong_secret() -> None:
    token = build_signed_token({"sub": "u1"}, "secret")

    with pytest.raises(TokenSignatureError):
        decode_signed_token(token, "other")


def test_decode_rejects_non_object_payload() -> None:
    header = b64url_encode(b'{"alg":"HS256","typ":"JWT"}')
    payload = b64url_encode(b"[1]")
    signature = hmac.new(b"secret", f"{header}.{payload}".encode("utf-8"), hashlib.sha256)

    with pytest.raises(TokenFormatError):
        decode_signed_token(f"{header}.{payload}.{b64url_encode(signature.digest())}", "secret")


def test_b64url_decode_rejects_invalid_input() -> None:
    with pytest.raises(TokenFormatError):
        b64url_decode("é")


def test_refresh_tokens_are_random_and_hashed() -> None:
    first = generate_refresh_token()
    second = generate_refresh_token()

    assert first != second
    assert len(first) == 64
    assert hash_refresh_token(first) == hash_refresh_token(first)
    assert hash_refresh_token(first) != first


def test_password_hash_verification() -> None:
    stored = hash_password("correct-horse")

    assert verify_password("correct-horse", stored)
    assert not verify_password("wrong-horse", stored)
    assert not verify_password("correct-horse", "garbage")
    assert not verify_password("correct-horse", "md5$1$abc$def")
