# tests/test_security.py
"""Tests for access token helpers."""

from datetime import UTC, datetime, timedelta

import pytest
from jose import jwt

from closer_chat.core.security import (
    TokenError,
    create_access_token,
    decode_access_token,
    extract_bearer_token,
)
from closer_chat.core.settings import settings


def test_token_round_trip() -> None:
    token = create_access_token(17)
    assert decode_access_token(token) == 17


def test_token_signed_with_other_key_is_rejected() -> None:
    forged = jwt.encode(
        {"sub": "17", "exp": datetime.now(UTC) + timedelta(minutes=5)},
        "not-the-server-key",
        algorithm=settings.jwt_algorithm,
    )
    with pytest.raises(TokenError):
        decode_access_token(forged)


def test_expired_token_is_rejected() -> None:
    expired = jwt.encode(
        {"sub": "17", "exp": datetime.now(UTC) - timedelta(minutes=1)},
        settings.secret_key,
        algorithm=settings.jwt_algorithm,
    )
    with pytest.raises(TokenError):
        decode_access_token(expired)


@pytest.mark.parametrize("subject", [None, "not-a-number"])
def test_bad_subject_is_rejected(subject) -> None:
    claims = {"exp": datetime.now(UTC) + timedelta(minutes=5)}
    if subject is not None:
        claims["sub"] = subject
    token = jwt.encode(claims, settings.secret_key, algorithm=settings.jwt_algorithm)
    with pytest.raises(TokenError):
        decode_access_token(token)


@pytest.mark.parametrize(
    ("header", "expected"),
    [
        ("Bearer abc.def", "abc.def"),
        ("bearer abc.def", "abc.def"),
        ("Basic abc", None),
        ("Bearer ", None),
        (None, None),
    ],
)
def test_extract_bearer_token(header, expected) -> None:
    assert extract_bearer_token(header) == expected
