"""Access token helpers."""
from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Any

from jose import JWTError, jwt

from closer_chat.core.settings import settings


class TokenError(ValueError):
    """Raised when an access token cannot be verified."""


def create_access_token(user_id: int | str, extra_claims: dict[str, Any] | None = None) -> str:
    """Sign an access token for ``user_id``.

    Token issuance flows live outside this service; this helper exists for
    internal tooling and tests that need a token the handshake accepts.
    """
    to_encode: dict[str, Any] = {"sub": str(user_id)}
    if extra_claims:
        to_encode.update(extra_claims)
    to_encode["exp"] = datetime.now(UTC) + timedelta(minutes=settings.access_token_expire_minutes)
    encoded_jwt: str = jwt.encode(
        to_encode,
        settings.secret_key,
        algorithm=settings.jwt_algorithm,
    )
    return encoded_jwt


def decode_access_token(token: str) -> int:
    """Verify ``token`` and return the user id it was issued for.

    Raises:
        TokenError: If the signature, expiry or subject is invalid.
    """
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError as err:
        raise TokenError("Could not validate credentials") from err

    subject = payload.get("sub")
    if subject is None:
        raise TokenError("Could not validate credentials")
    try:
        return int(subject)
    except (TypeError, ValueError) as err:
        raise TokenError("Could not validate credentials") from err


def extract_bearer_token(authorization: str | None) -> str | None:
    """Return the token part of an ``Authorization: Bearer ...`` header value."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()
