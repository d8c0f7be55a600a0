"""JWT helpers for the forum session issued after a successful sign-in."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

from jose import jwt

from forum_sso.core.config import settings


def create_access_token(*, subject: str, expires_delta: timedelta | None = None, extra_claims: dict[str, Any] | None = None) -> str:
    """Create a signed JWT access token.

    Args:
        subject: Identifier for the token subject (stringified user id).
        expires_delta: Optional custom expiration delta; defaults to configured minutes.
        extra_claims: Optional additional claims to include in the token payload.
    """

    expire_delta = expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    expire = datetime.now(timezone.utc) + expire_delta
    payload: dict[str, Any] = {"sub": str(subject), "exp": expire}
    if extra_claims:
        payload.update(extra_claims)
    return jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)


__all__ = ["create_access_token"]
