"""Authentication dependencies for API routes."""

from __future__ import annotations

from typing import Annotated, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from forum_sso.core.config import settings
from forum_sso.db.session import get_db
from forum_sso.models.user import User
from forum_sso.services.users import get_user_by_id


oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/entry/signin")


def _credentials_exception() -> HTTPException:
    """Return a standardised HTTP 401 exception for auth failures."""

    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials.",
        headers={"WWW-Authenticate": "Bearer"},
    )


def _user_from_token(db: Session, token: str) -> Optional[User]:
    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError:
        return None

    subject = payload.get("sub")
    if subject is None:
        return None
    return get_user_by_id(db, subject)


def require_active_user(
    token: Annotated[str, Depends(oauth2_scheme)],
    db: Annotated[Session, Depends(get_db)],
) -> User:
    """Validate a bearer token and return the associated user."""

    user = _user_from_token(db, token)
    if user is None:
        raise _credentials_exception()
    return user


__all__ = ["oauth2_scheme", "require_active_user"]
