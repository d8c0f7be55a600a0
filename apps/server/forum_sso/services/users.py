"""Repository helpers for users, their provider links and attributes."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Union

from sqlalchemy import select
from sqlalchemy.orm import Session

from forum_sso.core.encryption import decrypt_token, encrypt_token
from forum_sso.models.user import User
from forum_sso.models.user_authentication import UserAuthentication

logger = logging.getLogger(__name__)


def get_user_by_id(db: Session, user_id: Union[int, str, None]) -> Optional[User]:
    """Fetch a user by id; malformed ids resolve to ``None``."""
    if user_id is None:
        return None
    try:
        key = int(user_id)
    except (TypeError, ValueError):
        return None
    return db.get(User, key)


def get_identity_link(
    db: Session, provider_key: str, unique_id: Any
) -> Optional[UserAuthentication]:
    if unique_id in (None, ""):
        return None
    return db.get(UserAuthentication, (provider_key, str(unique_id)))


def get_user_identity_links(db: Session, user_id: int) -> List[UserAuthentication]:
    statement = (
        select(UserAuthentication)
        .where(UserAuthentication.user_id == user_id)
        .order_by(UserAuthentication.provider_key)
    )
    return list(db.execute(statement).scalars().all())


def save_identity_link(
    db: Session, user_id: int, provider_key: str, unique_id: Any
) -> UserAuthentication:
    """Link the provider identity ``unique_id`` to ``user_id``.

    An identity already linked to another user is moved to ``user_id``.
    """

    link = get_identity_link(db, provider_key, unique_id)
    if link is None:
        link = UserAuthentication(
            provider_key=provider_key,
            unique_id=str(unique_id),
            user_id=user_id,
        )
        db.add(link)
    elif link.user_id != user_id:
        logger.info(
            "Moving %s identity %s from user %s to user %s",
            provider_key,
            unique_id,
            link.user_id,
            user_id,
        )
        link.user_id = user_id
    db.commit()
    db.refresh(link)
    return link


def get_user_attribute(user: User, name: str, default: Any = None) -> Any:
    return (user.attributes or {}).get(name, default)


def save_user_attribute(db: Session, user_id: int, name: str, value: Any) -> User:
    """Store ``value`` under ``name`` in the user's attribute bag."""

    user = get_user_by_id(db, user_id)
    if user is None:
        raise ValueError(f"User with id '{user_id}' not found")

    attributes = dict(user.attributes or {})
    attributes[name] = value
    # Reassign so the JSON column is flagged dirty.
    user.attributes = attributes
    db.commit()
    db.refresh(user)
    return user


def build_connection_attributes(access_token: str, profile: Dict[str, Any]) -> Dict[str, Any]:
    """Attribute bag persisted for a provider connection."""
    return {"AccessToken": encrypt_token(access_token), "Profile": profile}


def read_connection_token(attributes: Optional[Dict[str, Any]]) -> Optional[str]:
    if not attributes or not attributes.get("AccessToken"):
        return None
    return decrypt_token(attributes["AccessToken"])


def get_user_access_token(db: Session, user_id: Optional[int], provider_key: str) -> Optional[str]:
    """Return the stored provider access token of ``user_id``, if any."""

    user = get_user_by_id(db, user_id)
    if user is None:
        return None
    return read_connection_token(get_user_attribute(user, provider_key))


__all__ = [
    "build_connection_attributes",
    "get_identity_link",
    "get_user_access_token",
    "get_user_attribute",
    "get_user_by_id",
    "get_user_identity_links",
    "read_connection_token",
    "save_identity_link",
    "save_user_attribute",
]
