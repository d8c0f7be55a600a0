"""SQLAlchemy declarative base for ORM models."""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


# Import model modules so SQLAlchemy registers the mappers during startup.
from forum_sso.models import (  # noqa: E402,F401
    authentication_provider,
    sso_stash_entry,
    user,
    user_activity_log,
    user_authentication,
)


__all__ = ["Base"]
