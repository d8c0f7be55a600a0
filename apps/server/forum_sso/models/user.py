"""User ORM model definition."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional, TYPE_CHECKING

from sqlalchemy import JSON, DateTime, Index, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from forum_sso.db.base import Base

if TYPE_CHECKING:
    from forum_sso.models.user_activity_log import UserActivityLog
    from forum_sso.models.user_authentication import UserAuthentication


class User(Base):
    """Represents a forum member."""

    __tablename__ = "users"
    __table_args__ = (Index("ix_users_email", "email"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    photo: Mapped[Optional[str]] = mapped_column(String(767), nullable=True)
    # Per-provider attribute bags, e.g. {"acme": {"AccessToken": ..., "Profile": {...}}}
    attributes: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    authentications: Mapped[List["UserAuthentication"]] = relationship(
        "UserAuthentication",
        back_populates="user",
        cascade="all, delete-orphan",
    )
    activity_logs: Mapped[List["UserActivityLog"]] = relationship(
        "UserActivityLog",
        back_populates="user",
        cascade="all, delete-orphan",
    )


__all__ = ["User"]
