"""UserAuthentication ORM model definition."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from forum_sso.db.base import Base

if TYPE_CHECKING:
    from forum_sso.models.user import User


class UserAuthentication(Base):
    """Links a provider-side identity to a forum user."""

    __tablename__ = "user_authentications"
    __table_args__ = (Index("ix_user_authentications_user_id", "user_id"),)

    provider_key: Mapped[str] = mapped_column(String(64), primary_key=True)
    unique_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    user: Mapped["User"] = relationship("User", back_populates="authentications")


__all__ = ["UserAuthentication"]
