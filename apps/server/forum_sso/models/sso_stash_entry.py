"""Server-side stash entry ORM model definition."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, Index, String, func
from sqlalchemy.orm import Mapped, mapped_column

from forum_sso.db.base import Base


class SsoStashEntry(Base):
    """Pending SSO data held between two requests of the same browser session.

    Only ``id`` travels in the session cookie.
    """

    __tablename__ = "sso_stash_entries"
    __table_args__ = (Index("ix_sso_stash_entries_expires_at", "expires_at"),)

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    stash_key: Mapped[str] = mapped_column(String(128), nullable=False)
    payload: Mapped[Any] = mapped_column(JSON, nullable=True)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )


__all__ = ["SsoStashEntry"]
