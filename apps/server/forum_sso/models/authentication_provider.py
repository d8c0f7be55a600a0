"""AuthenticationProvider ORM model definition."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, String, func
from sqlalchemy.sql import expression
from sqlalchemy.orm import Mapped, mapped_column

from forum_sso.db.base import Base


class AuthenticationProvider(Base):
    """Stored connection settings for one OAuth2 identity provider."""

    __tablename__ = "authentication_providers"

    key: Mapped[str] = mapped_column(String(64), primary_key=True)
    scheme_alias: Mapped[str] = mapped_column(String(64), nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)

    client_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    encrypted_client_secret: Mapped[Optional[str]] = mapped_column(
        String(1024), nullable=True
    )

    authorize_url: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    token_url: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    profile_url: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    base_url: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    sign_in_url: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    register_url: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    sign_out_url: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    scope: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    accepted_scope: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    is_default: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=expression.false(),
    )

    # JSON keys the provider uses for each normalized profile field
    profile_key_email: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    profile_key_photo: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    profile_key_name: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    profile_key_full_name: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    profile_key_unique_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

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


__all__ = ["AuthenticationProvider"]
