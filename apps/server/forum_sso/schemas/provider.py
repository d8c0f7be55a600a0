"""Pydantic schemas for stored identity provider settings."""

from __future__ import annotations

from datetime import datetime
from typing import Optional
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _require_complete_url(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    parsed = urlparse(value)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError("must be a complete URL")
    return value


class ProviderConfigUpdate(BaseModel):
    """Settings submitted when an administrator saves a provider."""

    client_id: str = Field(..., min_length=1, max_length=255)
    client_secret: str = Field(..., min_length=1)
    authorize_url: str = Field(..., max_length=255)
    token_url: str = Field(..., max_length=255)
    profile_url: Optional[str] = Field(None, max_length=255)
    name: Optional[str] = Field(None, max_length=100)
    register_url: Optional[str] = Field(None, max_length=255)
    sign_out_url: Optional[str] = Field(None, max_length=255)
    scope: Optional[str] = Field(None, max_length=255)
    accepted_scope: Optional[str] = Field("profile", max_length=255)
    is_default: bool = False
    profile_key_email: Optional[str] = Field(None, max_length=64)
    profile_key_photo: Optional[str] = Field(None, max_length=64)
    profile_key_name: Optional[str] = Field(None, max_length=64)
    profile_key_full_name: Optional[str] = Field(None, max_length=64)
    profile_key_unique_id: Optional[str] = Field(None, max_length=64)

    model_config = ConfigDict(str_strip_whitespace=True)

    @field_validator("authorize_url", "token_url")
    @classmethod
    def _complete_url(cls, value: str) -> str:
        return _require_complete_url(value)

    @field_validator("profile_url")
    @classmethod
    def _optional_complete_url(cls, value: Optional[str]) -> Optional[str]:
        return _require_complete_url(value or None)


class ProviderRead(BaseModel):
    """Public view of a provider; the client secret is never exposed."""

    key: str
    name: str
    client_id: Optional[str] = None
    authorize_url: Optional[str] = None
    token_url: Optional[str] = None
    profile_url: Optional[str] = None
    base_url: Optional[str] = None
    register_url: Optional[str] = None
    sign_out_url: Optional[str] = None
    scope: Optional[str] = None
    accepted_scope: Optional[str] = None
    is_default: bool
    profile_key_email: Optional[str] = None
    profile_key_photo: Optional[str] = None
    profile_key_name: Optional[str] = None
    profile_key_full_name: Optional[str] = None
    profile_key_unique_id: Optional[str] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


__all__ = ["ProviderConfigUpdate", "ProviderRead"]
