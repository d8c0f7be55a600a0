"""Response schemas for the sign-in endpoints."""

from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict


class SignInMethod(BaseModel):
    """A configured provider the user can sign in with."""

    name: str
    provider: str
    sign_in_url: str

    model_config = ConfigDict(frozen=True)


class AuthorizationUrlResponse(BaseModel):
    authorization_url: str


class ConnectDataResponse(BaseModel):
    """Result of the connect step; never carries the provider token."""

    provider: str
    profile: Dict[str, Any]
    target: Optional[str] = None
    user_id: Optional[int] = None
    session_token: Optional[str] = None
    token_type: str = "bearer"
    trusted: bool = True
    verified: bool = True


class ConnectionRead(BaseModel):
    """A user's stored connection to one provider."""

    provider: str
    unique_id: Optional[str] = None
    connected: bool
    profile: Optional[Dict[str, Any]] = None


__all__ = [
    "AuthorizationUrlResponse",
    "ConnectDataResponse",
    "ConnectionRead",
    "SignInMethod",
]
