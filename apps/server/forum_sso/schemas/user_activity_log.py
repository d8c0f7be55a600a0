"""Pydantic schemas for UserActivityLog model."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class UserActivityLogCreate(BaseModel):
    """Schema for creating a new UserActivityLog."""

    user_id: int
    action_type: str = Field(..., max_length=100)
    details: Optional[str] = Field(None, max_length=5000)
    service_name: Optional[str] = Field(None, max_length=100)
    status: str = Field("success", max_length=20)


__all__ = ["UserActivityLogCreate"]
