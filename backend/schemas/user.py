"""Pydantic schemas for users."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class UserResponse(BaseModel):
    """Schema for the authenticated user."""

    id: str
    username: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
