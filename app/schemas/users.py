"""Pydantic schemas for user payloads and responses."""

from __future__ import annotations

import re
from datetime import datetime

from pydantic import BaseModel, Field, field_validator

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


class User(BaseModel):
    """A user record as held by the backing store and the cache."""

    id: int = Field(..., ge=1, description="Unique user identifier.")
    name: str = Field(..., description="Display name.")
    email: str = Field(..., description="Contact email address.")
    created_at: datetime | None = Field(
        default=None,
        description="Creation timestamp (UTC).",
    )


class CreateUserRequest(BaseModel):
    """Body of POST /users."""

    name: str = Field(..., description="Display name.")
    email: str = Field(..., description="Contact email address.")

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("name must not be empty")
        return value

    @field_validator("email")
    @classmethod
    def _email_format(cls, value: str) -> str:
        value = value.strip()
        if not EMAIL_PATTERN.match(value):
            raise ValueError("Invalid email format")
        return value


class UserResponse(BaseModel):
    """Envelope returned by the user endpoints."""

    success: bool = True
    data: User
    cached: bool = Field(
        False,
        description="True when the user was served from the cache.",
    )
    timestamp: float = Field(..., description="Server time (UNIX seconds).")
    response_time_ms: float = Field(..., description="Handler duration in milliseconds.")
