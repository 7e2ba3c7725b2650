"""User-related Pydantic schemas."""

import re
from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator


class UserCreate(BaseModel):
    """Schema for sign-up."""

    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    role: Literal["developer", "customer"]
    full_name: str | None = Field(None, max_length=200)

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        if not re.search(r"[A-Za-z]", v):
            raise ValueError("Password must contain at least one letter")
        if not re.search(r"\d", v):
            raise ValueError("Password must contain at least one digit")
        return v


class UserLogin(BaseModel):
    """Schema for user login."""

    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    """Schema for token response."""

    access_token: str
    token_type: str = "bearer"
    expires_in: int
    roles: list[str] = Field(default_factory=list)


class UserResponse(BaseModel):
    """Schema for the authenticated user."""

    id: UUID
    email: EmailStr
    roles: list[str]
    primary_role: str | None = None
    is_active: bool
    created_at: datetime | None = None
