"""Profile-related Pydantic schemas."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

MAX_HOURLY_RATE = Decimal("100000.00")


class SkillResponse(BaseModel):
    """A developer skill."""

    name: str
    years_of_experience: int = 0


class SkillCreate(BaseModel):
    """Schema for adding a skill to the caller's profile."""

    name: str = Field(..., min_length=1, max_length=100)
    years_of_experience: int = Field(default=0, ge=0, le=60)


class DeveloperProfileResponse(BaseModel):
    """Public developer profile."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    full_name: str | None = None
    bio: str | None = None
    hourly_rate: Decimal | None = None
    location: str | None = None
    education: str | None = None
    github_profile: str | None = None
    linkedin_profile: str | None = None
    wallet_address: str | None = None
    profile_picture: str | None = None
    is_available: bool = True
    skills: list[SkillResponse] = Field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None


class DeveloperProfileUpdate(BaseModel):
    """Schema for updating the caller's developer profile."""

    full_name: str | None = Field(None, max_length=200)
    bio: str | None = None
    # rate * the longest booking must fit the Numeric(10, 2) amount column
    hourly_rate: Decimal | None = Field(None, ge=0, le=MAX_HOURLY_RATE, decimal_places=2)
    location: str | None = Field(None, max_length=200)
    education: str | None = None
    github_profile: str | None = Field(None, max_length=500)
    linkedin_profile: str | None = Field(None, max_length=500)
    wallet_address: str | None = Field(None, max_length=200)
    profile_picture: str | None = None
    is_available: bool | None = None


class CustomerProfileResponse(BaseModel):
    """Customer profile."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    full_name: str | None = None
    organization: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class CustomerProfileUpdate(BaseModel):
    """Schema for updating the caller's customer profile."""

    full_name: str | None = Field(None, max_length=200)
    organization: str | None = Field(None, max_length=200)
