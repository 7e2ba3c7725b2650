"""Developer and customer profile models."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from app.database import Base

if TYPE_CHECKING:
    from app.models.booking import Booking
    from app.models.user import User


class DeveloperProfile(Base):
    """Public profile of a developer offering consultations."""

    __tablename__ = "developer_profiles"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    full_name: Mapped[str | None] = mapped_column(String(200))
    bio: Mapped[str | None] = mapped_column(Text)
    hourly_rate: Mapped[Decimal | None] = mapped_column(Numeric(10, 2))
    location: Mapped[str | None] = mapped_column(String(200))
    education: Mapped[str | None] = mapped_column(Text)
    github_profile: Mapped[str | None] = mapped_column(String(500))
    linkedin_profile: Mapped[str | None] = mapped_column(String(500))
    wallet_address: Mapped[str | None] = mapped_column(String(200))
    profile_picture: Mapped[str | None] = mapped_column(Text)
    is_available: Mapped[bool] = mapped_column(Boolean, default=True, index=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # Relationships
    user: Mapped["User"] = relationship("User", back_populates="developer_profile")
    skills: Mapped[list["DeveloperSkill"]] = relationship(
        "DeveloperSkill", back_populates="developer", cascade="all, delete-orphan"
    )
    bookings: Mapped[list["Booking"]] = relationship("Booking", back_populates="developer")


class CustomerProfile(Base):
    """Profile of a customer booking consultations."""

    __tablename__ = "customer_profiles"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    full_name: Mapped[str | None] = mapped_column(String(200))
    organization: Mapped[str | None] = mapped_column(String(200))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    user: Mapped["User"] = relationship("User", back_populates="customer_profile")
    bookings: Mapped[list["Booking"]] = relationship("Booking", back_populates="customer")


class Skill(Base):
    """A named skill shared across developers."""

    __tablename__ = "skills"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)


class DeveloperSkill(Base):
    """Skill held by a developer."""

    __tablename__ = "developer_skills"
    __table_args__ = (
        UniqueConstraint("developer_id", "skill_id", name="uq_developer_skills_developer_skill"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    developer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("developer_profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    skill_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("skills.id", ondelete="CASCADE"), nullable=False
    )
    years_of_experience: Mapped[int] = mapped_column(Integer, default=0)

    developer: Mapped["DeveloperProfile"] = relationship("DeveloperProfile", back_populates="skills")
    skill: Mapped["Skill"] = relationship("Skill", lazy="joined")
