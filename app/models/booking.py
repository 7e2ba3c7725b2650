"""Booking database model."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Integer, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from app.database import Base

if TYPE_CHECKING:
    from app.models.profile import CustomerProfile, DeveloperProfile


class Booking(Base):
    """Paid video-consultation session between a customer and a developer."""

    __tablename__ = "bookings"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    customer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("customer_profiles.id"), nullable=False, index=True
    )
    developer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("developer_profiles.id"), nullable=False, index=True
    )

    # Schedule
    booking_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    duration: Mapped[Decimal] = mapped_column(Numeric(3, 1), nullable=False)  # hours

    # Commercial: hourly_rate * duration, fixed at creation
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)

    # Status axes
    status: Mapped[str] = mapped_column(
        String(20), default="upcoming", index=True
    )  # pending, upcoming, completed, cancelled
    payment_status: Mapped[str] = mapped_column(
        String(20), default="pending"
    )  # pending, validating, pending_payment, paid, cancelled
    call_status: Mapped[str | None] = mapped_column(String(20))  # completed, failed

    call_link: Mapped[str] = mapped_column(Text, nullable=False)
    project_details: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)

    # Payment proof
    transaction_hash: Mapped[str | None] = mapped_column(String(200))
    validation_attempts: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    validation_timestamp: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    payment_validated: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # Relationships
    customer: Mapped["CustomerProfile"] = relationship("CustomerProfile", back_populates="bookings")
    developer: Mapped["DeveloperProfile"] = relationship("DeveloperProfile", back_populates="bookings")

    @property
    def project_title(self) -> str | None:
        return (self.project_details or {}).get("title")
