"""Booking-related Pydantic schemas."""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class ProjectDetails(BaseModel):
    """What the customer wants to cover in the session.

    Emptiness and link shape are checked by the booking rules so that they
    surface as booking validation errors.
    """

    title: str = ""
    description: str = ""
    requirements: str = ""
    goals: str = ""
    meet_link: str = ""


class BookingCreate(BaseModel):
    """Schema for creating a booking."""

    developer_id: UUID
    booking_date: date
    hour: int = Field(..., ge=1, le=12)
    minute: int = Field(default=0, ge=0, le=59)
    period: Literal["AM", "PM"] = "AM"
    duration: Decimal = Field(default=Decimal("1"), description="Hours, 0.5 to 4.0 in 0.5 steps")
    timezone: str | None = Field(None, max_length=64, description="IANA name, e.g. Europe/Berlin")
    project_details: ProjectDetails


class BookingResponse(BaseModel):
    """Schema for booking response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    customer_id: UUID
    developer_id: UUID

    # Schedule
    booking_time: datetime
    duration: Decimal

    # Pricing
    amount: Decimal

    # Status
    status: str
    payment_status: str
    call_status: str | None

    call_link: str
    project_details: dict[str, Any]

    # Payment proof
    transaction_hash: str | None
    validation_attempts: int
    validation_timestamp: datetime | None
    payment_validated: bool

    # Timestamps
    created_at: datetime | None = None
    updated_at: datetime | None = None


class BookingDetail(BookingResponse):
    """Booking with the names of both parties."""

    customer_name: str | None = None
    developer_name: str | None = None
    developer_email: str | None = None
    developer_wallet_address: str | None = None
    developer_profile_picture: str | None = None


class BookingCreateResponse(BookingDetail):
    """Created booking plus any non-fatal warnings."""

    warnings: list[str] = Field(default_factory=list)


class BookingListResponse(BaseModel):
    """Schema for booking list."""

    bookings: list[BookingDetail]
    total: int


class CallOutcomeRequest(BaseModel):
    """Schema for reporting how the scheduled call ended."""

    outcome: Literal["completed", "failed"]


class PaymentConfirmRequest(BaseModel):
    """Schema for submitting proof of payment."""

    transaction_hash: str = Field(..., max_length=200)


class BookingNotice(BaseModel):
    """Payload of the booking notice sent to the email function."""

    bookingId: UUID
    developerEmail: str
    customerName: str | None = None
    projectDetails: dict[str, Any]
    bookingTime: datetime
    duration: Decimal
    amount: Decimal
