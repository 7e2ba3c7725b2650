"""Booking endpoints."""

from typing import Annotated, Literal
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from app.api.deps import get_booking_service, get_current_customer, get_current_user
from app.core.permissions import BookingParty, UserRole, require_role
from app.models.user import User
from app.schemas.booking import (
    BookingCreate,
    BookingCreateResponse,
    BookingDetail,
    BookingListResponse,
    CallOutcomeRequest,
    PaymentConfirmRequest,
)
from app.services.booking_service import BookingService

router = APIRouter()


@router.post("", response_model=BookingCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    booking_data: BookingCreate,
    current_user: Annotated[User, Depends(get_current_customer)],
    bookings: Annotated[BookingService, Depends(get_booking_service)],
) -> BookingCreateResponse:
    """Book a consultation with a developer.

    The booking is created even if the developer notice cannot be sent;
    such failures are listed in ``warnings``.
    """
    return await bookings.create_booking(current_user.id, booking_data)


@router.get("", response_model=BookingListResponse)
async def list_bookings(
    current_user: Annotated[User, Depends(get_current_user)],
    bookings: Annotated[BookingService, Depends(get_booking_service)],
    role: Literal["customer", "developer"] | None = Query(None),
) -> BookingListResponse:
    """List the caller's bookings as customer or developer.

    Defaults to the caller's primary role.
    """
    roles = current_user.roles
    party_role = UserRole(role) if role else (roles.primary or UserRole.CUSTOMER)
    require_role(roles, party_role)
    party = BookingParty.DEVELOPER if party_role == UserRole.DEVELOPER else BookingParty.CUSTOMER

    items = await bookings.list_bookings(current_user.id, party)
    return BookingListResponse(bookings=items, total=len(items))


@router.get("/{booking_id}", response_model=BookingDetail)
async def get_booking(
    booking_id: UUID,
    current_user: Annotated[User, Depends(get_current_user)],
    bookings: Annotated[BookingService, Depends(get_booking_service)],
) -> BookingDetail:
    """Get a booking. Only its customer and developer can see it."""
    return await bookings.get_booking(booking_id, current_user.id)


@router.post("/{booking_id}/cancel", response_model=BookingDetail)
async def cancel_booking(
    booking_id: UUID,
    current_user: Annotated[User, Depends(get_current_user)],
    bookings: Annotated[BookingService, Depends(get_booking_service)],
) -> BookingDetail:
    """Cancel an upcoming booking."""
    return await bookings.cancel_booking(booking_id, current_user.id)


@router.post("/{booking_id}/call-outcome", response_model=BookingDetail)
async def record_call_outcome(
    booking_id: UUID,
    outcome: CallOutcomeRequest,
    current_user: Annotated[User, Depends(get_current_user)],
    bookings: Annotated[BookingService, Depends(get_booking_service)],
) -> BookingDetail:
    """Report whether the call took place. A completed call opens payment."""
    return await bookings.record_call_outcome(booking_id, current_user.id, outcome.outcome)


@router.post("/{booking_id}/confirm-payment", response_model=BookingDetail)
async def confirm_payment(
    booking_id: UUID,
    payment: PaymentConfirmRequest,
    current_user: Annotated[User, Depends(get_current_user)],
    bookings: Annotated[BookingService, Depends(get_booking_service)],
) -> BookingDetail:
    """Submit the transaction hash paying for a completed call."""
    return await bookings.confirm_payment(booking_id, current_user.id, payment.transaction_hash)
