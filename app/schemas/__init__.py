"""Pydantic schemas for API validation."""

from app.schemas.booking import (
    BookingCreate,
    BookingCreateResponse,
    BookingDetail,
    BookingListResponse,
    BookingNotice,
    BookingResponse,
    CallOutcomeRequest,
    PaymentConfirmRequest,
    ProjectDetails,
)
from app.schemas.profile import (
    CustomerProfileResponse,
    CustomerProfileUpdate,
    DeveloperProfileResponse,
    DeveloperProfileUpdate,
    SkillCreate,
    SkillResponse,
)
from app.schemas.realtime import CallFailureUpdate, DeveloperUpdate
from app.schemas.user import TokenResponse, UserCreate, UserLogin, UserResponse

__all__ = [
    # User
    "UserCreate",
    "UserLogin",
    "UserResponse",
    "TokenResponse",
    # Profiles
    "DeveloperProfileResponse",
    "DeveloperProfileUpdate",
    "CustomerProfileResponse",
    "CustomerProfileUpdate",
    "SkillCreate",
    "SkillResponse",
    # Booking
    "ProjectDetails",
    "BookingCreate",
    "BookingCreateResponse",
    "BookingDetail",
    "BookingListResponse",
    "BookingNotice",
    "BookingResponse",
    "CallOutcomeRequest",
    "PaymentConfirmRequest",
    # Realtime
    "CallFailureUpdate",
    "DeveloperUpdate",
]
