"""Core utilities and security modules."""

from app.core.exceptions import (
    AppException,
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    IllegalTransitionError,
    InvalidDurationError,
    InvalidMeetingLinkError,
    MissingFieldError,
    NotFoundError,
    NotificationDeliveryFailure,
    PastTimeError,
    PaymentValidationFailure,
    TransientConnectivityError,
    ValidationError,
)
from app.core.permissions import BookingParty, RoleSet, UserRole
from app.core.security import (
    create_access_token,
    get_password_hash,
    verify_password,
    verify_token,
)

__all__ = [
    "AppException",
    "AuthenticationError",
    "AuthorizationError",
    "ConflictError",
    "IllegalTransitionError",
    "InvalidDurationError",
    "InvalidMeetingLinkError",
    "MissingFieldError",
    "NotFoundError",
    "NotificationDeliveryFailure",
    "PastTimeError",
    "PaymentValidationFailure",
    "TransientConnectivityError",
    "ValidationError",
    "BookingParty",
    "RoleSet",
    "UserRole",
    "create_access_token",
    "get_password_hash",
    "verify_password",
    "verify_token",
]
