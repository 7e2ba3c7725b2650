"""Custom application exceptions.

Every exception carries a stable ``code`` naming its kind and a human
readable ``detail`` that can be shown to the user as-is.
"""

from typing import Any

from fastapi import HTTPException, status


class AppException(HTTPException):
    """Base application exception."""

    code = "app_error"

    def __init__(
        self,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail: str = "An unexpected error occurred",
        headers: dict[str, str] | None = None,
    ) -> None:
        super().__init__(status_code=status_code, detail=detail, headers=headers)

    def __str__(self) -> str:
        return str(self.detail)


class ValidationError(AppException):
    """Validation error exception."""

    code = "validation_error"

    def __init__(self, detail: str = "Validation failed", errors: list[dict[str, Any]] | None = None) -> None:
        self.errors = errors
        super().__init__(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=detail)


class PastTimeError(ValidationError):
    """Requested booking time is not in the future."""

    code = "past_time"

    def __init__(self, detail: str = "Please select a future date and time for the booking.") -> None:
        super().__init__(detail)


class MissingFieldError(ValidationError):
    """A required field is empty."""

    code = "missing_field"

    def __init__(self, field: str, detail: str | None = None) -> None:
        self.field = field
        super().__init__(detail or f"'{field}' is required")


class InvalidMeetingLinkError(ValidationError):
    """External meeting link is not a valid URL."""

    code = "invalid_meeting_link"

    def __init__(self, detail: str = "Please provide a valid meeting link URL") -> None:
        super().__init__(detail)


class InvalidDurationError(ValidationError):
    """Duration is out of range or not on the step grid."""

    code = "invalid_duration"


class IllegalTransitionError(AppException):
    """Requested action is not allowed in the booking's current state."""

    code = "illegal_transition"

    def __init__(self, action: str, state: str, detail: str | None = None) -> None:
        self.action = action
        self.state = state
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=detail or f"Cannot {action} a booking that is {state}",
        )


class NotFoundError(AppException):
    """Resource not found exception."""

    code = "not_found"

    def __init__(self, resource: str = "Resource", identifier: str | None = None) -> None:
        detail = f"{resource} not found"
        if identifier:
            detail = f"{resource} with ID '{identifier}' not found"
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class ConflictError(AppException):
    """Resource already exists."""

    code = "conflict"

    def __init__(self, detail: str = "Resource already exists") -> None:
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


class AuthenticationError(AppException):
    """Authentication failed exception."""

    code = "authentication_failed"

    def __init__(self, detail: str = "Authentication failed") -> None:
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


class AuthorizationError(AppException):
    """Authorization denied exception."""

    code = "forbidden"

    def __init__(self, detail: str = "You don't have permission to access this resource") -> None:
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class PaymentValidationFailure(AppException):
    """Payment proof could not be verified; the booking was reverted."""

    code = "payment_validation_failed"

    def __init__(
        self,
        detail: str = "Payment validation failed. Please check the transaction hash and try again.",
    ) -> None:
        super().__init__(status_code=status.HTTP_402_PAYMENT_REQUIRED, detail=detail)


class TransientConnectivityError(AppException):
    """Backend or network unavailable."""

    code = "connectivity_error"

    def __init__(
        self,
        detail: str = (
            "Unable to connect to the server. Please check your internet connection and try again."
        ),
    ) -> None:
        super().__init__(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=detail)


class NotificationDeliveryFailure(AppException):
    """Booking notice could not be delivered. Never fatal."""

    code = "notification_failed"

    def __init__(self, detail: str = "Booking notification could not be delivered") -> None:
        super().__init__(status_code=status.HTTP_502_BAD_GATEWAY, detail=detail)
