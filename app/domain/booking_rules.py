"""Admission rules for new bookings.

Checks a booking request before anything is persisted:

- duration lies in [min, max] hours on the step grid (0.5 to 4.0 by 0.5)
- title, description, requirements and goals are non-empty
- the external meeting link is an absolute http(s) URL
- the 12-hour wall-clock input, read in the customer's timezone, is
  strictly after the current instant

On success the amount (hourly rate x duration) is computed once and a call
link is generated; neither is recomputed later.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, date, datetime, time
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from app.core.exceptions import (
    InvalidDurationError,
    InvalidMeetingLinkError,
    MissingFieldError,
    PastTimeError,
    ValidationError,
)
from app.utils.call_link import generate_call_link
from app.utils.validators import is_blank, validate_url

REQUIRED_PROJECT_FIELDS = ("title", "description", "requirements", "goals")

MIN_DURATION_HOURS = Decimal("0.5")
MAX_DURATION_HOURS = Decimal("4.0")
DURATION_STEP_HOURS = Decimal("0.5")

CENTS = Decimal("0.01")


@dataclass(frozen=True)
class NormalizedBooking:
    """A booking request that passed every admission rule."""

    booking_time: datetime
    duration: Decimal
    amount: Decimal
    project_details: dict[str, Any]
    call_link: str


def to_24_hour(hour: int, period: Literal["AM", "PM"]) -> int:
    """Convert a 12-hour clock hour (1-12) to 0-23."""
    if not 1 <= hour <= 12:
        raise ValidationError("Hour must be between 1 and 12")
    period = period.upper()
    if period not in ("AM", "PM"):
        raise ValidationError("Period must be AM or PM")
    if period == "PM" and hour != 12:
        return hour + 12
    if period == "AM" and hour == 12:
        return 0
    return hour


def resolve_timezone(name: str | None, default: str = "UTC") -> ZoneInfo:
    try:
        return ZoneInfo(name or default)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValidationError(f"Unknown timezone '{name}'")


def booking_instant(
    booking_date: date,
    hour: int,
    minute: int,
    period: Literal["AM", "PM"],
    tz: ZoneInfo,
) -> datetime:
    """Absolute UTC instant for a local date and 12-hour time."""
    if not 0 <= minute <= 59:
        raise ValidationError("Minute must be between 0 and 59")
    local = datetime.combine(booking_date, time(to_24_hour(hour, period), minute), tzinfo=tz)
    return local.astimezone(UTC)


def normalize_duration(
    duration: Decimal | float | int | str,
    minimum: Decimal = MIN_DURATION_HOURS,
    maximum: Decimal = MAX_DURATION_HOURS,
    step: Decimal = DURATION_STEP_HOURS,
) -> Decimal:
    """Return ``duration`` as a Decimal on the step grid or raise."""
    try:
        hours = Decimal(str(duration))
    except InvalidOperation:
        raise InvalidDurationError(f"Invalid duration '{duration}'")
    if not hours.is_finite() or hours < minimum or hours > maximum:
        raise InvalidDurationError(f"Duration must be between {minimum} and {maximum} hours")
    if hours % step != 0:
        raise InvalidDurationError(f"Duration must be a multiple of {step} hours")
    return hours.quantize(Decimal("0.1"))


def validate_project_details(project_details: dict[str, Any]) -> dict[str, Any]:
    """Check the required project fields and the meeting link."""
    cleaned = {key: value.strip() if isinstance(value, str) else value
               for key, value in project_details.items()}
    for field in REQUIRED_PROJECT_FIELDS:
        if is_blank(cleaned.get(field)):
            raise MissingFieldError(field, f"Project {field} is required")
    meet_link = cleaned.get("meet_link")
    if is_blank(meet_link):
        raise MissingFieldError("meet_link", "A meeting link is required")
    if not validate_url(meet_link):
        raise InvalidMeetingLinkError()
    return cleaned


def compute_amount(hourly_rate: Decimal | float | int, duration: Decimal) -> Decimal:
    """Session price: hourly rate x duration, to the cent."""
    return (Decimal(str(hourly_rate)) * duration).quantize(CENTS, rounding=ROUND_HALF_UP)


def validate_new_booking(
    booking_date: date,
    hour: int,
    minute: int,
    period: Literal["AM", "PM"],
    duration: Decimal | float | int | str,
    project_details: dict[str, Any],
    hourly_rate: Decimal | float | int,
    call_link_base_url: str,
    timezone: str | None = None,
    default_timezone: str = "UTC",
    now: datetime | None = None,
    min_hours: Decimal = MIN_DURATION_HOURS,
    max_hours: Decimal = MAX_DURATION_HOURS,
    step_hours: Decimal = DURATION_STEP_HOURS,
) -> NormalizedBooking:
    """Admit or reject a booking request.

    Raises:
        InvalidDurationError: duration off the grid or out of range
        MissingFieldError: a required project field or the link is empty
        InvalidMeetingLinkError: the meeting link is not a URL
        PastTimeError: the requested instant is not after ``now``
    """
    hours = normalize_duration(duration, min_hours, max_hours, step_hours)
    details = validate_project_details(project_details)

    tz = resolve_timezone(timezone, default_timezone)
    instant = booking_instant(booking_date, hour, minute, period, tz)
    current = now or datetime.now(UTC)
    if instant <= current:
        raise PastTimeError()

    return NormalizedBooking(
        booking_time=instant,
        duration=hours,
        amount=compute_amount(hourly_rate, hours),
        project_details=details,
        call_link=generate_call_link(call_link_base_url),
    )
