from datetime import UTC, date, datetime
from decimal import Decimal

import pytest

from app.core.exceptions import (
    InvalidDurationError,
    InvalidMeetingLinkError,
    MissingFieldError,
    PastTimeError,
    ValidationError,
)
from app.domain.booking_rules import (
    booking_instant,
    compute_amount,
    normalize_duration,
    resolve_timezone,
    to_24_hour,
    validate_new_booking,
    validate_project_details,
)

NOW = datetime(2030, 1, 1, 12, 0, tzinfo=UTC)

DETAILS = {
    "title": "API review",
    "description": "Review our REST API design",
    "requirements": "OpenAPI spec",
    "goals": "A list of concrete fixes",
    "meet_link": "https://meet.example.com/abc",
}


def admit(**overrides):
    values = dict(
        booking_date=date(2030, 1, 2),
        hour=2,
        minute=30,
        period="PM",
        duration=Decimal("2"),
        project_details=dict(DETAILS),
        hourly_rate=Decimal("150"),
        call_link_base_url="https://meet.devcall.com",
        now=NOW,
    )
    values.update(overrides)
    return validate_new_booking(**values)


@pytest.mark.parametrize(
    "hour,period,expected",
    [(12, "AM", 0), (1, "AM", 1), (11, "AM", 11), (12, "PM", 12), (1, "PM", 13), (11, "PM", 23)],
)
def test_to_24_hour(hour, period, expected):
    assert to_24_hour(hour, period) == expected


def test_to_24_hour_rejects_out_of_range():
    with pytest.raises(ValidationError):
        to_24_hour(13, "PM")
    with pytest.raises(ValidationError):
        to_24_hour(0, "AM")


def test_booking_instant_uses_timezone():
    instant = booking_instant(date(2030, 6, 1), 9, 0, "AM", resolve_timezone("Europe/Berlin"))
    assert instant == datetime(2030, 6, 1, 7, 0, tzinfo=UTC)


def test_unknown_timezone_is_validation_error():
    with pytest.raises(ValidationError):
        resolve_timezone("Mars/Olympus")


def test_scenario_rate_150_for_two_hours_is_300():
    booking = admit()
    assert booking.amount == Decimal("300.00")
    assert booking.duration == Decimal("2.0")
    assert booking.booking_time == datetime(2030, 1, 2, 14, 30, tzinfo=UTC)
    assert booking.call_link.startswith("https://meet.devcall.com/")
    assert len(booking.call_link.rsplit("/", 1)[1]) == 10


def test_amount_for_fractional_duration():
    assert compute_amount(Decimal("120.50"), Decimal("1.5")) == Decimal("180.75")


def test_yesterday_is_past_time():
    with pytest.raises(PastTimeError) as exc_info:
        admit(booking_date=date(2029, 12, 31))
    assert exc_info.value.detail == "Please select a future date and time for the booking."


def test_exactly_now_is_past_time():
    with pytest.raises(PastTimeError):
        admit(booking_date=date(2030, 1, 1), hour=12, minute=0, period="PM")


def test_one_minute_after_now_is_accepted():
    booking = admit(booking_date=date(2030, 1, 1), hour=12, minute=1, period="PM")
    assert booking.booking_time > NOW


@pytest.mark.parametrize("duration", ["0.5", "1", "2.5", "4.0"])
def test_durations_on_grid_are_accepted(duration):
    assert normalize_duration(duration) == Decimal(duration).quantize(Decimal("0.1"))


@pytest.mark.parametrize("duration", ["0", "0.25", "0.75", "4.5", "-1", "NaN", "abc"])
def test_durations_off_grid_are_rejected(duration):
    with pytest.raises(InvalidDurationError):
        normalize_duration(duration)


@pytest.mark.parametrize("field", ["title", "description", "requirements", "goals"])
def test_blank_project_field_is_missing(field):
    details = dict(DETAILS, **{field: "   "})
    with pytest.raises(MissingFieldError) as exc_info:
        validate_project_details(details)
    assert exc_info.value.field == field


def test_missing_meet_link_is_missing_field():
    details = dict(DETAILS)
    del details["meet_link"]
    with pytest.raises(MissingFieldError) as exc_info:
        validate_project_details(details)
    assert exc_info.value.field == "meet_link"


@pytest.mark.parametrize("link", ["meet.example.com/abc", "ftp://example.com/x", "https://", "https://exa mple.com"])
def test_malformed_meet_link(link):
    with pytest.raises(InvalidMeetingLinkError):
        validate_project_details(dict(DETAILS, meet_link=link))


def test_project_details_are_trimmed():
    cleaned = validate_project_details(dict(DETAILS, title="  API review  "))
    assert cleaned["title"] == "API review"


def test_invalid_duration_checked_before_past_time():
    with pytest.raises(InvalidDurationError):
        admit(booking_date=date(2020, 1, 1), duration="5")
