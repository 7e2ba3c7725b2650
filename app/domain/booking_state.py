"""Booking lifecycle state machine.

A booking moves on two axes that the controller keeps correlated:

- status: pending, upcoming, completed, cancelled
- payment_status: pending, validating, pending_payment, paid, cancelled

Status actions (cancel, call outcome) are only legal on an upcoming booking
whose call has not concluded; a booking whose call failed may still be
cancelled. Payment actions are decided by payment_status alone, so they
remain available once the call is over.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum

from app.core.exceptions import IllegalTransitionError
from app.domain.payment_state import assert_payment_transition


class BookingStatus(str, Enum):
    PENDING = "pending"
    UPCOMING = "upcoming"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    VALIDATING = "validating"
    PENDING_PAYMENT = "pending_payment"
    PAID = "paid"
    CANCELLED = "cancelled"


class CallStatus(str, Enum):
    COMPLETED = "completed"
    FAILED = "failed"


class BookingAction(str, Enum):
    CANCEL = "cancel"
    MARK_CALL_FAILED = "mark_call_failed"
    MARK_CALL_COMPLETED = "mark_call_completed"
    BEGIN_PAYMENT_VALIDATION = "begin_payment_validation"
    PAYMENT_VERIFIED = "payment_verified"
    PAYMENT_REJECTED = "payment_rejected"


# Verb phrases for error messages: "Cannot <label> a booking that is ..."
ACTION_LABELS: dict[BookingAction, str] = {
    BookingAction.CANCEL: "cancel",
    BookingAction.MARK_CALL_FAILED: "record a failed call for",
    BookingAction.MARK_CALL_COMPLETED: "record a completed call for",
    BookingAction.BEGIN_PAYMENT_VALIDATION: "start payment validation for",
    BookingAction.PAYMENT_VERIFIED: "complete payment for",
    BookingAction.PAYMENT_REJECTED: "reject the payment for",
}

STATUS_ACTIONS = frozenset(
    {BookingAction.CANCEL, BookingAction.MARK_CALL_FAILED, BookingAction.MARK_CALL_COMPLETED}
)

# payment_status required before each payment action
PAYMENT_ACTION_SOURCES: dict[BookingAction, PaymentStatus] = {
    BookingAction.BEGIN_PAYMENT_VALIDATION: PaymentStatus.PENDING_PAYMENT,
    BookingAction.PAYMENT_VERIFIED: PaymentStatus.VALIDATING,
    BookingAction.PAYMENT_REJECTED: PaymentStatus.VALIDATING,
}


@dataclass(frozen=True)
class BookingState:
    """The lifecycle fields of a booking."""

    status: BookingStatus
    payment_status: PaymentStatus
    call_status: CallStatus | None = None
    payment_validated: bool = False

    @classmethod
    def of(cls, booking) -> "BookingState":
        """Read the lifecycle fields off a booking row or model."""
        call_status = booking.call_status
        return cls(
            status=BookingStatus(booking.status),
            payment_status=PaymentStatus(booking.payment_status),
            call_status=CallStatus(call_status) if call_status else None,
            payment_validated=bool(getattr(booking, "payment_validated", False)),
        )

    def changes_from(self, previous: "BookingState") -> dict[str, object]:
        """Column values that differ from ``previous``, ready for a store update."""
        changes: dict[str, object] = {}
        if self.status != previous.status:
            changes["status"] = self.status.value
        if self.payment_status != previous.payment_status:
            changes["payment_status"] = self.payment_status.value
        if self.call_status != previous.call_status:
            changes["call_status"] = self.call_status.value if self.call_status else None
        if self.payment_validated != previous.payment_validated:
            changes["payment_validated"] = self.payment_validated
        return changes

    def describe(self) -> str:
        parts = [self.status.value, f"payment {self.payment_status.value}"]
        if self.call_status:
            parts.append(f"call {self.call_status.value}")
        return ", ".join(parts)


def allowed_actions(state: BookingState) -> frozenset[BookingAction]:
    """Actions that may be applied to ``state``."""
    allowed: set[BookingAction] = set()
    if state.status == BookingStatus.UPCOMING:
        if state.call_status is None:
            allowed |= STATUS_ACTIONS
        elif state.call_status == CallStatus.FAILED:
            allowed.add(BookingAction.CANCEL)
    for action, source in PAYMENT_ACTION_SOURCES.items():
        if state.payment_status == source:
            allowed.add(action)
    return frozenset(allowed)


def validate_transition(state: BookingState, action: BookingAction) -> BookingState:
    """Return the state reached by applying ``action`` to ``state``.

    Raises:
        IllegalTransitionError: If ``action`` is not allowed in ``state``.
    """
    if action not in allowed_actions(state):
        raise IllegalTransitionError(
            ACTION_LABELS[action],
            state.describe(),
        )

    next_state = _apply(state, action)
    if next_state.payment_status != state.payment_status:
        assert_payment_transition(state.payment_status.value, next_state.payment_status.value)
    return next_state


def _apply(state: BookingState, action: BookingAction) -> BookingState:
    if action == BookingAction.CANCEL:
        return replace(
            state,
            status=BookingStatus.CANCELLED,
            payment_status=PaymentStatus.CANCELLED,
        )
    if action == BookingAction.MARK_CALL_FAILED:
        return replace(state, call_status=CallStatus.FAILED)
    if action == BookingAction.MARK_CALL_COMPLETED:
        return replace(
            state,
            call_status=CallStatus.COMPLETED,
            payment_status=PaymentStatus.PENDING_PAYMENT,
        )
    if action == BookingAction.BEGIN_PAYMENT_VALIDATION:
        return replace(state, payment_status=PaymentStatus.VALIDATING)
    if action == BookingAction.PAYMENT_VERIFIED:
        return replace(
            state,
            payment_status=PaymentStatus.PAID,
            status=BookingStatus.COMPLETED,
            payment_validated=True,
        )
    # PAYMENT_REJECTED
    return replace(state, payment_status=PaymentStatus.PENDING_PAYMENT)
