"""Payment state machine."""

from app.core.exceptions import IllegalTransitionError

PAYMENT_TRANSITIONS = {
    "pending": {"pending_payment", "cancelled"},
    "pending_payment": {"validating"},
    "validating": {"paid", "pending_payment"},
    "paid": set(),
    "cancelled": set(),
}


def assert_payment_transition(current: str, target: str) -> None:
    allowed = PAYMENT_TRANSITIONS.get(current, set())
    if target not in allowed:
        raise IllegalTransitionError(
            f"move payment to {target}",
            f"payment {current}",
            detail=f"Invalid payment transition: {current} → {target}",
        )
