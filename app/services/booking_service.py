"""Booking lifecycle controller.

Sequences store writes, the payment verifier and the booking notice for
each lifecycle operation. Admission and transition rules live in
``app.domain``; this module only orders the calls and reverts a failed
payment validation.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from uuid import UUID

from app.core.exceptions import (
    AuthorizationError,
    MissingFieldError,
    NotFoundError,
    PaymentValidationFailure,
    ValidationError,
)
from app.core.permissions import BookingParty, booking_party
from app.domain.booking_rules import validate_new_booking
from app.domain.booking_state import (
    BookingAction,
    BookingState,
    BookingStatus,
    PaymentStatus,
    validate_transition,
)
from app.gateways.base import PaymentVerifier
from app.schemas.booking import BookingCreate, BookingCreateResponse, BookingDetail
from app.services.booking_cache import BookingCache
from app.services.booking_store import BookingStore
from app.services.notification_service import EmailNotifier
from app.services.profile_service import ProfileService
from app.utils.validators import is_blank, mask_sensitive_data

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class BookingService:
    """Create bookings and drive them through their lifecycle."""

    def __init__(
        self,
        store: BookingStore,
        profiles: ProfileService,
        verifier: PaymentVerifier,
        notifier: EmailNotifier | None = None,
        cache: BookingCache | None = None,
        call_link_base_url: str = "https://meet.devcall.com",
        default_timezone: str = "UTC",
        min_hours: Decimal = Decimal("0.5"),
        max_hours: Decimal = Decimal("4.0"),
        step_hours: Decimal = Decimal("0.5"),
        validation_timeout: timedelta = timedelta(minutes=5),
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.store = store
        self.profiles = profiles
        self.verifier = verifier
        self.notifier = notifier
        self.cache = cache or BookingCache(store)
        self.call_link_base_url = call_link_base_url
        self.default_timezone = default_timezone
        self.min_hours = min_hours
        self.max_hours = max_hours
        self.step_hours = step_hours
        self.validation_timeout = validation_timeout
        self.clock = clock

    # ==================== READS ====================

    async def get_booking(self, booking_id: UUID, actor_id: UUID) -> BookingDetail:
        """A booking visible to ``actor_id`` (either party).

        Always read from the store: other processes write bookings too, and
        their change events do not reach this process's cache.
        """
        detail = await self.cache.refresh(booking_id)
        booking_party(actor_id, detail.customer_id, detail.developer_id)
        return detail

    async def list_bookings(self, actor_id: UUID, party: BookingParty) -> list[BookingDetail]:
        """The actor's bookings on one side, soonest first.

        Listing re-fetches from the store, so it also refreshes the cache.
        """
        if party == BookingParty.DEVELOPER:
            bookings = await self.store.list_for_developer(actor_id)
        else:
            bookings = await self.store.list_for_customer(actor_id)
        for detail in bookings:
            self.cache.put(detail)
        return bookings

    # ==================== CREATE ====================

    async def create_booking(self, customer_id: UUID, data: BookingCreate) -> BookingCreateResponse:
        """Validate and persist a new booking, then notify the developer.

        Notification failures never undo the booking. They are returned
        as ``warnings`` on the response.

        Raises:
            ValidationError: The request broke an admission rule
            NotFoundError: The developer does not exist
        """
        developer = await self.profiles.find_developer(data.developer_id)
        if developer is None:
            raise NotFoundError("Developer", str(data.developer_id))
        if data.developer_id == customer_id:
            raise ValidationError("You cannot book a session with yourself")
        if not developer.is_available:
            raise ValidationError("This developer is not accepting bookings")
        if developer.hourly_rate is None:
            raise ValidationError("This developer has not set an hourly rate")

        normalized = validate_new_booking(
            booking_date=data.booking_date,
            hour=data.hour,
            minute=data.minute,
            period=data.period,
            duration=data.duration,
            project_details=data.project_details.model_dump(),
            hourly_rate=developer.hourly_rate,
            call_link_base_url=self.call_link_base_url,
            timezone=data.timezone,
            default_timezone=self.default_timezone,
            now=self.clock(),
            min_hours=self.min_hours,
            max_hours=self.max_hours,
            step_hours=self.step_hours,
        )

        # Make sure the customer side of the foreign key exists
        await self.profiles.get_or_create_customer(customer_id)

        detail = await self.store.create(
            customer_id=customer_id,
            developer_id=data.developer_id,
            booking_time=normalized.booking_time,
            duration=normalized.duration,
            amount=normalized.amount,
            status=BookingStatus.UPCOMING.value,
            payment_status=PaymentStatus.PENDING.value,
            call_status=None,
            call_link=normalized.call_link,
            project_details=normalized.project_details,
        )
        self.cache.put(detail)

        warnings: list[str] = []
        if self.notifier is not None:
            warning = await self.notifier.send_booking_notice(detail)
            if warning:
                warnings.append(warning)

        return BookingCreateResponse(**detail.model_dump(), warnings=warnings)

    # ==================== TRANSITIONS ====================

    async def _transition(self, booking_id: UUID, actor_id: UUID, action: BookingAction) -> BookingDetail:
        """Apply a status action as a single store update."""
        current = await self.cache.refresh(booking_id)
        booking_party(actor_id, current.customer_id, current.developer_id)

        state = BookingState.of(current)
        changes = validate_transition(state, action).changes_from(state)

        self.cache.apply_local(booking_id, **changes)
        try:
            updated = await self.store.update(booking_id, **changes)
        except Exception:
            self.cache.invalidate(booking_id)
            raise
        self.cache.put(updated)
        logger.info(f"Booking {booking_id}: {action.value} by {actor_id} -> {BookingState.of(updated).describe()}")
        return updated

    async def cancel_booking(self, booking_id: UUID, actor_id: UUID) -> BookingDetail:
        """Cancel an upcoming booking. Either party may cancel."""
        return await self._transition(booking_id, actor_id, BookingAction.CANCEL)

    async def record_call_outcome(self, booking_id: UUID, actor_id: UUID, outcome: str) -> BookingDetail:
        """Record whether the scheduled call took place."""
        if outcome == "completed":
            action = BookingAction.MARK_CALL_COMPLETED
        elif outcome == "failed":
            action = BookingAction.MARK_CALL_FAILED
        else:
            raise ValidationError(f"Unknown call outcome '{outcome}'")
        return await self._transition(booking_id, actor_id, action)

    # ==================== PAYMENT ====================

    async def confirm_payment(self, booking_id: UUID, actor_id: UUID, transaction_hash: str) -> BookingDetail:
        """Validate the customer's proof of payment.

        1. Mark the booking ``validating``, record the hash and timestamp and
           count the attempt. This write is committed before verification.
        2. Ask the verifier to check the transaction.
        3. On success mark it paid and completed. On failure or error revert
           to ``pending_payment`` and raise.

        Any error after step 1, including a failed final write, goes through
        the revert. A ``validating`` marker older than
        ``validation_timeout`` is treated as abandoned and reverted first.

        Raises:
            MissingFieldError: The transaction hash is blank
            IllegalTransitionError: Payment is not awaiting proof
            PaymentValidationFailure: Verification rejected the proof or failed
        """
        if is_blank(transaction_hash):
            raise MissingFieldError("transaction_hash", "A transaction hash is required")
        transaction_hash = transaction_hash.strip()

        current = await self.cache.refresh(booking_id)
        if booking_party(actor_id, current.customer_id, current.developer_id) != BookingParty.CUSTOMER:
            raise AuthorizationError("Only the customer can confirm payment")
        current = await self._release_stale_validation(current)

        # Phase 1: durable in-flight marker
        state = BookingState.of(current)
        validating = validate_transition(state, BookingAction.BEGIN_PAYMENT_VALIDATION)
        in_flight = await self.store.increment_validation_attempts(
            booking_id,
            transaction_hash=transaction_hash,
            validation_timestamp=self.clock(),
            **validating.changes_from(state),
        )
        self.cache.put(in_flight)
        logger.info(
            f"Validating payment for booking {booking_id} "
            f"(tx {mask_sensitive_data(transaction_hash)}, attempt {in_flight.validation_attempts})"
        )

        try:
            # Phase 2: verification
            try:
                result = await self.verifier.verify_payment(
                    transaction_hash,
                    in_flight.amount,
                    in_flight.developer_wallet_address,
                )
            except Exception as e:
                logger.error(f"Payment verification errored for booking {booking_id}: {e}")
                raise PaymentValidationFailure(
                    "Payment validation could not be completed. Please try again."
                ) from e
            if not result.success:
                logger.error(f"Payment rejected for booking {booking_id}: {result.error_message}")
                raise PaymentValidationFailure(
                    result.error_message
                    or "Payment validation failed. Please check the transaction hash and try again."
                )

            # Phase 3: commit
            paid = validate_transition(validating, BookingAction.PAYMENT_VERIFIED)
            updated = await self.store.update(booking_id, **paid.changes_from(validating))
        except Exception as e:
            if not isinstance(e, PaymentValidationFailure):
                logger.error(f"Could not record payment for booking {booking_id}: {e}")
            await self._revert_validation(booking_id, validating)
            raise

        self.cache.put(updated)
        logger.info(f"Payment validated for booking {booking_id}")
        return updated

    async def _revert_validation(self, booking_id: UUID, validating: BookingState) -> None:
        """Return a ``validating`` booking to ``pending_payment``.

        Best effort: a failed revert is logged and the cache entry dropped so
        the caller's original error is the one raised. The stale marker is
        released on the next confirmation once it has timed out.
        """
        reverted = validate_transition(validating, BookingAction.PAYMENT_REJECTED)
        try:
            detail = await self.store.update(booking_id, **reverted.changes_from(validating))
        except Exception as e:
            self.cache.invalidate(booking_id)
            logger.error(f"Could not revert payment validation for booking {booking_id}: {e}")
            return
        self.cache.put(detail)

    async def _release_stale_validation(self, current: BookingDetail) -> BookingDetail:
        """Revert a ``validating`` marker left behind by an interrupted attempt."""
        if current.payment_status != PaymentStatus.VALIDATING.value:
            return current
        started = current.validation_timestamp
        if started is not None and started.tzinfo is None:
            # SQLite drops the offset; values are written in UTC
            started = started.replace(tzinfo=UTC)
        if started is not None and self.clock() - started < self.validation_timeout:
            return current

        state = BookingState.of(current)
        reverted = validate_transition(state, BookingAction.PAYMENT_REJECTED)
        detail = await self.store.update(current.id, **reverted.changes_from(state))
        self.cache.put(detail)
        logger.warning(f"Released stale payment validation for booking {current.id} (started {started})")
        return detail
