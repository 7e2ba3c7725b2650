"""Booking record store.

Each method is an independent unit of work: it opens a session, commits
before returning, and then publishes the committed change to the change
feed. Database connectivity failures are retried with exponential backoff.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from typing import Any, TypeVar
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.exceptions import NotFoundError
from app.core.retry import retry_async
from app.database import Database
from app.models.booking import Booking
from app.models.profile import DeveloperProfile
from app.schemas.booking import BookingDetail, BookingResponse
from app.services.realtime import ChangeFeed, row_from_model

logger = logging.getLogger(__name__)

T = TypeVar("T")

TABLE = "bookings"


def to_detail(booking: Booking) -> BookingDetail:
    """Build a ``BookingDetail`` from a booking with parties loaded."""
    base = BookingResponse.model_validate(booking).model_dump()
    customer = booking.customer
    developer = booking.developer
    return BookingDetail(
        **base,
        customer_name=customer.full_name if customer else None,
        developer_name=developer.full_name if developer else None,
        developer_email=developer.user.email if developer and developer.user else None,
        developer_wallet_address=developer.wallet_address if developer else None,
        developer_profile_picture=developer.profile_picture if developer else None,
    )


def _with_parties(query):
    return query.options(
        selectinload(Booking.customer),
        selectinload(Booking.developer).selectinload(DeveloperProfile.user),
    )


class BookingStore:
    """Create, read and update bookings."""

    def __init__(
        self,
        database: Database,
        feed: ChangeFeed | None = None,
        retry_attempts: int = 3,
        retry_initial_delay: float = 2.0,
        retry_backoff_factor: float = 1.5,
    ) -> None:
        self.database = database
        self.feed = feed
        self.retry_attempts = retry_attempts
        self.retry_initial_delay = retry_initial_delay
        self.retry_backoff_factor = retry_backoff_factor

    async def _run(self, work: Callable[[AsyncSession], Awaitable[T]]) -> T:
        async def attempt() -> T:
            async with self.database.session() as session:
                return await work(session)

        return await retry_async(
            attempt,
            attempts=self.retry_attempts,
            initial_delay=self.retry_initial_delay,
            backoff_factor=self.retry_backoff_factor,
        )

    def _publish(self, event: str, new: dict[str, Any], old: dict[str, Any] | None = None) -> None:
        if self.feed is not None:
            self.feed.publish_change(event, TABLE, new, old)

    # ==================== WRITES ====================

    async def create(self, **values: Any) -> BookingDetail:
        """Insert a booking and return it with both parties' names."""

        async def work(session: AsyncSession) -> tuple[BookingDetail, dict[str, Any]]:
            booking = Booking(**values)
            session.add(booking)
            await session.flush()
            booking = await self._load(session, booking.id, reload=True)
            return to_detail(booking), row_from_model(booking)

        detail, row = await self._run(work)
        logger.info(f"Booking {detail.id} created for developer {detail.developer_id}")
        self._publish("INSERT", row)
        return detail

    async def update(self, booking_id: UUID, **changes: Any) -> BookingDetail:
        """Apply ``changes`` to one booking and return the committed row."""

        async def work(session: AsyncSession) -> tuple[BookingDetail, dict, dict]:
            booking = await self._load(session, booking_id)
            old = row_from_model(booking)
            for column, value in changes.items():
                setattr(booking, column, value)
            booking.updated_at = datetime.now(UTC)
            await session.flush()
            booking = await self._load(session, booking_id, reload=True)
            return to_detail(booking), row_from_model(booking), old

        detail, new, old = await self._run(work)
        self._publish("UPDATE", new, old)
        return detail

    async def increment_validation_attempts(self, booking_id: UUID, **changes: Any) -> BookingDetail:
        """Add one to ``validation_attempts`` in the database, with ``changes``.

        The increment is done by the database so concurrent attempts are
        each counted.
        """

        async def work(session: AsyncSession) -> tuple[BookingDetail, dict, dict]:
            booking = await self._load(session, booking_id)
            old = row_from_model(booking)
            await session.execute(
                update(Booking)
                .where(Booking.id == booking_id)
                .values(
                    validation_attempts=Booking.validation_attempts + 1,
                    updated_at=datetime.now(UTC),
                    **changes,
                )
            )
            booking = await self._load(session, booking_id, reload=True)
            return to_detail(booking), row_from_model(booking), old

        detail, new, old = await self._run(work)
        self._publish("UPDATE", new, old)
        return detail

    # ==================== READS ====================

    async def _load(self, session: AsyncSession, booking_id: UUID, reload: bool = False) -> Booking:
        query = _with_parties(select(Booking).where(Booking.id == booking_id))
        if reload:
            query = query.execution_options(populate_existing=True)
        result = await session.execute(query)
        booking = result.scalar_one_or_none()
        if booking is None:
            raise NotFoundError("Booking", str(booking_id))
        return booking

    async def get(self, booking_id: UUID) -> BookingDetail:
        """Fetch one booking joined with both parties."""

        async def work(session: AsyncSession) -> BookingDetail:
            return to_detail(await self._load(session, booking_id))

        return await self._run(work)

    async def find(self, booking_id: UUID) -> BookingDetail | None:
        """Like ``get`` but returns None when missing."""
        try:
            return await self.get(booking_id)
        except NotFoundError:
            return None

    async def list_for_customer(self, customer_id: UUID) -> list[BookingDetail]:
        return await self._list(Booking.customer_id == customer_id)

    async def list_for_developer(self, developer_id: UUID) -> list[BookingDetail]:
        return await self._list(Booking.developer_id == developer_id)

    async def _list(self, condition) -> list[BookingDetail]:
        async def work(session: AsyncSession) -> list[BookingDetail]:
            result = await session.execute(
                _with_parties(select(Booking).where(condition)).order_by(Booking.booking_time.asc())
            )
            return [to_detail(booking) for booking in result.scalars().all()]

        return await self._run(work)
