"""Read-through cache of booking views.

The cache holds the last known ``BookingDetail`` per booking. Local writes
may be recorded optimistically, but any value coming from the server (a
change-feed event or a re-fetch) replaces whatever the cache holds.
"""

from __future__ import annotations

import asyncio
import logging
from collections import OrderedDict
from typing import Any
from uuid import UUID

from app.schemas.booking import BookingDetail, BookingResponse
from app.services.booking_store import BookingStore
from app.services.realtime import ChangeEvent, ChangeFeed, Subscription

logger = logging.getLogger(__name__)

ROW_FIELDS = frozenset(BookingResponse.model_fields)


class BookingCache:
    """Booking views keyed by id, reconciled from the change feed.

    Holds at most ``max_entries`` bookings; the least recently used entry
    is evicted first.
    """

    def __init__(self, store: BookingStore, max_entries: int = 1000) -> None:
        self.store = store
        self.max_entries = max_entries
        self._entries: OrderedDict[UUID, BookingDetail] = OrderedDict()
        self._optimistic: set[UUID] = set()
        self._subscription: Subscription | None = None
        self._task: asyncio.Task | None = None

    def __contains__(self, booking_id: object) -> bool:
        return booking_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def peek(self, booking_id: UUID) -> BookingDetail | None:
        """Cached value without reading through."""
        return self._entries.get(booking_id)

    def is_optimistic(self, booking_id: UUID) -> bool:
        """Whether the cached value holds unconfirmed local changes."""
        return booking_id in self._optimistic

    async def get(self, booking_id: UUID) -> BookingDetail:
        cached = self._entries.get(booking_id)
        if cached is not None:
            self._entries.move_to_end(booking_id)
            return cached
        return await self.refresh(booking_id)

    async def refresh(self, booking_id: UUID) -> BookingDetail:
        """Re-fetch from the store; the fetched row replaces the cached one."""
        detail = await self.store.get(booking_id)
        self.put(detail)
        return detail

    def put(self, detail: BookingDetail) -> None:
        """Store a server-confirmed value."""
        self._entries[detail.id] = detail
        self._entries.move_to_end(detail.id)
        self._optimistic.discard(detail.id)
        while len(self._entries) > self.max_entries:
            evicted, _ = self._entries.popitem(last=False)
            self._optimistic.discard(evicted)

    def apply_local(self, booking_id: UUID, **changes: Any) -> BookingDetail | None:
        """Record an optimistic local change.

        Returns the updated cached value, or None if the booking is not cached.
        """
        cached = self._entries.get(booking_id)
        if cached is None:
            return None
        updated = cached.model_copy(update=changes)
        self._entries[booking_id] = updated
        self._optimistic.add(booking_id)
        return updated

    def invalidate(self, booking_id: UUID) -> None:
        self._entries.pop(booking_id, None)
        self._optimistic.discard(booking_id)

    def clear(self) -> None:
        self._entries.clear()
        self._optimistic.clear()

    def reconcile(self, event: ChangeEvent) -> bool:
        """Apply a change event to a cached booking.

        Joined fields such as party names are not carried by the event, so
        they are kept from the cached value. Returns True if an entry changed.
        """
        if event.table != "bookings":
            return False
        row = event.new or event.old or {}
        booking_id = row.get("id")
        if booking_id not in self._entries:
            return False
        if event.event == "DELETE":
            self.invalidate(booking_id)
            return True
        columns = {key: value for key, value in event.new.items() if key in ROW_FIELDS}
        self.put(self._entries[booking_id].model_copy(update=columns))
        return True

    # ==================== FEED ====================

    def start(self, feed: ChangeFeed) -> None:
        """Follow ``feed`` in a background task."""
        if self._task is not None:
            return
        self._subscription = feed.subscribe("bookings", "*")
        self._task = asyncio.create_task(self._follow(self._subscription))

    async def _follow(self, subscription: Subscription) -> None:
        async for event in subscription:
            self.reconcile(event)

    async def stop(self) -> None:
        if self._subscription is not None:
            self._subscription.close()
            self._subscription = None
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                logger.debug("Booking cache follower cancelled")
            self._task = None
