"""Change feed: in-process publish/subscribe for table change events.

Every committed write publishes a ``ChangeEvent``. Subscribers receive the
events matching their table, event types and row predicate through a
bounded queue. Delivery is at-most-once: if a subscriber's queue is full the
event is dropped for that subscriber, and nothing is replayed. A client that
misses an event recovers by re-fetching its list.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Literal
from uuid import UUID

from sqlalchemy import inspect

from app.schemas.realtime import CallFailureUpdate, DeveloperUpdate

logger = logging.getLogger(__name__)

EventType = Literal["INSERT", "UPDATE", "DELETE"]
ALL_EVENTS: frozenset[str] = frozenset({"INSERT", "UPDATE", "DELETE"})

RowPredicate = Callable[[dict[str, Any], dict[str, Any] | None], bool]


@dataclass(frozen=True)
class ChangeEvent:
    """A committed change to one row."""

    event: EventType
    table: str
    new: dict[str, Any]
    old: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "event": self.event,
            "table": self.table,
            "new": jsonable_row(self.new),
            "old": jsonable_row(self.old) if self.old is not None else None,
        }


def row_from_model(obj: Any) -> dict[str, Any]:
    """Column values of an ORM instance."""
    mapper = inspect(obj).mapper
    return {attr.key: getattr(obj, attr.key) for attr in mapper.column_attrs}


def _jsonable(value: Any) -> Any:
    if isinstance(value, (UUID, Decimal)):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


def jsonable_row(row: dict[str, Any]) -> dict[str, Any]:
    return {key: _jsonable(value) for key, value in row.items()}


def column_equals(**expected: Any) -> RowPredicate:
    """Predicate matching rows whose columns equal ``expected``.

    Equivalent to a ``column=eq.value`` filter on the new row.
    """

    def predicate(new: dict[str, Any], old: dict[str, Any] | None) -> bool:
        return all(new.get(column) == value for column, value in expected.items())

    return predicate


def column_became(column: str, value: Any, **scope: Any) -> RowPredicate:
    """Predicate matching updates where ``column`` changed to ``value``."""
    in_scope = column_equals(**scope)

    def predicate(new: dict[str, Any], old: dict[str, Any] | None) -> bool:
        if not in_scope(new, old) or new.get(column) != value:
            return False
        return old is None or old.get(column) != value

    return predicate


class Subscription:
    """A live subscription; iterate to receive events."""

    def __init__(
        self,
        feed: "ChangeFeed",
        table: str,
        events: frozenset[str],
        predicate: RowPredicate | None,
        maxsize: int,
    ) -> None:
        self._feed = feed
        self.table = table
        self.events = events
        self.predicate = predicate
        self.queue: asyncio.Queue[ChangeEvent | None] = asyncio.Queue(maxsize=maxsize)
        self.closed = False
        self.dropped = 0

    def matches(self, event: ChangeEvent) -> bool:
        if self.closed or event.table != self.table or event.event not in self.events:
            return False
        return self.predicate is None or self.predicate(event.new, event.old)

    def offer(self, event: ChangeEvent) -> bool:
        try:
            self.queue.put_nowait(event)
        except asyncio.QueueFull:
            self.dropped += 1
            logger.warning(f"Dropping {event.event} on {event.table}: subscriber queue full")
            return False
        return True

    async def get(self) -> ChangeEvent | None:
        """Next event, or None once the subscription is closed."""
        if self.closed and self.queue.empty():
            return None
        return await self.queue.get()

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._feed._remove(self)
        try:
            self.queue.put_nowait(None)
        except asyncio.QueueFull:
            pass

    def __aiter__(self) -> AsyncIterator[ChangeEvent]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[ChangeEvent]:
        while True:
            event = await self.get()
            if event is None:
                return
            yield event

    async def __aenter__(self) -> "Subscription":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self.close()


@dataclass
class ChangeFeed:
    """Fan-out of change events to subscribers."""

    queue_size: int = 100
    _subscriptions: list[Subscription] = field(default_factory=list)

    def subscribe(
        self,
        table: str,
        events: Iterable[str] | str = "*",
        predicate: RowPredicate | None = None,
    ) -> Subscription:
        if events == "*":
            wanted = ALL_EVENTS
        elif isinstance(events, str):
            wanted = frozenset({events})
        else:
            wanted = frozenset(events)
        subscription = Subscription(self, table, wanted, predicate, self.queue_size)
        self._subscriptions.append(subscription)
        return subscription

    def publish(self, event: ChangeEvent) -> int:
        """Deliver ``event`` to matching subscribers; returns deliveries made."""
        delivered = 0
        for subscription in list(self._subscriptions):
            if subscription.matches(event) and subscription.offer(event):
                delivered += 1
        return delivered

    def publish_change(
        self,
        event: EventType,
        table: str,
        new: dict[str, Any],
        old: dict[str, Any] | None = None,
    ) -> int:
        return self.publish(ChangeEvent(event=event, table=table, new=new, old=old))

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    def _remove(self, subscription: Subscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)

    def close(self) -> None:
        for subscription in list(self._subscriptions):
            subscription.close()


# ==================== WATCHERS ====================


async def watch_new_bookings(
    subscription: Subscription,
) -> AsyncIterator[dict[str, Any]]:
    """Yield each new booking row for a developer."""
    async for event in subscription:
        yield event.new


def new_bookings_subscription(feed: ChangeFeed, developer_id: UUID) -> Subscription:
    return feed.subscribe(
        "bookings", "INSERT", column_equals(developer_id=developer_id)
    )


def call_failures_subscription(feed: ChangeFeed, developer_id: UUID) -> Subscription:
    return feed.subscribe(
        "bookings", "UPDATE", column_became("call_status", "failed", developer_id=developer_id)
    )


def cancellations_subscription(
    feed: ChangeFeed,
    customer_id: UUID | None = None,
    developer_id: UUID | None = None,
) -> Subscription:
    scope: dict[str, Any] = {}
    if customer_id is not None:
        scope["customer_id"] = customer_id
    if developer_id is not None:
        scope["developer_id"] = developer_id
    return feed.subscribe("bookings", "UPDATE", column_became("status", "cancelled", **scope))


def developers_subscription(feed: ChangeFeed) -> Subscription:
    return feed.subscribe("developer_profiles", "*")


async def watch_call_failures(
    subscription: Subscription,
    fetch_detail: Callable[[UUID], Awaitable[Any]],
) -> AsyncIterator[CallFailureUpdate]:
    """Yield a ``CallFailureUpdate`` for each call marked failed.

    The event row lacks the customer name, so the joined record is fetched
    again for every event.
    """
    async for event in subscription:
        try:
            detail = await fetch_detail(event.new["id"])
        except Exception as e:
            logger.warning(f"Could not load failed call {event.new.get('id')}: {e}")
            continue
        if detail is None:
            continue
        yield CallFailureUpdate(
            id=detail.id,
            customer_name=detail.customer_name,
            booking_time=detail.booking_time,
            failure_time=detail.updated_at,
            project_title=(detail.project_details or {}).get("title"),
        )


async def watch_booking_cancellations(
    subscription: Subscription,
) -> AsyncIterator[dict[str, Any]]:
    """Yield each booking row that became cancelled."""
    async for event in subscription:
        yield event.new


async def watch_developers(
    subscription: Subscription,
    fetch_profile: Callable[[UUID], Awaitable[Any]],
) -> AsyncIterator[DeveloperUpdate]:
    """Yield a ``DeveloperUpdate`` with the full profile for each change."""
    async for event in subscription:
        row = event.new or event.old or {}
        developer_id = row.get("id")
        if developer_id is None:
            continue
        profile = None
        if event.event != "DELETE":
            try:
                profile = await fetch_profile(developer_id)
            except Exception as e:
                logger.warning(f"Could not load developer {developer_id}: {e}")
                continue
            if profile is None:
                continue
        yield DeveloperUpdate(id=developer_id, type=event.event, profile=profile)
