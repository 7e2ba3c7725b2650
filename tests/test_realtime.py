import asyncio
from datetime import date
from decimal import Decimal
from uuid import uuid4

from app.services.realtime import (
    ChangeEvent,
    ChangeFeed,
    call_failures_subscription,
    cancellations_subscription,
    column_became,
    column_equals,
    developers_subscription,
    new_bookings_subscription,
    watch_call_failures,
    watch_developers,
    watch_new_bookings,
)
from app.schemas.booking import BookingCreate, ProjectDetails

from conftest import PROJECT, make_env


def test_subscription_filters_table_event_and_row():
    async def scenario():
        feed = ChangeFeed()
        developer = uuid4()
        sub = feed.subscribe("bookings", "INSERT", column_equals(developer_id=developer))
        feed.publish_change("INSERT", "bookings", {"id": 1, "developer_id": uuid4()})
        feed.publish_change("UPDATE", "bookings", {"id": 2, "developer_id": developer})
        feed.publish_change("INSERT", "developer_profiles", {"id": 3, "developer_id": developer})
        assert feed.publish_change("INSERT", "bookings", {"id": 4, "developer_id": developer}) == 1
        event = await sub.get()
        assert event.new["id"] == 4
        assert sub.queue.empty()

    asyncio.run(scenario())


def test_full_queue_drops_events():
    async def scenario():
        feed = ChangeFeed(queue_size=2)
        sub = feed.subscribe("bookings")
        for i in range(3):
            feed.publish_change("INSERT", "bookings", {"id": i})
        assert sub.dropped == 1
        assert [(await sub.get()).new["id"] for _ in range(2)] == [0, 1]

    asyncio.run(scenario())


def test_close_ends_iteration_and_unsubscribes():
    async def scenario():
        feed = ChangeFeed()
        sub = feed.subscribe("bookings")
        feed.publish_change("INSERT", "bookings", {"id": 1})
        sub.close()
        assert feed.subscriber_count == 0
        assert [event.new["id"] async for event in sub] == [1]
        assert feed.publish_change("INSERT", "bookings", {"id": 2}) == 0

    asyncio.run(scenario())


def test_column_became_requires_change():
    predicate = column_became("status", "cancelled")
    assert predicate({"status": "cancelled"}, {"status": "upcoming"})
    assert not predicate({"status": "cancelled"}, {"status": "cancelled"})
    assert not predicate({"status": "upcoming"}, {"status": "upcoming"})


def test_event_to_dict_is_jsonable():
    booking_id = uuid4()
    event = ChangeEvent("INSERT", "bookings", {"id": booking_id, "amount": Decimal("300.00")})
    assert event.to_dict() == {
        "event": "INSERT",
        "table": "bookings",
        "new": {"id": str(booking_id), "amount": "300.00"},
        "old": None,
    }


def booking_request(developer_id):
    return BookingCreate(
        developer_id=developer_id,
        booking_date=date(2030, 1, 2),
        hour=10,
        period="AM",
        duration=Decimal("1"),
        project_details=ProjectDetails(**PROJECT),
    )


def test_store_writes_reach_watchers(tmp_path):
    async def scenario():
        env = await make_env(tmp_path / "rt.db")
        try:
            new_sub = new_bookings_subscription(env.feed, env.developer_id)
            failure_sub = call_failures_subscription(env.feed, env.developer_id)
            customer_cancel_sub = cancellations_subscription(env.feed, customer_id=env.customer_id)
            other_cancel_sub = cancellations_subscription(env.feed, customer_id=uuid4())

            first = await env.service.create_booking(env.customer_id, booking_request(env.developer_id))
            second = await env.service.create_booking(env.customer_id, booking_request(env.developer_id))
            await env.service.record_call_outcome(first.id, env.developer_id, "failed")
            await env.service.cancel_booking(second.id, env.developer_id)

            new_rows = watch_new_bookings(new_sub)
            assert (await anext(new_rows))["id"] == first.id
            assert (await anext(new_rows))["id"] == second.id

            failures = watch_call_failures(failure_sub, env.store.find)
            failure = await anext(failures)
            assert failure.id == first.id
            assert failure.customer_name == "Casey Customer"
            assert failure.project_title == "API review"
            assert failure_sub.queue.empty()

            cancelled = await customer_cancel_sub.get()
            assert cancelled.new["id"] == second.id
            assert cancelled.old["status"] == "upcoming"
            assert other_cancel_sub.queue.empty()
        finally:
            await env.close()

    asyncio.run(scenario())


def test_developer_watcher_refetches_profile(tmp_path):
    async def scenario():
        env = await make_env(tmp_path / "rt.db")
        try:
            sub = developers_subscription(env.feed)
            await env.profiles.add_skill(env.developer_id, "Python", 5)
            await env.profiles.update_developer(env.developer_id, bio="Backend engineer")

            updates = watch_developers(sub, env.profiles.find_developer)
            first = await anext(updates)
            assert first.type == "UPDATE"
            assert [s.name for s in first.profile.skills] == ["Python"]
            second = await anext(updates)
            assert second.profile.bio == "Backend engineer"
        finally:
            await env.close()

    asyncio.run(scenario())
