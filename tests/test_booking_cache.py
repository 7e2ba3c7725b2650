import asyncio
from datetime import date
from decimal import Decimal

from app.schemas.booking import BookingCreate, ProjectDetails
from app.services.booking_cache import BookingCache
from app.services.realtime import ChangeEvent

from conftest import PROJECT, make_env


def booking_request(developer_id):
    return BookingCreate(
        developer_id=developer_id,
        booking_date=date(2030, 1, 2),
        hour=9,
        period="AM",
        duration=Decimal("1"),
        project_details=ProjectDetails(**PROJECT),
    )


def test_reads_through_on_miss(tmp_path):
    async def scenario():
        env = await make_env(tmp_path / "cache.db")
        try:
            created = await env.service.create_booking(env.customer_id, booking_request(env.developer_id))
            cache = BookingCache(env.store)
            assert created.id not in cache
            fetched = await cache.get(created.id)
            assert fetched.id == created.id
            assert created.id in cache
        finally:
            await env.close()

    asyncio.run(scenario())


def test_feed_event_overrides_optimistic_value(tmp_path):
    async def scenario():
        env = await make_env(tmp_path / "cache.db")
        try:
            created = await env.service.create_booking(env.customer_id, booking_request(env.developer_id))
            cache = BookingCache(env.store)
            await cache.get(created.id)

            cache.apply_local(created.id, status="cancelled", payment_status="cancelled")
            assert cache.is_optimistic(created.id)
            assert cache.peek(created.id).status == "cancelled"

            # A racing peer's committed change arrives from the server
            server_row = dict(created.model_dump(), status="upcoming", call_status="failed")
            assert cache.reconcile(ChangeEvent("UPDATE", "bookings", server_row))
            current = cache.peek(created.id)
            assert current.status == "upcoming"
            assert current.call_status == "failed"
            assert current.customer_name == "Casey Customer"
            assert not cache.is_optimistic(created.id)
        finally:
            await env.close()

    asyncio.run(scenario())


def test_refresh_overrides_optimistic_value(tmp_path):
    async def scenario():
        env = await make_env(tmp_path / "cache.db")
        try:
            created = await env.service.create_booking(env.customer_id, booking_request(env.developer_id))
            cache = BookingCache(env.store)
            await cache.get(created.id)
            cache.apply_local(created.id, status="cancelled")
            refreshed = await cache.refresh(created.id)
            assert refreshed.status == "upcoming"
            assert cache.peek(created.id).status == "upcoming"
        finally:
            await env.close()

    asyncio.run(scenario())


def test_events_for_uncached_bookings_are_ignored(tmp_path):
    async def scenario():
        env = await make_env(tmp_path / "cache.db")
        try:
            cache = BookingCache(env.store)
            created = await env.service.create_booking(env.customer_id, booking_request(env.developer_id))
            assert not cache.reconcile(ChangeEvent("UPDATE", "bookings", {"id": created.id, "status": "cancelled"}))
            assert not cache.reconcile(ChangeEvent("UPDATE", "developer_profiles", {"id": env.developer_id}))
            assert len(cache) == 0
            assert cache.apply_local(created.id, status="cancelled") is None
        finally:
            await env.close()

    asyncio.run(scenario())


def test_follows_feed_in_background(tmp_path):
    async def scenario():
        env = await make_env(tmp_path / "cache.db")
        try:
            created = await env.service.create_booking(env.customer_id, booking_request(env.developer_id))
            cache = BookingCache(env.store)
            await cache.get(created.id)
            cache.start(env.feed)

            # Write behind the cache's back; only the feed tells it
            await env.store.update(created.id, call_status="failed")
            for _ in range(50):
                if cache.peek(created.id).call_status == "failed":
                    break
                await asyncio.sleep(0.01)
            assert cache.peek(created.id).call_status == "failed"
            await cache.stop()
        finally:
            await env.close()

    asyncio.run(scenario())


def test_least_recently_used_entry_is_evicted(tmp_path):
    async def scenario():
        env = await make_env(tmp_path / "cache.db")
        try:
            first = await env.service.create_booking(env.customer_id, booking_request(env.developer_id))
            second = await env.service.create_booking(env.customer_id, booking_request(env.developer_id))
            third = await env.service.create_booking(env.customer_id, booking_request(env.developer_id))

            cache = BookingCache(env.store, max_entries=2)
            await cache.get(first.id)
            await cache.get(second.id)
            await cache.get(first.id)
            cache.apply_local(second.id, status="cancelled")
            await cache.get(third.id)

            assert len(cache) == 2
            assert first.id in cache
            assert third.id in cache
            assert second.id not in cache
            assert not cache.is_optimistic(second.id)
        finally:
            await env.close()

    asyncio.run(scenario())
