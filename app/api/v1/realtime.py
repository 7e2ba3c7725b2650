"""Realtime channels over WebSocket.

Clients connect to ``/realtime/{channel}?token=<access token>`` and receive
one JSON message per change:

    {"channel": "bookings", "event": "INSERT", "payload": {...}}

Delivery is best effort. A client that reconnects should re-fetch its list.
"""

import asyncio
import logging
from collections.abc import AsyncIterator
from typing import Any

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect

from app.api.deps import authenticate_token
from app.core.exceptions import AppException
from app.core.permissions import UserRole, can_act_as
from app.models.user import User
from app.services.realtime import (
    Subscription,
    call_failures_subscription,
    cancellations_subscription,
    developers_subscription,
    jsonable_row,
    new_bookings_subscription,
    watch_booking_cancellations,
    watch_call_failures,
    watch_developers,
    watch_new_bookings,
)

logger = logging.getLogger(__name__)

router = APIRouter()

WS_4401_UNAUTHORIZED = 4401
WS_4403_FORBIDDEN = 4403
WS_4404_UNKNOWN_CHANNEL = 4404

CHANNELS = ("bookings", "call-failures", "booking-cancellations", "developers")


async def _authenticate(websocket: WebSocket, token: str | None) -> User | None:
    if not token:
        return None
    state = websocket.app.state
    try:
        async with state.database.session() as session:
            return await authenticate_token(token, session, state.settings)
    except AppException as e:
        logger.info(f"Realtime connection rejected: {e}")
        return None


def _open(websocket: WebSocket, channel: str, user: User, role: str | None) -> tuple[Subscription, AsyncIterator[dict[str, Any]]] | None:
    """Subscribe ``user`` to ``channel``; None if the user may not."""
    state = websocket.app.state
    feed = state.change_feed
    roles = user.roles

    match channel:
        case "bookings":
            if not can_act_as(roles, UserRole.DEVELOPER):
                return None
            subscription = new_bookings_subscription(feed, user.id)
            stream = _rows("INSERT", watch_new_bookings(subscription))
        case "call-failures":
            if not can_act_as(roles, UserRole.DEVELOPER):
                return None
            subscription = call_failures_subscription(feed, user.id)
            stream = _models("UPDATE", watch_call_failures(subscription, state.booking_store.find))
        case "booking-cancellations":
            party = UserRole(role) if role in ("customer", "developer") else (roles.primary or UserRole.CUSTOMER)
            if not can_act_as(roles, party):
                return None
            if party == UserRole.DEVELOPER:
                subscription = cancellations_subscription(feed, developer_id=user.id)
            else:
                subscription = cancellations_subscription(feed, customer_id=user.id)
            stream = _rows("UPDATE", watch_booking_cancellations(subscription))
        case "developers":
            subscription = developers_subscription(feed)
            stream = _developer_updates(
                watch_developers(subscription, state.profile_service.find_developer)
            )
        case _:
            return None
    return subscription, stream


async def _rows(event: str, rows: AsyncIterator[dict[str, Any]]) -> AsyncIterator[dict[str, Any]]:
    async for row in rows:
        yield {"event": event, "payload": jsonable_row(row)}


async def _models(event: str, updates: AsyncIterator[Any]) -> AsyncIterator[dict[str, Any]]:
    async for update in updates:
        yield {"event": event, "payload": update.model_dump(mode="json")}


async def _developer_updates(updates: AsyncIterator[Any]) -> AsyncIterator[dict[str, Any]]:
    async for update in updates:
        yield {"event": update.type, "payload": update.model_dump(mode="json")}


async def _close_on_disconnect(websocket: WebSocket, subscription: Subscription) -> None:
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
    finally:
        subscription.close()


@router.websocket("/{channel}")
async def realtime_channel(
    websocket: WebSocket,
    channel: str,
    token: str | None = Query(None),
    role: str | None = Query(None),
) -> None:
    """Stream change events for one channel."""
    user = await _authenticate(websocket, token)
    if user is None:
        await websocket.close(code=WS_4401_UNAUTHORIZED)
        return
    if channel not in CHANNELS:
        await websocket.close(code=WS_4404_UNKNOWN_CHANNEL)
        return

    opened = _open(websocket, channel, user, role)
    if opened is None:
        await websocket.close(code=WS_4403_FORBIDDEN)
        return
    subscription, stream = opened

    # Subscribed before accepting, so nothing committed after the handshake is missed
    await websocket.accept()
    logger.info(f"User {user.id} subscribed to {channel}")
    listener = asyncio.create_task(_close_on_disconnect(websocket, subscription))
    try:
        async for message in stream:
            await websocket.send_json({"channel": channel, **message})
    except WebSocketDisconnect:
        logger.debug(f"User {user.id} left {channel}")
    finally:
        subscription.close()
        listener.cancel()
        try:
            await listener
        except asyncio.CancelledError:
            pass
