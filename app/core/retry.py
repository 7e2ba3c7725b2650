"""Bounded retry with exponential backoff for transient connectivity failures."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

import httpx
from sqlalchemy.exc import DisconnectionError, InterfaceError, OperationalError

from app.core.exceptions import TransientConnectivityError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Errors raised by the database driver or HTTP transport that mean the
# backend could not be reached, as opposed to a business failure.
TRANSIENT_ERRORS: tuple[type[BaseException], ...] = (
    OperationalError,
    InterfaceError,
    DisconnectionError,
    httpx.TransportError,
    ConnectionError,
    TimeoutError,
)


def is_transient(exc: BaseException) -> bool:
    """Return True if ``exc`` signals network or backend unavailability."""
    if isinstance(exc, TransientConnectivityError):
        return True
    if isinstance(exc, OperationalError) and getattr(exc, "connection_invalidated", False):
        return True
    return isinstance(exc, TRANSIENT_ERRORS)


def backoff_delays(attempts: int, initial_delay: float, backoff_factor: float) -> list[float]:
    """Delays slept between ``attempts`` tries (one fewer than attempts)."""
    return [initial_delay * backoff_factor**n for n in range(max(attempts - 1, 0))]


async def retry_async(
    operation: Callable[[], Awaitable[T]],
    attempts: int = 3,
    initial_delay: float = 2.0,
    backoff_factor: float = 1.5,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Run ``operation`` retrying only transient connectivity failures.

    Business errors propagate immediately. After the last attempt the
    failure is surfaced as ``TransientConnectivityError``.
    """
    delays = backoff_delays(attempts, initial_delay, backoff_factor)
    attempt = 0
    while True:
        attempt += 1
        try:
            return await operation()
        except Exception as exc:
            if not is_transient(exc):
                raise
            if attempt > len(delays):
                logger.error(f"Giving up after {attempt} attempts: {exc}")
                if isinstance(exc, TransientConnectivityError):
                    raise
                raise TransientConnectivityError() from exc
            delay = delays[attempt - 1]
            logger.warning(
                f"Transient connectivity failure (attempt {attempt}/{attempts}), "
                f"retrying in {delay:.1f}s: {exc}"
            )
            await sleep(delay)
