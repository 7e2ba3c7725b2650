"""API dependencies for authentication and common operations."""

from collections.abc import AsyncGenerator
from typing import Annotated
from uuid import UUID

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Settings
from app.core.exceptions import AuthenticationError
from app.core.permissions import UserRole, require_role
from app.core.security import verify_token
from app.database import Database
from app.models.user import User
from app.services.booking_service import BookingService
from app.services.profile_service import ProfileService
from app.services.realtime import ChangeFeed

# Security scheme
security = HTTPBearer(auto_error=False)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_database(request: Request) -> Database:
    return request.app.state.database


async def get_db(
    database: Annotated[Database, Depends(get_database)],
) -> AsyncGenerator[AsyncSession, None]:
    """One session per request, committed when the handler returns."""
    async with database.session() as session:
        yield session


def get_booking_service(request: Request) -> BookingService:
    return request.app.state.booking_service


def get_profile_service(request: Request) -> ProfileService:
    return request.app.state.profile_service


def get_change_feed(request: Request) -> ChangeFeed:
    return request.app.state.change_feed


async def authenticate_token(token: str, db: AsyncSession, settings: Settings) -> User:
    """Resolve a bearer token to an active user."""
    payload = verify_token(token, token_type="access", settings=settings)
    user_id = payload.get("sub")
    if not user_id:
        raise AuthenticationError("Invalid token payload")
    try:
        user_uuid = UUID(user_id)
    except ValueError:
        raise AuthenticationError("Invalid token payload")

    result = await db.execute(select(User).where(User.id == user_uuid))
    user = result.scalar_one_or_none()

    if not user:
        raise AuthenticationError("User not found")
    if not user.is_active:
        raise AuthenticationError("User account is deactivated")
    return user


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    db: Annotated[AsyncSession, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> User:
    """Get the current authenticated user from JWT token."""
    if credentials is None:
        raise AuthenticationError("Not authenticated")
    return await authenticate_token(credentials.credentials, db, settings)


async def get_current_developer(
    current_user: Annotated[User, Depends(get_current_user)],
) -> User:
    """Get current user and verify they hold the developer role."""
    require_role(current_user.roles, UserRole.DEVELOPER)
    return current_user


async def get_current_customer(
    current_user: Annotated[User, Depends(get_current_user)],
) -> User:
    """Get current user and verify they hold the customer role."""
    require_role(current_user.roles, UserRole.CUSTOMER)
    return current_user

