"""Authentication endpoints."""

import logging
from datetime import UTC, datetime
from typing import Annotated

from fastapi import APIRouter, Depends, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user, get_db, get_settings
from app.config import Settings
from app.core.exceptions import AuthenticationError, ConflictError
from app.core.permissions import UserRole
from app.core.security import create_tokens, get_password_hash, verify_password
from app.models.profile import CustomerProfile, DeveloperProfile
from app.models.user import User, UserRoleAssignment
from app.schemas.user import TokenResponse, UserCreate, UserLogin, UserResponse

logger = logging.getLogger(__name__)

router = APIRouter()


def to_user_response(user: User) -> UserResponse:
    roles = user.roles
    return UserResponse(
        id=user.id,
        email=user.email,
        roles=roles.as_list(),
        primary_role=roles.primary.value if roles.primary else None,
        is_active=user.is_active,
        created_at=user.created_at,
    )


@router.post("/signup", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def signup(
    user_data: UserCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> TokenResponse:
    """Create an account with its first role and an empty profile."""
    email = user_data.email.lower()
    result = await db.execute(select(User).where(User.email == email))
    if result.scalar_one_or_none():
        raise ConflictError("An account with this email already exists. Please log in instead.")

    user = User(email=email, password_hash=get_password_hash(user_data.password))
    user.role_assignments = [UserRoleAssignment(role=user_data.role, is_primary=True)]
    db.add(user)
    await db.flush()

    if user_data.role == UserRole.DEVELOPER.value:
        db.add(DeveloperProfile(id=user.id, full_name=user_data.full_name))
    else:
        db.add(CustomerProfile(id=user.id, full_name=user_data.full_name))
    await db.flush()

    logger.info(f"New {user_data.role} account {user.id}")
    tokens = create_tokens(str(user.id), user.email, settings=settings)
    return TokenResponse(**tokens, roles=user.roles.as_list())


@router.post("/login", response_model=TokenResponse)
async def login(
    credentials: UserLogin,
    db: Annotated[AsyncSession, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> TokenResponse:
    """Login with email and password."""
    result = await db.execute(select(User).where(User.email == credentials.email.lower()))
    user = result.scalar_one_or_none()

    if not user or not verify_password(credentials.password, user.password_hash):
        raise AuthenticationError(
            "Invalid email or password. Please check your credentials and try again."
        )
    if not user.is_active:
        raise AuthenticationError("Account is deactivated")
    if not user.roles:
        raise AuthenticationError(
            "Account exists but no roles found. Please sign up as a developer or customer first."
        )

    user.last_login_at = datetime.now(UTC)

    tokens = create_tokens(str(user.id), user.email, settings=settings)
    return TokenResponse(**tokens, roles=user.roles.as_list())


@router.get("/me", response_model=UserResponse)
async def me(
    current_user: Annotated[User, Depends(get_current_user)],
) -> UserResponse:
    """Get the authenticated user and its roles."""
    return to_user_response(current_user)


@router.post("/roles/customer", response_model=UserResponse)
async def add_customer_role(
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> UserResponse:
    """Grant the customer role so a developer can book other developers."""
    if UserRole.CUSTOMER not in current_user.roles:
        current_user.role_assignments.append(
            UserRoleAssignment(role=UserRole.CUSTOMER.value, is_primary=False)
        )
    if await db.get(CustomerProfile, current_user.id) is None:
        db.add(CustomerProfile(id=current_user.id))
    await db.flush()
    await db.refresh(current_user)
    return to_user_response(current_user)
