"""Customer profile endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends

from app.api.deps import get_current_customer, get_profile_service
from app.models.user import User
from app.schemas.profile import CustomerProfileResponse, CustomerProfileUpdate
from app.services.profile_service import ProfileService

router = APIRouter()


@router.get("/me", response_model=CustomerProfileResponse)
async def get_my_profile(
    current_user: Annotated[User, Depends(get_current_customer)],
    profiles: Annotated[ProfileService, Depends(get_profile_service)],
) -> CustomerProfileResponse:
    """Get the caller's customer profile, creating it on first read."""
    return await profiles.get_or_create_customer(current_user.id)


@router.patch("/me", response_model=CustomerProfileResponse)
async def update_my_profile(
    update_data: CustomerProfileUpdate,
    current_user: Annotated[User, Depends(get_current_customer)],
    profiles: Annotated[ProfileService, Depends(get_profile_service)],
) -> CustomerProfileResponse:
    return await profiles.update_customer(
        current_user.id, **update_data.model_dump(exclude_unset=True)
    )
