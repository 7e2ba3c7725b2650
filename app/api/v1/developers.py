"""Developer discovery and profile endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from app.api.deps import get_current_developer, get_profile_service
from app.models.user import User
from app.schemas.profile import DeveloperProfileResponse, DeveloperProfileUpdate, SkillCreate
from app.services.profile_service import ProfileService

router = APIRouter()


@router.get("", response_model=list[DeveloperProfileResponse])
async def list_developers(
    profiles: Annotated[ProfileService, Depends(get_profile_service)],
    include_unavailable: bool = Query(False),
) -> list[DeveloperProfileResponse]:
    """List developers, cheapest hourly rate first."""
    return await profiles.list_developers(available_only=not include_unavailable)


@router.get("/me", response_model=DeveloperProfileResponse)
async def get_my_profile(
    current_user: Annotated[User, Depends(get_current_developer)],
    profiles: Annotated[ProfileService, Depends(get_profile_service)],
) -> DeveloperProfileResponse:
    """Get the caller's developer profile."""
    return await profiles.get_developer(current_user.id)


@router.patch("/me", response_model=DeveloperProfileResponse)
async def update_my_profile(
    update_data: DeveloperProfileUpdate,
    current_user: Annotated[User, Depends(get_current_developer)],
    profiles: Annotated[ProfileService, Depends(get_profile_service)],
) -> DeveloperProfileResponse:
    """Update the caller's developer profile."""
    return await profiles.update_developer(
        current_user.id, **update_data.model_dump(exclude_unset=True)
    )


@router.post("/me/skills", response_model=DeveloperProfileResponse)
async def add_skill(
    skill: SkillCreate,
    current_user: Annotated[User, Depends(get_current_developer)],
    profiles: Annotated[ProfileService, Depends(get_profile_service)],
) -> DeveloperProfileResponse:
    """Add a skill, or update its years of experience."""
    return await profiles.add_skill(current_user.id, skill.name, skill.years_of_experience)


@router.delete("/me/skills/{name}", response_model=DeveloperProfileResponse)
async def remove_skill(
    name: str,
    current_user: Annotated[User, Depends(get_current_developer)],
    profiles: Annotated[ProfileService, Depends(get_profile_service)],
) -> DeveloperProfileResponse:
    return await profiles.remove_skill(current_user.id, name)


@router.get("/{developer_id}", response_model=DeveloperProfileResponse)
async def get_developer(
    developer_id: UUID,
    profiles: Annotated[ProfileService, Depends(get_profile_service)],
) -> DeveloperProfileResponse:
    """Get one developer's public profile."""
    return await profiles.get_developer(developer_id)
