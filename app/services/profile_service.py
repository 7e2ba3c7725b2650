"""Developer and customer profiles."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.exceptions import NotFoundError, ValidationError
from app.core.retry import retry_async
from app.database import Database
from app.models.profile import CustomerProfile, DeveloperProfile, DeveloperSkill, Skill
from app.schemas.profile import (
    CustomerProfileResponse,
    DeveloperProfileResponse,
    SkillResponse,
)
from app.services.realtime import ChangeFeed, row_from_model

logger = logging.getLogger(__name__)

T = TypeVar("T")


def to_developer_response(profile: DeveloperProfile) -> DeveloperProfileResponse:
    """Profile with its skills flattened to name and years."""
    data = {
        column: getattr(profile, column)
        for column in DeveloperProfileResponse.model_fields
        if column != "skills"
    }
    skills = [
        SkillResponse(name=entry.skill.name, years_of_experience=entry.years_of_experience)
        for entry in profile.skills
    ]
    return DeveloperProfileResponse(**data, skills=sorted(skills, key=lambda s: s.name))


class ProfileService:
    """Reads and writes developer and customer profiles."""

    def __init__(
        self,
        database: Database,
        feed: ChangeFeed | None = None,
        retry_attempts: int = 3,
        retry_initial_delay: float = 2.0,
        retry_backoff_factor: float = 1.5,
    ) -> None:
        self.database = database
        self.feed = feed
        self.retry_attempts = retry_attempts
        self.retry_initial_delay = retry_initial_delay
        self.retry_backoff_factor = retry_backoff_factor

    async def _run(self, work: Callable[[AsyncSession], Awaitable[T]]) -> T:
        async def attempt() -> T:
            async with self.database.session() as session:
                return await work(session)

        return await retry_async(
            attempt,
            attempts=self.retry_attempts,
            initial_delay=self.retry_initial_delay,
            backoff_factor=self.retry_backoff_factor,
        )

    def _publish(self, event: str, new: dict[str, Any], old: dict[str, Any] | None = None) -> None:
        if self.feed is not None:
            self.feed.publish_change(event, "developer_profiles", new, old)

    # ==================== DEVELOPERS ====================

    @staticmethod
    async def _load_developer(session: AsyncSession, developer_id: UUID, reload: bool = False) -> DeveloperProfile:
        query = (
            select(DeveloperProfile)
            .where(DeveloperProfile.id == developer_id)
            .options(selectinload(DeveloperProfile.skills).joinedload(DeveloperSkill.skill))
        )
        if reload:
            query = query.execution_options(populate_existing=True)
        result = await session.execute(query)
        profile = result.scalar_one_or_none()
        if profile is None:
            raise NotFoundError("Developer", str(developer_id))
        return profile

    async def get_developer(self, developer_id: UUID) -> DeveloperProfileResponse:
        async def work(session: AsyncSession) -> DeveloperProfileResponse:
            return to_developer_response(await self._load_developer(session, developer_id))

        return await self._run(work)

    async def find_developer(self, developer_id: UUID) -> DeveloperProfileResponse | None:
        try:
            return await self.get_developer(developer_id)
        except NotFoundError:
            return None

    async def list_developers(self, available_only: bool = True) -> list[DeveloperProfileResponse]:
        """Developers ordered by hourly rate, cheapest first."""

        async def work(session: AsyncSession) -> list[DeveloperProfileResponse]:
            query = select(DeveloperProfile).options(
                selectinload(DeveloperProfile.skills).joinedload(DeveloperSkill.skill)
            )
            if available_only:
                query = query.where(DeveloperProfile.is_available.is_(True))
            query = query.order_by(DeveloperProfile.hourly_rate.asc().nulls_last())
            result = await session.execute(query)
            return [to_developer_response(p) for p in result.scalars().all()]

        return await self._run(work)

    async def update_developer(self, developer_id: UUID, **changes: Any) -> DeveloperProfileResponse:
        async def work(session: AsyncSession) -> tuple[DeveloperProfileResponse, dict, dict]:
            profile = await self._load_developer(session, developer_id)
            old = row_from_model(profile)
            for column, value in changes.items():
                setattr(profile, column, value)
            await session.flush()
            profile = await self._load_developer(session, developer_id, reload=True)
            return to_developer_response(profile), row_from_model(profile), old

        response, new, old = await self._run(work)
        logger.info(f"Developer profile {developer_id} updated: {sorted(changes)}")
        self._publish("UPDATE", new, old)
        return response

    async def add_skill(self, developer_id: UUID, name: str, years_of_experience: int = 0) -> DeveloperProfileResponse:
        """Attach a skill, creating it on first use. Re-adding updates the years."""
        name = name.strip()
        if not name:
            raise ValidationError("Skill name is required")

        async def work(session: AsyncSession) -> tuple[DeveloperProfileResponse, dict]:
            profile = await self._load_developer(session, developer_id)
            result = await session.execute(select(Skill).where(func.lower(Skill.name) == name.lower()))
            skill = result.scalar_one_or_none()
            if skill is None:
                skill = Skill(name=name)
                session.add(skill)
                await session.flush()

            existing = next((s for s in profile.skills if s.skill_id == skill.id), None)
            if existing is None:
                profile.skills.append(
                    DeveloperSkill(skill_id=skill.id, skill=skill, years_of_experience=years_of_experience)
                )
            else:
                existing.years_of_experience = years_of_experience
            await session.flush()
            profile = await self._load_developer(session, developer_id, reload=True)
            return to_developer_response(profile), row_from_model(profile)

        response, row = await self._run(work)
        self._publish("UPDATE", row, row)
        return response

    async def remove_skill(self, developer_id: UUID, name: str) -> DeveloperProfileResponse:
        async def work(session: AsyncSession) -> tuple[DeveloperProfileResponse, dict]:
            profile = await self._load_developer(session, developer_id)
            entry = next((s for s in profile.skills if s.skill.name.lower() == name.strip().lower()), None)
            if entry is None:
                raise NotFoundError("Skill", name)
            profile.skills.remove(entry)
            await session.flush()
            profile = await self._load_developer(session, developer_id, reload=True)
            return to_developer_response(profile), row_from_model(profile)

        response, row = await self._run(work)
        self._publish("UPDATE", row, row)
        return response

    # ==================== CUSTOMERS ====================

    async def get_or_create_customer(self, customer_id: UUID) -> CustomerProfileResponse:
        """Customer profile, created empty on first read."""

        async def work(session: AsyncSession) -> CustomerProfileResponse:
            profile = await session.get(CustomerProfile, customer_id)
            if profile is None:
                profile = CustomerProfile(id=customer_id)
                session.add(profile)
                await session.flush()
                await session.refresh(profile)
                logger.info(f"Customer profile created for {customer_id}")
            return CustomerProfileResponse.model_validate(profile)

        return await self._run(work)

    async def update_customer(self, customer_id: UUID, **changes: Any) -> CustomerProfileResponse:
        """Upsert the customer profile."""

        async def work(session: AsyncSession) -> CustomerProfileResponse:
            profile = await session.get(CustomerProfile, customer_id)
            if profile is None:
                profile = CustomerProfile(id=customer_id)
                session.add(profile)
            for column, value in changes.items():
                setattr(profile, column, value)
            await session.flush()
            await session.refresh(profile)
            return CustomerProfileResponse.model_validate(profile)

        return await self._run(work)
