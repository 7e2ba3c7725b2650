"""Realtime update payloads."""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel

from app.schemas.profile import DeveloperProfileResponse


class CallFailureUpdate(BaseModel):
    """A developer's call was marked failed."""

    id: UUID
    customer_name: str | None
    booking_time: datetime
    failure_time: datetime | None
    project_title: str | None


class DeveloperUpdate(BaseModel):
    """A developer profile changed. ``profile`` is None for deletions."""

    id: UUID
    type: Literal["INSERT", "UPDATE", "DELETE"]
    profile: DeveloperProfileResponse | None = None
