"""Database models."""

from app.models.booking import Booking
from app.models.profile import CustomerProfile, DeveloperProfile, DeveloperSkill, Skill
from app.models.user import User, UserRoleAssignment

__all__ = [
    # User
    "User",
    "UserRoleAssignment",
    # Profiles
    "DeveloperProfile",
    "CustomerProfile",
    "Skill",
    "DeveloperSkill",
    # Booking
    "Booking",
]
