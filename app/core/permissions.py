"""Role model and access checks.

Roles are carried as an explicit ``RoleSet`` value rather than a list of
role rows, so checks are done against a closed set of roles.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from uuid import UUID

from app.core.exceptions import AuthorizationError


class UserRole(str, Enum):
    """User roles in the system."""

    DEVELOPER = "developer"
    CUSTOMER = "customer"


class BookingParty(str, Enum):
    """Which side of a booking an actor is on."""

    CUSTOMER = "customer"
    DEVELOPER = "developer"


@dataclass(frozen=True)
class RoleSet:
    """Roles held by an authenticated user."""

    roles: frozenset[UserRole]
    primary: UserRole | None = None

    @classmethod
    def from_assignments(cls, assignments: Iterable[tuple[str, bool]]) -> "RoleSet":
        """Build from ``(role, is_primary)`` pairs as stored."""
        roles: set[UserRole] = set()
        primary = None
        for role_name, is_primary in assignments:
            role = UserRole(role_name)
            roles.add(role)
            if is_primary:
                primary = role
        return cls(roles=frozenset(roles), primary=primary)

    def __contains__(self, role: object) -> bool:
        return role in self.roles

    def __bool__(self) -> bool:
        return bool(self.roles)

    def as_list(self) -> list[str]:
        return sorted(role.value for role in self.roles)


def can_act_as(roles: RoleSet, role: UserRole) -> bool:
    """Whether ``roles`` grants acting in ``role``."""
    match role:
        case UserRole.DEVELOPER:
            return UserRole.DEVELOPER in roles
        case UserRole.CUSTOMER:
            # Developers may also book other developers once they hold
            # the customer role; there is no implicit grant.
            return UserRole.CUSTOMER in roles


def require_role(roles: RoleSet, role: UserRole) -> None:
    """Raise ``AuthorizationError`` unless ``roles`` grants ``role``."""
    if not can_act_as(roles, role):
        raise AuthorizationError(f"{role.value.capitalize()} access required")


def booking_party(user_id: UUID, customer_id: UUID, developer_id: UUID) -> BookingParty:
    """Identify which party ``user_id`` is on a booking.

    Raises:
        AuthorizationError: If the user is neither party.
    """
    if user_id == customer_id:
        return BookingParty.CUSTOMER
    if user_id == developer_id:
        return BookingParty.DEVELOPER
    raise AuthorizationError("You don't have permission to access this booking")
