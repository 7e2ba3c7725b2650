from uuid import uuid4

import pytest

from app.core.exceptions import AuthorizationError
from app.core.permissions import (
    BookingParty,
    RoleSet,
    UserRole,
    booking_party,
    can_act_as,
    require_role,
)


def test_roleset_from_assignments():
    roles = RoleSet.from_assignments([("developer", True), ("customer", False)])
    assert UserRole.DEVELOPER in roles
    assert UserRole.CUSTOMER in roles
    assert roles.primary == UserRole.DEVELOPER
    assert roles.as_list() == ["customer", "developer"]


def test_empty_roleset_is_falsy():
    assert not RoleSet.from_assignments([])


def test_developer_is_not_implicitly_customer():
    roles = RoleSet.from_assignments([("developer", True)])
    assert can_act_as(roles, UserRole.DEVELOPER)
    assert not can_act_as(roles, UserRole.CUSTOMER)
    with pytest.raises(AuthorizationError) as exc_info:
        require_role(roles, UserRole.CUSTOMER)
    assert exc_info.value.detail == "Customer access required"


def test_unknown_role_rejected():
    with pytest.raises(ValueError):
        RoleSet.from_assignments([("admin", True)])


def test_booking_party():
    customer, developer = uuid4(), uuid4()
    assert booking_party(customer, customer, developer) == BookingParty.CUSTOMER
    assert booking_party(developer, customer, developer) == BookingParty.DEVELOPER
    with pytest.raises(AuthorizationError):
        booking_party(uuid4(), customer, developer)
