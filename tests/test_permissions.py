"""Tests for the role and capability mapping."""

import pytest

from hikmah_library.errors import AuthorizationError
from hikmah_library.permissions import (
    Capability,
    Role,
    has_capability,
    is_staff,
    require_capability,
)


@pytest.mark.parametrize(
    ("role", "granted"),
    [
        (Role.USER, set()),
        (
            Role.LIBRARIAN,
            {Capability.MANAGE_BORROWINGS, Capability.MANAGE_CATALOG, Capability.MANAGE_USERS},
        ),
        (Role.ADMIN, set(Capability)),
    ],
)
def test_role_capabilities(role, granted):
    assert {c for c in Capability if has_capability(role, c)} == granted


def test_role_strings_are_accepted():
    assert has_capability("librarian", Capability.MANAGE_CATALOG)
    assert not has_capability("user", Capability.MANAGE_CATALOG)


def test_unknown_role_grants_nothing():
    assert not any(has_capability("superuser", c) for c in Capability)
    assert not is_staff("superuser")


def test_staff():
    assert is_staff(Role.ADMIN)
    assert is_staff("librarian")
    assert not is_staff(Role.USER)


def test_require_capability():
    require_capability(Role.ADMIN, Capability.DELETE_USERS, "delete users")

    with pytest.raises(AuthorizationError, match="Insufficient permissions to delete users"):
        require_capability(Role.LIBRARIAN, Capability.DELETE_USERS, "delete users")
