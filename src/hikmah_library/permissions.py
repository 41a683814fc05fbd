"""
Roles and capabilities.

Call sites never compare role strings; they ask whether a role grants a
capability. The mapping below is the single place where the permission
model lives.
"""

import enum

from .errors import AuthorizationError


class Role(str, enum.Enum):
    """Account roles."""

    USER = "user"
    LIBRARIAN = "librarian"
    ADMIN = "admin"


class Capability(str, enum.Enum):
    """Actions that need more than an authenticated account."""

    MANAGE_BORROWINGS = "manage_borrowings"  # return/renew any loan, see all open loans
    MANAGE_CATALOG = "manage_catalog"  # create, edit and delete books and categories
    MANAGE_USERS = "manage_users"  # list users, assign the user/librarian roles
    ASSIGN_ADMIN = "assign_admin"  # grant or revoke the admin role
    DELETE_USERS = "delete_users"


ROLE_CAPABILITIES: dict[Role, frozenset[Capability]] = {
    Role.USER: frozenset(),
    Role.LIBRARIAN: frozenset(
        {
            Capability.MANAGE_BORROWINGS,
            Capability.MANAGE_CATALOG,
            Capability.MANAGE_USERS,
        }
    ),
    Role.ADMIN: frozenset(Capability),
}


def has_capability(role: Role | str, capability: Capability) -> bool:
    """Check whether ``role`` grants ``capability``.

    Unknown role strings grant nothing.
    """
    try:
        role = Role(role)
    except ValueError:
        return False
    return capability in ROLE_CAPABILITIES[role]


def require_capability(role: Role | str, capability: Capability, action: str) -> None:
    """Raise AuthorizationError unless ``role`` grants ``capability``."""
    if not has_capability(role, capability):
        raise AuthorizationError(f"Insufficient permissions to {action}")


def is_staff(role: Role | str) -> bool:
    """Staff are the roles that can manage other users' borrowings."""
    return has_capability(role, Capability.MANAGE_BORROWINGS)
