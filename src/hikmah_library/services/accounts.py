"""
Account service.

Passwords are stored as werkzeug hashes and never leave this module: the
``User`` model excludes ``password_hash`` from serialization.
"""

import logging

from werkzeug.security import check_password_hash, generate_password_hash

from ..database import UnitOfWorkFactory
from ..errors import (
    AuthenticationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from ..models.user import User, UserCreate
from ..permissions import Capability, Role, require_capability

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


class AccountService:
    def __init__(self, uow_factory: UnitOfWorkFactory):
        self._uow_factory = uow_factory

    def register(self, username: str, password: str, full_name: str, email: str) -> User:
        """
        Create a regular account.

        Raises:
            ValidationError: If the password is too short or a field is malformed
            ConflictError: If the username is taken
        """
        if len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
            )
        try:
            data = UserCreate(
                username=username,
                password_hash=generate_password_hash(password),
                full_name=full_name,
                email=email,
                role=Role.USER,
            )
        except ValueError as e:
            raise ValidationError(f"Invalid registration data: {e}") from e

        with self._uow_factory() as uow:
            if uow.users.get_by_username(data.username) is not None:
                raise ConflictError("Username already exists")
            user = uow.users.create(data)
        logger.info("Registered user %s (%s)", user.id, user.username)
        return user

    def authenticate(self, username: str, password: str) -> User:
        """Raises AuthenticationError when the credentials do not match."""
        with self._uow_factory() as uow:
            user = uow.users.get_by_username(username)
        if user is None or not check_password_hash(user.password_hash, password):
            logger.info("Failed login for %r", username)
            raise AuthenticationError("Invalid username or password")
        return user

    def get_user(self, user_id: int) -> User:
        with self._uow_factory() as uow:
            user = uow.users.get_by_id(user_id)
        if user is None:
            raise NotFoundError(f"User {user_id} not found")
        return user

    def resolve_actor(self, actor_id: int) -> User:
        """Load the acting user; an unknown id is an authentication failure."""
        with self._uow_factory() as uow:
            user = uow.users.get_by_id(actor_id)
        if user is None:
            raise AuthenticationError(f"Unknown user {actor_id}")
        return user

    def list_users(self, actor: User) -> list[User]:
        require_capability(actor.role, Capability.MANAGE_USERS, "list users")
        with self._uow_factory() as uow:
            return uow.users.list_all()

    def change_role(self, actor: User, user_id: int, role: Role | str) -> User:
        """
        Assign a role to another account.

        Librarians may move accounts between ``user`` and ``librarian``;
        granting or revoking ``admin`` takes an admin.

        Raises:
            AuthorizationError: If the actor may not make this change
            ValidationError: If the role is unknown or the target is the actor
            NotFoundError: If the user does not exist
        """
        require_capability(actor.role, Capability.MANAGE_USERS, "change user roles")
        try:
            role = Role(role)
        except ValueError as e:
            raise ValidationError(
                f"Invalid role {role!r}; expected one of: {', '.join(r.value for r in Role)}"
            ) from e
        if user_id == actor.id:
            raise ValidationError("You cannot change your own role")

        with self._uow_factory() as uow:
            target = uow.users.get_by_id(user_id)
            if target is None:
                raise NotFoundError(f"User {user_id} not found")
            if Role.ADMIN in (role, target.role):
                require_capability(actor.role, Capability.ASSIGN_ADMIN, "assign the admin role")
            updated = uow.users.update_role(user_id, role)

        logger.info(
            "User %s changed role of user %s from %s to %s",
            actor.id,
            user_id,
            target.role.value,
            role.value,
        )
        return updated

    def delete_user(self, actor: User, user_id: int) -> None:
        """
        Delete an account along with its bookmarks, activity and AI history.

        Raises:
            AuthorizationError: Unless the actor is an admin
            ValidationError: If the actor targets their own account
            ConflictError: If the user has open borrowings or loan history
        """
        require_capability(actor.role, Capability.DELETE_USERS, "delete users")
        if user_id == actor.id:
            raise ValidationError("You cannot delete your own account")

        with self._uow_factory() as uow:
            if uow.users.get_by_id(user_id) is None:
                raise NotFoundError(f"User {user_id} not found")
            if uow.borrowings.count_open_for_user(user_id):
                raise ConflictError("Cannot delete a user with open borrowings")
            uow.activities.delete_for_user(user_id)
            uow.ai_queries.delete_for_user(user_id)
            uow.bookmarks.delete_for_user(user_id)
            uow.users.delete(user_id)
        logger.info("User %s deleted by user %s", user_id, actor.id)
