"""
Account tools: registration, login, user administration and the activity feed.

Role changes follow the capability model: librarians move accounts between
``user`` and ``librarian``, only admins touch the ``admin`` role, and nobody
changes their own role.
"""

from typing import Any

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from ..errors import LibraryError
from ..library import get_library
from ..models.user import User
from .circulation import ActorInput
from .responses import invalid_input, library_failure, success, unexpected_failure


def user_data(user: User) -> dict[str, Any]:
    # password_hash is excluded by the model.
    return user.model_dump(mode="json")


class RegisterUserInput(BaseModel):
    username: str = Field(..., min_length=3, max_length=50)
    password: str = Field(..., min_length=1, max_length=200)
    full_name: str = Field(..., min_length=1, max_length=200)
    email: str = Field(..., max_length=255)


class LoginInput(BaseModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class SetUserRoleInput(BaseModel):
    actor_id: int = Field(..., ge=1)
    user_id: int = Field(..., description="Account whose role changes", ge=1)
    role: str = Field(..., description="One of: user, librarian, admin")


class DeleteUserInput(BaseModel):
    actor_id: int = Field(..., ge=1)
    user_id: int = Field(..., ge=1)


async def register_user_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    try:
        params = RegisterUserInput.model_validate(arguments)
    except PydanticValidationError as e:
        return invalid_input("register_user", e)

    try:
        user = get_library().accounts.register(
            params.username, params.password, params.full_name, params.email
        )
    except LibraryError as e:
        return library_failure("register_user", e)
    except Exception as e:
        return unexpected_failure("register_user", e)

    return success(f"Registered {user.username}.", user=user_data(user), status=201)


async def login_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    try:
        params = LoginInput.model_validate(arguments)
    except PydanticValidationError as e:
        return invalid_input("login", e)

    try:
        user = get_library().accounts.authenticate(params.username, params.password)
    except LibraryError as e:
        return library_failure("login", e)
    except Exception as e:
        return unexpected_failure("login", e)

    return success(f"Signed in as {user.username} ({user.role.value}).", user=user_data(user))


async def list_users_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    try:
        params = ActorInput.model_validate(arguments)
    except PydanticValidationError as e:
        return invalid_input("list_users", e)

    try:
        library = get_library()
        actor = library.accounts.resolve_actor(params.actor_id)
        users = library.accounts.list_users(actor)
    except LibraryError as e:
        return library_failure("list_users", e)
    except Exception as e:
        return unexpected_failure("list_users", e)

    return success(f"Found {len(users)} users.", users=[user_data(u) for u in users])


async def set_user_role_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    try:
        params = SetUserRoleInput.model_validate(arguments)
    except PydanticValidationError as e:
        return invalid_input("set_user_role", e)

    try:
        library = get_library()
        actor = library.accounts.resolve_actor(params.actor_id)
        user = library.accounts.change_role(actor, params.user_id, params.role)
    except LibraryError as e:
        return library_failure("set_user_role", e)
    except Exception as e:
        return unexpected_failure("set_user_role", e)

    return success(f"{user.username} is now {user.role.value}.", user=user_data(user))


async def delete_user_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    try:
        params = DeleteUserInput.model_validate(arguments)
    except PydanticValidationError as e:
        return invalid_input("delete_user", e)

    try:
        library = get_library()
        actor = library.accounts.resolve_actor(params.actor_id)
        library.accounts.delete_user(actor, params.user_id)
    except LibraryError as e:
        return library_failure("delete_user", e)
    except Exception as e:
        return unexpected_failure("delete_user", e)

    return success(f"Deleted user {params.user_id}.", user_id=params.user_id)


async def user_activity_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """The acting user's dashboard feed, newest first."""
    try:
        params = ActorInput.model_validate(arguments)
    except PydanticValidationError as e:
        return invalid_input("user_activity", e)

    try:
        library = get_library()
        actor = library.accounts.resolve_actor(params.actor_id)
        activities = library.activity.list_for_user(actor.id)
    except LibraryError as e:
        return library_failure("user_activity", e)
    except Exception as e:
        return unexpected_failure("user_activity", e)

    return success(
        f"Found {len(activities)} recent activities.",
        activities=[a.model_dump(mode="json") for a in activities],
    )


register_user = {
    "name": "register_user",
    "description": "Create a regular library account. Passwords need at least 6 characters.",
    "inputSchema": RegisterUserInput.model_json_schema(),
    "handler": register_user_handler,
}

login = {
    "name": "login",
    "description": "Check a username and password and return the account.",
    "inputSchema": LoginInput.model_json_schema(),
    "handler": login_handler,
}

list_users = {
    "name": "list_users",
    "description": "List all accounts (librarians and admins). Passwords are never included.",
    "inputSchema": ActorInput.model_json_schema(),
    "handler": list_users_handler,
}

set_user_role = {
    "name": "set_user_role",
    "description": (
        "Change another account's role to user, librarian or admin. Librarians may "
        "assign user and librarian; only admins grant or revoke admin."
    ),
    "inputSchema": SetUserRoleInput.model_json_schema(),
    "handler": set_user_role_handler,
}

delete_user = {
    "name": "delete_user",
    "description": "Delete an account without open borrowings (admins only).",
    "inputSchema": DeleteUserInput.model_json_schema(),
    "handler": delete_user_handler,
}

user_activity = {
    "name": "user_activity",
    "description": (
        "Recent borrow, return, renew, bookmark and assistant activity of the acting user."
    ),
    "inputSchema": ActorInput.model_json_schema(),
    "handler": user_activity_handler,
}
