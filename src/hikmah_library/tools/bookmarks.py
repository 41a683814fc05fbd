"""Bookmark tools."""

from typing import Any

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from ..errors import LibraryError
from ..library import get_library
from .circulation import ActorInput
from .responses import invalid_input, library_failure, success, unexpected_failure


class AddBookmarkInput(BaseModel):
    actor_id: int = Field(..., ge=1)
    book_id: int = Field(..., description="Book to save", ge=1)


class RemoveBookmarkInput(BaseModel):
    actor_id: int = Field(..., ge=1)
    bookmark_id: int = Field(..., ge=1)


async def add_bookmark_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    try:
        params = AddBookmarkInput.model_validate(arguments)
    except PydanticValidationError as e:
        return invalid_input("add_bookmark", e)

    try:
        library = get_library()
        actor = library.accounts.resolve_actor(params.actor_id)
        bookmark = library.bookmarks.add(actor.id, params.book_id)
    except LibraryError as e:
        return library_failure("add_bookmark", e)
    except Exception as e:
        return unexpected_failure("add_bookmark", e)

    return success(
        f"Bookmarked book {bookmark.book_id}.",
        bookmark=bookmark.model_dump(mode="json"),
        status=201,
    )


async def remove_bookmark_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    try:
        params = RemoveBookmarkInput.model_validate(arguments)
    except PydanticValidationError as e:
        return invalid_input("remove_bookmark", e)

    try:
        library = get_library()
        actor = library.accounts.resolve_actor(params.actor_id)
        library.bookmarks.remove(params.bookmark_id, actor)
    except LibraryError as e:
        return library_failure("remove_bookmark", e)
    except Exception as e:
        return unexpected_failure("remove_bookmark", e)

    return success(f"Removed bookmark {params.bookmark_id}.", bookmark_id=params.bookmark_id)


async def list_bookmarks_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    try:
        params = ActorInput.model_validate(arguments)
    except PydanticValidationError as e:
        return invalid_input("list_bookmarks", e)

    try:
        library = get_library()
        actor = library.accounts.resolve_actor(params.actor_id)
        bookmarks = library.bookmarks.list_for_user(actor.id)
    except LibraryError as e:
        return library_failure("list_bookmarks", e)
    except Exception as e:
        return unexpected_failure("list_bookmarks", e)

    return success(
        f"Found {len(bookmarks)} bookmarks.",
        bookmarks=[b.model_dump(mode="json") for b in bookmarks],
    )


add_bookmark = {
    "name": "add_bookmark",
    "description": "Save a book to the acting user's bookmarks. Each book can be saved once.",
    "inputSchema": AddBookmarkInput.model_json_schema(),
    "handler": add_bookmark_handler,
}

remove_bookmark = {
    "name": "remove_bookmark",
    "description": "Remove one of the acting user's bookmarks.",
    "inputSchema": RemoveBookmarkInput.model_json_schema(),
    "handler": remove_bookmark_handler,
}

list_bookmarks = {
    "name": "list_bookmarks",
    "description": "List the acting user's bookmarks, newest first.",
    "inputSchema": ActorInput.model_json_schema(),
    "handler": list_bookmarks_handler,
}
