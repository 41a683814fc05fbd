"""
Catalog tools.

``search_books`` is open to everyone and matches English and Arabic text
alike. The editing tools need a librarian or an admin.
"""

import logging
from typing import Any

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from ..database import PaginationParams
from ..errors import LibraryError
from ..library import get_library
from ..models.book import BookCreate, BookUpdate, CategoryCreate
from .responses import invalid_input, library_failure, success, unexpected_failure

logger = logging.getLogger(__name__)


class SearchBooksInput(BaseModel):
    """Input schema for the search_books tool."""

    query: str | None = Field(
        default=None,
        description="Text to find in titles, authors or descriptions (English or Arabic)",
        max_length=200,
        examples=["bukhari", "الفقه"],
    )
    category: str | None = Field(
        default=None,
        description="Category name in English or Arabic",
        examples=["Hadith", "الحديث"],
    )
    available_only: bool = Field(default=False, description="Only books on the shelf")
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=20, ge=1, le=100)


class AddBookInput(BookCreate):
    actor_id: int = Field(..., description="ID of the staff member adding the book", ge=1)


class UpdateBookInput(BookUpdate):
    actor_id: int = Field(..., description="ID of the staff member editing the book", ge=1)
    book_id: int = Field(..., ge=1)


class DeleteBookInput(BaseModel):
    actor_id: int = Field(..., ge=1)
    book_id: int = Field(..., ge=1)


class AddCategoryInput(CategoryCreate):
    actor_id: int = Field(..., ge=1)


async def search_books_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    try:
        params = SearchBooksInput.model_validate(arguments)
    except PydanticValidationError as e:
        return invalid_input("search_books", e)

    try:
        result = get_library().catalog.list_books(
            search=params.query,
            category=params.category,
            available_only=params.available_only,
            pagination=PaginationParams(page=params.page, page_size=params.page_size),
        )
    except LibraryError as e:
        return library_failure("search_books", e)
    except Exception as e:
        return unexpected_failure("search_books", e)

    if result.items:
        lines = [
            f"- [{book.id}] {book.title} / {book.title_ar} by {book.author} "
            f"({'available' if book.available else 'on loan'})"
            for book in result.items
        ]
        message = f"Found {result.total} books (page {result.page}):\n" + "\n".join(lines)
    else:
        message = "No books matched the search."

    return success(
        message,
        books=[book.model_dump(mode="json") for book in result.items],
        pagination={
            "page": result.page,
            "page_size": result.page_size,
            "total": result.total,
            "total_pages": result.total_pages,
            "has_next": result.has_next,
            "has_previous": result.has_previous,
        },
    )


async def add_book_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    try:
        params = AddBookInput.model_validate(arguments)
    except PydanticValidationError as e:
        return invalid_input("add_book", e)

    try:
        library = get_library()
        actor = library.accounts.resolve_actor(params.actor_id)
        data = BookCreate.model_validate(params.model_dump(exclude={"actor_id"}))
        book = library.catalog.create_book(actor, data)
    except LibraryError as e:
        return library_failure("add_book", e)
    except Exception as e:
        return unexpected_failure("add_book", e)

    return success(
        f"Added '{book.title}' ({book.inventory_id}).",
        book=book.model_dump(mode="json"),
        status=201,
    )


async def update_book_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    try:
        params = UpdateBookInput.model_validate(arguments)
    except PydanticValidationError as e:
        return invalid_input("update_book", e)

    try:
        library = get_library()
        actor = library.accounts.resolve_actor(params.actor_id)
        changes = params.model_dump(exclude_unset=True, exclude={"actor_id", "book_id"})
        book = library.catalog.update_book(actor, params.book_id, BookUpdate(**changes))
    except LibraryError as e:
        return library_failure("update_book", e)
    except Exception as e:
        return unexpected_failure("update_book", e)

    return success(f"Updated '{book.title}'.", book=book.model_dump(mode="json"))


async def delete_book_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    try:
        params = DeleteBookInput.model_validate(arguments)
    except PydanticValidationError as e:
        return invalid_input("delete_book", e)

    try:
        library = get_library()
        actor = library.accounts.resolve_actor(params.actor_id)
        library.catalog.delete_book(actor, params.book_id)
    except LibraryError as e:
        return library_failure("delete_book", e)
    except Exception as e:
        return unexpected_failure("delete_book", e)

    return success(f"Deleted book {params.book_id}.", book_id=params.book_id)


async def add_category_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    try:
        params = AddCategoryInput.model_validate(arguments)
    except PydanticValidationError as e:
        return invalid_input("add_category", e)

    try:
        library = get_library()
        actor = library.accounts.resolve_actor(params.actor_id)
        data = CategoryCreate.model_validate(params.model_dump(exclude={"actor_id"}))
        category = library.catalog.create_category(actor, data)
    except LibraryError as e:
        return library_failure("add_category", e)
    except Exception as e:
        return unexpected_failure("add_category", e)

    return success(
        f"Added category '{category.name}' / '{category.name_ar}'.",
        category=category.model_dump(mode="json"),
        status=201,
    )


search_books = {
    "name": "search_books",
    "description": (
        "Search the catalog. Matches English and Arabic titles, authors and descriptions, "
        "and filters by category (either language) and availability."
    ),
    "inputSchema": SearchBooksInput.model_json_schema(),
    "handler": search_books_handler,
}

add_book = {
    "name": "add_book",
    "description": "Add a bilingual book to the catalog (librarians and admins).",
    "inputSchema": AddBookInput.model_json_schema(),
    "handler": add_book_handler,
}

update_book = {
    "name": "update_book",
    "description": (
        "Edit a book's details (librarians and admins). Availability follows borrowings "
        "and cannot be set against them."
    ),
    "inputSchema": UpdateBookInput.model_json_schema(),
    "handler": update_book_handler,
}

delete_book = {
    "name": "delete_book",
    "description": "Delete a book that has never been borrowed (librarians and admins).",
    "inputSchema": DeleteBookInput.model_json_schema(),
    "handler": delete_book_handler,
}

add_category = {
    "name": "add_category",
    "description": "Add a catalog category with English and Arabic names (librarians and admins).",
    "inputSchema": AddCategoryInput.model_json_schema(),
    "handler": add_category_handler,
}
