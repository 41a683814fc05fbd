"""Book resources: read-only catalog access.

Resources:
- library://books/list - First page of the catalog, ordered by title
- library://books/{book_id} - One book with its availability
"""

import logging
from typing import Any

from fastmcp.exceptions import ResourceError

from ..database import PaginationParams
from ..errors import LibraryError, NotFoundError
from ..library import get_library

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 50


async def list_books_handler() -> dict[str, Any]:
    """Returns the catalog's first page with pagination metadata."""
    try:
        result = get_library().catalog.list_books(
            pagination=PaginationParams(page=1, page_size=DEFAULT_PAGE_SIZE)
        )
    except LibraryError as e:
        logger.exception("Error in books/list resource")
        raise ResourceError(f"Failed to retrieve book list: {e.message}") from e

    return {
        "books": [book.model_dump(mode="json") for book in result.items],
        "total": result.total,
        "page": result.page,
        "page_size": result.page_size,
        "total_pages": result.total_pages,
        "has_next": result.has_next,
        "has_previous": result.has_previous,
    }


async def get_book_handler(book_id: str) -> dict[str, Any]:
    """Returns one book by its numeric ID."""
    logger.debug("MCP Resource Request - books/%s", book_id)
    try:
        book = get_library().catalog.get_book(int(book_id))
    except ValueError as e:
        raise ResourceError(f"Invalid book ID: {book_id}") from e
    except NotFoundError as e:
        raise ResourceError(f"Book not found: {book_id}") from e
    except LibraryError as e:
        logger.exception("Error in books/{book_id} resource")
        raise ResourceError(f"Failed to retrieve book details: {e.message}") from e

    return book.model_dump(mode="json")


book_resources: list[dict[str, Any]] = [
    {
        "uri": "library://books/list",
        "name": "Book Catalog",
        "description": (
            "Browse the bilingual catalog: titles, authors and categories in English "
            "and Arabic, with availability."
        ),
        "mime_type": "application/json",
        "handler": list_books_handler,
    },
    {
        "uri_template": "library://books/{book_id}",
        "name": "Book Details",
        "description": "Get detailed information about a specific book by ID",
        "mime_type": "application/json",
        "handler": get_book_handler,
    },
]
