"""Catalog service: books and categories."""

import logging

from ..database import BookSearchParams, PaginatedResponse, PaginationParams, UnitOfWorkFactory
from ..errors import ConflictError, NotFoundError
from ..models.book import Book, BookCreate, BookUpdate, Category, CategoryCreate
from ..models.user import User
from ..permissions import Capability, require_capability
from .locks import BookLockRegistry

logger = logging.getLogger(__name__)


class CatalogService:
    """
    Read access for everyone; writes need ``MANAGE_CATALOG``.

    ``available`` belongs to the borrowing lifecycle: new books start
    available, and an edit may only restate the value the open borrowings
    already imply.
    """

    def __init__(self, uow_factory: UnitOfWorkFactory, locks: BookLockRegistry | None = None):
        self._uow_factory = uow_factory
        self._locks = locks or BookLockRegistry()

    def list_books(
        self,
        search: str | None = None,
        category: str | None = None,
        available_only: bool = False,
        pagination: PaginationParams | None = None,
    ) -> PaginatedResponse[Book]:
        params = BookSearchParams(query=search, category=category, available_only=available_only)
        with self._uow_factory() as uow:
            return uow.books.search(params, pagination)

    def get_book(self, book_id: int) -> Book:
        with self._uow_factory() as uow:
            book = uow.books.get_by_id(book_id)
        if book is None:
            raise NotFoundError(f"Book {book_id} not found")
        return book

    def create_book(self, actor: User, data: BookCreate) -> Book:
        """
        Raises:
            AuthorizationError: If the actor may not manage the catalog
            ConflictError: If the inventory ID is taken
        """
        require_capability(actor.role, Capability.MANAGE_CATALOG, "add books")
        with self._uow_factory() as uow:
            book = uow.books.create(data)
        logger.info("Book %s (%s) added by user %s", book.id, book.inventory_id, actor.id)
        return book

    def update_book(self, actor: User, book_id: int, data: BookUpdate) -> Book:
        require_capability(actor.role, Capability.MANAGE_CATALOG, "edit books")
        with self._locks.hold(book_id), self._uow_factory() as uow:
            if "available" in data.model_fields_set:
                on_loan = uow.borrowings.get_open_for_book(book_id) is not None
                if data.available == on_loan:
                    state = "on loan" if on_loan else "on the shelf"
                    raise ConflictError(
                        f"Cannot set available={data.available} while the book is {state}"
                    )
            book = uow.books.update(book_id, data)
            if book is None:
                raise NotFoundError(f"Book {book_id} not found")
        logger.info("Book %s updated by user %s", book_id, actor.id)
        return book

    def delete_book(self, actor: User, book_id: int) -> None:
        """
        Remove a book that has never been lent out.

        Its bookmarks and related activity entries go with it.

        Raises:
            ConflictError: If the book is on loan or has borrowing history
        """
        require_capability(actor.role, Capability.MANAGE_CATALOG, "delete books")
        with self._locks.hold(book_id), self._uow_factory() as uow:
            if uow.books.get_by_id(book_id) is None:
                raise NotFoundError(f"Book {book_id} not found")
            if uow.borrowings.get_open_for_book(book_id) is not None:
                raise ConflictError("Cannot delete a book that is currently borrowed")
            if uow.borrowings.count_for_book(book_id):
                raise ConflictError("Cannot delete a book with borrowing history")
            uow.bookmarks.delete_for_book(book_id)
            uow.activities.delete_for_book(book_id)
            uow.books.delete(book_id)
        logger.info("Book %s deleted by user %s", book_id, actor.id)

    def list_categories(self) -> list[Category]:
        """All categories with their current book counts."""
        with self._uow_factory() as uow:
            return uow.categories.list_all()

    def create_category(self, actor: User, data: CategoryCreate) -> Category:
        require_capability(actor.role, Capability.MANAGE_CATALOG, "add categories")
        with self._uow_factory() as uow:
            category = uow.categories.create(data)
        logger.info("Category %r added by user %s", category.name, actor.id)
        return category
