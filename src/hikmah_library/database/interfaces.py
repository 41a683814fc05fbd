"""
Storage-agnostic interfaces.

Services depend on these protocols only. Two implementations exist: the
SQLAlchemy repositories behind ``SqlUnitOfWork`` and the dictionary-backed
``MemoryUnitOfWork``.
"""

from datetime import datetime
from typing import Protocol, Self

from ..models.activity import ActivityType, AiQuery, UserActivity
from ..models.book import Book, BookCreate, BookUpdate, Category, CategoryCreate
from ..models.bookmark import Bookmark
from ..models.circulation import Borrowing
from ..models.user import User, UserCreate
from ..permissions import Role
from .book_repository import BookSearchParams
from .borrowing_repository import BorrowingUpdate
from .repository import PaginatedResponse, PaginationParams


class UserStore(Protocol):
    def get_by_id(self, id: int) -> User | None: ...
    def get_by_username(self, username: str) -> User | None: ...
    def list_all(
        self, pagination: PaginationParams | None = None
    ) -> list[User] | PaginatedResponse[User]: ...
    def create(self, data: UserCreate) -> User: ...
    def update_role(self, user_id: int, role: Role) -> User | None: ...
    def delete(self, id: int) -> bool: ...


class BookStore(Protocol):
    def get_by_id(self, id: int) -> Book | None: ...
    def get_by_inventory_id(self, inventory_id: str) -> Book | None: ...
    def list_all(
        self, pagination: PaginationParams | None = None
    ) -> list[Book] | PaginatedResponse[Book]: ...
    def search(
        self, params: BookSearchParams, pagination: PaginationParams | None = None
    ) -> PaginatedResponse[Book]: ...
    def create(self, data: BookCreate) -> Book: ...
    def update(self, book_id: int, data: BookUpdate) -> Book | None: ...
    def claim(self, book_id: int) -> bool: ...
    def release(self, book_id: int) -> bool: ...
    def delete(self, id: int) -> bool: ...


class CategoryStore(Protocol):
    def get_by_id(self, id: int) -> Category | None: ...
    def get_by_name(self, name: str) -> Category | None: ...
    def list_all(
        self, pagination: PaginationParams | None = None
    ) -> list[Category] | PaginatedResponse[Category]: ...
    def create(self, data: CategoryCreate) -> Category: ...
    def delete(self, id: int) -> bool: ...


class BorrowingStore(Protocol):
    def get_by_id(self, id: int) -> Borrowing | None: ...
    def create(
        self, user_id: int, book_id: int, borrow_date: datetime, due_date: datetime
    ) -> Borrowing: ...
    def update(self, borrowing_id: int, data: BorrowingUpdate) -> Borrowing | None: ...
    def list_for_user(self, user_id: int) -> list[Borrowing]: ...
    def list_open(self) -> list[Borrowing]: ...
    def list_overdue(self, now: datetime) -> list[Borrowing]: ...
    def get_open_for_book(self, book_id: int) -> Borrowing | None: ...
    def count_for_book(self, book_id: int) -> int: ...
    def count_open_for_user(self, user_id: int) -> int: ...


class BookmarkStore(Protocol):
    def get_by_id(self, id: int) -> Bookmark | None: ...
    def get_for(self, user_id: int, book_id: int) -> Bookmark | None: ...
    def create(self, user_id: int, book_id: int) -> Bookmark: ...
    def delete(self, id: int) -> bool: ...
    def list_for_user(self, user_id: int) -> list[Bookmark]: ...
    def delete_for_book(self, book_id: int) -> int: ...
    def delete_for_user(self, user_id: int) -> int: ...


class ActivityStore(Protocol):
    def create(
        self,
        user_id: int,
        activity_type: ActivityType,
        book_id: int | None = None,
        ai_query_id: int | None = None,
    ) -> UserActivity: ...
    def list_for_user(self, user_id: int, limit: int | None = None) -> list[UserActivity]: ...
    def delete_for_user(self, user_id: int) -> int: ...
    def delete_for_book(self, book_id: int) -> int: ...


class AiQueryStore(Protocol):
    def get_by_id(self, id: int) -> AiQuery | None: ...
    def create(self, user_id: int | None, query: str, response: str) -> AiQuery: ...
    def list_for_user(self, user_id: int) -> list[AiQuery]: ...
    def delete_for_user(self, user_id: int) -> int: ...


class UnitOfWork(Protocol):
    """
    One atomic change against the store.

    Used as a context manager: leaving the block normally commits, leaving it
    with an exception rolls back and re-raises.
    """

    users: UserStore
    books: BookStore
    categories: CategoryStore
    borrowings: BorrowingStore
    bookmarks: BookmarkStore
    activities: ActivityStore
    ai_queries: AiQueryStore

    def __enter__(self) -> Self: ...
    def __exit__(self, exc_type, exc, tb) -> None: ...
    def commit(self) -> None: ...
    def rollback(self) -> None: ...
