"""
In-process store.

Implements the same repository API as the SQL layer over plain dictionaries.
Used by the test suite and for ephemeral runs (``database_url = "memory://"``).

A ``MemoryUnitOfWork`` holds the store's re-entrant lock for its whole
lifetime and snapshots the tables on enter, so a failed operation rolls back
to exactly the state it started from. The SQL constraints are emulated:
unique keys, the one-open-borrowing-per-book rule and foreign keys all raise
``ConflictError`` like their SQL counterparts.
"""

import logging
import threading
from datetime import datetime
from typing import Any, ClassVar, Generic, TypeVar

from pydantic import BaseModel

from ..errors import ConflictError, ValidationError
from ..models.activity import ActivityType, AiQuery, UserActivity
from ..models.book import Book, BookCreate, BookUpdate, Category, CategoryCreate
from ..models.bookmark import Bookmark
from ..models.circulation import OPEN_STATUSES, Borrowing, BorrowingStatus
from ..models.user import User, UserCreate
from ..permissions import Role
from .book_repository import BookSearchParams
from .borrowing_repository import BorrowingUpdate
from .repository import PaginatedResponse, PaginationParams

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

TABLES = ("users", "books", "categories", "borrowings", "bookmarks", "ai_queries", "user_activity")

# child table -> {column: parent table}
FOREIGN_KEYS: dict[str, dict[str, str]] = {
    "borrowings": {"user_id": "users", "book_id": "books"},
    "bookmarks": {"user_id": "users", "book_id": "books"},
    "ai_queries": {"user_id": "users"},
    "user_activity": {"user_id": "users", "book_id": "books", "ai_query_id": "ai_queries"},
}


class MemoryStore:
    """Tables and id counters shared by every unit of work opened on it."""

    def __init__(self):
        self.lock = threading.RLock()
        self.tables: dict[str, dict[int, Any]] = {name: {} for name in TABLES}
        self._next_ids: dict[str, int] = dict.fromkeys(TABLES, 1)

    def next_id(self, table: str) -> int:
        value = self._next_ids[table]
        self._next_ids[table] = value + 1
        return value

    def snapshot(self) -> tuple[dict, dict]:
        # Rows are replaced on update, never mutated, so shallow copies suffice.
        return {name: dict(rows) for name, rows in self.tables.items()}, dict(self._next_ids)

    def restore(self, snapshot: tuple[dict, dict]) -> None:
        tables, next_ids = snapshot
        self.tables = {name: dict(rows) for name, rows in tables.items()}
        self._next_ids = dict(next_ids)


class _MemoryRepository(Generic[M]):
    table: ClassVar[str]
    model: ClassVar[type[BaseModel]]
    unique_keys: ClassVar[tuple[tuple[str, ...], ...]] = ()

    def __init__(self, store: MemoryStore):
        self.store = store

    @property
    def _rows(self) -> dict[int, M]:
        return self.store.tables[self.table]

    def _check_constraints(self, item: M) -> None:
        for column, parent in FOREIGN_KEYS.get(self.table, {}).items():
            value = getattr(item, column)
            if value is not None and value not in self.store.tables[parent]:
                raise ConflictError(
                    f"Cannot write {self.table}: {column}={value} does not exist"
                )

        for key in self.unique_keys:
            values = tuple(getattr(item, column) for column in key)
            for other in self._rows.values():
                if other.id != item.id and tuple(getattr(other, c) for c in key) == values:
                    raise ConflictError(
                        f"Cannot write {self.table}: conflicting record exists"
                    )

    def _insert(self, **values) -> M:
        item = self.model(id=self.store.next_id(self.table), **values)
        self._check_constraints(item)
        self._rows[item.id] = item
        return item

    def _replace(self, item: M) -> M:
        self._check_constraints(item)
        self._rows[item.id] = item
        return item

    def _delete_where(self, **conditions) -> int:
        doomed = [
            row.id
            for row in self._rows.values()
            if all(getattr(row, column) == value for column, value in conditions.items())
        ]
        for row_id in doomed:
            self._check_not_referenced(row_id)
            del self._rows[row_id]
        return len(doomed)

    def _check_not_referenced(self, row_id: int) -> None:
        for child, columns in FOREIGN_KEYS.items():
            for column, parent in columns.items():
                if parent != self.table:
                    continue
                if any(getattr(row, column) == row_id for row in self.store.tables[child].values()):
                    raise ConflictError(
                        f"{self.model.__name__} {row_id} is still referenced by other records"
                    )

    def get_by_id(self, id: int) -> M | None:
        return self._rows.get(id)

    def list_all(
        self,
        pagination: PaginationParams | None = None,
        order_by: str | None = None,
        order_desc: bool = False,
    ) -> list[M] | PaginatedResponse[M]:
        if order_by and order_by in self.model.model_fields:
            items = sorted(
                self._rows.values(),
                key=lambda row: (getattr(row, order_by) is None, getattr(row, order_by), row.id),
                reverse=order_desc,
            )
        else:
            items = sorted(self._rows.values(), key=lambda row: row.id)
        items = [self._present(item) for item in items]

        if pagination is None:
            return items
        pagination.validate_params()
        page = items[pagination.offset : pagination.offset + pagination.page_size]
        return PaginatedResponse[self.model].build(page, len(items), pagination)

    def delete(self, id: int) -> bool:
        if id not in self._rows:
            return False
        self._check_not_referenced(id)
        del self._rows[id]
        return True

    def _present(self, item: M) -> M:
        return item


class MemoryUserRepository(_MemoryRepository[User]):
    table = "users"
    model = User
    unique_keys = (("username",),)

    def get_by_username(self, username: str) -> User | None:
        return next((u for u in self._rows.values() if u.username == username), None)

    def create(self, data: UserCreate) -> User:
        return self._insert(**data.model_dump(), created_at=datetime.now())

    def update_role(self, user_id: int, role: Role) -> User | None:
        user = self._rows.get(user_id)
        if user is None:
            return None
        return self._replace(user.model_copy(update={"role": role}))


class MemoryBookRepository(_MemoryRepository[Book]):
    table = "books"
    model = Book
    unique_keys = (("inventory_id",),)

    TEXT_FIELDS = ("title", "title_ar", "author", "author_ar", "description", "description_ar")

    def _matches(self, book: Book, params: BookSearchParams) -> bool:
        if params.query and params.query.strip():
            needle = params.query.strip().casefold()
            if not any(
                needle in (getattr(book, field) or "").casefold() for field in self.TEXT_FIELDS
            ):
                return False
        if params.category and params.category not in (book.category, book.category_ar):
            return False
        return not (params.available_only and not book.available)

    def search(
        self, params: BookSearchParams, pagination: PaginationParams | None = None
    ) -> PaginatedResponse[Book]:
        pagination = pagination or PaginationParams()
        pagination.validate_params()
        matches = sorted(
            (book for book in self._rows.values() if self._matches(book, params)),
            key=lambda book: (book.title, book.id),
        )
        page = matches[pagination.offset : pagination.offset + pagination.page_size]
        return PaginatedResponse[Book].build(page, len(matches), pagination)

    def get_by_inventory_id(self, inventory_id: str) -> Book | None:
        wanted = inventory_id.strip().upper()
        return next((b for b in self._rows.values() if b.inventory_id == wanted), None)

    def create(self, data: BookCreate) -> Book:
        return self._insert(**data.model_dump(), available=True, created_at=datetime.now())

    def update(self, book_id: int, data: BookUpdate) -> Book | None:
        book = self._rows.get(book_id)
        if book is None:
            return None
        return self._replace(book.model_copy(update=data.model_dump(exclude_unset=True)))

    def claim(self, book_id: int) -> bool:
        with self.store.lock:
            book = self._rows.get(book_id)
            if book is None or not book.available:
                return False
            self._rows[book_id] = book.model_copy(update={"available": False})
            return True

    def release(self, book_id: int) -> bool:
        with self.store.lock:
            book = self._rows.get(book_id)
            if book is None:
                return False
            self._rows[book_id] = book.model_copy(update={"available": True})
            return True


class MemoryCategoryRepository(_MemoryRepository[Category]):
    table = "categories"
    model = Category
    unique_keys = (("name",), ("name_ar",))

    def _present(self, item: Category) -> Category:
        count = sum(
            1
            for b in self.store.tables["books"].values()
            if b.category == item.name or b.category_ar == item.name_ar
        )
        return item.model_copy(update={"book_count": count})

    def get_by_id(self, id: int) -> Category | None:
        item = self._rows.get(id)
        return self._present(item) if item else None

    def get_by_name(self, name: str) -> Category | None:
        item = next(
            (c for c in self._rows.values() if name in (c.name, c.name_ar)),
            None,
        )
        return self._present(item) if item else None

    def create(self, data: CategoryCreate) -> Category:
        return self._present(self._insert(**data.model_dump(), book_count=0))


class MemoryBorrowingRepository(_MemoryRepository[Borrowing]):
    table = "borrowings"
    model = Borrowing

    def _check_constraints(self, item: Borrowing) -> None:
        super()._check_constraints(item)
        if item.status in OPEN_STATUSES and any(
            other.id != item.id and other.book_id == item.book_id and other.is_open
            for other in self._rows.values()
        ):
            raise ConflictError(f"Book {item.book_id} already has an open borrowing")

    def _list(self, predicate) -> list[Borrowing]:
        return sorted(
            (b for b in self._rows.values() if predicate(b)),
            key=lambda b: (b.borrow_date, b.id),
            reverse=True,
        )

    def create(
        self, user_id: int, book_id: int, borrow_date: datetime, due_date: datetime
    ) -> Borrowing:
        return self._insert(
            user_id=user_id,
            book_id=book_id,
            borrow_date=borrow_date,
            due_date=due_date,
            status=BorrowingStatus.ACTIVE,
            renewal_count=0,
        )

    def update(self, borrowing_id: int, data: BorrowingUpdate) -> Borrowing | None:
        borrowing = self._rows.get(borrowing_id)
        if borrowing is None:
            return None
        changes = data.model_dump(exclude_unset=True)
        try:
            updated = Borrowing.model_validate({**borrowing.model_dump(), **changes})
        except ValueError as e:
            raise ValidationError(f"Invalid borrowing update: {e}") from e
        return self._replace(updated)

    def list_for_user(self, user_id: int) -> list[Borrowing]:
        return self._list(lambda b: b.user_id == user_id)

    def list_open(self) -> list[Borrowing]:
        return self._list(lambda b: b.is_open)

    def list_overdue(self, now: datetime) -> list[Borrowing]:
        return self._list(lambda b: b.status == BorrowingStatus.OVERDUE or b.is_overdue_at(now))

    def get_open_for_book(self, book_id: int) -> Borrowing | None:
        found = self._list(lambda b: b.book_id == book_id and b.is_open)
        return found[0] if found else None

    def count_for_book(self, book_id: int) -> int:
        return sum(1 for b in self._rows.values() if b.book_id == book_id)

    def count_open_for_user(self, user_id: int) -> int:
        return sum(1 for b in self._rows.values() if b.user_id == user_id and b.is_open)


class MemoryBookmarkRepository(_MemoryRepository[Bookmark]):
    table = "bookmarks"
    model = Bookmark
    unique_keys = (("user_id", "book_id"),)

    def get_for(self, user_id: int, book_id: int) -> Bookmark | None:
        return next(
            (b for b in self._rows.values() if b.user_id == user_id and b.book_id == book_id),
            None,
        )

    def create(self, user_id: int, book_id: int) -> Bookmark:
        return self._insert(user_id=user_id, book_id=book_id, created_at=datetime.now())

    def list_for_user(self, user_id: int) -> list[Bookmark]:
        return sorted(
            (b for b in self._rows.values() if b.user_id == user_id),
            key=lambda b: (b.created_at, b.id),
            reverse=True,
        )

    def delete_for_book(self, book_id: int) -> int:
        return self._delete_where(book_id=book_id)

    def delete_for_user(self, user_id: int) -> int:
        return self._delete_where(user_id=user_id)


class MemoryActivityRepository(_MemoryRepository[UserActivity]):
    table = "user_activity"
    model = UserActivity

    def create(
        self,
        user_id: int,
        activity_type: ActivityType,
        book_id: int | None = None,
        ai_query_id: int | None = None,
    ) -> UserActivity:
        return self._insert(
            user_id=user_id,
            activity_type=activity_type,
            book_id=book_id,
            ai_query_id=ai_query_id,
            created_at=datetime.now(),
        )

    def list_for_user(self, user_id: int, limit: int | None = None) -> list[UserActivity]:
        items = sorted(
            (a for a in self._rows.values() if a.user_id == user_id),
            key=lambda a: a.id,
            reverse=True,
        )
        return items[:limit] if limit is not None else items

    def delete_for_user(self, user_id: int) -> int:
        return self._delete_where(user_id=user_id)

    def delete_for_book(self, book_id: int) -> int:
        return self._delete_where(book_id=book_id)


class MemoryAiQueryRepository(_MemoryRepository[AiQuery]):
    table = "ai_queries"
    model = AiQuery

    def create(self, user_id: int | None, query: str, response: str) -> AiQuery:
        return self._insert(
            user_id=user_id, query=query, response=response, created_at=datetime.now()
        )

    def list_for_user(self, user_id: int) -> list[AiQuery]:
        return sorted(
            (q for q in self._rows.values() if q.user_id == user_id),
            key=lambda q: q.id,
            reverse=True,
        )

    def delete_for_user(self, user_id: int) -> int:
        return self._delete_where(user_id=user_id)


class MemoryUnitOfWork:
    """Unit of work over a ``MemoryStore``; see the module docstring."""

    def __init__(self, store: MemoryStore):
        self.store = store
        self._snapshot: tuple[dict, dict] | None = None

    def __enter__(self) -> "MemoryUnitOfWork":
        self.store.lock.acquire()
        self._snapshot = self.store.snapshot()
        self.users = MemoryUserRepository(self.store)
        self.books = MemoryBookRepository(self.store)
        self.categories = MemoryCategoryRepository(self.store)
        self.borrowings = MemoryBorrowingRepository(self.store)
        self.bookmarks = MemoryBookmarkRepository(self.store)
        self.activities = MemoryActivityRepository(self.store)
        self.ai_queries = MemoryAiQueryRepository(self.store)
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        try:
            if exc_type is None:
                self.commit()
            else:
                logger.debug("Rolling back unit of work after %s", exc_type.__name__)
                self.rollback()
        finally:
            self._snapshot = None
            self.store.lock.release()

    def commit(self) -> None:
        self._snapshot = self.store.snapshot()

    def rollback(self) -> None:
        if self._snapshot is not None:
            self.store.restore(self._snapshot)
