"""
Book repository.

Besides CRUD this holds the two writes the borrowing lifecycle relies on:

- ``claim``: flips ``available`` from true to false in a single conditional
  UPDATE and reports whether this caller won
- ``release``: sets ``available`` back to true
"""

from pydantic import BaseModel
from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.exc import IntegrityError

from ..errors import ConflictError
from ..models.book import Book as BookModel
from ..models.book import BookCreate, BookUpdate
from .repository import BaseRepository, PaginatedResponse, PaginationParams, like_pattern
from .schema import Book as BookDB
from .session import safe_flush, safe_query


class BookSearchParams(BaseModel):
    """
    Catalog filters.

    ``query`` is a case-insensitive substring matched against the English and
    Arabic title, author and description (any field may match).
    ``category`` matches either the English or the Arabic category name.
    """

    query: str | None = None
    category: str | None = None
    available_only: bool = False


class BookRepository(BaseRepository[BookDB, BookModel]):
    """Data access for the catalog."""

    @property
    def model_class(self):
        return BookDB

    @property
    def response_schema(self):
        return BookModel

    def _filters(self, params: BookSearchParams) -> list:
        filters = []

        if params.query and params.query.strip():
            pattern = like_pattern(params.query.strip())
            filters.append(
                or_(
                    BookDB.title.ilike(pattern, escape="\\"),
                    BookDB.title_ar.ilike(pattern, escape="\\"),
                    BookDB.author.ilike(pattern, escape="\\"),
                    BookDB.author_ar.ilike(pattern, escape="\\"),
                    BookDB.description.ilike(pattern, escape="\\"),
                    BookDB.description_ar.ilike(pattern, escape="\\"),
                )
            )

        if params.category:
            filters.append(
                or_(BookDB.category == params.category, BookDB.category_ar == params.category)
            )

        if params.available_only:
            filters.append(BookDB.available.is_(True))

        return filters

    def search(
        self,
        params: BookSearchParams,
        pagination: PaginationParams | None = None,
    ) -> PaginatedResponse[BookModel]:
        """
        Search the catalog, ordered by title.

        Args:
            params: Search and filter criteria
            pagination: Page to return (first 20 results by default)
        """
        pagination = pagination or PaginationParams()
        pagination.validate_params()

        filters = self._filters(params)
        query = select(BookDB)
        count_query = select(func.count()).select_from(BookDB)
        if filters:
            query = query.where(and_(*filters))
            count_query = count_query.where(and_(*filters))

        total = (
            safe_query(
                self.session, lambda s: s.execute(count_query).scalar(), "Failed to count books"
            )
            or 0
        )

        query = (
            query.order_by(BookDB.title.asc(), BookDB.id.asc())
            .offset(pagination.offset)
            .limit(pagination.page_size)
            .execution_options(populate_existing=True)
        )
        results = safe_query(
            self.session, lambda s: s.execute(query).scalars().all(), "Failed to search books"
        )

        items = [self._to_response_model(book) for book in results]
        return PaginatedResponse[BookModel].build(items, total, pagination)

    def get_by_inventory_id(self, inventory_id: str) -> BookModel | None:
        query = (
            select(BookDB)
            .where(BookDB.inventory_id == inventory_id.strip().upper())
            .execution_options(populate_existing=True)
        )
        row = safe_query(
            self.session,
            lambda s: s.execute(query).scalar_one_or_none(),
            "Failed to get book by inventory ID",
        )
        return self._to_response_model(row) if row else None

    def create(self, data: BookCreate) -> BookModel:
        """
        Raises:
            ConflictError: If the inventory ID is already used
        """
        return self._add(BookDB(**data.model_dump(), available=True), "create book")

    def update(self, book_id: int, data: BookUpdate) -> BookModel | None:
        row = self._get_row(book_id, for_update=True)
        if row is None:
            return None

        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(row, field, value)

        try:
            safe_flush(self.session, "update book")
        except IntegrityError as e:
            if "inventory_id" in str(e.orig):
                raise ConflictError("Cannot update book: inventory ID already in use") from e
            raise ConflictError(f"Cannot update book {book_id}: {e.orig}") from e
        return self._to_response_model(row)

    def claim(self, book_id: int) -> bool:
        """
        Mark an available book as borrowed.

        The check and the write are one statement, so of two concurrent
        callers at most one sees a changed row.

        Returns:
            True if this call flipped the book from available to unavailable
        """
        stmt = (
            update(BookDB)
            .where(and_(BookDB.id == book_id, BookDB.available.is_(True)))
            .values(available=False)
            .execution_options(synchronize_session=False)
        )
        result = safe_query(self.session, lambda s: s.execute(stmt), "Failed to claim book")
        return result.rowcount == 1

    def release(self, book_id: int) -> bool:
        """Mark a book available again. Returns False if the book does not exist."""
        stmt = (
            update(BookDB)
            .where(BookDB.id == book_id)
            .values(available=True)
            .execution_options(synchronize_session=False)
        )
        result = safe_query(self.session, lambda s: s.execute(stmt), "Failed to release book")
        return result.rowcount == 1
