"""Bookmark repository."""

from sqlalchemy import delete, select

from ..models.bookmark import Bookmark as BookmarkModel
from .repository import BaseRepository
from .schema import Bookmark as BookmarkDB
from .session import safe_query


class BookmarkRepository(BaseRepository[BookmarkDB, BookmarkModel]):
    @property
    def model_class(self):
        return BookmarkDB

    @property
    def response_schema(self):
        return BookmarkModel

    def get_for(self, user_id: int, book_id: int) -> BookmarkModel | None:
        query = select(BookmarkDB).where(
            BookmarkDB.user_id == user_id, BookmarkDB.book_id == book_id
        )
        row = safe_query(
            self.session,
            lambda s: s.execute(query).scalar_one_or_none(),
            "Failed to get bookmark",
        )
        return self._to_response_model(row) if row else None

    def create(self, user_id: int, book_id: int) -> BookmarkModel:
        """
        Raises:
            ConflictError: If the user already bookmarked the book
        """
        return self._add(BookmarkDB(user_id=user_id, book_id=book_id), "create bookmark")

    def list_for_user(self, user_id: int) -> list[BookmarkModel]:
        query = (
            select(BookmarkDB)
            .where(BookmarkDB.user_id == user_id)
            .order_by(BookmarkDB.created_at.desc(), BookmarkDB.id.desc())
        )
        rows = safe_query(
            self.session, lambda s: s.execute(query).scalars().all(), "Failed to list bookmarks"
        )
        return [self._to_response_model(row) for row in rows]

    def delete_for_book(self, book_id: int) -> int:
        """Remove every bookmark of a book (before the book itself is deleted)."""
        stmt = (
            delete(BookmarkDB)
            .where(BookmarkDB.book_id == book_id)
            .execution_options(synchronize_session=False)
        )
        result = safe_query(self.session, lambda s: s.execute(stmt), "Failed to delete bookmarks")
        return result.rowcount

    def delete_for_user(self, user_id: int) -> int:
        stmt = (
            delete(BookmarkDB)
            .where(BookmarkDB.user_id == user_id)
            .execution_options(synchronize_session=False)
        )
        result = safe_query(self.session, lambda s: s.execute(stmt), "Failed to delete bookmarks")
        return result.rowcount
