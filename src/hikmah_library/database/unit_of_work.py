"""SQLAlchemy unit of work: one session, one transaction, all repositories."""

import logging
from collections.abc import Callable

from sqlalchemy.orm import Session

from .activity_repository import ActivityRepository, AiQueryRepository
from .book_repository import BookRepository
from .bookmark_repository import BookmarkRepository
from .borrowing_repository import BorrowingRepository
from .category_repository import CategoryRepository
from .session import safe_commit
from .user_repository import UserRepository

logger = logging.getLogger(__name__)


class SqlUnitOfWork:
    """
    Opens a session on enter and wires every repository to it.

    Example:
        with SqlUnitOfWork(manager.session_factory) as uow:
            if uow.books.claim(book_id):
                uow.borrowings.create(...)
    """

    def __init__(self, session_factory: Callable[[], Session]):
        self._session_factory = session_factory
        self.session: Session | None = None

    def __enter__(self) -> "SqlUnitOfWork":
        self.session = self._session_factory()
        self.users = UserRepository(self.session)
        self.books = BookRepository(self.session)
        self.categories = CategoryRepository(self.session)
        self.borrowings = BorrowingRepository(self.session)
        self.bookmarks = BookmarkRepository(self.session)
        self.activities = ActivityRepository(self.session)
        self.ai_queries = AiQueryRepository(self.session)
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        try:
            if exc_type is None:
                self.commit()
            else:
                logger.debug("Rolling back unit of work after %s", exc_type.__name__)
                self.rollback()
        finally:
            self.session.close()
            self.session = None

    def commit(self) -> None:
        safe_commit(self.session, "commit unit of work")

    def rollback(self) -> None:
        self.session.rollback()
