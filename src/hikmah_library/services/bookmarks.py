"""Bookmark service."""

import logging

from ..database import UnitOfWorkFactory
from ..errors import AuthorizationError, DuplicateError, NotFoundError
from ..models.activity import ActivityType
from ..models.bookmark import Bookmark
from ..models.user import User
from .activity import ActivityRecorder

logger = logging.getLogger(__name__)


class BookmarkService:
    def __init__(self, uow_factory: UnitOfWorkFactory, recorder: ActivityRecorder | None = None):
        self._uow_factory = uow_factory
        self._recorder = recorder or ActivityRecorder(uow_factory)

    def add(self, user_id: int, book_id: int) -> Bookmark:
        """
        Raises:
            NotFoundError: If the book does not exist
            DuplicateError: If the user already bookmarked it
        """
        with self._uow_factory() as uow:
            if uow.books.get_by_id(book_id) is None:
                raise NotFoundError(f"Book {book_id} not found")
            if uow.bookmarks.get_for(user_id, book_id) is not None:
                raise DuplicateError("Book already bookmarked")
            bookmark = uow.bookmarks.create(user_id, book_id)

        self._recorder.record(user_id, ActivityType.BOOKMARK, book_id=book_id)
        return bookmark

    def remove(self, bookmark_id: int, actor: User) -> None:
        """Only the owner may remove a bookmark."""
        with self._uow_factory() as uow:
            bookmark = uow.bookmarks.get_by_id(bookmark_id)
            if bookmark is None:
                raise NotFoundError(f"Bookmark {bookmark_id} not found")
            if bookmark.user_id != actor.id:
                raise AuthorizationError("Not authorized to remove this bookmark")
            uow.bookmarks.delete(bookmark_id)
        logger.debug("Bookmark %s removed by user %s", bookmark_id, actor.id)

    def list_for_user(self, user_id: int) -> list[Bookmark]:
        with self._uow_factory() as uow:
            return uow.bookmarks.list_for_user(user_id)
