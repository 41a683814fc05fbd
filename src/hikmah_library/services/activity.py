"""
Activity recorder.

Appends entries to a user's audit trail after the operation that caused them
has committed. Recording is best effort: a failure is logged and swallowed
here so the triggering operation still succeeds.
"""

import logging

from ..database import UnitOfWorkFactory
from ..errors import LibraryError
from ..models.activity import ActivityType, UserActivity

logger = logging.getLogger(__name__)

DASHBOARD_FEED_LIMIT = 50


class ActivityRecorder:
    def __init__(self, uow_factory: UnitOfWorkFactory):
        self._uow_factory = uow_factory

    def record(
        self,
        user_id: int,
        activity_type: ActivityType,
        book_id: int | None = None,
        ai_query_id: int | None = None,
    ) -> UserActivity | None:
        """
        Append one activity in its own unit of work.

        Returns:
            The stored entry, or None if it could not be written
        """
        try:
            with self._uow_factory() as uow:
                return uow.activities.create(
                    user_id=user_id,
                    activity_type=activity_type,
                    book_id=book_id,
                    ai_query_id=ai_query_id,
                )
        except LibraryError:
            logger.warning(
                "Failed to record %s activity for user %s",
                activity_type.value,
                user_id,
                exc_info=True,
            )
            return None

    def list_for_user(
        self, user_id: int, limit: int | None = DASHBOARD_FEED_LIMIT
    ) -> list[UserActivity]:
        """The user's trail, newest first."""
        with self._uow_factory() as uow:
            return uow.activities.list_for_user(user_id, limit=limit)
