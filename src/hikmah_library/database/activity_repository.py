"""
Audit trail repositories.

Activity entries and AI exchanges are append-only, so these repositories only
create and read.
"""

from sqlalchemy import delete, select

from ..models.activity import ActivityType
from ..models.activity import AiQuery as AiQueryModel
from ..models.activity import UserActivity as UserActivityModel
from .repository import BaseRepository
from .schema import AiQuery as AiQueryDB
from .schema import UserActivity as UserActivityDB
from .session import safe_query


class ActivityRepository(BaseRepository[UserActivityDB, UserActivityModel]):
    @property
    def model_class(self):
        return UserActivityDB

    @property
    def response_schema(self):
        return UserActivityModel

    def create(
        self,
        user_id: int,
        activity_type: ActivityType,
        book_id: int | None = None,
        ai_query_id: int | None = None,
    ) -> UserActivityModel:
        row = UserActivityDB(
            user_id=user_id,
            activity_type=activity_type,
            book_id=book_id,
            ai_query_id=ai_query_id,
        )
        return self._add(row, "record activity")

    def list_for_user(self, user_id: int, limit: int | None = None) -> list[UserActivityModel]:
        """Newest first."""
        query = (
            select(UserActivityDB)
            .where(UserActivityDB.user_id == user_id)
            .order_by(UserActivityDB.id.desc())
        )
        if limit is not None:
            query = query.limit(limit)
        rows = safe_query(
            self.session, lambda s: s.execute(query).scalars().all(), "Failed to list activity"
        )
        return [self._to_response_model(row) for row in rows]

    def delete_for_user(self, user_id: int) -> int:
        """Purge a user's trail (account deletion only)."""
        return self._delete_where(UserActivityDB.user_id == user_id)

    def delete_for_book(self, book_id: int) -> int:
        return self._delete_where(UserActivityDB.book_id == book_id)

    def _delete_where(self, condition) -> int:
        stmt = (
            delete(UserActivityDB).where(condition).execution_options(synchronize_session=False)
        )
        result = safe_query(self.session, lambda s: s.execute(stmt), "Failed to delete activity")
        return result.rowcount


class AiQueryRepository(BaseRepository[AiQueryDB, AiQueryModel]):
    @property
    def model_class(self):
        return AiQueryDB

    @property
    def response_schema(self):
        return AiQueryModel

    def create(self, user_id: int | None, query: str, response: str) -> AiQueryModel:
        return self._add(
            AiQueryDB(user_id=user_id, query=query, response=response), "log AI query"
        )

    def list_for_user(self, user_id: int) -> list[AiQueryModel]:
        query = select(AiQueryDB).where(AiQueryDB.user_id == user_id).order_by(AiQueryDB.id.desc())
        rows = safe_query(
            self.session, lambda s: s.execute(query).scalars().all(), "Failed to list AI queries"
        )
        return [self._to_response_model(row) for row in rows]

    def delete_for_user(self, user_id: int) -> int:
        stmt = (
            delete(AiQueryDB)
            .where(AiQueryDB.user_id == user_id)
            .execution_options(synchronize_session=False)
        )
        result = safe_query(self.session, lambda s: s.execute(stmt), "Failed to delete AI queries")
        return result.rowcount
