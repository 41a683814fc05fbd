"""User repository."""

from sqlalchemy import select

from ..models.user import User as UserModel
from ..models.user import UserCreate
from ..permissions import Role
from .repository import BaseRepository
from .schema import User as UserDB
from .session import safe_flush, safe_query


class UserRepository(BaseRepository[UserDB, UserModel]):
    """Data access for library accounts."""

    @property
    def model_class(self):
        return UserDB

    @property
    def response_schema(self):
        return UserModel

    def get_by_username(self, username: str) -> UserModel | None:
        query = select(UserDB).where(UserDB.username == username)
        row = safe_query(
            self.session,
            lambda s: s.execute(query).scalar_one_or_none(),
            "Failed to get user by username",
        )
        return self._to_response_model(row) if row else None

    def create(self, data: UserCreate) -> UserModel:
        """
        Raises:
            ConflictError: If the username is taken
        """
        return self._add(UserDB(**data.model_dump()), "create user")

    def update_role(self, user_id: int, role: Role) -> UserModel | None:
        row = self._get_row(user_id)
        if row is None:
            return None
        row.role = role
        safe_flush(self.session, "update user role")
        return self._to_response_model(row)
