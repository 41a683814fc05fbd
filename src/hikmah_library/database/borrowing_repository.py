"""
Borrowing repository.

Plain storage for loans: the lifecycle rules (who may return, when renewal
is allowed, keeping ``Book.available`` in step) live in
``hikmah_library.services.borrowing``.
"""

from datetime import datetime

from pydantic import BaseModel
from sqlalchemy import and_, func, or_, select
from sqlalchemy.exc import IntegrityError

from ..errors import ConflictError
from ..models.circulation import OPEN_STATUSES, BorrowingStatus
from ..models.circulation import Borrowing as BorrowingModel
from .repository import BaseRepository
from .schema import Borrowing as BorrowingDB
from .session import safe_flush, safe_query


class BorrowingUpdate(BaseModel):
    """Fields the lifecycle manager may change on a borrowing."""

    due_date: datetime | None = None
    return_date: datetime | None = None
    status: BorrowingStatus | None = None
    renewal_count: int | None = None


class BorrowingRepository(BaseRepository[BorrowingDB, BorrowingModel]):
    """Data access for loans."""

    @property
    def model_class(self):
        return BorrowingDB

    @property
    def response_schema(self):
        return BorrowingModel

    def _list(self, *conditions) -> list[BorrowingModel]:
        query = (
            select(BorrowingDB)
            .where(and_(*conditions))
            .order_by(BorrowingDB.borrow_date.desc(), BorrowingDB.id.desc())
            .execution_options(populate_existing=True)
        )
        rows = safe_query(
            self.session, lambda s: s.execute(query).scalars().all(), "Failed to list borrowings"
        )
        return [self._to_response_model(row) for row in rows]

    def create(
        self, user_id: int, book_id: int, borrow_date: datetime, due_date: datetime
    ) -> BorrowingModel:
        """
        Insert an active borrowing.

        Raises:
            ConflictError: If the book already has an open borrowing
        """
        row = BorrowingDB(
            user_id=user_id,
            book_id=book_id,
            borrow_date=borrow_date,
            due_date=due_date,
            status=BorrowingStatus.ACTIVE,
            renewal_count=0,
        )
        return self._add(row, "create borrowing")

    def update(self, borrowing_id: int, data: BorrowingUpdate) -> BorrowingModel | None:
        row = self._get_row(borrowing_id, for_update=True)
        if row is None:
            return None

        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(row, field, value)

        try:
            safe_flush(self.session, "update borrowing")
        except IntegrityError as e:
            raise ConflictError(f"Cannot update borrowing {borrowing_id}: {e.orig}") from e
        return self._to_response_model(row)

    def list_for_user(self, user_id: int) -> list[BorrowingModel]:
        """All borrowings of a user, newest first, including returned ones."""
        return self._list(BorrowingDB.user_id == user_id)

    def list_open(self) -> list[BorrowingModel]:
        return self._list(BorrowingDB.status.in_(OPEN_STATUSES))

    def list_overdue(self, now: datetime) -> list[BorrowingModel]:
        """Open borrowings past due at ``now``, or explicitly stored as overdue."""
        return self._list(
            or_(
                BorrowingDB.status == BorrowingStatus.OVERDUE,
                and_(BorrowingDB.status == BorrowingStatus.ACTIVE, BorrowingDB.due_date < now),
            )
        )

    def get_open_for_book(self, book_id: int) -> BorrowingModel | None:
        rows = self._list(BorrowingDB.book_id == book_id, BorrowingDB.status.in_(OPEN_STATUSES))
        return rows[0] if rows else None

    def count_for_book(self, book_id: int) -> int:
        query = select(func.count()).select_from(BorrowingDB).where(BorrowingDB.book_id == book_id)
        return safe_query(
            self.session, lambda s: s.execute(query).scalar(), "Failed to count borrowings"
        ) or 0

    def count_open_for_user(self, user_id: int) -> int:
        query = (
            select(func.count())
            .select_from(BorrowingDB)
            .where(BorrowingDB.user_id == user_id, BorrowingDB.status.in_(OPEN_STATUSES))
        )
        return safe_query(
            self.session, lambda s: s.execute(query).scalar(), "Failed to count open borrowings"
        ) or 0
