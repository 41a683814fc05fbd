"""
Borrowing lifecycle manager.

Owns every state change of a loan and keeps the availability invariant:
``Book.available`` is False exactly while the book has an open (active or
overdue) borrowing.

Three layers stop two borrowers from both getting the same book:
1. A per-book lock serializes borrow, return and renew within this process
2. ``BookStore.claim`` flips ``available`` with one conditional write and
   reports whether this caller won
3. The store refuses a second open borrowing for the same book

Overdue is never swept into storage. Listings report the effective status
computed from the clock.
"""

import logging
from collections.abc import Callable
from datetime import datetime, timedelta

from ..config import LibrarySettings, get_settings
from ..database import BorrowingUpdate, UnitOfWorkFactory
from ..errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from ..models.activity import ActivityType
from ..models.circulation import Borrowing, BorrowingStatus
from ..models.user import User
from ..permissions import Capability, has_capability, is_staff, require_capability
from .activity import ActivityRecorder
from .locks import BookLockRegistry

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


class BorrowingLifecycleManager:
    """
    Borrow, return and renew books.

    Args:
        uow_factory: Opens a unit of work on the store
        settings: Loan policy (loan and renewal periods, renewal limits)
        recorder: Activity recorder; one is created on the same store if omitted
        clock: Source of "now"; injectable so tests control time
        locks: Per-book lock registry, shared by every manager on one store
    """

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        settings: LibrarySettings | None = None,
        recorder: ActivityRecorder | None = None,
        clock: Clock = datetime.now,
        locks: BookLockRegistry | None = None,
    ):
        self._uow_factory = uow_factory
        self._settings = settings or get_settings()
        self._recorder = recorder or ActivityRecorder(uow_factory)
        self._clock = clock
        self._locks = locks or BookLockRegistry()

    # === Transitions ===

    def borrow(self, user_id: int, book_id: int, due_date: datetime | None = None) -> Borrowing:
        """
        Lend a book to a user.

        Raises:
            ValidationError: If ``due_date`` is not in the future
            NotFoundError: If the book or the user does not exist
            ConflictError: If the book is not available
        """
        now = self._clock()
        due_date = due_date or now + timedelta(days=self._settings.loan_period_days)
        if due_date <= now:
            raise ValidationError("Due date must be in the future")

        with self._locks.hold(book_id), self._uow_factory() as uow:
            # Claim first: the conditional write is the race decider.
            claimed = uow.books.claim(book_id)
            if not claimed and uow.books.get_by_id(book_id) is None:
                raise NotFoundError(f"Book {book_id} not found")
            if uow.users.get_by_id(user_id) is None:
                raise NotFoundError(f"User {user_id} not found")
            if not claimed:
                logger.info("Borrow of book %s by user %s refused: unavailable", book_id, user_id)
                raise ConflictError("Book is not available")

            borrowing = uow.borrowings.create(
                user_id=user_id, book_id=book_id, borrow_date=now, due_date=due_date
            )

        logger.info(
            "User %s borrowed book %s (borrowing %s, due %s)",
            user_id,
            book_id,
            borrowing.id,
            due_date.isoformat(),
        )
        self._recorder.record(user_id, ActivityType.BORROW, book_id=book_id)
        return borrowing

    def return_book(self, borrowing_id: int, actor: User) -> Borrowing:
        """
        Close a borrowing and make the book available again.

        Raises:
            NotFoundError: If the borrowing does not exist
            AuthorizationError: If the actor neither owns it nor manages borrowings
            ConflictError: If it was already returned
        """
        book_id = self._authorized_book_id(borrowing_id, actor, "return this book")

        with self._locks.hold(book_id), self._uow_factory() as uow:
            borrowing = self._require(uow, borrowing_id)
            if not borrowing.is_open:
                raise ConflictError(f"Borrowing {borrowing_id} was already returned")

            now = max(self._clock(), borrowing.borrow_date)
            returned = uow.borrowings.update(
                borrowing_id,
                BorrowingUpdate(return_date=now, status=BorrowingStatus.RETURNED),
            )
            uow.books.release(book_id)

        logger.info("Borrowing %s returned (book %s)", borrowing_id, book_id)
        self._recorder.record(returned.user_id, ActivityType.RETURN, book_id=book_id)
        return returned

    def renew(self, borrowing_id: int, actor: User) -> Borrowing:
        """
        Push the due date of an open borrowing forward.

        Renewal is refused once the loan is overdue by more than the grace
        period, or when it already reached the renewal limit.

        Raises:
            NotFoundError: If the borrowing does not exist
            AuthorizationError: If the actor neither owns it nor manages borrowings
            ConflictError: If it is returned, too far overdue, or at the limit
        """
        book_id = self._authorized_book_id(borrowing_id, actor, "renew this borrowing")

        with self._locks.hold(book_id), self._uow_factory() as uow:
            borrowing = self._require(uow, borrowing_id)
            now = self._clock()

            if not borrowing.is_open:
                raise ConflictError(f"Borrowing {borrowing_id} was already returned")

            grace = timedelta(days=self._settings.renewal_grace_days)
            if borrowing.is_overdue_at(now) and now - borrowing.due_date > grace:
                logger.info("Renewal of borrowing %s refused: overdue", borrowing_id)
                raise ConflictError("Overdue borrowings cannot be renewed")

            if borrowing.renewal_count >= self._settings.max_renewals:
                logger.info("Renewal of borrowing %s refused: limit reached", borrowing_id)
                raise ConflictError(
                    f"Maximum renewal limit ({self._settings.max_renewals}) reached"
                )

            renewed = uow.borrowings.update(
                borrowing_id,
                BorrowingUpdate(
                    due_date=borrowing.due_date
                    + timedelta(days=self._settings.renewal_period_days),
                    renewal_count=borrowing.renewal_count + 1,
                ),
            )

        logger.info(
            "Borrowing %s renewed until %s (%d/%d)",
            borrowing_id,
            renewed.due_date.isoformat(),
            renewed.renewal_count,
            self._settings.max_renewals,
        )
        self._recorder.record(renewed.user_id, ActivityType.RENEW, book_id=book_id)
        return renewed

    # === Queries ===

    def now(self) -> datetime:
        """The clock listings compute overdue status against."""
        return self._clock()

    def get_borrowing(self, borrowing_id: int, actor: User) -> Borrowing:
        """
        Raises:
            NotFoundError: If the borrowing does not exist
            AuthorizationError: If the actor neither owns it nor manages borrowings
        """
        with self._uow_factory() as uow:
            borrowing = self._require(uow, borrowing_id)
        self._check_access(borrowing, actor, "view this borrowing")
        return borrowing.with_effective_status(self._clock())

    def list_user_borrowings(self, user_id: int) -> list[Borrowing]:
        """All of a user's borrowings, newest first, returned ones included."""
        with self._uow_factory() as uow:
            borrowings = uow.borrowings.list_for_user(user_id)
        return self._effective(borrowings)

    def list_open_borrowings(self) -> list[Borrowing]:
        with self._uow_factory() as uow:
            borrowings = uow.borrowings.list_open()
        return self._effective(borrowings)

    def list_overdue_borrowings(self, actor: User) -> list[Borrowing]:
        """Open borrowings past due, oldest due date first. Staff only."""
        require_capability(actor.role, Capability.MANAGE_BORROWINGS, "list overdue borrowings")
        now = self._clock()
        with self._uow_factory() as uow:
            borrowings = uow.borrowings.list_overdue(now)
        return sorted(
            (b.with_effective_status(now) for b in borrowings), key=lambda b: (b.due_date, b.id)
        )

    def list_visible_borrowings(self, actor: User) -> list[Borrowing]:
        """Staff see every open borrowing; users see their own history."""
        if is_staff(actor.role):
            return self.list_open_borrowings()
        return self.list_user_borrowings(actor.id)

    # === Helpers ===

    def _effective(self, borrowings: list[Borrowing]) -> list[Borrowing]:
        now = self._clock()
        return [b.with_effective_status(now) for b in borrowings]

    @staticmethod
    def _require(uow, borrowing_id: int) -> Borrowing:
        borrowing = uow.borrowings.get_by_id(borrowing_id)
        if borrowing is None:
            raise NotFoundError(f"Borrowing {borrowing_id} not found")
        return borrowing

    @staticmethod
    def _check_access(borrowing: Borrowing, actor: User, action: str) -> None:
        if borrowing.user_id != actor.id and not has_capability(
            actor.role, Capability.MANAGE_BORROWINGS
        ):
            raise AuthorizationError(f"Not authorized to {action}")

    def _authorized_book_id(self, borrowing_id: int, actor: User, action: str) -> int:
        with self._uow_factory() as uow:
            borrowing = self._require(uow, borrowing_id)
        self._check_access(borrowing, actor, action)
        return borrowing.book_id
