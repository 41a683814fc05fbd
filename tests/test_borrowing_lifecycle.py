"""Tests for the borrowing lifecycle manager.

Every test runs against both stores (the ``uow_factory`` fixture is
parametrized), so the lifecycle rules are checked independently of storage:
1. Borrow: availability, due dates, missing entities
2. Return: ownership, double returns, availability restored
3. Renew: loan policy (overdue, renewal limit, grace period)
4. Listings: effective overdue status, role-sensitive visibility
5. The availability invariant after every transition
"""

from datetime import timedelta

import pytest

from hikmah_library.config import LibrarySettings
from hikmah_library.errors import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from hikmah_library.models.activity import ActivityType
from hikmah_library.models.circulation import BorrowingStatus
from hikmah_library.services import ActivityRecorder, BorrowingLifecycleManager


def assert_availability_invariant(uow_factory):
    """``available`` is False exactly for books with an open borrowing."""
    with uow_factory() as uow:
        open_books = {b.book_id for b in uow.borrowings.list_open()}
        for book in uow.books.list_all():
            assert book.available == (book.id not in open_books), book.inventory_id
        assert len(open_books) == len(uow.borrowings.list_open())


@pytest.fixture
def manager(uow_factory, settings, clock, seeded):  # noqa: ARG001
    return BorrowingLifecycleManager(uow_factory, settings, clock=clock)


class TestBorrow:
    def test_borrow_marks_book_unavailable(self, manager, uow_factory, seeded, clock):
        borrowing = manager.borrow(seeded.user.id, seeded.bukhari.id)

        assert borrowing.status == BorrowingStatus.ACTIVE
        assert borrowing.user_id == seeded.user.id
        assert borrowing.borrow_date == clock()
        assert borrowing.due_date == clock() + timedelta(days=14)
        assert borrowing.renewal_count == 0
        assert borrowing.return_date is None

        with uow_factory() as uow:
            assert uow.books.get_by_id(seeded.bukhari.id).available is False
        assert_availability_invariant(uow_factory)

    def test_borrow_with_explicit_due_date(self, manager, seeded, clock):
        due = clock() + timedelta(days=3)
        borrowing = manager.borrow(seeded.user.id, seeded.bukhari.id, due_date=due)
        assert borrowing.due_date == due

    @pytest.mark.parametrize("offset", [timedelta(0), timedelta(days=-1)])
    def test_due_date_must_be_in_the_future(self, manager, uow_factory, seeded, clock, offset):
        with pytest.raises(ValidationError):
            manager.borrow(seeded.user.id, seeded.bukhari.id, due_date=clock() + offset)

        with uow_factory() as uow:
            assert uow.books.get_by_id(seeded.bukhari.id).available is True

    def test_unavailable_book_is_a_conflict(self, manager, uow_factory, seeded):
        with pytest.raises(ConflictError, match="not available"):
            manager.borrow(seeded.librarian.id, seeded.riyad.id)
        assert_availability_invariant(uow_factory)

    def test_second_borrow_of_same_book_fails(self, manager, uow_factory, seeded):
        manager.borrow(seeded.user.id, seeded.bukhari.id)

        with pytest.raises(ConflictError):
            manager.borrow(seeded.admin.id, seeded.bukhari.id)

        with uow_factory() as uow:
            assert len(uow.borrowings.list_for_user(seeded.admin.id)) == 0

    def test_unknown_book(self, manager, seeded):
        with pytest.raises(NotFoundError, match="Book 999"):
            manager.borrow(seeded.user.id, 999)

    def test_unknown_user_leaves_book_available(self, manager, uow_factory, seeded):
        with pytest.raises(NotFoundError, match="User 999"):
            manager.borrow(999, seeded.bukhari.id)

        with uow_factory() as uow:
            assert uow.books.get_by_id(seeded.bukhari.id).available is True
        assert_availability_invariant(uow_factory)

    def test_borrow_records_activity(self, manager, uow_factory, seeded):
        manager.borrow(seeded.user.id, seeded.quran.id)

        with uow_factory() as uow:
            activities = uow.activities.list_for_user(seeded.user.id)
        assert [a.activity_type for a in activities] == [ActivityType.BORROW]
        assert activities[0].book_id == seeded.quran.id


class TestReturn:
    def test_return_restores_availability(self, manager, uow_factory, seeded, clock):
        borrowing = manager.borrow(seeded.user.id, seeded.bukhari.id)
        clock.advance(days=5)

        returned = manager.return_book(borrowing.id, seeded.user)

        assert returned.status == BorrowingStatus.RETURNED
        assert returned.return_date == clock()
        with uow_factory() as uow:
            assert uow.books.get_by_id(seeded.bukhari.id).available is True
        assert_availability_invariant(uow_factory)

    def test_double_return_is_a_conflict(self, manager, uow_factory, seeded):
        borrowing = manager.borrow(seeded.user.id, seeded.bukhari.id)
        manager.return_book(borrowing.id, seeded.user)

        with pytest.raises(ConflictError, match="already returned"):
            manager.return_book(borrowing.id, seeded.user)

        # The book stays available and is not released twice into a bad state.
        assert_availability_invariant(uow_factory)

    def test_other_user_cannot_return(self, manager, uow_factory, seeded):
        borrowing = manager.borrow(seeded.admin.id, seeded.bukhari.id)

        with pytest.raises(AuthorizationError):
            manager.return_book(borrowing.id, seeded.user)

        with uow_factory() as uow:
            assert uow.books.get_by_id(seeded.bukhari.id).available is False

    def test_staff_can_return_any_borrowing(self, manager, uow_factory, seeded):
        borrowing = manager.borrow(seeded.user.id, seeded.bukhari.id)

        returned = manager.return_book(borrowing.id, seeded.librarian)

        assert returned.status == BorrowingStatus.RETURNED
        # The activity belongs to the borrower, not to the staff member.
        with uow_factory() as uow:
            types = [a.activity_type for a in uow.activities.list_for_user(seeded.user.id)]
        assert types == [ActivityType.RETURN, ActivityType.BORROW]

    def test_unknown_borrowing(self, manager, seeded):
        with pytest.raises(NotFoundError):
            manager.return_book(999, seeded.admin)

    def test_book_can_be_borrowed_again_after_return(self, manager, uow_factory, seeded):
        first = manager.borrow(seeded.user.id, seeded.bukhari.id)
        manager.return_book(first.id, seeded.user)

        second = manager.borrow(seeded.admin.id, seeded.bukhari.id)

        assert second.id != first.id
        assert second.status == BorrowingStatus.ACTIVE
        assert_availability_invariant(uow_factory)


class TestRenew:
    def test_renew_extends_due_date(self, manager, seeded, clock):
        borrowing = manager.borrow(seeded.user.id, seeded.bukhari.id)
        clock.advance(days=10)

        renewed = manager.renew(borrowing.id, seeded.user)

        assert renewed.due_date == borrowing.due_date + timedelta(days=14)
        assert renewed.renewal_count == 1
        assert renewed.status == BorrowingStatus.ACTIVE

    def test_overdue_borrowing_cannot_be_renewed(self, manager, uow_factory, seeded, clock):
        borrowing = manager.borrow(seeded.user.id, seeded.bukhari.id)
        clock.advance(days=15)

        with pytest.raises(ConflictError, match="Overdue"):
            manager.renew(borrowing.id, seeded.user)

        with uow_factory() as uow:
            assert uow.borrowings.get_by_id(borrowing.id).due_date == borrowing.due_date

    def test_renewal_on_the_due_date_is_allowed(self, manager, seeded, clock):
        borrowing = manager.borrow(seeded.user.id, seeded.bukhari.id)
        clock.now = borrowing.due_date

        renewed = manager.renew(borrowing.id, seeded.user)
        assert renewed.renewal_count == 1

    def test_renewal_limit(self, manager, seeded):
        borrowing = manager.borrow(seeded.user.id, seeded.bukhari.id)
        for _ in range(3):
            borrowing = manager.renew(borrowing.id, seeded.user)
        assert borrowing.renewal_count == 3

        with pytest.raises(ConflictError, match="Maximum renewal limit"):
            manager.renew(borrowing.id, seeded.user)

    def test_grace_period_allows_late_renewal(self, uow_factory, seeded, clock):
        settings = LibrarySettings(_env_file=None, renewal_grace_days=3)
        manager = BorrowingLifecycleManager(uow_factory, settings, clock=clock)
        borrowing = manager.borrow(seeded.user.id, seeded.bukhari.id)
        clock.now = borrowing.due_date + timedelta(days=2)

        renewed = manager.renew(borrowing.id, seeded.user)
        assert renewed.due_date == borrowing.due_date + timedelta(days=14)

        clock.now = renewed.due_date + timedelta(days=4)
        with pytest.raises(ConflictError):
            manager.renew(borrowing.id, seeded.user)

    def test_returned_borrowing_cannot_be_renewed(self, manager, seeded):
        borrowing = manager.borrow(seeded.user.id, seeded.bukhari.id)
        manager.return_book(borrowing.id, seeded.user)

        with pytest.raises(ConflictError, match="already returned"):
            manager.renew(borrowing.id, seeded.user)

    def test_other_user_cannot_renew(self, manager, seeded):
        borrowing = manager.borrow(seeded.admin.id, seeded.bukhari.id)
        with pytest.raises(AuthorizationError):
            manager.renew(borrowing.id, seeded.user)

    def test_renew_records_activity(self, manager, uow_factory, seeded):
        borrowing = manager.borrow(seeded.user.id, seeded.bukhari.id)
        manager.renew(borrowing.id, seeded.user)

        with uow_factory() as uow:
            latest = uow.activities.list_for_user(seeded.user.id)[0]
        assert latest.activity_type == ActivityType.RENEW


class TestListings:
    def test_overdue_is_derived_on_read(self, manager, uow_factory, seeded, clock):
        borrowing = manager.borrow(seeded.user.id, seeded.bukhari.id)
        assert manager.get_borrowing(borrowing.id, seeded.user).status == BorrowingStatus.ACTIVE

        clock.advance(days=15)

        assert manager.get_borrowing(borrowing.id, seeded.user).status == BorrowingStatus.OVERDUE
        overdue_ids = {b.id for b in manager.list_overdue_borrowings(seeded.librarian)}
        assert borrowing.id in overdue_ids
        # Storage is not swept.
        with uow_factory() as uow:
            assert uow.borrowings.get_by_id(borrowing.id).status == BorrowingStatus.ACTIVE

    def test_returned_borrowings_are_never_overdue(self, manager, seeded, clock):
        borrowing = manager.borrow(seeded.user.id, seeded.bukhari.id)
        manager.return_book(borrowing.id, seeded.user)
        clock.advance(days=30)

        assert manager.get_borrowing(borrowing.id, seeded.user).status == BorrowingStatus.RETURNED
        overdue = manager.list_overdue_borrowings(seeded.librarian)
        assert borrowing.id not in {b.id for b in overdue}

    def test_user_sees_own_history(self, manager, seeded):
        mine = manager.borrow(seeded.user.id, seeded.bukhari.id)
        manager.return_book(mine.id, seeded.user)
        manager.borrow(seeded.admin.id, seeded.quran.id)

        visible = manager.list_visible_borrowings(seeded.user)

        assert {b.user_id for b in visible} == {seeded.user.id}
        # Seeded loan of Riyad as-Salihin plus the returned one.
        assert len(visible) == 2

    def test_staff_see_all_open_borrowings(self, manager, seeded):
        returned = manager.borrow(seeded.user.id, seeded.bukhari.id)
        manager.return_book(returned.id, seeded.user)
        manager.borrow(seeded.admin.id, seeded.quran.id)

        visible = manager.list_visible_borrowings(seeded.librarian)

        assert {b.book_id for b in visible} == {seeded.quran.id, seeded.riyad.id}
        assert all(b.status != BorrowingStatus.RETURNED for b in visible)

    def test_get_unknown_borrowing(self, manager, seeded):
        with pytest.raises(NotFoundError):
            manager.get_borrowing(12345, seeded.admin)

    def test_only_owner_or_staff_view_a_borrowing(self, manager, seeded):
        borrowing = manager.borrow(seeded.admin.id, seeded.quran.id)

        assert manager.get_borrowing(borrowing.id, seeded.librarian).id == borrowing.id
        with pytest.raises(AuthorizationError):
            manager.get_borrowing(borrowing.id, seeded.user)

    def test_overdue_listing_is_for_staff(self, manager, seeded):
        with pytest.raises(AuthorizationError):
            manager.list_overdue_borrowings(seeded.user)

    def test_overdue_listing_oldest_first(self, manager, seeded, clock):
        later = manager.borrow(seeded.user.id, seeded.quran.id)
        earlier = manager.borrow(
            seeded.user.id, seeded.bukhari.id, due_date=clock() + timedelta(days=2)
        )
        clock.advance(days=20)

        overdue = [b.id for b in manager.list_overdue_borrowings(seeded.admin)]

        assert overdue.index(earlier.id) < overdue.index(later.id)


def test_full_lifecycle_keeps_invariant(manager, uow_factory, seeded, clock):
    """Borrow, renew, fall overdue, return, then lend again."""
    borrowing = manager.borrow(seeded.user.id, seeded.quran.id)
    assert_availability_invariant(uow_factory)

    clock.advance(days=7)
    manager.renew(borrowing.id, seeded.user)
    assert_availability_invariant(uow_factory)

    clock.advance(days=30)
    assert manager.get_borrowing(borrowing.id, seeded.user).status == BorrowingStatus.OVERDUE

    manager.return_book(borrowing.id, seeded.librarian)
    assert_availability_invariant(uow_factory)

    again = manager.borrow(seeded.librarian.id, seeded.quran.id)
    assert again.status == BorrowingStatus.ACTIVE
    assert_availability_invariant(uow_factory)


def test_activity_failure_does_not_fail_the_borrow(uow_factory, settings, clock, seeded, caplog):
    """A broken activity store only produces a warning."""

    class BrokenRecorder(ActivityRecorder):
        def __init__(self):
            super().__init__(self._broken_factory)

        @staticmethod
        def _broken_factory():
            raise ConflictError("activity store unavailable")

    manager = BorrowingLifecycleManager(uow_factory, settings, BrokenRecorder(), clock=clock)

    borrowing = manager.borrow(seeded.user.id, seeded.bukhari.id)

    assert borrowing.status == BorrowingStatus.ACTIVE
    assert "Failed to record borrow activity" in caplog.text
