"""Tests for the catalog and bookmark services."""

import pytest

from hikmah_library.database import PaginationParams
from hikmah_library.errors import (
    AuthorizationError,
    ConflictError,
    DuplicateError,
    NotFoundError,
)
from hikmah_library.models.activity import ActivityType
from hikmah_library.models.book import BookCreate, BookUpdate, CategoryCreate
from hikmah_library.services import BookmarkService, BorrowingLifecycleManager, CatalogService


@pytest.fixture
def catalog(uow_factory, seeded):  # noqa: ARG001
    return CatalogService(uow_factory)


@pytest.fixture
def bookmarks(uow_factory, seeded):  # noqa: ARG001
    return BookmarkService(uow_factory)


def muwatta() -> BookCreate:
    return BookCreate(
        title="Al-Muwatta",
        title_ar="الموطأ",
        author="Imam Malik",
        author_ar="الإمام مالك",
        category="Fiqh",
        category_ar="الفقه",
        publication_year=1989,
        inventory_id="FQH010",
    )


class TestBrowsing:
    def test_list_books_with_filters(self, catalog):
        page = catalog.list_books(search="quran", available_only=True)
        assert [b.inventory_id for b in page.items] == ["QRN001"]

    def test_list_books_paginated(self, catalog):
        page = catalog.list_books(pagination=PaginationParams(page=1, page_size=4))
        assert len(page.items) == 4
        assert page.has_next is True

    def test_get_book(self, catalog, seeded):
        assert catalog.get_book(seeded.bukhari.id).title_ar == "صحيح البخاري"
        with pytest.raises(NotFoundError):
            catalog.get_book(999)

    def test_categories_are_bilingual(self, catalog):
        categories = {c.name: c for c in catalog.list_categories()}
        assert categories["Hadith"].name_ar == "الحديث"
        assert categories["Hadith"].book_count == 2


class TestCatalogEditing:
    def test_librarian_adds_book(self, catalog, seeded):
        book = catalog.create_book(seeded.librarian, muwatta())

        assert book.available is True
        assert catalog.get_book(book.id).inventory_id == "FQH010"
        fiqh = next(c for c in catalog.list_categories() if c.name == "Fiqh")
        assert fiqh.book_count == 2

    def test_user_cannot_add_book(self, catalog, seeded):
        with pytest.raises(AuthorizationError):
            catalog.create_book(seeded.user, muwatta())

    def test_update_fields(self, catalog, seeded):
        updated = catalog.update_book(
            seeded.admin, seeded.quran.id, BookUpdate(description="Revised edition")
        )
        assert updated.description == "Revised edition"
        assert updated.available is True

    def test_update_cannot_contradict_open_borrowings(self, catalog, seeded):
        with pytest.raises(ConflictError, match="on loan"):
            catalog.update_book(seeded.admin, seeded.riyad.id, BookUpdate(available=True))
        with pytest.raises(ConflictError, match="on the shelf"):
            catalog.update_book(seeded.admin, seeded.quran.id, BookUpdate(available=False))

    def test_restating_availability_is_allowed(self, catalog, seeded):
        book = catalog.update_book(seeded.admin, seeded.riyad.id, BookUpdate(available=False))
        assert book.available is False

    def test_update_unknown_book(self, catalog, seeded):
        with pytest.raises(NotFoundError):
            catalog.update_book(seeded.admin, 999, BookUpdate(title="Nothing"))

    def test_delete_unlent_book_with_bookmarks(self, catalog, bookmarks, uow_factory, seeded):
        book = catalog.create_book(seeded.librarian, muwatta())
        bookmarks.add(seeded.user.id, book.id)

        catalog.delete_book(seeded.librarian, book.id)

        with pytest.raises(NotFoundError):
            catalog.get_book(book.id)
        with uow_factory() as uow:
            assert uow.bookmarks.list_for_user(seeded.user.id) == []
            assert all(a.book_id != book.id for a in uow.activities.list_for_user(seeded.user.id))

    def test_delete_book_on_loan(self, catalog, seeded):
        with pytest.raises(ConflictError, match="currently borrowed"):
            catalog.delete_book(seeded.admin, seeded.riyad.id)

    def test_delete_book_with_history(self, catalog, uow_factory, seeded, settings, clock):
        manager = BorrowingLifecycleManager(uow_factory, settings, clock=clock)
        borrowing = manager.borrow(seeded.user.id, seeded.quran.id)
        manager.return_book(borrowing.id, seeded.user)

        with pytest.raises(ConflictError, match="history"):
            catalog.delete_book(seeded.admin, seeded.quran.id)

    def test_delete_requires_catalog_rights(self, catalog, seeded):
        with pytest.raises(AuthorizationError):
            catalog.delete_book(seeded.user, seeded.quran.id)

    def test_add_category(self, catalog, seeded):
        category = catalog.create_category(
            seeded.librarian, CategoryCreate(name="Tafsir", name_ar="التفسير", icon="menu_book")
        )
        assert category.book_count == 0
        assert "Tafsir" in {c.name for c in catalog.list_categories()}

        with pytest.raises(ConflictError):
            catalog.create_category(
                seeded.librarian, CategoryCreate(name="Tafsir", name_ar="تفسير", icon="x")
            )


class TestBookmarks:
    def test_add_and_list(self, bookmarks, uow_factory, seeded):
        bookmark = bookmarks.add(seeded.user.id, seeded.quran.id)

        assert [b.id for b in bookmarks.list_for_user(seeded.user.id)] == [bookmark.id]
        with uow_factory() as uow:
            activity = uow.activities.list_for_user(seeded.user.id)[0]
        assert activity.activity_type == ActivityType.BOOKMARK
        assert activity.book_id == seeded.quran.id

    def test_duplicate(self, bookmarks, seeded):
        bookmarks.add(seeded.user.id, seeded.quran.id)
        with pytest.raises(DuplicateError):
            bookmarks.add(seeded.user.id, seeded.quran.id)

    def test_unknown_book(self, bookmarks, seeded):
        with pytest.raises(NotFoundError):
            bookmarks.add(seeded.user.id, 999)

    def test_only_owner_removes(self, bookmarks, seeded):
        bookmark = bookmarks.add(seeded.user.id, seeded.quran.id)

        with pytest.raises(AuthorizationError):
            bookmarks.remove(bookmark.id, seeded.admin)

        bookmarks.remove(bookmark.id, seeded.user)
        assert bookmarks.list_for_user(seeded.user.id) == []

        with pytest.raises(NotFoundError):
            bookmarks.remove(bookmark.id, seeded.user)
