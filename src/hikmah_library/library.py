"""
Service wiring.

``Library`` builds every service on one store, sharing the per-book locks and
the activity recorder. The MCP tools and resources reach it through
``get_library()``; tests install their own with ``set_library()``.
"""

import logging
from datetime import datetime

from .assistant import AIQueryAdapter, CompletionClient
from .config import LibrarySettings, get_settings
from .database import UnitOfWorkFactory, build_uow_factory, seed_library
from .services import (
    AccountService,
    ActivityRecorder,
    BookLockRegistry,
    BookmarkService,
    BorrowingLifecycleManager,
    CatalogService,
    Clock,
)

logger = logging.getLogger(__name__)


class Library:
    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        settings: LibrarySettings | None = None,
        clock: Clock = datetime.now,
        completion_client: CompletionClient | None = None,
    ):
        self.settings = settings or get_settings()
        self.uow_factory = uow_factory
        self.locks = BookLockRegistry()
        self.activity = ActivityRecorder(uow_factory)
        self.borrowings = BorrowingLifecycleManager(
            uow_factory, self.settings, self.activity, clock=clock, locks=self.locks
        )
        self.catalog = CatalogService(uow_factory, locks=self.locks)
        self.bookmarks = BookmarkService(uow_factory, self.activity)
        self.accounts = AccountService(uow_factory)
        self.assistant = AIQueryAdapter(
            uow_factory, completion_client, settings=self.settings, recorder=self.activity
        )

    @classmethod
    def from_settings(cls, settings: LibrarySettings | None = None) -> "Library":
        """Open the configured store, seeding it when enabled and empty."""
        settings = settings or get_settings()
        library = cls(build_uow_factory(settings), settings)
        if settings.seed_on_startup:
            with library.uow_factory() as uow:
                seed_library(uow, loan_days=settings.loan_period_days)
        return library


class _LibraryStore:
    _instance: Library | None = None


def get_library() -> Library:
    """Get or create the process-wide library."""
    if _LibraryStore._instance is None:
        _LibraryStore._instance = Library.from_settings()
    return _LibraryStore._instance


def set_library(library: Library | None) -> None:
    _LibraryStore._instance = library
