"""
Storage layer for the Al Hikmah Library server.

This package provides:
- SQLAlchemy schema, session management and repositories (SQL store)
- A dictionary-backed store with the same API (memory store)
- The ``UnitOfWork`` protocol both implement, and a factory that picks one
  from the settings
- Starter data
"""

from collections.abc import Callable

from ..config import LibrarySettings, get_settings
from .book_repository import BookSearchParams
from .borrowing_repository import BorrowingUpdate
from .interfaces import UnitOfWork
from .memory import MemoryStore, MemoryUnitOfWork
from .repository import PaginatedResponse, PaginationParams
from .seed import generate_demo_patrons, seed_library
from .session import DatabaseManager, get_db_manager, reset_db_manager
from .unit_of_work import SqlUnitOfWork

UnitOfWorkFactory = Callable[[], UnitOfWork]


def memory_uow_factory(store: MemoryStore | None = None) -> UnitOfWorkFactory:
    store = store or MemoryStore()
    return lambda: MemoryUnitOfWork(store)


def sql_uow_factory(manager: DatabaseManager) -> UnitOfWorkFactory:
    return lambda: SqlUnitOfWork(manager.session_factory)


def build_uow_factory(settings: LibrarySettings | None = None) -> UnitOfWorkFactory:
    """
    Create the unit-of-work factory for the configured store.

    The SQL schema is created if missing.
    """
    settings = settings or get_settings()
    if settings.uses_memory_store:
        return memory_uow_factory()

    manager = get_db_manager(settings.get_database_url())
    manager.init_database()
    return sql_uow_factory(manager)


__all__ = [
    "BookSearchParams",
    "BorrowingUpdate",
    "DatabaseManager",
    "MemoryStore",
    "MemoryUnitOfWork",
    "PaginatedResponse",
    "PaginationParams",
    "SqlUnitOfWork",
    "UnitOfWork",
    "UnitOfWorkFactory",
    "build_uow_factory",
    "generate_demo_patrons",
    "get_db_manager",
    "memory_uow_factory",
    "reset_db_manager",
    "seed_library",
    "sql_uow_factory",
]
