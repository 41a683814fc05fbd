"""
Library services.

Each service takes a unit-of-work factory and works the same over the SQL
and the in-memory store.
"""

from .accounts import AccountService
from .activity import ActivityRecorder
from .bookmarks import BookmarkService
from .borrowing import BorrowingLifecycleManager, Clock
from .catalog import CatalogService
from .locks import BookLockRegistry

__all__ = [
    "AccountService",
    "ActivityRecorder",
    "BookLockRegistry",
    "BookmarkService",
    "BorrowingLifecycleManager",
    "CatalogService",
    "Clock",
]
