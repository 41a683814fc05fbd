"""
Pydantic models for the library's entities.

These are the shapes every repository returns and every tool serializes:
- User: library accounts and their roles
- Book, Category: the bilingual catalog
- Borrowing: loans and their lifecycle status
- Bookmark, UserActivity, AiQuery: per-user records
- AssistantResponse: the normalized AI assistant reply
"""

from .activity import ActivityType, AiQuery, UserActivity
from .assistant import AssistantResponse, Language
from .book import Book, BookCreate, BookUpdate, Category, CategoryCreate
from .bookmark import Bookmark
from .circulation import OPEN_STATUSES, Borrowing, BorrowingStatus
from .user import User, UserCreate

__all__ = [
    "OPEN_STATUSES",
    "ActivityType",
    "AiQuery",
    "AssistantResponse",
    "Book",
    "BookCreate",
    "BookUpdate",
    "Bookmark",
    "Borrowing",
    "BorrowingStatus",
    "Category",
    "CategoryCreate",
    "Language",
    "User",
    "UserActivity",
    "UserCreate",
]
