"""
SQLAlchemy schema for the library.

The tables mirror the pydantic models in ``hikmah_library.models``. Two
constraints back the borrowing rules at the storage level:

1. ``uq_borrowing_open_book``: a partial unique index allowing at most one
   open (active/overdue) borrowing per book
2. ``uq_bookmark_user_book``: one bookmark per user and book
"""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

from ..models.activity import ActivityType
from ..models.circulation import BorrowingStatus
from ..permissions import Role

Base = declarative_base()

OPEN_STATUS_CLAUSE = "status IN ('active', 'overdue')"


def _values(enum_cls):
    # Store enum values ("active"), not member names ("ACTIVE").
    return [member.value for member in enum_cls]


class User(Base):
    """Library accounts."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(50), nullable=False, unique=True)
    password_hash = Column(String(255), nullable=False)
    full_name = Column(String(200), nullable=False)
    email = Column(String(255), nullable=False)
    role = Column(
        Enum(Role, name="user_role", values_callable=_values),
        nullable=False,
        default=Role.USER,
    )
    created_at = Column(DateTime, nullable=False, default=func.now())

    borrowings = relationship("Borrowing", back_populates="user")
    bookmarks = relationship("Bookmark", back_populates="user")

    __table_args__ = (Index("idx_user_role", "role"),)


class Book(Base):
    """
    The bilingual catalog.

    ``available`` is only written by the borrowing lifecycle (claim/release)
    and is kept consistent with the open borrowings of the book.
    """

    __tablename__ = "books"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(500), nullable=False)
    title_ar = Column(String(500), nullable=False)
    author = Column(String(300), nullable=False)
    author_ar = Column(String(300), nullable=False)
    category = Column(String(100), nullable=False)
    category_ar = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    description_ar = Column(Text, nullable=True)
    isbn = Column(String(32), nullable=True)
    publication_year = Column(Integer, nullable=True)
    cover_image = Column(String(1000), nullable=True)
    available = Column(Boolean, nullable=False, default=True)
    inventory_id = Column(String(50), nullable=False, unique=True)
    created_at = Column(DateTime, nullable=False, default=func.now())

    borrowings = relationship("Borrowing", back_populates="book")

    __table_args__ = (
        Index("idx_book_title", "title"),
        Index("idx_book_category", "category"),
        Index("idx_book_category_ar", "category_ar"),
        Index("idx_book_available", "available"),
    )


class Category(Base):
    """Catalog categories. Book counts are computed on read."""

    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False, unique=True)
    name_ar = Column(String(100), nullable=False, unique=True)
    icon = Column(String(100), nullable=False)


class Borrowing(Base):
    """Loans. Rows are never deleted; returned loans stay as history."""

    __tablename__ = "borrowings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    book_id = Column(Integer, ForeignKey("books.id"), nullable=False)
    borrow_date = Column(DateTime, nullable=False, default=func.now())
    due_date = Column(DateTime, nullable=False)
    return_date = Column(DateTime, nullable=True)
    status = Column(
        Enum(BorrowingStatus, name="borrowing_status", values_callable=_values),
        nullable=False,
        default=BorrowingStatus.ACTIVE,
    )
    renewal_count = Column(Integer, nullable=False, default=0)

    user = relationship("User", back_populates="borrowings")
    book = relationship("Book", back_populates="borrowings")

    __table_args__ = (
        Index("idx_borrowing_user", "user_id"),
        Index("idx_borrowing_status", "status"),
        Index("idx_borrowing_due_date", "due_date"),
        Index(
            "uq_borrowing_open_book",
            "book_id",
            unique=True,
            sqlite_where=text(OPEN_STATUS_CLAUSE),
            postgresql_where=text(OPEN_STATUS_CLAUSE),
        ),
        CheckConstraint("renewal_count >= 0", name="check_renewal_count_non_negative"),
        CheckConstraint(
            "return_date IS NULL OR return_date >= borrow_date",
            name="check_return_after_borrow",
        ),
    )


class Bookmark(Base):
    """Saved books."""

    __tablename__ = "bookmarks"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    book_id = Column(Integer, ForeignKey("books.id"), nullable=False)
    created_at = Column(DateTime, nullable=False, default=func.now())

    user = relationship("User", back_populates="bookmarks")

    __table_args__ = (
        UniqueConstraint("user_id", "book_id", name="uq_bookmark_user_book"),
        Index("idx_bookmark_user", "user_id"),
    )


class AiQuery(Base):
    """Assistant exchanges (append-only). ``response`` is JSON text."""

    __tablename__ = "ai_queries"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    query = Column(Text, nullable=False)
    response = Column(Text, nullable=False)
    created_at = Column(DateTime, nullable=False, default=func.now())

    __table_args__ = (Index("idx_ai_query_user", "user_id"),)


class UserActivity(Base):
    """Audit trail (append-only)."""

    __tablename__ = "user_activity"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    activity_type = Column(
        Enum(ActivityType, name="activity_type", values_callable=_values),
        nullable=False,
    )
    book_id = Column(Integer, ForeignKey("books.id"), nullable=True)
    ai_query_id = Column(Integer, ForeignKey("ai_queries.id"), nullable=True)
    created_at = Column(DateTime, nullable=False, default=func.now())

    __table_args__ = (
        Index("idx_activity_user", "user_id"),
        Index("idx_activity_created", "created_at"),
    )
