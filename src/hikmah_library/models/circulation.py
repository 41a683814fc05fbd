"""
Borrowing model.

A borrowing moves through a small state machine:

    (none) --borrow--> active --return--> returned
                         |                   ^
                         +-- overdue --------+

``overdue`` is derived when borrowings are read: an open borrowing whose due
date has passed. Nothing sweeps stored rows, so storage normally keeps
``active`` until the book comes back.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator


class BorrowingStatus(str, Enum):
    """Stored or effective status of a borrowing."""

    ACTIVE = "active"
    OVERDUE = "overdue"
    RETURNED = "returned"


OPEN_STATUSES = frozenset({BorrowingStatus.ACTIVE, BorrowingStatus.OVERDUE})


class Borrowing(BaseModel):
    """A loan of one book to one user."""

    id: int = Field(..., description="Unique borrowing identifier", ge=1)

    user_id: int = Field(..., description="Borrowing user", ge=1)

    book_id: int = Field(..., description="Borrowed book", ge=1)

    borrow_date: datetime = Field(
        default_factory=datetime.now,
        description="When the book was borrowed",
    )

    due_date: datetime = Field(..., description="When the book must be back")

    return_date: datetime | None = Field(None, description="When the book came back")

    status: BorrowingStatus = Field(default=BorrowingStatus.ACTIVE)

    renewal_count: int = Field(default=0, ge=0, description="Renewals granted so far")

    @model_validator(mode="after")
    def validate_dates(self) -> "Borrowing":
        if self.return_date is not None and self.return_date < self.borrow_date:
            raise ValueError("Return date cannot be before borrow date")
        if self.status == BorrowingStatus.RETURNED and self.return_date is None:
            raise ValueError("Returned borrowings must have a return date")
        return self

    @property
    def is_open(self) -> bool:
        """True while the book has not been returned."""
        return self.status in OPEN_STATUSES

    def is_overdue_at(self, now: datetime) -> bool:
        return self.is_open and self.due_date < now

    def days_overdue_at(self, now: datetime) -> int:
        if not self.is_overdue_at(now):
            return 0
        return (now - self.due_date).days

    def effective_status(self, now: datetime) -> BorrowingStatus:
        """Status as clients should see it at ``now``."""
        if self.is_overdue_at(now):
            return BorrowingStatus.OVERDUE
        return self.status

    def with_effective_status(self, now: datetime) -> "Borrowing":
        status = self.effective_status(now)
        if status == self.status:
            return self
        return self.model_copy(update={"status": status})

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": 12,
                "user_id": 3,
                "book_id": 2,
                "borrow_date": "2024-03-01T10:30:00",
                "due_date": "2024-03-15T10:30:00",
                "return_date": None,
                "status": "active",
                "renewal_count": 0,
            }
        },
    )
