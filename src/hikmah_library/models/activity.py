"""
Audit trail models.

Both record types are append-only: rows are created and read, never changed.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class ActivityType(str, Enum):
    """User-triggered events recorded in the activity log."""

    BORROW = "borrow"
    RETURN = "return"
    RENEW = "renew"
    BOOKMARK = "bookmark"
    QUERY = "query"


class UserActivity(BaseModel):
    """One entry in a user's activity trail."""

    id: int = Field(..., ge=1)
    user_id: int = Field(..., ge=1)
    activity_type: ActivityType
    book_id: int | None = None
    ai_query_id: int | None = None
    created_at: datetime = Field(default_factory=datetime.now)


class AiQuery(BaseModel):
    """A logged assistant exchange. ``response`` holds the reply as JSON text."""

    id: int = Field(..., ge=1)
    user_id: int | None = None
    query: str = Field(..., min_length=1)
    response: str
    created_at: datetime = Field(default_factory=datetime.now)
