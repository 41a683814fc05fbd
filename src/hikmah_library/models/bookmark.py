"""Bookmark model."""

from datetime import datetime

from pydantic import BaseModel, Field


class Bookmark(BaseModel):
    """A user's saved book. One per (user, book)."""

    id: int = Field(..., ge=1)
    user_id: int = Field(..., ge=1)
    book_id: int = Field(..., ge=1)
    created_at: datetime = Field(default_factory=datetime.now)
