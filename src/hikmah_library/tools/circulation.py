"""
Circulation tools: borrow, return and renew books.

These are the tools with side effects on availability. Each one resolves the
acting user first (an unknown ``actor_id`` is a 401), then delegates to the
borrowing lifecycle manager, which enforces ownership and the loan policy.
"""

import logging
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from ..errors import LibraryError
from ..library import get_library
from ..models.circulation import Borrowing, BorrowingStatus
from .responses import invalid_input, library_failure, success, unexpected_failure

logger = logging.getLogger(__name__)


def borrowing_data(borrowing: Borrowing) -> dict[str, Any]:
    return borrowing.model_dump(mode="json")


class BorrowBookInput(BaseModel):
    """Input schema for the borrow_book tool."""

    actor_id: int = Field(..., description="ID of the user borrowing the book", ge=1)

    book_id: int = Field(..., description="ID of the book to borrow", ge=1, examples=[2])

    due_date: datetime | None = Field(
        default=None,
        description="Optional due date. Defaults to the standard loan period",
        examples=["2024-03-15T10:00:00"],
    )

    @field_validator("due_date")
    @classmethod
    def to_local_naive(cls, v: datetime | None) -> datetime | None:
        # Stored times are naive local time.
        if v is not None and v.tzinfo is not None:
            return v.astimezone().replace(tzinfo=None)
        return v


class BorrowingActionInput(BaseModel):
    """Input schema for return_book and renew_borrowing."""

    actor_id: int = Field(..., description="ID of the user performing the action", ge=1)
    borrowing_id: int = Field(..., description="ID of the borrowing", ge=1)


class ActorInput(BaseModel):
    actor_id: int = Field(..., description="ID of the acting user", ge=1)


async def borrow_book_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """Lend a book to the acting user."""
    try:
        params = BorrowBookInput.model_validate(arguments)
    except PydanticValidationError as e:
        return invalid_input("borrow_book", e)

    try:
        library = get_library()
        actor = library.accounts.resolve_actor(params.actor_id)
        borrowing = library.borrowings.borrow(actor.id, params.book_id, params.due_date)
    except LibraryError as e:
        return library_failure("borrow_book", e)
    except Exception as e:
        return unexpected_failure("borrow_book", e)

    return success(
        f"Book {borrowing.book_id} borrowed. "
        f"Due date: {borrowing.due_date.strftime('%B %d, %Y')}",
        borrowing=borrowing_data(borrowing),
        status=201,
    )


async def return_book_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    try:
        params = BorrowingActionInput.model_validate(arguments)
    except PydanticValidationError as e:
        return invalid_input("return_book", e)

    try:
        library = get_library()
        actor = library.accounts.resolve_actor(params.actor_id)
        borrowing = library.borrowings.return_book(params.borrowing_id, actor)
    except LibraryError as e:
        return library_failure("return_book", e)
    except Exception as e:
        return unexpected_failure("return_book", e)

    return success(
        f"Borrowing {borrowing.id} returned; book {borrowing.book_id} is available again.",
        borrowing=borrowing_data(borrowing),
    )


async def renew_borrowing_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    try:
        params = BorrowingActionInput.model_validate(arguments)
    except PydanticValidationError as e:
        return invalid_input("renew_borrowing", e)

    try:
        library = get_library()
        actor = library.accounts.resolve_actor(params.actor_id)
        borrowing = library.borrowings.renew(params.borrowing_id, actor)
    except LibraryError as e:
        return library_failure("renew_borrowing", e)
    except Exception as e:
        return unexpected_failure("renew_borrowing", e)

    return success(
        f"Borrowing {borrowing.id} renewed until "
        f"{borrowing.due_date.strftime('%B %d, %Y')} "
        f"(renewal {borrowing.renewal_count} of {get_library().settings.max_renewals}).",
        borrowing=borrowing_data(borrowing),
    )


async def list_borrowings_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """Staff get every open borrowing, other users their own history."""
    try:
        params = ActorInput.model_validate(arguments)
    except PydanticValidationError as e:
        return invalid_input("list_borrowings", e)

    try:
        library = get_library()
        actor = library.accounts.resolve_actor(params.actor_id)
        borrowings = library.borrowings.list_visible_borrowings(actor)
    except LibraryError as e:
        return library_failure("list_borrowings", e)
    except Exception as e:
        return unexpected_failure("list_borrowings", e)

    overdue = sum(1 for b in borrowings if b.status == BorrowingStatus.OVERDUE)
    return success(
        f"Found {len(borrowings)} borrowings ({overdue} overdue).",
        borrowings=[borrowing_data(b) for b in borrowings],
    )


async def get_borrowing_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    try:
        params = BorrowingActionInput.model_validate(arguments)
    except PydanticValidationError as e:
        return invalid_input("get_borrowing", e)

    try:
        library = get_library()
        actor = library.accounts.resolve_actor(params.actor_id)
        borrowing = library.borrowings.get_borrowing(params.borrowing_id, actor)
    except LibraryError as e:
        return library_failure("get_borrowing", e)
    except Exception as e:
        return unexpected_failure("get_borrowing", e)

    return success(
        f"Borrowing {borrowing.id} of book {borrowing.book_id}: {borrowing.status.value}, "
        f"due {borrowing.due_date.strftime('%B %d, %Y')}.",
        borrowing=borrowing_data(borrowing),
    )


async def list_overdue_borrowings_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """Staff view of late loans, oldest due date first."""
    try:
        params = ActorInput.model_validate(arguments)
    except PydanticValidationError as e:
        return invalid_input("list_overdue_borrowings", e)

    try:
        library = get_library()
        actor = library.accounts.resolve_actor(params.actor_id)
        borrowings = library.borrowings.list_overdue_borrowings(actor)
        now = library.borrowings.now()
    except LibraryError as e:
        return library_failure("list_overdue_borrowings", e)
    except Exception as e:
        return unexpected_failure("list_overdue_borrowings", e)

    if not borrowings:
        return success("No borrowings are overdue.", borrowings=[])

    lines = [
        f"- Borrowing {b.id}: book {b.book_id}, user {b.user_id}, "
        f"{b.days_overdue_at(now)} days overdue"
        for b in borrowings
    ]
    return success(
        f"{len(borrowings)} overdue borrowings:\n" + "\n".join(lines),
        borrowings=[
            {**borrowing_data(b), "days_overdue": b.days_overdue_at(now)} for b in borrowings
        ],
    )


borrow_book = {
    "name": "borrow_book",
    "description": (
        "Borrow a book for the acting user. The book must exist and be available; "
        "the due date defaults to the standard loan period."
    ),
    "inputSchema": BorrowBookInput.model_json_schema(),
    "handler": borrow_book_handler,
}

return_book = {
    "name": "return_book",
    "description": (
        "Return a borrowed book and make it available again. Only the borrower "
        "or library staff may return a borrowing."
    ),
    "inputSchema": BorrowingActionInput.model_json_schema(),
    "handler": return_book_handler,
}

renew_borrowing = {
    "name": "renew_borrowing",
    "description": (
        "Extend the due date of an open borrowing. Overdue borrowings and borrowings "
        "at the renewal limit cannot be renewed."
    ),
    "inputSchema": BorrowingActionInput.model_json_schema(),
    "handler": renew_borrowing_handler,
}

list_borrowings = {
    "name": "list_borrowings",
    "description": (
        "List borrowings with their current status. Staff see all open borrowings; "
        "other users see their own."
    ),
    "inputSchema": ActorInput.model_json_schema(),
    "handler": list_borrowings_handler,
}

get_borrowing = {
    "name": "get_borrowing",
    "description": (
        "Show one borrowing with its current status. Only the borrower or library "
        "staff may view it."
    ),
    "inputSchema": BorrowingActionInput.model_json_schema(),
    "handler": get_borrowing_handler,
}

list_overdue_borrowings = {
    "name": "list_overdue_borrowings",
    "description": (
        "List open borrowings past their due date with days overdue, oldest first. "
        "Library staff only."
    ),
    "inputSchema": ActorInput.model_json_schema(),
    "handler": list_overdue_borrowings_handler,
}
