"""
Repository base classes for the SQL store.

Repositories translate between SQLAlchemy rows and the pydantic models in
``hikmah_library.models``. They only flush; the unit of work that owns the
session decides when to commit, so several repository calls can form one
atomic change (borrow = claim book + insert borrowing).
"""

from abc import ABC, abstractmethod
from typing import Generic, TypeVar

from pydantic import BaseModel
from sqlalchemy import asc, desc, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..errors import ConflictError, ValidationError
from .schema import Base
from .session import safe_flush, safe_query

ModelType = TypeVar("ModelType", bound=Base)
ResponseSchemaType = TypeVar("ResponseSchemaType", bound=BaseModel)

MAX_PAGE_SIZE = 100


class PaginationParams(BaseModel):
    """Standard pagination parameters for list operations."""

    page: int = 1
    page_size: int = 20

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size

    def validate_params(self) -> None:
        if self.page < 1:
            raise ValidationError("Page must be >= 1")
        if self.page_size < 1 or self.page_size > MAX_PAGE_SIZE:
            raise ValidationError(f"Page size must be between 1 and {MAX_PAGE_SIZE}")


class PaginatedResponse(BaseModel, Generic[ResponseSchemaType]):
    """Standard paginated response."""

    items: list[ResponseSchemaType]
    total: int
    page: int
    page_size: int
    total_pages: int
    has_next: bool
    has_previous: bool

    @classmethod
    def build(
        cls, items: list, total: int, pagination: PaginationParams
    ) -> "PaginatedResponse":
        return cls(
            items=items,
            total=total,
            page=pagination.page,
            page_size=pagination.page_size,
            total_pages=(total + pagination.page_size - 1) // pagination.page_size,
            has_next=pagination.page * pagination.page_size < total,
            has_previous=pagination.page > 1,
        )


def like_pattern(term: str) -> str:
    """Build a substring LIKE pattern with wildcards in ``term`` escaped."""
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


class BaseRepository(ABC, Generic[ModelType, ResponseSchemaType]):
    """
    Common read/delete operations over one table.

    Subclasses provide the row class and the response schema, and add their
    own create/update methods.
    """

    def __init__(self, session: Session):
        self.session = session

    @property
    @abstractmethod
    def model_class(self) -> type[ModelType]:
        """Return the SQLAlchemy model class."""

    @property
    @abstractmethod
    def response_schema(self) -> type[ResponseSchemaType]:
        """Return the pydantic response schema."""

    def _to_response_model(self, db_obj: ModelType) -> ResponseSchemaType:
        return self.response_schema.model_validate(db_obj, from_attributes=True)

    def _get_row(self, id: int, for_update: bool = False) -> ModelType | None:
        query = (
            select(self.model_class)
            .where(self.model_class.id == id)
            .execution_options(populate_existing=True)
        )
        if for_update:
            query = query.with_for_update()
        return safe_query(
            self.session,
            lambda s: s.execute(query).scalar_one_or_none(),
            f"Failed to get {self.model_class.__name__} by ID",
        )

    def _add(self, db_obj: ModelType, operation: str) -> ResponseSchemaType:
        """Insert a row and return it as a response model.

        Raises:
            ConflictError: If a unique or foreign key constraint rejects the row
        """
        self.session.add(db_obj)
        try:
            safe_flush(self.session, operation)
        except IntegrityError as e:
            raise ConflictError(f"Cannot {operation}: conflicting record exists") from e
        self.session.refresh(db_obj)
        return self._to_response_model(db_obj)

    def get_by_id(self, id: int) -> ResponseSchemaType | None:
        db_obj = self._get_row(id)
        if db_obj is None:
            return None
        return self._to_response_model(db_obj)

    def list_all(
        self,
        pagination: PaginationParams | None = None,
        order_by: str | None = None,
        order_desc: bool = False,
    ) -> list[ResponseSchemaType] | PaginatedResponse[ResponseSchemaType]:
        """
        List rows, optionally sorted and paginated.

        Returns a plain list without pagination, a PaginatedResponse with it.
        """
        query = select(self.model_class)

        if order_by and hasattr(self.model_class, order_by):
            order_field = getattr(self.model_class, order_by)
            query = query.order_by(desc(order_field) if order_desc else asc(order_field))
        else:
            query = query.order_by(self.model_class.id)

        if pagination:
            pagination.validate_params()

            count_query = select(func.count()).select_from(self.model_class)
            total = (
                safe_query(
                    self.session,
                    lambda s: s.execute(count_query).scalar(),
                    "Failed to get total count",
                )
                or 0
            )

            query = query.offset(pagination.offset).limit(pagination.page_size)
            results = safe_query(
                self.session,
                lambda s: s.execute(query).scalars().all(),
                "Failed to get paginated results",
            )
            items = [self._to_response_model(item) for item in results]
            return PaginatedResponse[self.response_schema].build(items, total, pagination)

        results = safe_query(
            self.session, lambda s: s.execute(query).scalars().all(), "Failed to get all results"
        )
        return [self._to_response_model(item) for item in results]

    def delete(self, id: int) -> bool:
        """
        Delete a row by ID.

        Returns:
            True if deleted, False if not found

        Raises:
            ConflictError: If other rows still reference it
        """
        db_obj = self._get_row(id)
        if db_obj is None:
            return False

        self.session.delete(db_obj)
        try:
            safe_flush(self.session, f"delete {self.model_class.__name__}")
        except IntegrityError as e:
            raise ConflictError(
                f"{self.model_class.__name__} {id} is still referenced by other records"
            ) from e
        return True
