"""Category repository. Book counts are computed from the books table."""

from sqlalchemy import func, or_, select

from ..models.book import Category as CategoryModel
from ..models.book import CategoryCreate
from .repository import BaseRepository
from .schema import Book as BookDB
from .schema import Category as CategoryDB
from .session import safe_query


class CategoryRepository(BaseRepository[CategoryDB, CategoryModel]):
    @property
    def model_class(self):
        return CategoryDB

    @property
    def response_schema(self):
        return CategoryModel

    def _to_response_model(self, db_obj: CategoryDB) -> CategoryModel:
        count_query = (
            select(func.count())
            .select_from(BookDB)
            .where(or_(BookDB.category == db_obj.name, BookDB.category_ar == db_obj.name_ar))
        )
        book_count = (
            safe_query(
                self.session,
                lambda s: s.execute(count_query).scalar(),
                "Failed to count category books",
            )
            or 0
        )
        return CategoryModel(
            id=db_obj.id,
            name=db_obj.name,
            name_ar=db_obj.name_ar,
            icon=db_obj.icon,
            book_count=book_count,
        )

    def get_by_name(self, name: str) -> CategoryModel | None:
        """Look up a category by its English or Arabic name."""
        query = select(CategoryDB).where(or_(CategoryDB.name == name, CategoryDB.name_ar == name))
        row = safe_query(
            self.session,
            lambda s: s.execute(query).scalars().first(),
            "Failed to get category by name",
        )
        return self._to_response_model(row) if row else None

    def create(self, data: CategoryCreate) -> CategoryModel:
        """
        Raises:
            ConflictError: If either name is already used
        """
        return self._add(CategoryDB(**data.model_dump()), "create category")
