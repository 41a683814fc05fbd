"""
Catalog models: books and categories.

Every book carries English and Arabic title, author and category fields so
the catalog can be browsed and searched in either language.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Book(BaseModel):
    """A catalog entry.

    ``available`` is true exactly when the book has no open borrowing. Only the
    borrowing lifecycle changes it.
    """

    id: int = Field(..., description="Unique book identifier", ge=1)

    title: str = Field(..., min_length=1, max_length=500, examples=["Sahih Al-Bukhari"])
    title_ar: str = Field(..., min_length=1, max_length=500, examples=["صحيح البخاري"])

    author: str = Field(..., min_length=1, max_length=300, examples=["Imam Bukhari"])
    author_ar: str = Field(..., min_length=1, max_length=300, examples=["الإمام البخاري"])

    category: str = Field(..., min_length=1, max_length=100, examples=["Hadith"])
    category_ar: str = Field(..., min_length=1, max_length=100, examples=["الحديث"])

    description: str | None = Field(None, max_length=4000)
    description_ar: str | None = Field(None, max_length=4000)

    isbn: str | None = Field(None, max_length=32)

    publication_year: int | None = Field(None, ge=0, le=datetime.now().year + 1)

    cover_image: str | None = Field(None, max_length=1000)

    available: bool = Field(default=True, description="True when no open borrowing exists")

    inventory_id: str = Field(
        ...,
        description="Shelf inventory code, unique per physical copy",
        min_length=1,
        max_length=50,
        examples=["HDT001", "QRN001"],
    )

    created_at: datetime = Field(default_factory=datetime.now)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": 2,
                "title": "Sahih Al-Bukhari",
                "title_ar": "صحيح البخاري",
                "author": "Imam Bukhari",
                "author_ar": "الإمام البخاري",
                "category": "Hadith",
                "category_ar": "الحديث",
                "isbn": "HDT001",
                "publication_year": 1986,
                "available": True,
                "inventory_id": "HDT001",
            }
        }
    )


class BookCreate(BaseModel):
    """Fields accepted when adding a book. New books always start available."""

    title: str = Field(..., min_length=1, max_length=500)
    title_ar: str = Field(..., min_length=1, max_length=500)
    author: str = Field(..., min_length=1, max_length=300)
    author_ar: str = Field(..., min_length=1, max_length=300)
    category: str = Field(..., min_length=1, max_length=100)
    category_ar: str = Field(..., min_length=1, max_length=100)
    description: str | None = Field(None, max_length=4000)
    description_ar: str | None = Field(None, max_length=4000)
    isbn: str | None = Field(None, max_length=32)
    publication_year: int | None = Field(None, ge=0, le=datetime.now().year + 1)
    cover_image: str | None = Field(None, max_length=1000)
    inventory_id: str = Field(..., min_length=1, max_length=50)

    @field_validator("inventory_id")
    @classmethod
    def normalize_inventory_id(cls, v: str) -> str:
        return v.strip().upper()


class BookUpdate(BaseModel):
    """Fields accepted when editing a book - all optional."""

    title: str | None = Field(None, min_length=1, max_length=500)
    title_ar: str | None = Field(None, min_length=1, max_length=500)
    author: str | None = Field(None, min_length=1, max_length=300)
    author_ar: str | None = Field(None, min_length=1, max_length=300)
    category: str | None = Field(None, min_length=1, max_length=100)
    category_ar: str | None = Field(None, min_length=1, max_length=100)
    description: str | None = Field(None, max_length=4000)
    description_ar: str | None = Field(None, max_length=4000)
    isbn: str | None = Field(None, max_length=32)
    publication_year: int | None = Field(None, ge=0, le=datetime.now().year + 1)
    cover_image: str | None = Field(None, max_length=1000)
    available: bool | None = None
    inventory_id: str | None = Field(None, min_length=1, max_length=50)

    @field_validator(
        "title",
        "title_ar",
        "author",
        "author_ar",
        "category",
        "category_ar",
        "available",
        "inventory_id",
    )
    @classmethod
    def reject_null(cls, v):
        # None means "leave unchanged" only when the field is omitted.
        if v is None:
            raise ValueError("may be omitted but not set to null")
        return v

    @field_validator("inventory_id")
    @classmethod
    def normalize_inventory_id(cls, v: str) -> str:
        return v.strip().upper()


class Category(BaseModel):
    """A catalog category.

    ``book_count`` is computed from the books table whenever categories are
    read; it is never stored.
    """

    id: int = Field(..., ge=1)
    name: str = Field(..., min_length=1, max_length=100, examples=["Fiqh"])
    name_ar: str = Field(..., min_length=1, max_length=100, examples=["الفقه"])
    icon: str = Field(..., min_length=1, max_length=100, examples=["account_balance"])
    book_count: int = Field(default=0, ge=0)


class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    name_ar: str = Field(..., min_length=1, max_length=100)
    icon: str = Field(..., min_length=1, max_length=100)
