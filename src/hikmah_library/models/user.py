"""User account model."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..permissions import Role


class User(BaseModel):
    """A library account.

    ``password_hash`` is kept on the model so the account service can verify
    credentials, but it is excluded from every serialization.
    """

    id: int = Field(..., description="Unique user identifier", ge=1)

    username: str = Field(
        ...,
        description="Unique login name",
        min_length=3,
        max_length=50,
        examples=["admin", "librarian", "aisha.bello"],
    )

    password_hash: str = Field(..., exclude=True, repr=False)

    full_name: str = Field(..., description="Display name", min_length=1, max_length=200)

    email: str = Field(
        ...,
        description="Contact email address",
        pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$",
    )

    role: Role = Field(default=Role.USER, description="Account role")

    created_at: datetime = Field(default_factory=datetime.now)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": 3,
                "username": "user",
                "full_name": "Regular User",
                "email": "user@example.com",
                "role": "user",
            }
        }
    )


class UserCreate(BaseModel):
    """Data needed to store a new account (password already hashed)."""

    username: str = Field(..., min_length=3, max_length=50, pattern=r"^[A-Za-z0-9_.-]+$")
    password_hash: str
    full_name: str = Field(..., min_length=1, max_length=200)
    email: str = Field(..., pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    role: Role = Role.USER

    @field_validator("username")
    @classmethod
    def normalize_username(cls, v: str) -> str:
        return v.strip()
