"""Test configuration and fixtures for the Al Hikmah Library server.

1. Isolated stores - every test gets a fresh store; store-level tests run
   against both the SQLite and the in-memory implementation
2. A controllable clock - loan dates and overdue checks are deterministic
3. A seeded library - the starter catalog and the admin/librarian/user accounts
4. Service wiring - tool and resource tests get a ``Library`` installed as
   the process-wide instance, with the AI backend mocked
"""

from collections.abc import Generator
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from hikmah_library.config import LibrarySettings, reset_settings
from hikmah_library.database import (
    DatabaseManager,
    UnitOfWorkFactory,
    memory_uow_factory,
    seed_library,
    sql_uow_factory,
)
from hikmah_library.library import Library, set_library
from hikmah_library.models.book import Book
from hikmah_library.models.user import User

START = datetime(2024, 3, 1, 10, 0, 0)


@dataclass
class FakeClock:
    """Callable clock that only moves when told to."""

    now: datetime = field(default=START)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@dataclass
class Seeded:
    """Handles on the seeded accounts and books."""

    admin: User
    librarian: User
    user: User
    books: dict[str, Book]

    @property
    def bukhari(self) -> Book:
        return self.books["HDT001"]

    @property
    def quran(self) -> Book:
        return self.books["QRN001"]

    @property
    def riyad(self) -> Book:
        """On loan to ``user`` from the start."""
        return self.books["HDT012"]


# === Settings ===


@pytest.fixture
def settings() -> Generator[LibrarySettings, None, None]:
    """Settings that ignore the developer's environment and .env file."""
    reset_settings()
    yield LibrarySettings(
        _env_file=None,
        database_url="memory://",
        seed_on_startup=False,
        openai_api_key="test-key",
        ai_timeout_seconds=1.0,
    )
    reset_settings()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


# === Stores ===


@pytest.fixture
def sqlite_url(tmp_path: Path) -> str:
    return f"sqlite:///{tmp_path / 'library.db'}"


@pytest.fixture
def db_manager(sqlite_url: str) -> Generator[DatabaseManager, None, None]:
    manager = DatabaseManager(sqlite_url)
    manager.init_database()
    yield manager
    manager.close()


@pytest.fixture(params=["memory", "sqlite"])
def uow_factory(request, tmp_path: Path) -> Generator[UnitOfWorkFactory, None, None]:
    """A fresh store of each kind."""
    if request.param == "memory":
        yield memory_uow_factory()
        return

    manager = DatabaseManager(f"sqlite:///{tmp_path / 'library.db'}")
    manager.init_database()
    yield sql_uow_factory(manager)
    manager.close()


@pytest.fixture
def memory_uow() -> UnitOfWorkFactory:
    return memory_uow_factory()


def load_seed(uow_factory: UnitOfWorkFactory, now: datetime) -> Seeded:
    with uow_factory() as uow:
        seed_library(uow, now=now)
        books = {b.inventory_id: b for b in uow.books.list_all()}
        return Seeded(
            admin=uow.users.get_by_username("admin"),
            librarian=uow.users.get_by_username("librarian"),
            user=uow.users.get_by_username("user"),
            books=books,
        )


@pytest.fixture
def seed_store():
    """The seeding helper, for tests that build their own store."""
    return load_seed


@pytest.fixture
def seeded(uow_factory: UnitOfWorkFactory, clock: FakeClock) -> Seeded:
    return load_seed(uow_factory, clock())


# === Service wiring ===


@pytest.fixture
def completion_client() -> AsyncMock:
    client = AsyncMock()
    client.complete.return_value = '{"answer": "Patience is praised.", "references": ["Quran 2:153"]}'
    return client


@pytest.fixture
def library(
    uow_factory: UnitOfWorkFactory,
    seeded: Seeded,
    settings: LibrarySettings,
    clock: FakeClock,
    completion_client: AsyncMock,
) -> Generator[Library, None, None]:
    """A library over a seeded store, installed for tools and resources."""
    library = Library(uow_factory, settings, clock=clock, completion_client=completion_client)
    set_library(library)
    yield library
    set_library(None)
