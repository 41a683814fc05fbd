"""
Database session management.

Provides the engine and the session factory used by the SQL unit of work,
plus helpers that turn driver errors into library errors. Sessions are
short-lived: one per unit of work.
"""

import logging
from collections.abc import Callable
from pathlib import Path
from typing import TypeVar

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ..config import get_settings
from ..errors import RepositoryError
from .schema import Base

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _is_memory_sqlite(url: str) -> bool:
    return url in ("sqlite://", "sqlite:///:memory:") or "mode=memory" in url


class DatabaseManager:
    """
    Owns the engine and session factory for one database.

    - Foreign keys are enforced on SQLite
    - In-memory SQLite shares a single connection (StaticPool) so every
      session sees the same database
    - File databases use a regular pool with a busy timeout so concurrent
      writers queue instead of failing
    """

    def __init__(self, database_url: str | None = None):
        if database_url is None:
            settings = get_settings()
            if settings.database_url:
                database_url = settings.database_url
            else:
                db_path = settings.database_path
                if not db_path.is_absolute():
                    db_path = Path.cwd() / db_path
                db_path.parent.mkdir(exist_ok=True, parents=True)
                database_url = f"sqlite:///{db_path}"
                logger.info("Using SQLite database at: %s", db_path)

        self.database_url = database_url
        self._engine: Engine | None = None
        self._session_factory: sessionmaker | None = None

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            if self.database_url.startswith("sqlite"):
                if _is_memory_sqlite(self.database_url):
                    self._engine = create_engine(
                        self.database_url,
                        poolclass=StaticPool,
                        connect_args={"check_same_thread": False},
                        echo=False,
                    )
                else:
                    self._engine = create_engine(
                        self.database_url,
                        connect_args={"check_same_thread": False, "timeout": 30},
                        echo=False,
                    )

                @event.listens_for(self._engine, "connect")
                def set_sqlite_pragma(dbapi_connection, connection_record):  # noqa: ARG001
                    cursor = dbapi_connection.cursor()
                    cursor.execute("PRAGMA foreign_keys=ON")
                    cursor.close()
            else:
                self._engine = create_engine(
                    self.database_url,
                    pool_size=10,
                    max_overflow=20,
                    pool_pre_ping=True,
                    echo=False,
                )

            logger.info("Database engine created: %s", self._engine.url)

        return self._engine

    @property
    def session_factory(self) -> sessionmaker:
        if self._session_factory is None:
            self._session_factory = sessionmaker(
                bind=self.engine,
                autoflush=False,
                # Models are converted to pydantic before commit; keep rows usable after.
                expire_on_commit=False,
            )
        return self._session_factory

    def init_database(self, drop_existing: bool = False) -> None:
        """Create (and optionally drop) all tables."""
        engine = self.engine

        if drop_existing:
            logger.warning("Dropping all existing tables...")
            Base.metadata.drop_all(bind=engine)

        logger.info("Creating database tables...")
        Base.metadata.create_all(bind=engine)
        logger.info("Database initialization complete")

    def verify_connection(self) -> bool:
        """Run a trivial query; used by the server's startup check."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            logger.info("Database connection verified")
            return True
        except SQLAlchemyError:
            logger.exception("Database connection failed")
            return False

    def close(self) -> None:
        if self._engine:
            self._engine.dispose()
            logger.info("Database engine disposed")
        self._engine = None
        self._session_factory = None


_db_manager: DatabaseManager | None = None


def get_db_manager(database_url: str | None = None) -> DatabaseManager:
    """
    Get the global database manager.

    Args:
        database_url: Database URL (only used on first call)
    """
    global _db_manager  # noqa: PLW0603 - process-wide engine

    if _db_manager is None:
        _db_manager = DatabaseManager(database_url)

    return _db_manager


def reset_db_manager() -> None:
    """Dispose of the global manager (used by tests and shutdown)."""
    global _db_manager  # noqa: PLW0603

    if _db_manager is not None:
        _db_manager.close()
    _db_manager = None


def safe_flush(session: Session, operation: str) -> None:
    """
    Flush pending changes, converting driver errors to RepositoryError.

    IntegrityError is re-raised untouched so callers can map constraint
    violations to domain conflicts.
    """
    try:
        session.flush()
    except IntegrityError:
        raise
    except SQLAlchemyError as e:
        raise RepositoryError(f"Database operation '{operation}' failed: {e!s}") from e


def safe_commit(session: Session, operation: str) -> None:
    """Commit the session, rolling back and raising RepositoryError on failure."""
    try:
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        raise RepositoryError(f"Database operation '{operation}' failed: {e!s}") from e


def safe_query(session: Session, query_func: Callable[[Session], T], error_msg: str) -> T:
    """
    Execute a query, logging and wrapping driver errors.

    Raises:
        RepositoryError: If the query fails
    """
    try:
        return query_func(session)
    except SQLAlchemyError as e:
        logger.exception("Query failed")
        raise RepositoryError(f"{error_msg}: Database query failed") from e
