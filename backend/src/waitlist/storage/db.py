"""Database connection and session management."""

from contextlib import contextmanager
from datetime import datetime
from typing import Any, Generator

from sqlalchemy import create_engine, func, select, text
from sqlalchemy.engine import make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from waitlist.logging_config import get_logger
from waitlist.settings import settings
from waitlist.storage.models import Base

logger = get_logger(__name__)


def _engine_options(database_url: str) -> dict[str, Any]:
    """Driver-specific engine options."""
    url = make_url(database_url)
    if url.get_backend_name() != "sqlite":
        return {"pool_pre_ping": True}

    options: dict[str, Any] = {"connect_args": {"check_same_thread": False}}
    if url.database in (None, "", ":memory:"):
        # One shared connection, otherwise every checkout sees an empty database
        options["poolclass"] = StaticPool
    return options


class Database:
    """Database connection manager.

    One engine (and its pool) per process, shared by every request.
    """

    def __init__(self, database_url: str | None = None):
        """Initialize database connection.

        Args:
            database_url: Database URL (defaults to settings)
        """
        self.database_url = database_url or settings.database_url
        self.engine = create_engine(
            self.database_url,
            echo=settings.env == "development" and settings.log_level.upper() == "DEBUG",
            **_engine_options(self.database_url),
        )
        self.SessionLocal = sessionmaker(
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
            bind=self.engine,
        )
        logger.info("database_initialized", url=self.engine.url.render_as_string(hide_password=True))

    def create_tables(self) -> None:
        """Create all tables in the database."""
        Base.metadata.create_all(bind=self.engine)
        logger.info("tables_created")

    def drop_tables(self) -> None:
        """Drop all tables from the database."""
        Base.metadata.drop_all(bind=self.engine)
        logger.warning("tables_dropped")

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        """Provide a transactional scope for database operations.

        Commits when the block exits cleanly, rolls back and re-raises otherwise.

        Yields:
            Database session
        """
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def ping(self) -> datetime:
        """Round-trip the database and return its clock."""
        with self.engine.connect() as conn:
            conn.execute(text("SELECT 1"))
            return conn.execute(select(func.current_timestamp())).scalar_one()

    def describe(self) -> dict[str, Any]:
        """Connection details for operator diagnostics."""
        url = self.engine.url
        return {
            "now": self.ping(),
            "backend": url.get_backend_name(),
            "database": url.database,
            "user": url.username,
        }


# Global database instance
db = Database()
