"""SQLite database connection and session management."""

import logging
import os
from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Optional

from sqlalchemy import create_engine, inspect
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from .models import Base

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = Path.home() / ".productcollect" / "collects.db"


class Database:
    """Database connection and session manager."""

    def __init__(self, db_path: Optional[str] = None):
        """Initialize database connection.

        Args:
            db_path: Path to SQLite database file. If None, uses
                     PRODUCTCOLLECT_DB_PATH env var or default location.
        """
        if db_path is None:
            db_path = os.environ.get("PRODUCTCOLLECT_DB_PATH", str(DEFAULT_DB_PATH))

        self.db_path = Path(db_path).expanduser()
        self._is_memory = str(db_path) == ":memory:"

        if not self._is_memory:
            self._ensure_directory()

        # For in-memory databases, use StaticPool to reuse the same connection
        # This ensures all sessions share the same in-memory database
        if self._is_memory:
            self.engine = create_engine(
                "sqlite:///:memory:",
                echo=False,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        else:
            self.engine = create_engine(
                f"sqlite:///{self.db_path}",
                echo=False,
                connect_args={"check_same_thread": False},
            )
        self.SessionLocal = sessionmaker(bind=self.engine, autocommit=False, autoflush=False)

    def _ensure_directory(self) -> None:
        """Ensure the database directory exists."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def create_tables(self) -> None:
        """Create all database tables."""
        # Import models to register them with Base
        from ..catalog.models import Sku  # noqa: F401
        from ..collects.models import ProductCollect  # noqa: F401

        Base.metadata.create_all(self.engine)
        logger.debug("Tables ready in %s", "memory" if self._is_memory else self.db_path)

    def drop_tables(self) -> None:
        """Drop all database tables. Use with caution!"""
        Base.metadata.drop_all(self.engine)

    def has_table(self, name: str) -> bool:
        """Check whether a table exists in the backing database."""
        return inspect(self.engine).has_table(name)

    @contextmanager
    def get_session(self) -> Generator[Session, None, None]:
        """Get a database session context manager."""
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()


# Global database instance
_db: Optional[Database] = None


def get_db(db_path: Optional[str] = None) -> Database:
    """Get or create the global database instance."""
    global _db
    if _db is None:
        _db = Database(db_path)
        _db.create_tables()
    return _db


def reset_db() -> None:
    """Reset the global database instance. Used for testing."""
    global _db
    _db = None
