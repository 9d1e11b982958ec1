"""
SQLAlchemy engine and session handling for the persistent stores.

Both SQLConversationStore and SQLLongTermMemory run their queries in
worker threads, so SQLite engines are built with cross-thread access
enabled; other backends get a pre-pinged connection pool.
"""
from contextlib import contextmanager
from typing import Any, Dict, Generator, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool

from sage.core.config import get_settings
from sage.core.logging_config import get_logger

logger = get_logger(__name__)

IN_MEMORY_SQLITE = ("sqlite://", "sqlite:///:memory:")


def _engine_options(db_url: str) -> Dict[str, Any]:
    if not db_url.startswith("sqlite"):
        return {"pool_pre_ping": True, "pool_size": 5, "max_overflow": 10}

    options: Dict[str, Any] = {"connect_args": {"check_same_thread": False}}
    if db_url in IN_MEMORY_SQLITE:
        # One shared connection, or each thread would see its own empty DB
        options["poolclass"] = StaticPool
    return options


def _redact(db_url: str) -> str:
    return db_url.split("@")[-1] if "@" in db_url else db_url


class DatabaseConnection:
    """
    Owns one engine and hands out transactional sessions.

    Example:
        >>> db = DatabaseConnection("sqlite:///./sage.db")
        >>> with db.get_session() as session:
        ...     session.execute(text("SELECT 1"))
    """

    def __init__(self, connection_url: Optional[str] = None):
        db_url = connection_url or get_settings().database_url

        self.engine = create_engine(db_url, echo=False, **_engine_options(db_url))
        self._session_factory = sessionmaker(
            bind=self.engine,
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
        )

        logger.info(f"Database engine ready: {_redact(db_url)}")

    @contextmanager
    def get_session(self) -> Generator[Session, None, None]:
        """Session committed on clean exit, rolled back on SQLAlchemy errors."""
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Database error, rolled back: {e}")
            raise
        finally:
            session.close()

    def check_connection(self) -> bool:
        """Run SELECT 1; used by the readiness probe."""
        try:
            with self.get_session() as session:
                session.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            logger.error(f"Database connection check failed: {e}")
            return False
        return True

    def close(self) -> None:
        self.engine.dispose()
        logger.info("Database engine disposed")


_db_connection: Optional[DatabaseConnection] = None


def get_database() -> DatabaseConnection:
    """The process-wide connection, created on first use."""
    global _db_connection
    if _db_connection is None:
        _db_connection = DatabaseConnection()
    return _db_connection


def reset_database() -> None:
    """Dispose and forget the process-wide connection."""
    global _db_connection
    if _db_connection is not None:
        _db_connection.close()
    _db_connection = None
