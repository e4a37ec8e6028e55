"""
SQLAlchemy database access.

Provides a configured engine and session factory for database operations.
"""

import logging
from functools import lru_cache
from typing import Iterator

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from plotline.config import get_settings
from plotline.models.tables import Base

logger = logging.getLogger(__name__)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_db_engine(database_url: str, echo: bool = False) -> Engine:
    """
    Create an engine for the given URL.

    SQLite connections get foreign-key enforcement switched on so that
    join rows cascade with their owners. In-memory SQLite databases share
    a single connection, otherwise every session would see an empty
    database.

    Args:
        database_url: SQLAlchemy URL.
        echo: Log emitted SQL.

    Returns:
        Configured engine.
    """
    kwargs = {"echo": echo}
    is_sqlite = database_url.startswith("sqlite")

    if is_sqlite:
        kwargs["connect_args"] = {"check_same_thread": False}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool

    engine = create_engine(database_url, **kwargs)

    if is_sqlite:
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)

    logger.info(f"Database engine created for {engine.url.render_as_string(hide_password=True)}")
    return engine


@lru_cache
def get_engine() -> Engine:
    """Get the cached application engine."""
    settings = get_settings()
    return create_db_engine(settings.database_url, echo=settings.database_echo)


@lru_cache
def get_session_factory() -> sessionmaker:
    """Get the cached session factory bound to the application engine."""
    return sessionmaker(bind=get_engine(), expire_on_commit=False)


def init_db(engine: Engine | None = None) -> None:
    """Create all tables that do not exist yet."""
    engine = engine or get_engine()
    Base.metadata.create_all(engine)
    logger.info("Database tables ensured")


def get_db() -> Iterator[Session]:
    """
    Yield a session for one request.

    The session is always closed afterwards; callers commit their own work.
    """
    session = get_session_factory()()
    try:
        yield session
    finally:
        session.close()


async def check_database_connection() -> bool:
    """
    Check if database connection is healthy.

    Returns:
        True if connection is healthy, False otherwise.
    """
    try:
        with get_engine().connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Database connection check failed: {e}")
        return False
