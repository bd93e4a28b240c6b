"""
Database configuration and session management.

Provides:
- Engine creation with per-backend configuration
- Session factory bound to an engine
- get_db_context() for scripts and request handlers
- Database initialization utilities

Nothing is created at import time; callers build the engine from settings.
"""

import logging
from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from unified_calendar.config import Settings, get_settings
from unified_calendar.models.base import Base

logger = logging.getLogger(__name__)


def _enable_sqlite_foreign_keys(dbapi_conn, connection_record):
    """Enable foreign key constraints in SQLite."""
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_db_engine(database_url: Optional[str] = None, settings: Optional[Settings] = None) -> Engine:
    """
    Create an engine configured for the target database.

    Args:
        database_url: Connection URL (default: settings.database_url)
        settings: Settings instance (default: cached settings)

    Returns:
        Engine with SQLite foreign keys enabled or a PostgreSQL pool
    """
    settings = settings or get_settings()
    url = database_url or settings.database_url
    echo = settings.log_level == "DEBUG"

    if "sqlite" in url.lower():
        kwargs: dict = {
            "connect_args": {"check_same_thread": False},
            "echo": echo,
        }
        if ":memory:" in url or url.rstrip("/").endswith("sqlite:"):
            # One shared connection so every session sees the same in-memory database
            kwargs["poolclass"] = StaticPool
        engine = create_engine(url, **kwargs)
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    else:
        engine = create_engine(
            url,
            pool_size=5,
            pool_recycle=3600,
            pool_pre_ping=True,
            echo=echo,
        )

    return engine


def create_session_factory(engine: Engine) -> sessionmaker:
    """Create a session factory bound to an engine."""
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
        bind=engine,
    )


@contextmanager
def get_db_context(session_factory: sessionmaker) -> Generator[Session, None, None]:
    """
    Context manager for database sessions.

    Usage:
        with get_db_context(session_factory) as db:
            record = db.get(CalendarEventRecord, event_id)
            record.title = "Updated"
            # Automatic commit on context exit

    Yields:
        Session: SQLAlchemy database session
    """
    db = session_factory()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def init_db(engine: Engine) -> None:
    """
    Initialize database by creating all tables.

    This is useful for development and testing. In production, use Alembic migrations.
    """
    logger.info("Creating database tables...")
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables created successfully")


def drop_all_tables(engine: Engine) -> None:
    """
    Drop all tables from the database.

    WARNING: This will delete all data. Primarily for testing and development.
    """
    logger.warning("Dropping all database tables...")
    Base.metadata.drop_all(bind=engine)
    logger.info("All database tables dropped")


def check_connection(engine: Engine) -> bool:
    """
    Test database connection.

    Returns:
        bool: True if connection successful, False otherwise
    """
    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError as e:
        logger.error(f"Database connection failed: {e}")
        return False
