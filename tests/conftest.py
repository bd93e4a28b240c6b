"""
Pytest configuration and fixtures for Unified Calendar tests.

Provides an in-memory database store, the embedded static calendar,
caller identities, and an event factory for pure tests.
"""

from datetime import datetime, timedelta, timezone
from typing import Callable, Generator
from zoneinfo import ZoneInfo

import pytest
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from tenacity import wait_none

from unified_calendar.config import Settings
from unified_calendar.database import (
    create_db_engine,
    create_session_factory,
    drop_all_tables,
    init_db,
)
from unified_calendar.enums import CallerRole, EventSource
from unified_calendar.integrations.database import SQLAlchemyEventStore
from unified_calendar.integrations.static_calendar import StaticCalendarSource
from unified_calendar.schemas import CallerContext, Event
from unified_calendar.services.calendar_service import CalendarService

SANTIAGO = ZoneInfo("America/Santiago")


@pytest.fixture
def settings() -> Settings:
    """Settings isolated from any local .env file, using in-memory SQLite."""
    return Settings(
        _env_file=None,
        python_env="development",
        log_level="INFO",
        database_url="sqlite:///:memory:",
        timezone="America/Santiago",
    )


@pytest.fixture(scope="function")
def engine(settings: Settings) -> Generator[Engine, None, None]:
    """
    Create a clean in-memory database for each test.

    Yields:
        Engine with all tables created
    """
    engine = create_db_engine(settings=settings)
    init_db(engine)
    try:
        yield engine
    finally:
        drop_all_tables(engine)
        engine.dispose()


@pytest.fixture
def session_factory(engine: Engine) -> sessionmaker:
    return create_session_factory(engine)


@pytest.fixture
def db_session(session_factory: sessionmaker) -> Generator[Session, None, None]:
    """Session for direct model tests. Rolled back after each test."""
    session = session_factory()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def store(session_factory: sessionmaker) -> SQLAlchemyEventStore:
    """Database store without retry backoff delays."""
    return SQLAlchemyEventStore(session_factory, retry_wait=wait_none())


@pytest.fixture(scope="session")
def static_source() -> StaticCalendarSource:
    """Embedded calendar evaluated in the institution timezone."""
    return StaticCalendarSource(SANTIAGO)


@pytest.fixture
def calendar_service(
    store: SQLAlchemyEventStore,
    static_source: StaticCalendarSource,
    settings: Settings,
) -> CalendarService:
    return CalendarService(store, static_source, settings)


# =============================================================================
# Callers
# =============================================================================


@pytest.fixture
def guest() -> CallerContext:
    return CallerContext.anonymous()


@pytest.fixture
def parent() -> CallerContext:
    return CallerContext(caller_id="parent-1", role=CallerRole.PARENT)


@pytest.fixture
def teacher() -> CallerContext:
    return CallerContext(caller_id="teacher-1", role=CallerRole.TEACHER)


@pytest.fixture
def other_teacher() -> CallerContext:
    return CallerContext(caller_id="teacher-2", role=CallerRole.TEACHER)


@pytest.fixture
def admin() -> CallerContext:
    return CallerContext(caller_id="admin-1", role=CallerRole.ADMIN)


# =============================================================================
# Sample events
# =============================================================================


@pytest.fixture
def make_event() -> Callable[..., Event]:
    """
    Factory for persisted events.

    Defaults to a one-hour MEETING on 2025-03-03 13:00 UTC authored by
    teacher-1. Keyword arguments override any field.
    """
    def _make(**overrides) -> Event:
        start = overrides.pop("start_date", datetime(2025, 3, 3, 13, 0, tzinfo=timezone.utc))
        fields = {
            "id": "evt-1",
            "title": "Staff Meeting",
            "start_date": start,
            "end_date": start + timedelta(hours=1),
            "category": "MEETING",
            "source": EventSource.PERSISTED,
            "author_id": "teacher-1",
        }
        fields.update(overrides)
        return Event(**fields)

    return _make
