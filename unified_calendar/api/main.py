"""
FastAPI application for the Unified Calendar.

This is the main entry point for the HTTP API, providing:
- Calendar read endpoints (events, statistics, export)
- Event management endpoints (create, update, delete)
- Health endpoint
"""

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy.engine import make_url

from unified_calendar import __version__
from unified_calendar.api.middleware import RequestLoggingMiddleware, get_request_id
from unified_calendar.api.models import HealthResponse
from unified_calendar.api.routes import router as calendar_router
from unified_calendar.config import Settings, get_settings
from unified_calendar.database import (
    check_connection,
    create_db_engine,
    create_session_factory,
    init_db,
)
from unified_calendar.exceptions import (
    AuthorizationError,
    CalendarError,
    CalendarValidationError,
    EventNotFoundError,
    RecurrenceDefinitionError,
    StaticDatasetError,
    StoreUnavailableError,
)
from unified_calendar.integrations.base import EventStore
from unified_calendar.integrations.database import SQLAlchemyEventStore
from unified_calendar.integrations.static_calendar import StaticCalendarSource

logger = logging.getLogger(__name__)

# Checked in order; the first matching class wins
ERROR_STATUS = (
    (RecurrenceDefinitionError, 422, "recurrence_error"),
    (CalendarValidationError, 422, "validation_error"),
    (AuthorizationError, 403, "authorization_error"),
    (EventNotFoundError, 404, "not_found"),
    (StoreUnavailableError, 503, "store_unavailable"),
)


# =============================================================================
# Application Lifecycle
# =============================================================================


def _ensure_sqlite_directory(database_url: str) -> None:
    database = make_url(database_url).database
    if database and database != ":memory:":
        Path(database).parent.mkdir(parents=True, exist_ok=True)


def init_calendar(
    app: FastAPI,
    settings: Optional[Settings] = None,
    store: Optional[EventStore] = None,
    static_source: Optional[StaticCalendarSource] = None,
) -> None:
    """
    Create the long-lived calendar components and attach them to app.state.

    Components passed in are used as-is. A static dataset that fails to load
    is logged and left out; reads then report degraded results.
    """
    settings = settings or get_settings()
    settings.validate_production_config()
    app.state.settings = settings

    if static_source is None:
        try:
            static_source = StaticCalendarSource(settings.tzinfo)
        except StaticDatasetError as e:
            logger.error(f"Static calendar failed to load: {e.message}")
    app.state.static_source = static_source

    app.state.engine = None
    if store is None:
        if settings.uses_sqlite:
            _ensure_sqlite_directory(settings.database_url)
        engine = create_db_engine(settings=settings)
        if settings.is_development:
            init_db(engine)
        store = SQLAlchemyEventStore.from_settings(create_session_factory(engine), settings)
        app.state.engine = engine
    app.state.store = store

    logger.info(
        f"Calendar initialized for {settings.institution_name} "
        f"(timezone {settings.timezone}, "
        f"{len(static_source) if static_source is not None else 0} static events)"
    )


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[EventStore] = None,
    static_source: Optional[StaticCalendarSource] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Settings instance (default: cached settings at startup)
        store: Event store (default: database store from settings)
        static_source: Static calendar (default: embedded dataset)
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager."""
        logger.info("Starting Unified Calendar API")
        init_calendar(app, settings, store, static_source)

        yield

        logger.info("Shutting down Unified Calendar API")
        if app.state.engine is not None:
            app.state.engine.dispose()

    app = FastAPI(
        title="Unified Calendar API",
        description="""
# Unified Calendar API

One calendar view merging the institution's embedded holiday and academic
calendar with user-created events.

## Caller identity
Send `X-User-ID` and `X-User-Role` (GUEST, PARENT, TEACHER, STAFF, ADMIN,
MASTER). A missing id or unknown role is treated as GUEST.

## Partial results
If the event store is unreachable, reads still return 200 with the static
calendar and `degraded: true`.

## Error Handling
- **403** - Caller may not modify the event
- **404** - Event not found
- **422** - Invalid query, event data or recurrence rule
- **503** - Event store unavailable (mutations only)
        """,
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    app.add_middleware(RequestLoggingMiddleware)
    app.include_router(calendar_router)

    # =========================================================================
    # Exception Handlers
    # =========================================================================

    @app.exception_handler(CalendarError)
    async def calendar_exception_handler(request: Request, exc: CalendarError):
        """Map calendar errors to status codes with a consistent body."""
        for error_class, status_code, error_type in ERROR_STATUS:
            if isinstance(exc, error_class):
                break
        else:
            status_code, error_type = 500, "internal_error"
            logger.error(f"[{get_request_id()}] Calendar error: {exc.message}", exc_info=exc)

        if status_code < 500 or error_type == "store_unavailable":
            logger.warning(f"[{get_request_id()}] {error_type}: {exc.message}")

        return JSONResponse(
            status_code=status_code,
            content={
                "error_type": error_type,
                "message": exc.message,
                "retryable": exc.retryable,
            },
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        """Handle HTTP exceptions with consistent format."""
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error_type": "http_error",
                "message": exc.detail,
                "retryable": exc.status_code >= 500,
            },
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle unexpected exceptions."""
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "error_type": "internal_error",
                "message": "An unexpected error occurred",
                "retryable": True,
            },
        )

    # =========================================================================
    # Health
    # =========================================================================

    @app.get(
        "/health",
        response_model=HealthResponse,
        summary="Health check",
        tags=["System"],
    )
    def health_check(request: Request) -> HealthResponse:
        """Report database and static calendar status."""
        state = request.app.state
        engine = getattr(state, "engine", None)
        if engine is not None:
            database_connected = check_connection(engine)
        else:
            database_connected = getattr(state, "store", None) is not None

        static_source = getattr(state, "static_source", None)
        healthy = database_connected and static_source is not None

        return HealthResponse(
            status="healthy" if healthy else "degraded",
            version=__version__,
            database_connected=database_connected,
            static_calendar_loaded=static_source is not None,
            static_dataset_version=static_source.version if static_source is not None else None,
        )

    return app


app = create_app()


# =============================================================================
# Run with Uvicorn
# =============================================================================


def run_server(host: Optional[str] = None, port: Optional[int] = None, reload: bool = False):
    """Run the API server with Uvicorn."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "unified_calendar.api.main:app",
        host=host or settings.api_host,
        port=port or settings.api_port,
        reload=reload,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run_server(reload=True)
