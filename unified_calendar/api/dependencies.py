"""
FastAPI dependency injection providers.

Provides caller identity, query parsing, and a request-scoped
CalendarService built from the components created at startup.
"""

import logging
from typing import Optional

from fastapi import Depends, Header, HTTPException, Query, Request

from unified_calendar.config import Settings
from unified_calendar.enums import CallerRole
from unified_calendar.schemas import CallerContext, QuerySpec
from unified_calendar.services.calendar_service import CalendarService

logger = logging.getLogger(__name__)


def get_app_settings(request: Request) -> Settings:
    """Settings the application was started with."""
    return request.app.state.settings


def get_caller(
    x_user_id: Optional[str] = Header(None, description="User ID"),
    x_user_role: Optional[str] = Header(None, description="User role"),
) -> CallerContext:
    """
    Extract caller identity from headers.

    A missing user id or an unknown role gets guest visibility.

    Args:
        x_user_id: User ID from X-User-ID header
        x_user_role: Role from X-User-Role header

    Returns:
        CallerContext for the request
    """
    if not x_user_id:
        return CallerContext.anonymous()
    return CallerContext(caller_id=x_user_id, role=CallerRole.resolve(x_user_role))


def get_query_spec(
    start_date: Optional[str] = Query(None, description="Range start (ISO 8601 date or datetime)"),
    end_date: Optional[str] = Query(None, description="Range end (ISO 8601 date or datetime)"),
    categories: Optional[str] = Query(None, description="Comma-separated categories"),
    priority: Optional[str] = Query(None, description="LOW, MEDIUM or HIGH"),
    search: Optional[str] = Query(None, max_length=200, description="Title/description text"),
    caller: CallerContext = Depends(get_caller),
) -> QuerySpec:
    """
    Build a QuerySpec from query parameters.

    A date without time covers that whole day; a datetime without offset is
    local time in the institution timezone.

    Raises:
        CalendarValidationError: If any parameter is invalid
    """
    return QuerySpec.parse(
        start_date=start_date,
        end_date=end_date,
        categories=categories,
        priority=priority,
        search=search,
        caller=caller,
    )


def get_calendar_service(request: Request) -> CalendarService:
    """
    Dependency injection for the calendar service.

    Builds a fresh service per request from the store and static source
    created at startup.

    Raises:
        HTTPException: If the application has not finished starting
    """
    state = request.app.state
    if not hasattr(state, "settings"):
        logger.error("Calendar components not initialized")
        raise HTTPException(
            status_code=503,
            detail="Service temporarily unavailable - calendar not initialized",
        )
    return CalendarService(
        store=getattr(state, "store", None),
        static_source=getattr(state, "static_source", None),
        settings=state.settings,
    )
