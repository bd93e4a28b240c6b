"""
Calendar endpoints.

Reads go through the query/merge engine; mutations go through the event
store. Handlers are plain functions so FastAPI runs the blocking store
calls in its thread pool.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response

from unified_calendar.api.dependencies import get_caller, get_calendar_service, get_query_spec
from unified_calendar.api.models import DeleteEventResponse, ErrorResponse, EventListResponse
from unified_calendar.enums import ExportFormat
from unified_calendar.schemas import (
    CalendarStatistics,
    CallerContext,
    Event,
    EventCreate,
    EventUpdate,
    QuerySpec,
)
from unified_calendar.services.calendar_service import CalendarService
from unified_calendar.services.export import export_filename, media_type

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/calendar", tags=["Calendar"])


@router.get(
    "/events",
    response_model=EventListResponse,
    summary="List events",
    description="Merged static and persisted events visible to the caller, sorted by start.",
)
def list_events(
    spec: QuerySpec = Depends(get_query_spec),
    service: CalendarService = Depends(get_calendar_service),
) -> EventListResponse:
    result = service.query(spec)
    return EventListResponse(
        events=result.events,
        total=len(result),
        degraded=result.degraded,
        warnings=result.warnings,
    )


@router.get(
    "/events/upcoming",
    response_model=EventListResponse,
    summary="List upcoming events",
)
def list_upcoming_events(
    days: int = Query(default=30, ge=1, le=366),
    limit: Optional[int] = Query(default=None, ge=1, le=500),
    caller: CallerContext = Depends(get_caller),
    service: CalendarService = Depends(get_calendar_service),
) -> EventListResponse:
    events = service.upcoming(caller, days=days, limit=limit)
    return EventListResponse(events=events, total=len(events))


@router.get(
    "/events/{event_id}",
    response_model=Event,
    summary="Get event",
    description="Static, persisted or occurrence event by id, if visible to the caller.",
    responses={
        404: {"model": ErrorResponse, "description": "Event not found"},
        503: {"model": ErrorResponse, "description": "Event store unavailable"},
    },
)
def get_event(
    event_id: str,
    caller: CallerContext = Depends(get_caller),
    service: CalendarService = Depends(get_calendar_service),
) -> Event:
    return service.get_event(event_id, caller)


@router.get(
    "/statistics",
    response_model=CalendarStatistics,
    summary="Event statistics",
    description="Counts over exactly the events GET /calendar/events returns for the same query.",
)
def get_statistics(
    spec: QuerySpec = Depends(get_query_spec),
    service: CalendarService = Depends(get_calendar_service),
) -> CalendarStatistics:
    return service.summarize(spec)


@router.get(
    "/export",
    summary="Export events",
    description="Export the query result as CSV, JSON or iCalendar.",
    responses={
        200: {"description": "Exported calendar file"},
        422: {"model": ErrorResponse, "description": "Unsupported format or invalid query"},
    },
)
def export_calendar(
    format: str = Query(..., description="CSV, JSON or ICAL"),
    spec: QuerySpec = Depends(get_query_spec),
    service: CalendarService = Depends(get_calendar_service),
) -> Response:
    export_format = ExportFormat.parse(format)
    content = service.export(spec, export_format)
    filename = export_filename(export_format)

    logger.info(f"Exported calendar as {export_format} for {spec.caller.role}")

    return Response(
        content=content,
        media_type=media_type(export_format),
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post(
    "/events",
    response_model=Event,
    status_code=201,
    summary="Create event",
    responses={
        403: {"model": ErrorResponse, "description": "Caller may not create events"},
        422: {"model": ErrorResponse, "description": "Validation or recurrence error"},
    },
)
def create_event(
    data: EventCreate,
    caller: CallerContext = Depends(get_caller),
    service: CalendarService = Depends(get_calendar_service),
) -> Event:
    return service.create_event(data, caller)


@router.patch(
    "/events/{event_id}",
    response_model=Event,
    summary="Update event",
    responses={
        403: {"model": ErrorResponse, "description": "Caller is not the author or an administrator"},
        404: {"model": ErrorResponse, "description": "Event not found"},
    },
)
def update_event(
    event_id: str,
    changes: EventUpdate,
    caller: CallerContext = Depends(get_caller),
    service: CalendarService = Depends(get_calendar_service),
) -> Event:
    return service.update_event(event_id, changes, caller)


@router.delete(
    "/events/{event_id}",
    response_model=DeleteEventResponse,
    summary="Delete event",
    responses={
        403: {"model": ErrorResponse, "description": "Caller is not the author or an administrator"},
        404: {"model": ErrorResponse, "description": "Event not found"},
    },
)
def delete_event(
    event_id: str,
    caller: CallerContext = Depends(get_caller),
    service: CalendarService = Depends(get_calendar_service),
) -> DeleteEventResponse:
    service.delete_event(event_id, caller)
    return DeleteEventResponse(
        success=True,
        event_id=event_id,
        message="Event deleted successfully",
    )
