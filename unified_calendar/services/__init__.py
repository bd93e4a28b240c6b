"""
Service layer for the Unified Calendar.

Provides:
- Recurrence expansion (dateutil rrule)
- Read visibility rules
- Query/merge engine over static and persisted events
- Statistics and export over query results
"""

from unified_calendar.services.recurrence import build_rrule, expand
from unified_calendar.services.visibility import filter_visible, is_visible
from unified_calendar.services.statistics import summarize
from unified_calendar.services.export import (
    export_events,
    export_filename,
    media_type,
    parse_json,
    to_csv,
    to_ical,
    to_json,
)
from unified_calendar.services.calendar_service import CalendarService

__all__ = [
    # Recurrence
    "build_rrule",
    "expand",
    # Visibility
    "filter_visible",
    "is_visible",
    # Statistics
    "summarize",
    # Export
    "export_events",
    "export_filename",
    "media_type",
    "parse_json",
    "to_csv",
    "to_ical",
    "to_json",
    # Query/merge
    "CalendarService",
]
