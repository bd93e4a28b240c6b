"""
Export services for calendar events (CSV, JSON, iCalendar).

Exports operate on an already merged and filtered event list. Recurring
events arrive expanded, so each occurrence is written as its own record;
no RRULE is emitted.
"""

import csv
import io
from datetime import datetime, timezone
from typing import Optional, Sequence, Union

from icalendar import Calendar as ICalCalendar
from icalendar import Event as ICalEvent
from pydantic import TypeAdapter

from unified_calendar.enums import EventPriority, ExportFormat
from unified_calendar.schemas import Event, ensure_utc

DEFAULT_PRODID = "-//Unified Calendar//Institution Calendar//ES"
UID_DOMAIN = "calendar.local"

CSV_HEADER = [
    "title",
    "description",
    "startDate",
    "endDate",
    "category",
    "priority",
    "isAllDay",
    "location",
]

ICAL_PRIORITY = {
    EventPriority.HIGH: 1,
    EventPriority.MEDIUM: 5,
    EventPriority.LOW: 9,
}

MEDIA_TYPES = {
    ExportFormat.CSV: "text/csv",
    ExportFormat.JSON: "application/json",
    ExportFormat.ICAL: "text/calendar",
}

FILE_EXTENSIONS = {
    ExportFormat.CSV: "csv",
    ExportFormat.JSON: "json",
    ExportFormat.ICAL: "ics",
}

_event_list_adapter = TypeAdapter(list[Event])


def export_events(
    events: Sequence[Event],
    export_format: Union[ExportFormat, str],
    prodid: str = DEFAULT_PRODID,
    calendar_name: Optional[str] = None,
    now: Optional[datetime] = None,
) -> str:
    """
    Serialize events to the requested format.

    Args:
        events: Events to export, in output order
        export_format: CSV, JSON or ICAL (case-insensitive string accepted)
        prodid: PRODID for iCalendar output
        calendar_name: Optional X-WR-CALNAME for iCalendar output
        now: DTSTAMP for iCalendar output (default: current time)

    Returns:
        Serialized text

    Raises:
        CalendarValidationError: If the format is not supported
    """
    export_format = ExportFormat.parse(export_format)

    if export_format is ExportFormat.CSV:
        return to_csv(events)
    if export_format is ExportFormat.JSON:
        return to_json(events)
    return to_ical(events, prodid=prodid, calendar_name=calendar_name, now=now)


def to_csv(events: Sequence[Event]) -> str:
    """Export events as CSV with every field quoted."""
    output = io.StringIO()
    writer = csv.writer(output, quoting=csv.QUOTE_ALL)

    writer.writerow(CSV_HEADER)
    for event in events:
        writer.writerow([
            event.title,
            event.description or "",
            event.start_date.isoformat(),
            event.end_date.isoformat(),
            event.category.value,
            event.priority.value,
            "true" if event.is_all_day else "false",
            event.location or "",
        ])

    return output.getvalue()


def to_json(events: Sequence[Event]) -> str:
    """Export events as a JSON array with ISO-8601 dates."""
    return _event_list_adapter.dump_json(list(events), indent=2).decode("utf-8")


def parse_json(payload: str) -> list[Event]:
    """Load events back from a JSON export."""
    return _event_list_adapter.validate_json(payload)


def to_ical(
    events: Sequence[Event],
    prodid: str = DEFAULT_PRODID,
    calendar_name: Optional[str] = None,
    now: Optional[datetime] = None,
) -> str:
    """
    Export events as an iCalendar document.

    Dates are written in UTC basic format (YYYYMMDDTHHMMSSZ).
    """
    stamp = ensure_utc(now) if now is not None else datetime.now(timezone.utc)

    calendar = ICalCalendar()
    calendar.add("prodid", prodid)
    calendar.add("version", "2.0")
    calendar.add("calscale", "GREGORIAN")
    calendar.add("method", "PUBLISH")
    if calendar_name:
        calendar.add("x-wr-calname", calendar_name)

    for event in events:
        calendar.add_component(_to_vevent(event, stamp))

    return calendar.to_ical().decode("utf-8")


def _to_vevent(event: Event, stamp: datetime) -> ICalEvent:
    vevent = ICalEvent()
    vevent.add("uid", f"{event.id}@{UID_DOMAIN}")
    vevent.add("dtstamp", stamp)
    vevent.add("dtstart", ensure_utc(event.start_date))
    vevent.add("dtend", ensure_utc(event.end_date))
    vevent.add("summary", event.title)
    if event.description:
        vevent.add("description", event.description)
    if event.location:
        vevent.add("location", event.location)
    vevent.add("categories", [event.category.value])
    vevent.add("priority", ICAL_PRIORITY[event.priority])
    if event.is_all_day:
        vevent.add("transp", "TRANSPARENT")
    return vevent


def media_type(export_format: Union[ExportFormat, str]) -> str:
    """Content type for an export format."""
    return MEDIA_TYPES[ExportFormat.parse(export_format)]


def export_filename(export_format: Union[ExportFormat, str], stem: str = "calendar") -> str:
    """Download filename for an export format."""
    return f"{stem}.{FILE_EXTENSIONS[ExportFormat.parse(export_format)]}"
