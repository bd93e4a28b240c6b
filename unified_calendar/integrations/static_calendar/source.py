"""
Static calendar source.

Maps the embedded dataset to Event instances once, at construction, and
answers range/category reads from memory. No I/O.
"""

import logging
from datetime import date, datetime, time, timedelta
from typing import Iterable, Optional, Sequence
from zoneinfo import ZoneInfo

from pydantic import ValidationError

from unified_calendar.enums import EventCategory, EventPriority, EventSource
from unified_calendar.exceptions import CalendarValidationError, StaticDatasetError
from unified_calendar.integrations.static_calendar.dataset import (
    ACADEMIC_EVENTS,
    DATASET_VERSION,
    HOLIDAYS,
)
from unified_calendar.schemas import STATIC_ID_PREFIXES, Event

logger = logging.getLogger(__name__)

HOLIDAY_PREFIX = "holiday-"
ACADEMIC_PREFIX = "academic-"


class StaticCalendarSource:
    """
    Read-only view over the embedded holiday and academic calendar.

    Every entry becomes an all-day Event with source STATIC. Holidays get
    ids "holiday-<key>", all other entries "academic-<key>".
    """

    def __init__(
        self,
        tz: ZoneInfo,
        holidays: Sequence[dict] = HOLIDAYS,
        academic_events: Sequence[dict] = ACADEMIC_EVENTS,
        version: str = DATASET_VERSION,
    ):
        """
        Build and validate the static event list.

        Args:
            tz: Institution timezone; dataset days start at local midnight
            holidays: Holiday entries
            academic_events: Academic calendar entries
            version: Dataset version recorded in event metadata

        Raises:
            StaticDatasetError: If any entry is malformed or ids collide
        """
        self._tz = tz
        self.version = version

        events = [self._map_holiday(entry) for entry in holidays]
        events.extend(self._map_academic(entry) for entry in academic_events)

        seen: set[str] = set()
        for event in events:
            if event.id in seen:
                raise StaticDatasetError(f"Duplicate static event id '{event.id}'")
            if not event.id.startswith(STATIC_ID_PREFIXES):
                raise StaticDatasetError(f"Static event id '{event.id}' lacks a reserved prefix")
            seen.add(event.id)

        self._events: tuple[Event, ...] = tuple(sorted(events, key=lambda e: e.sort_key))
        self._by_id = {event.id: event for event in self._events}
        logger.debug(f"Loaded {len(self._events)} static events (dataset {version})")

    def __len__(self) -> int:
        return len(self._events)

    def list_static(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        categories: Optional[Iterable[EventCategory]] = None,
    ) -> list[Event]:
        """
        Get static events intersecting a range.

        Entries are all-day, so they match by calendar day in the
        institution timezone.

        Args:
            start: Range start (inclusive), unbounded if None
            end: Range end (inclusive), unbounded if None
            categories: Only these categories, all if None

        Returns:
            Events sorted by start, category, id
        """
        wanted = frozenset(categories) if categories else None
        return [
            event
            for event in self._events
            if (wanted is None or event.category in wanted)
            and event.intersects(start, end, self._tz)
        ]

    def get(self, event_id: str) -> Optional[Event]:
        """Get a static event by id, or None."""
        return self._by_id.get(event_id)

    def list_by_year(self, year: int) -> list[Event]:
        """Get static events starting in a calendar year (institution timezone)."""
        return [
            event
            for event in self._events
            if event.start_date.astimezone(self._tz).year == year
        ]

    def list_holidays(self, year: Optional[int] = None) -> list[Event]:
        """Get holidays, optionally for one year."""
        holidays = [e for e in self._events if e.category is EventCategory.HOLIDAY]
        if year is None:
            return holidays
        return [e for e in holidays if e.start_date.astimezone(self._tz).year == year]

    # ==================== Mapping ====================

    def _map_holiday(self, entry: dict) -> Event:
        return self._build(
            entry,
            prefix=HOLIDAY_PREFIX,
            category=EventCategory.HOLIDAY,
            priority=EventPriority.HIGH,
            metadata={
                "isNationalHoliday": entry.get("national", True),
                "academicPeriod": "ANUAL",
                "gradeLevel": "all",
            },
        )

    def _map_academic(self, entry: dict) -> Event:
        try:
            category = EventCategory.parse(entry.get("category", "ACADEMIC"))
            priority = EventPriority.parse(entry.get("priority", "MEDIUM"))
        except CalendarValidationError as e:
            raise StaticDatasetError(
                f"Static entry '{entry.get('key')}': {e.message}", original_error=e
            )
        return self._build(
            entry,
            prefix=ACADEMIC_PREFIX,
            category=category,
            priority=priority,
            metadata={
                "isNationalHoliday": False,
                "academicPeriod": entry.get("period", "ANUAL"),
                "gradeLevel": entry.get("grade_level", "both"),
            },
        )

    def _build(
        self,
        entry: dict,
        prefix: str,
        category: EventCategory,
        priority: EventPriority,
        metadata: dict,
    ) -> Event:
        key = entry.get("key")
        if not key:
            raise StaticDatasetError(f"Static entry without key: {entry!r}")

        try:
            first_day = date.fromisoformat(entry["date"])
            last_day = date.fromisoformat(entry["end"]) if entry.get("end") else first_day
        except (KeyError, TypeError, ValueError) as e:
            raise StaticDatasetError(f"Static entry '{key}' has an invalid date", original_error=e)

        if last_day < first_day:
            raise StaticDatasetError(f"Static entry '{key}' ends before it starts")

        try:
            return Event(
                id=f"{prefix}{key}",
                title=entry["title"],
                description=entry.get("description"),
                start_date=self._local_midnight(first_day),
                end_date=self._local_midnight(last_day + timedelta(days=1)),
                category=category,
                priority=priority,
                is_all_day=True,
                source=EventSource.STATIC,
                is_public=True,
                location=entry.get("location"),
                color=entry.get("color"),
                metadata={**metadata, "datasetVersion": self.version},
            )
        except (KeyError, ValidationError) as e:
            raise StaticDatasetError(f"Static entry '{key}' is malformed: {e}", original_error=e)

    def _local_midnight(self, day: date) -> datetime:
        return datetime.combine(day, time.min, tzinfo=self._tz)
