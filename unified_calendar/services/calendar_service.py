"""
Calendar service - query/merge engine over static and persisted events.

Provides the single read path used by the API and exports:
- Static events from the embedded dataset
- Persisted events from the event store, with recurring bases expanded
- Visibility, category, priority and search filtering
- Deterministic ordering by start, category, id

A service instance is request-scoped: it keeps no cache between calls.
"""

import logging
from collections import OrderedDict
from datetime import datetime, timedelta, timezone
from typing import Optional, Sequence, Union

from unified_calendar.config import Settings, get_settings
from unified_calendar.enums import ExportFormat
from unified_calendar.exceptions import (
    CalendarError,
    EventNotFoundError,
    RecurrenceDefinitionError,
    StoreUnavailableError,
)
from unified_calendar.integrations.base import EventStore, StoreFilters
from unified_calendar.integrations.static_calendar import StaticCalendarSource
from unified_calendar.schemas import (
    RECURRENCE_ID_FORMAT,
    CalendarStatistics,
    CallerContext,
    Event,
    EventCreate,
    EventUpdate,
    QueryResult,
    QuerySpec,
    ensure_utc,
    has_static_prefix,
)
from unified_calendar.services import recurrence, statistics
from unified_calendar.services.export import export_events
from unified_calendar.services.visibility import filter_visible, is_visible

logger = logging.getLogger(__name__)

STORE_UNAVAILABLE_WARNING = "Persisted events are unavailable; showing the static calendar only"
STATIC_UNAVAILABLE_WARNING = "Static calendar is unavailable; showing persisted events only"


def matches_filters(event: Event, spec: QuerySpec) -> bool:
    """Check category, priority and search criteria of a query."""
    categories = spec.category_set
    if categories is not None and event.category not in categories:
        return False
    if spec.priority is not None and event.priority is not spec.priority:
        return False
    if spec.search:
        term = spec.search.casefold()
        haystack = f"{event.title}\n{event.description or ''}".casefold()
        if term not in haystack:
            return False
    return True


class CalendarService:
    """
    Query/merge engine.

    Combines the static source and the event store into one sorted,
    filtered list. A store failure degrades the result to static events
    instead of raising; the degradation is reported on the result.
    """

    def __init__(
        self,
        store: Optional[EventStore],
        static_source: Optional[StaticCalendarSource],
        settings: Optional[Settings] = None,
    ):
        """
        Initialize the service.

        Args:
            store: Persisted event backend (None if not configured)
            static_source: Embedded calendar (None if it failed to load)
            settings: Settings instance (default: cached settings)
        """
        self._store = store
        self._static = static_source
        self._settings = settings or get_settings()
        self._tz = self._settings.tzinfo

    # ==================== Query ====================

    def query(self, spec: QuerySpec) -> QueryResult:
        """
        Run a query against both sources.

        Naive bounds are read as wall-clock time in the institution
        timezone. All-day events match by local calendar day.

        Args:
            spec: Validated query

        Returns:
            QueryResult with events sorted by start, category, id
        """
        spec = spec.localized(self._tz)
        degraded = False
        warnings: list[str] = []
        categories = spec.category_set

        static_events: Sequence[Event] = []
        if self._static is None:
            degraded = True
            warnings.append(STATIC_UNAVAILABLE_WARNING)
        else:
            try:
                static_events = self._static.list_static(spec.start_date, spec.end_date, categories)
            except CalendarError as e:
                logger.warning(f"Static calendar failed, continuing without it: {e.message}")
                degraded = True
                warnings.append(STATIC_UNAVAILABLE_WARNING)
            except Exception:
                logger.exception("Unexpected static calendar error, continuing without it")
                degraded = True
                warnings.append(STATIC_UNAVAILABLE_WARNING)

        persisted: Sequence[Event] = []
        if self._store is not None:
            try:
                persisted = self._store.list(
                    spec.start_date,
                    spec.end_date,
                    StoreFilters(categories=categories, priority=spec.priority),
                    spec.caller,
                )
            except StoreUnavailableError as e:
                logger.warning(f"Event store unavailable, returning static events only: {e.message}")
                degraded = True
                warnings.append(STORE_UNAVAILABLE_WARNING)
            except Exception:
                logger.exception("Unexpected event store error, returning static events only")
                degraded = True
                warnings.append(STORE_UNAVAILABLE_WARNING)

        merged = list(static_events)
        merged.extend(self._resolve_persisted(persisted, spec))

        visible = filter_visible(merged, spec.caller)
        events = [event for event in visible if matches_filters(event, spec)]
        events.sort(key=lambda event: event.sort_key)

        logger.debug(
            f"Query for {spec.caller.role} returned {len(events)} events "
            f"({len(static_events)} static, {len(persisted)} persisted candidates)"
        )
        return QueryResult(events=events, degraded=degraded, warnings=warnings)

    def _resolve_persisted(self, persisted: Sequence[Event], spec: QuerySpec) -> list[Event]:
        """Expand recurring bases and keep single events that intersect the range."""
        horizon = timedelta(days=self._settings.recurrence_horizon_days)
        resolved: list[Event] = []

        for event in persisted:
            if has_static_prefix(event.id):
                logger.warning(f"Dropping persisted event '{event.id}': id uses a reserved static prefix")
                continue

            if event.is_recurring_base and self._is_expandable(event):
                # The base is represented by its occurrences only
                window_start = spec.start_date or event.start_date
                window_end = spec.end_date or window_start + horizon
                resolved.extend(
                    recurrence.expand(
                        event,
                        window_start,
                        window_end,
                        tz=self._tz,
                        max_instances=self._settings.recurrence_max_instances,
                    )
                )
            elif event.intersects(spec.start_date, spec.end_date, self._tz):
                resolved.append(event)

        return resolved

    @staticmethod
    def _is_expandable(event: Event) -> bool:
        try:
            event.recurrence.validate_definition()
        except RecurrenceDefinitionError as e:
            logger.warning(f"Treating event '{event.id}' as a single event: {e.message}")
            return False
        return True

    def summarize(self, spec: QuerySpec, now: Optional[datetime] = None) -> CalendarStatistics:
        """Statistics over exactly the events query(spec) returns."""
        result = self.query(spec)
        return statistics.summarize(result.events, now=now, tz=self._tz, degraded=result.degraded)

    def export(self, spec: QuerySpec, export_format: Union[ExportFormat, str]) -> str:
        """
        Export the result of a query.

        Raises:
            CalendarValidationError: If the format is not supported (checked first)
        """
        export_format = ExportFormat.parse(export_format)
        result = self.query(spec)
        return export_events(
            result.events,
            export_format,
            prodid=self._settings.ical_prodid,
            calendar_name=self._settings.institution_name,
        )

    # ==================== Single reads ====================

    def get_event(self, event_id: str, caller: CallerContext) -> Event:
        """
        Get one event by id.

        Static ids resolve against the embedded calendar. Occurrence ids
        (`<base id>:<UTC start>`) are materialized from their recurring base.

        Raises:
            EventNotFoundError: If the event does not exist or caller cannot see it
            StoreUnavailableError: If the store is needed and unreachable
        """
        if has_static_prefix(event_id):
            event = self._static.get(event_id) if self._static is not None else None
        else:
            store = self._require_store()
            event = store.get(event_id)
            if event is None:
                event = self._find_occurrence(store, event_id)

        if event is None or not is_visible(event, caller):
            raise EventNotFoundError(f"Event '{event_id}' not found")
        return event

    def _find_occurrence(self, store: EventStore, event_id: str) -> Optional[Event]:
        base_id, _, stamp = event_id.rpartition(":")
        if not base_id:
            return None
        try:
            start = datetime.strptime(stamp, RECURRENCE_ID_FORMAT).replace(tzinfo=timezone.utc)
        except ValueError:
            return None

        base = store.get(base_id)
        if base is None or not base.is_recurring_base or not self._is_expandable(base):
            return None
        occurrences = recurrence.expand(
            base,
            start,
            start,
            tz=self._tz,
            max_instances=self._settings.recurrence_max_instances,
        )
        return next((event for event in occurrences if event.id == event_id), None)

    # ==================== Convenience reads ====================

    def upcoming(
        self,
        caller: CallerContext,
        days: int = 30,
        limit: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> list[Event]:
        """
        Get events starting within the next days.

        Args:
            caller: Caller identity
            days: Look-ahead in days
            limit: Maximum number of events (all if None)
            now: Reference time (default: current time)

        Returns:
            Events starting at or after now, soonest first
        """
        now = ensure_utc(now) if now is not None else datetime.now(timezone.utc)
        spec = QuerySpec(start_date=now, end_date=now + timedelta(days=days), caller=caller)
        events = [event for event in self.query(spec) if event.start_date >= now]
        return events[:limit] if limit is not None else events

    def current_month(self, caller: CallerContext, now: Optional[datetime] = None) -> QueryResult:
        """Get events of the current month in the institution timezone."""
        now = ensure_utc(now) if now is not None else datetime.now(timezone.utc)
        local = now.astimezone(self._tz)
        month_start = local.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
        if month_start.month == 12:
            next_month = month_start.replace(year=month_start.year + 1, month=1)
        else:
            next_month = month_start.replace(month=month_start.month + 1)

        spec = QuerySpec(
            start_date=month_start,
            end_date=next_month - timedelta(microseconds=1),
            caller=caller,
        )
        return self.query(spec)

    def group_by_date(self, spec: QuerySpec) -> "OrderedDict[str, list[Event]]":
        """Group query results by local start date (ISO date keys, ascending)."""
        grouped: OrderedDict[str, list[Event]] = OrderedDict()
        for event in self.query(spec):
            key = event.start_date.astimezone(self._tz).date().isoformat()
            grouped.setdefault(key, []).append(event)
        return grouped

    # ==================== Mutations ====================

    def _require_store(self) -> EventStore:
        if self._store is None:
            raise StoreUnavailableError("No event store is configured")
        return self._store

    def create_event(self, data: EventCreate, caller: CallerContext) -> Event:
        """Create a persisted event through the store."""
        return self._require_store().create(data, caller)

    def update_event(self, event_id: str, changes: EventUpdate, caller: CallerContext) -> Event:
        """Update a persisted event through the store."""
        return self._require_store().update(event_id, changes, caller)

    def delete_event(self, event_id: str, caller: CallerContext) -> None:
        """Delete a persisted event through the store."""
        self._require_store().delete(event_id, caller)
