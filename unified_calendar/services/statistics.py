"""
Statistics over a query result.

Counts are computed from the exact event list a query returned, never
re-derived from the sources.
"""

from datetime import datetime, timezone, tzinfo
from typing import Iterable, Optional

from unified_calendar.enums import EventCategory, EventPriority
from unified_calendar.schemas import CalendarStatistics, Event, ensure_utc


def summarize(
    events: Iterable[Event],
    now: Optional[datetime] = None,
    tz: tzinfo = timezone.utc,
    degraded: bool = False,
) -> CalendarStatistics:
    """
    Aggregate category, priority, month and upcoming counts.

    Args:
        events: Merged, filtered events
        now: Reference time for upcoming events (default: current time)
        tz: Timezone used for month buckets
        degraded: Whether the underlying query was partial

    Returns:
        CalendarStatistics with every category and priority present
    """
    now = ensure_utc(now) if now is not None else datetime.now(timezone.utc)

    by_category = {category: 0 for category in EventCategory}
    by_priority = {priority: 0 for priority in EventPriority}
    by_month: dict[str, int] = {}
    total = 0
    upcoming = 0

    for event in events:
        total += 1
        by_category[event.category] += 1
        by_priority[event.priority] += 1

        month_key = event.start_date.astimezone(tz).strftime("%Y-%m")
        by_month[month_key] = by_month.get(month_key, 0) + 1

        if event.start_date > now:
            upcoming += 1

    return CalendarStatistics(
        total_events=total,
        events_by_category=by_category,
        events_by_priority=by_priority,
        events_by_month=dict(sorted(by_month.items())),
        upcoming_events=upcoming,
        degraded=degraded,
    )
