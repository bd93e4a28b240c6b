"""
Read visibility rules.

Decides which events a caller may see. This is read access only; mutation
rights are enforced by the event store.

- GUEST: all-day static events and persisted events flagged public
- PARENT, TEACHER, STAFF: everything a guest sees, all static events,
  persisted events they author or attend, and persisted events in
  institution-wide categories
- ADMIN, MASTER: everything
"""

from typing import Iterable

from unified_calendar.enums import CallerRole, EventCategory, EventSource
from unified_calendar.schemas import CallerContext, Event

# Persisted events in these categories are visible to every authenticated role
INSTITUTION_WIDE_CATEGORIES = frozenset({
    EventCategory.ACADEMIC,
    EventCategory.HOLIDAY,
    EventCategory.SPECIAL,
    EventCategory.PARENT,
    EventCategory.EXAM,
    EventCategory.VACATION,
    EventCategory.EVENT,
})

STANDARD_ROLES = frozenset({CallerRole.PARENT, CallerRole.TEACHER, CallerRole.STAFF})


def is_participant(event: Event, caller: CallerContext) -> bool:
    """Check whether the caller authored or attends the event."""
    if not caller.caller_id:
        return False
    return event.author_id == caller.caller_id or caller.caller_id in event.attendee_ids


def is_visible(event: Event, caller: CallerContext) -> bool:
    """
    Check whether a caller may see an event.

    Roles outside the known sets get guest visibility.
    """
    role = caller.role

    if role.is_elevated:
        return True

    if event.source is EventSource.STATIC:
        if role in STANDARD_ROLES:
            return True
        return event.is_all_day

    if event.is_public:
        return True

    if role not in STANDARD_ROLES:
        return False

    if is_participant(event, caller):
        return True

    return event.category in INSTITUTION_WIDE_CATEGORIES


def filter_visible(events: Iterable[Event], caller: CallerContext) -> list[Event]:
    """
    Keep only the events the caller may see, preserving order.

    Pure and idempotent: filtering a filtered list returns it unchanged.
    """
    return [event for event in events if is_visible(event, caller)]
