"""
Mapping between ORM records and the canonical Event model.

Handles:
- Enum values stored as strings
- Recurrence rule sub-record (weekday codes, ISO exception dates)
- Attendee and attachment collections
"""

from typing import Optional

from unified_calendar.enums import EventSource
from unified_calendar.models.events import CalendarEventRecord, RecurrenceRuleRecord
from unified_calendar.schemas import Attachment, Event, RecurrenceRule


def rule_from_record(record: RecurrenceRuleRecord) -> RecurrenceRule:
    """Convert a stored rule. Invalid definitions load as-is and fail later validation."""
    return RecurrenceRule(
        pattern=record.pattern,
        interval=record.interval,
        days_of_week=list(record.days_of_week or []),
        month_of_year=record.month_of_year,
        week_of_month=record.week_of_month,
        end_date=record.end_date,
        occurrences=record.occurrences,
        exceptions=list(record.exceptions or []),
    )


def event_from_record(record: CalendarEventRecord) -> Event:
    """
    Convert a stored event with its sub-records.

    Raises:
        pydantic.ValidationError: If the stored values are not a valid Event
    """
    rule = record.recurrence_rule
    return Event(
        id=record.id,
        title=record.title,
        description=record.description,
        start_date=record.start_date,
        end_date=record.end_date,
        category=record.category,
        priority=record.priority,
        is_all_day=record.is_all_day,
        source=EventSource.PERSISTED,
        is_public=record.is_public,
        location=record.location,
        color=record.color,
        author_id=record.author_id,
        attendee_ids=[attendee.user_id for attendee in record.attendees],
        attachments=[
            Attachment(
                id=attachment.id,
                name=attachment.name,
                url=attachment.url,
                type=attachment.content_type,
                size=attachment.size,
            )
            for attachment in record.attachments
        ],
        recurrence=rule_from_record(rule) if rule is not None else None,
        metadata=dict(record.event_metadata or {}),
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


def apply_rule(record: CalendarEventRecord, rule: Optional[RecurrenceRule]) -> None:
    """Attach, replace or remove the recurrence sub-record of an event."""
    if rule is None:
        record.recurrence_rule = None
        return

    target = record.recurrence_rule or RecurrenceRuleRecord()
    target.pattern = rule.pattern.value
    target.interval = rule.interval
    target.days_of_week = [day.value for day in rule.days_of_week]
    target.month_of_year = rule.month_of_year
    target.week_of_month = rule.week_of_month
    target.end_date = rule.end_date
    target.occurrences = rule.occurrences
    target.exceptions = [day.isoformat() for day in rule.exceptions]
    record.recurrence_rule = target
