"""
SQLAlchemy models for persisted calendar events.

This module exports all database models for easy importing and
ensures Alembic can discover them for migrations.
"""

from unified_calendar.models.base import Base, BaseModel, JSONType, UTCDateTime, new_id
from unified_calendar.models.events import (
    CalendarEventRecord,
    EventAttachmentRecord,
    EventAttendee,
    RecurrenceRuleRecord,
)

__all__ = [
    # Base classes
    "Base",
    "BaseModel",
    "JSONType",
    "UTCDateTime",
    "new_id",
    # Event models
    "CalendarEventRecord",
    "EventAttendee",
    "EventAttachmentRecord",
    "RecurrenceRuleRecord",
]
