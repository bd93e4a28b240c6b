"""
Persisted calendar event tables.

Entities:
- CalendarEventRecord: A user-created event
- EventAttendee: Users invited to an event
- EventAttachmentRecord: Files attached to an event
- RecurrenceRuleRecord: Repeat definition, at most one per event

Attendees, attachments and the recurrence rule are deleted in cascade with
their event.
"""

from datetime import date, datetime
from typing import Optional

from sqlalchemy import (
    Boolean,
    Date,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from unified_calendar.models.base import BaseModel, JSONType, UTCDateTime


class CalendarEventRecord(BaseModel):
    """
    A user-created calendar event.

    Category and priority are stored as their enum values. The author is
    the user who created the event and may edit or delete it.
    """

    __tablename__ = "calendar_events"

    title: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
        doc="Event title"
    )

    description: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        doc="Detailed event description"
    )

    start_date: Mapped[datetime] = mapped_column(
        UTCDateTime,
        nullable=False,
        doc="Event start (UTC)"
    )

    end_date: Mapped[datetime] = mapped_column(
        UTCDateTime,
        nullable=False,
        doc="Event end (UTC)"
    )

    category: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default="EVENT",
        doc="EventCategory value"
    )

    priority: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="MEDIUM",
        doc="EventPriority value"
    )

    is_all_day: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        doc="Whether time of day is ignored"
    )

    is_public: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        doc="Visible to anonymous callers"
    )

    location: Mapped[Optional[str]] = mapped_column(
        String(200),
        nullable=True,
        doc="Event location"
    )

    color: Mapped[Optional[str]] = mapped_column(
        String(50),
        nullable=True,
        doc="Display color hint"
    )

    author_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        doc="User who created the event"
    )

    # Renamed from 'metadata' to avoid SQLAlchemy conflict
    event_metadata: Mapped[dict] = mapped_column(
        JSONType,
        nullable=False,
        default=dict,
        doc="Additional event metadata"
    )

    attendees: Mapped[list["EventAttendee"]] = relationship(
        "EventAttendee",
        back_populates="event",
        cascade="all, delete-orphan",
        order_by="EventAttendee.user_id",
    )

    attachments: Mapped[list["EventAttachmentRecord"]] = relationship(
        "EventAttachmentRecord",
        back_populates="event",
        cascade="all, delete-orphan",
        order_by="EventAttachmentRecord.name",
    )

    recurrence_rule: Mapped[Optional["RecurrenceRuleRecord"]] = relationship(
        "RecurrenceRuleRecord",
        back_populates="event",
        cascade="all, delete-orphan",
        uselist=False,
    )

    __table_args__ = (
        Index("idx_calendar_event_start", "start_date"),
        Index("idx_calendar_event_end", "end_date"),
        Index("idx_calendar_event_author", "author_id"),
        Index("idx_calendar_event_category", "category"),
        Index("idx_calendar_event_range", "start_date", "end_date"),
    )

    def __repr__(self) -> str:
        return f"<CalendarEventRecord(title='{self.title}', start='{self.start_date}')>"


class EventAttendee(BaseModel):
    """A user invited to an event."""

    __tablename__ = "event_attendees"

    event_id: Mapped[str] = mapped_column(
        ForeignKey("calendar_events.id", ondelete="CASCADE"),
        nullable=False,
    )

    user_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    event: Mapped["CalendarEventRecord"] = relationship(
        "CalendarEventRecord",
        back_populates="attendees",
    )

    __table_args__ = (
        UniqueConstraint("event_id", "user_id", name="uq_event_attendee"),
        Index("idx_attendee_user", "user_id"),
    )


class EventAttachmentRecord(BaseModel):
    """A file attached to an event."""

    __tablename__ = "event_attachments"

    event_id: Mapped[str] = mapped_column(
        ForeignKey("calendar_events.id", ondelete="CASCADE"),
        nullable=False,
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    url: Mapped[str] = mapped_column(Text, nullable=False)
    content_type: Mapped[str] = mapped_column(String(100), nullable=False)
    size: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    event: Mapped["CalendarEventRecord"] = relationship(
        "CalendarEventRecord",
        back_populates="attachments",
    )

    __table_args__ = (
        Index("idx_attachment_event", "event_id"),
    )


class RecurrenceRuleRecord(BaseModel):
    """
    Repeat definition for an event.

    days_of_week holds weekday codes ("MO".."SU"); exceptions holds ISO
    dates ("YYYY-MM-DD").
    """

    __tablename__ = "recurrence_rules"

    event_id: Mapped[str] = mapped_column(
        ForeignKey("calendar_events.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )

    pattern: Mapped[str] = mapped_column(String(20), nullable=False, default="NONE")
    interval: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    days_of_week: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    month_of_year: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    week_of_month: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    end_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    occurrences: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    exceptions: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)

    event: Mapped["CalendarEventRecord"] = relationship(
        "CalendarEventRecord",
        back_populates="recurrence_rule",
    )
