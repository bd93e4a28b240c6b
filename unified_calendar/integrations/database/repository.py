"""
SQLAlchemy event store implementation.

Implements the EventStore protocol over the local database. Transient
database errors are retried with exponential backoff; anything left over
surfaces as StoreUnavailableError.
"""

import logging
from datetime import datetime, timedelta
from typing import Callable, Optional, Sequence

from pydantic import ValidationError
from sqlalchemy import and_, or_, select
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session, selectinload, sessionmaker
from tenacity import Retrying, retry_if_exception, stop_after_attempt, wait_exponential

from unified_calendar.config import Settings
from unified_calendar.database import get_db_context
from unified_calendar.enums import RecurrencePattern
from unified_calendar.exceptions import (
    AuthorizationError,
    CalendarValidationError,
    EventNotFoundError,
    IdentityCollisionError,
    StoreUnavailableError,
)
from unified_calendar.integrations.base import EventStore, StoreFilters
from unified_calendar.integrations.database.mapper import apply_rule, event_from_record
from unified_calendar.models.base import new_id
from unified_calendar.models.events import (
    CalendarEventRecord,
    EventAttachmentRecord,
    EventAttendee,
    RecurrenceRuleRecord,
)
from unified_calendar.schemas import (
    CallerContext,
    Event,
    EventCreate,
    EventUpdate,
    has_static_prefix,
)
from unified_calendar.services.visibility import INSTITUTION_WIDE_CATEGORIES, STANDARD_ROLES

logger = logging.getLogger(__name__)

# Slack applied to all-day rows when prefiltering by range
ALL_DAY_MARGIN = timedelta(days=1)

# Columns copied as-is from an EventUpdate
_SCALAR_FIELDS = (
    "title",
    "description",
    "start_date",
    "end_date",
    "is_all_day",
    "is_public",
    "location",
    "color",
)

# Fields that may be changed but never cleared
_REQUIRED_FIELDS = frozenset({
    "title",
    "start_date",
    "end_date",
    "is_all_day",
    "is_public",
    "category",
    "priority",
})


def _is_retryable_error(exception: BaseException) -> bool:
    """Check if an exception should trigger a retry."""
    if isinstance(exception, OperationalError):
        return True
    if isinstance(exception, DBAPIError):
        return exception.connection_invalidated
    return False


def _loader_options():
    return (
        selectinload(CalendarEventRecord.attendees),
        selectinload(CalendarEventRecord.attachments),
        selectinload(CalendarEventRecord.recurrence_rule),
    )


class SQLAlchemyEventStore(EventStore):
    """
    EventStore implementation using SQLAlchemy.

    Each operation runs in its own session and transaction. Sessions never
    outlive a call, so one store instance can serve concurrent requests.
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        id_factory: Callable[[], str] = new_id,
        retry_attempts: int = 3,
        retry_wait=None,
    ):
        """
        Initialize the store.

        Args:
            session_factory: Factory producing database sessions
            id_factory: Generator for new event ids
            retry_attempts: Attempts for transient database errors
            retry_wait: tenacity wait strategy (default: exponential backoff)

        Raises:
            IdentityCollisionError: If the id factory produces reserved ids
        """
        self._session_factory = session_factory
        self._id_factory = id_factory
        self._retrying = Retrying(
            stop=stop_after_attempt(retry_attempts),
            wait=retry_wait or wait_exponential(multiplier=1, min=1, max=10),
            retry=retry_if_exception(_is_retryable_error),
            reraise=True,
        )
        self._check_id(id_factory())

    @classmethod
    def from_settings(cls, session_factory: sessionmaker, settings: Settings) -> "SQLAlchemyEventStore":
        """Build a store using the configured retry policy."""
        return cls(session_factory, retry_attempts=settings.store_retry_attempts)

    # =========================================================================
    # Internal helpers
    # =========================================================================

    @staticmethod
    def _check_id(event_id: str) -> str:
        if has_static_prefix(event_id):
            raise IdentityCollisionError(
                f"Generated id '{event_id}' uses a prefix reserved for static events"
            )
        return event_id

    def _execute(self, operation: str, fn, *args):
        """Run fn with retries, converting database failures."""
        try:
            return self._retrying(fn, *args)
        except IntegrityError as e:
            logger.warning(f"Event store {operation} rejected by database: {e.orig}")
            raise CalendarValidationError(
                f"Event {operation} conflicts with stored data",
                original_error=e,
            )
        except SQLAlchemyError as e:
            logger.error(f"Event store {operation} failed: {e}")
            raise StoreUnavailableError(
                f"Event store unavailable during {operation}",
                original_error=e,
            )

    @staticmethod
    def _load(db: Session, event_id: str) -> CalendarEventRecord:
        record = db.execute(
            select(CalendarEventRecord)
            .where(CalendarEventRecord.id == event_id)
            .options(*_loader_options())
        ).scalar_one_or_none()
        if record is None:
            raise EventNotFoundError(f"Event '{event_id}' not found")
        return record

    @staticmethod
    def _authorize_mutation(record: CalendarEventRecord, caller: CallerContext) -> None:
        if caller.role.is_elevated:
            return
        if caller.role.is_authenticated and caller.caller_id and record.author_id == caller.caller_id:
            return
        raise AuthorizationError(
            f"Caller '{caller.caller_id or 'anonymous'}' ({caller.role}) "
            f"may not modify event '{record.id}'"
        )

    @staticmethod
    def _sync_attendees(record: CalendarEventRecord, attendee_ids) -> None:
        """Replace attendees, keeping rows for users that remain."""
        wanted = list(dict.fromkeys(attendee_ids))
        current = {attendee.user_id: attendee for attendee in record.attendees}
        record.attendees = [
            current.get(user_id) or EventAttendee(user_id=user_id)
            for user_id in wanted
        ]

    @staticmethod
    def _visibility_clause(caller: CallerContext):
        """SQL form of the read visibility rules for persisted events."""
        role = caller.role
        if role.is_elevated:
            return None
        if role not in STANDARD_ROLES:
            return CalendarEventRecord.is_public.is_(True)

        clauses = [
            CalendarEventRecord.is_public.is_(True),
            CalendarEventRecord.category.in_([c.value for c in INSTITUTION_WIDE_CATEGORIES]),
        ]
        if caller.caller_id:
            clauses.append(CalendarEventRecord.author_id == caller.caller_id)
            clauses.append(
                CalendarEventRecord.attendees.any(EventAttendee.user_id == caller.caller_id)
            )
        return or_(*clauses)

    # =========================================================================
    # Mutations
    # =========================================================================

    def create(self, data: EventCreate, caller: CallerContext) -> Event:
        """Create a new event authored by the caller."""
        if not caller.role.can_create_events or not caller.caller_id:
            raise AuthorizationError(
                f"Role {caller.role} may not create events"
            )
        if data.recurrence is not None:
            data.recurrence.validate_definition()

        event_id = self._check_id(self._id_factory())
        event = self._execute("create", self._create, event_id, data, caller)
        logger.info(f"Created event '{event.title}' ({event.id}) for {caller.caller_id}")
        return event

    def _create(self, event_id: str, data: EventCreate, caller: CallerContext) -> Event:
        with get_db_context(self._session_factory) as db:
            record = CalendarEventRecord(
                id=event_id,
                title=data.title,
                description=data.description,
                start_date=data.start_date,
                end_date=data.end_date,
                category=data.category.value,
                priority=data.priority.value,
                is_all_day=data.is_all_day,
                is_public=data.is_public,
                location=data.location,
                color=data.color,
                author_id=caller.caller_id,
                event_metadata=dict(data.metadata),
            )
            record.attendees = [
                EventAttendee(user_id=user_id)
                for user_id in dict.fromkeys(data.attendee_ids)
            ]
            record.attachments = [
                EventAttachmentRecord(
                    name=attachment.name,
                    url=attachment.url,
                    content_type=attachment.type,
                    size=attachment.size,
                )
                for attachment in data.attachments
            ]
            apply_rule(record, data.recurrence)

            db.add(record)
            db.flush()
            db.refresh(record)
            return event_from_record(record)

    def update(self, event_id: str, changes: EventUpdate, caller: CallerContext) -> Event:
        """Apply the fields set on changes to an existing event."""
        if changes.recurrence is not None:
            changes.recurrence.validate_definition()

        event = self._execute("update", self._update, event_id, changes, caller)
        logger.info(f"Updated event {event_id} by {caller.caller_id}")
        return event

    def _update(self, event_id: str, changes: EventUpdate, caller: CallerContext) -> Event:
        fields = changes.model_fields_set
        for name in fields & _REQUIRED_FIELDS:
            if getattr(changes, name) is None:
                raise CalendarValidationError(f"Field '{name}' cannot be cleared")

        with get_db_context(self._session_factory) as db:
            record = self._load(db, event_id)
            self._authorize_mutation(record, caller)

            for name in _SCALAR_FIELDS:
                if name in fields:
                    setattr(record, name, getattr(changes, name))
            if "category" in fields:
                record.category = changes.category.value
            if "priority" in fields:
                record.priority = changes.priority.value
            if "metadata" in fields:
                record.event_metadata = dict(changes.metadata or {})
            if "attendee_ids" in fields:
                self._sync_attendees(record, changes.attendee_ids or [])
            if "recurrence" in fields:
                apply_rule(record, changes.recurrence)

            if record.end_date < record.start_date:
                raise CalendarValidationError(
                    f"Event '{event_id}' would end before it starts"
                )

            db.flush()
            db.refresh(record)
            return event_from_record(record)

    def delete(self, event_id: str, caller: CallerContext) -> None:
        """Delete an event; its rule, attendees and attachments go with it."""
        self._execute("delete", self._delete, event_id, caller)
        logger.info(f"Deleted event {event_id} by {caller.caller_id}")

    def _delete(self, event_id: str, caller: CallerContext) -> None:
        with get_db_context(self._session_factory) as db:
            record = self._load(db, event_id)
            self._authorize_mutation(record, caller)
            db.delete(record)

    # =========================================================================
    # Reads
    # =========================================================================

    def get(self, event_id: str) -> Optional[Event]:
        """Get a single event by id, or None."""
        return self._execute("get", self._get, event_id)

    def _get(self, event_id: str) -> Optional[Event]:
        with get_db_context(self._session_factory) as db:
            try:
                record = self._load(db, event_id)
            except EventNotFoundError:
                return None
            return event_from_record(record)

    def _list(
        self,
        start: Optional[datetime],
        end: Optional[datetime],
        filters: StoreFilters,
        caller: CallerContext,
    ) -> Sequence[Event]:
        conditions = []

        # All-day rows match by local calendar day, so their instants may sit
        # up to a day outside the range; the query engine makes the final cut
        overlap = []
        all_day_overlap = []
        if end is not None:
            overlap.append(CalendarEventRecord.start_date <= end)
            all_day_overlap.append(CalendarEventRecord.start_date <= end + ALL_DAY_MARGIN)
        if start is not None:
            overlap.append(CalendarEventRecord.end_date >= start)
            all_day_overlap.append(CalendarEventRecord.end_date >= start - ALL_DAY_MARGIN)
        if overlap:
            recurring = CalendarEventRecord.recurrence_rule.has(
                RecurrenceRuleRecord.pattern != RecurrencePattern.NONE.value
            )
            if end is not None:
                recurring = and_(recurring, CalendarEventRecord.start_date <= end + ALL_DAY_MARGIN)
            conditions.append(
                or_(
                    and_(*overlap),
                    and_(CalendarEventRecord.is_all_day.is_(True), *all_day_overlap),
                    recurring,
                )
            )

        if filters.categories:
            conditions.append(
                CalendarEventRecord.category.in_([c.value for c in filters.categories])
            )
        if filters.priority is not None:
            conditions.append(CalendarEventRecord.priority == filters.priority.value)

        visibility = self._visibility_clause(caller)
        if visibility is not None:
            conditions.append(visibility)

        stmt = (
            select(CalendarEventRecord)
            .options(*_loader_options())
            .order_by(CalendarEventRecord.start_date, CalendarEventRecord.id)
        )
        if conditions:
            stmt = stmt.where(*conditions)

        events = []
        with get_db_context(self._session_factory) as db:
            for record in db.execute(stmt).scalars():
                try:
                    events.append(event_from_record(record))
                except (ValidationError, ValueError) as e:
                    logger.warning(f"Skipping malformed stored event {record.id}: {e}")
        return events

    def list(
        self,
        start: Optional[datetime],
        end: Optional[datetime],
        filters: StoreFilters,
        caller: CallerContext,
    ) -> Sequence[Event]:
        """
        List events intersecting [start, end] plus recurring bases starting
        on or before end.

        Raises:
            StoreUnavailableError: If the database cannot be reached
        """
        events = self._execute("list", self._list, start, end, filters, caller)
        logger.debug(f"Store returned {len(events)} events for {caller.role}")
        return events
