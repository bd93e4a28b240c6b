"""
Canonical event model and query contracts.

Every calendar component operates on these Pydantic models:
- Event: one calendar entry, static or persisted, or an expanded occurrence
- RecurrenceRule: repeat definition attached to a persisted base event
- QuerySpec: input to the query/merge engine
- CalendarStatistics: aggregate counts over a query result
"""

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Any, Iterator, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    ValidationInfo,
    field_validator,
    model_validator,
)

from unified_calendar.enums import (
    CallerRole,
    EventCategory,
    EventPriority,
    EventSource,
    RecurrencePattern,
    Weekday,
)
from unified_calendar.exceptions import CalendarValidationError, RecurrenceDefinitionError

# Ids with these prefixes belong to the static dataset only
STATIC_ID_PREFIXES = ("holiday-", "academic-")

RECURRENCE_ID_FORMAT = "%Y%m%dT%H%M%S"


def ensure_utc(value: datetime) -> datetime:
    """Normalize a datetime to aware UTC. Naive values are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def has_static_prefix(event_id: str) -> bool:
    return event_id.startswith(STATIC_ID_PREFIXES)


def _parse_enum_list(enum_cls, value):
    if value is None:
        return None
    if isinstance(value, str):
        value = [part for part in value.split(",") if part.strip()]
    return [enum_cls.parse(item) for item in value]


# =============================================================================
# Sub-records
# =============================================================================


class Attachment(BaseModel):
    """File attached to a persisted event."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    url: str
    type: str = Field(description="MIME type")
    size: int = Field(ge=0, description="Size in bytes")


class RecurrenceRule(BaseModel):
    """
    Repeat definition for a persisted base event.

    The model accepts any stored combination so that malformed rows can
    still be loaded; call validate_definition() before trusting a rule.
    """

    model_config = ConfigDict(frozen=True)

    pattern: RecurrencePattern = RecurrencePattern.NONE
    interval: int = 1
    days_of_week: list[Weekday] = Field(default_factory=list)
    month_of_year: Optional[int] = None
    week_of_month: Optional[int] = Field(
        default=None,
        description="Ordinal week within the month: 1-5, or -1 for the last week",
    )
    end_date: Optional[date] = Field(
        default=None,
        description="Last day an occurrence may start on (inclusive)",
    )
    occurrences: Optional[int] = None
    exceptions: list[date] = Field(default_factory=list)

    @field_validator("pattern", mode="before")
    @classmethod
    def parse_pattern(cls, v):
        return RecurrencePattern.parse(v)

    @field_validator("days_of_week", mode="before")
    @classmethod
    def parse_days(cls, v):
        return _parse_enum_list(Weekday, v) or []

    @field_validator("exceptions")
    @classmethod
    def dedupe_exceptions(cls, v: list[date]) -> list[date]:
        return sorted(set(v))

    @property
    def is_recurring(self) -> bool:
        return self.pattern is not RecurrencePattern.NONE

    def validate_definition(self) -> None:
        """
        Check the rule invariants.

        Raises:
            RecurrenceDefinitionError: If the rule cannot be expanded
        """
        if self.interval < 1:
            raise RecurrenceDefinitionError(
                f"Recurrence interval must be at least 1, got {self.interval}"
            )
        if self.end_date is not None and self.occurrences is not None:
            raise RecurrenceDefinitionError(
                "Recurrence may set an end date or an occurrence count, not both"
            )
        if self.occurrences is not None and self.occurrences < 1:
            raise RecurrenceDefinitionError(
                f"Occurrence count must be at least 1, got {self.occurrences}"
            )
        if self.month_of_year is not None and not 1 <= self.month_of_year <= 12:
            raise RecurrenceDefinitionError(
                f"Month of year must be 1-12, got {self.month_of_year}"
            )
        if self.week_of_month is not None and self.week_of_month not in (-1, 1, 2, 3, 4, 5):
            raise RecurrenceDefinitionError(
                f"Week of month must be 1-5 or -1, got {self.week_of_month}"
            )


class CallerContext(BaseModel):
    """Identity of the caller as supplied by the identity provider."""

    model_config = ConfigDict(frozen=True)

    caller_id: Optional[str] = None
    role: CallerRole = CallerRole.GUEST

    @field_validator("role", mode="before")
    @classmethod
    def parse_role(cls, v):
        return CallerRole.parse(v)

    @classmethod
    def anonymous(cls) -> "CallerContext":
        return cls(caller_id=None, role=CallerRole.GUEST)


# =============================================================================
# Event
# =============================================================================


class Event(BaseModel):
    """
    Canonical calendar event.

    Static events come from the embedded dataset, persisted events from the
    event store. Occurrences are persisted events materialized from a base
    event's recurrence rule: they carry recurrence_parent_id and never a
    recurrence rule of their own.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    title: str
    description: Optional[str] = None
    start_date: datetime
    end_date: datetime
    category: EventCategory
    priority: EventPriority = EventPriority.MEDIUM
    is_all_day: bool = False
    source: EventSource
    is_public: bool = False
    location: Optional[str] = None
    color: Optional[str] = None
    author_id: Optional[str] = None
    attendee_ids: list[str] = Field(default_factory=list)
    attachments: list[Attachment] = Field(default_factory=list)
    recurrence: Optional[RecurrenceRule] = None
    recurrence_parent_id: Optional[str] = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("start_date", "end_date", "created_at", "updated_at")
    @classmethod
    def normalize_datetime(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v) if v is not None else None

    @field_validator("category", mode="before")
    @classmethod
    def parse_category(cls, v):
        return EventCategory.parse(v)

    @field_validator("priority", mode="before")
    @classmethod
    def parse_priority(cls, v):
        return EventPriority.parse(v)

    @field_validator("source", mode="before")
    @classmethod
    def parse_source(cls, v):
        return EventSource.parse(v)

    @model_validator(mode="after")
    def check_consistency(self) -> "Event":
        if self.end_date < self.start_date:
            raise ValueError(
                f"Event '{self.id}' ends ({self.end_date.isoformat()}) "
                f"before it starts ({self.start_date.isoformat()})"
            )
        if self.source is EventSource.STATIC:
            if self.recurrence is not None:
                raise ValueError(f"Static event '{self.id}' cannot recur")
            if self.author_id is not None or self.attendee_ids:
                raise ValueError(f"Static event '{self.id}' cannot have an author or attendees")
        if self.recurrence_parent_id is not None and self.recurrence is not None:
            raise ValueError(f"Occurrence '{self.id}' cannot carry a recurrence rule")
        return self

    @property
    def duration(self) -> timedelta:
        return self.end_date - self.start_date

    @property
    def is_occurrence(self) -> bool:
        return self.recurrence_parent_id is not None

    @property
    def is_recurring_base(self) -> bool:
        return self.recurrence is not None and self.recurrence.is_recurring

    @property
    def is_editable(self) -> bool:
        return self.source is EventSource.PERSISTED and not self.is_occurrence

    @property
    def sort_key(self) -> tuple[datetime, str, str]:
        """Ascending start, then category, then id."""
        return (self.start_date, self.category.value, self.id)

    def local_days(self, tz: tzinfo) -> tuple[date, date]:
        """First and last calendar day the event covers in tz."""
        first = self.start_date.astimezone(tz).date()
        if self.end_date == self.start_date:
            return first, first
        last = (self.end_date - timedelta(microseconds=1)).astimezone(tz).date()
        return first, last

    def intersects(
        self,
        start: Optional[datetime],
        end: Optional[datetime],
        tz: Optional[tzinfo] = None,
    ) -> bool:
        """
        Check whether the event touches the closed range [start, end].

        Events are half-open [start_date, end_date); a zero-length event is
        an instant. A missing bound is unbounded. With tz, all-day events
        ignore time of day and match by calendar day in tz.
        """
        if tz is not None and self.is_all_day:
            first, last = self.local_days(tz)
            if end is not None and first > ensure_utc(end).astimezone(tz).date():
                return False
            if start is not None and last < ensure_utc(start).astimezone(tz).date():
                return False
            return True

        if end is not None and self.start_date > ensure_utc(end):
            return False
        if start is None:
            return True
        start = ensure_utc(start)
        if self.end_date == self.start_date:
            return self.start_date >= start
        return self.end_date > start

    def occurrence_at(self, start: datetime) -> "Event":
        """Materialize one occurrence of this base event starting at start."""
        start = ensure_utc(start)
        return self.model_copy(
            update={
                "id": f"{self.id}:{start.strftime(RECURRENCE_ID_FORMAT)}",
                "start_date": start,
                "end_date": start + self.duration,
                "recurrence": None,
                "recurrence_parent_id": self.id,
            }
        )


# =============================================================================
# Store inputs
# =============================================================================


class AttachmentCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    url: str = Field(min_length=1)
    type: str = "application/octet-stream"
    size: int = Field(default=0, ge=0)


class EventCreate(BaseModel):
    """Input for creating a persisted event."""

    title: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    start_date: datetime
    end_date: datetime
    category: EventCategory = EventCategory.EVENT
    priority: EventPriority = EventPriority.MEDIUM
    is_all_day: bool = False
    is_public: bool = False
    location: Optional[str] = Field(default=None, max_length=200)
    color: Optional[str] = Field(default=None, max_length=50)
    attendee_ids: list[str] = Field(default_factory=list)
    attachments: list[AttachmentCreate] = Field(default_factory=list)
    recurrence: Optional[RecurrenceRule] = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator("start_date", "end_date")
    @classmethod
    def normalize_datetime(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    @field_validator("category", mode="before")
    @classmethod
    def parse_category(cls, v):
        return EventCategory.parse(v)

    @field_validator("priority", mode="before")
    @classmethod
    def parse_priority(cls, v):
        return EventPriority.parse(v)

    @field_validator("title")
    @classmethod
    def validate_title_not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Title cannot be empty")
        return v.strip()

    @model_validator(mode="after")
    def check_dates(self) -> "EventCreate":
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class EventUpdate(BaseModel):
    """Partial update for a persisted event. Only set fields are applied."""

    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    category: Optional[EventCategory] = None
    priority: Optional[EventPriority] = None
    is_all_day: Optional[bool] = None
    is_public: Optional[bool] = None
    location: Optional[str] = Field(default=None, max_length=200)
    color: Optional[str] = Field(default=None, max_length=50)
    attendee_ids: Optional[list[str]] = None
    recurrence: Optional[RecurrenceRule] = None
    metadata: Optional[dict[str, Any]] = None

    @field_validator("start_date", "end_date")
    @classmethod
    def normalize_datetime(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v) if v is not None else None

    @field_validator("category", mode="before")
    @classmethod
    def parse_category(cls, v):
        return EventCategory.parse(v) if v is not None else None

    @field_validator("priority", mode="before")
    @classmethod
    def parse_priority(cls, v):
        return EventPriority.parse(v) if v is not None else None


# =============================================================================
# Query contracts
# =============================================================================


class QuerySpec(BaseModel):
    """
    Input to the query/merge engine.

    Dates bound a closed range; either may be omitted. Aware bounds are
    stored in UTC. Naive bounds are wall-clock times in the institution
    timezone and stay naive until localized() is applied. A date-only bound
    covers that whole day. Categories and priority narrow the result; search
    matches title or description, case-insensitively.
    """

    model_config = ConfigDict(frozen=True)

    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    categories: Optional[list[EventCategory]] = None
    priority: Optional[EventPriority] = None
    search: Optional[str] = None
    caller: CallerContext = Field(default_factory=CallerContext.anonymous)

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def expand_date_only(cls, v, info: ValidationInfo):
        """Turn a bare date into the first or last instant of that day."""
        if isinstance(v, str):
            text = v.strip()
            if not text:
                return None
            if len(text) != 10:
                return text
            try:
                v = date.fromisoformat(text)
            except ValueError:
                return text
        if isinstance(v, date) and not isinstance(v, datetime):
            bound = time.max if info.field_name == "end_date" else time.min
            return datetime.combine(v, bound)
        return v

    @field_validator("start_date", "end_date")
    @classmethod
    def normalize_datetime(cls, v: Optional[datetime]) -> Optional[datetime]:
        if v is None or v.tzinfo is None:
            return v
        return ensure_utc(v)

    @field_validator("categories", mode="before")
    @classmethod
    def parse_categories(cls, v):
        parsed = _parse_enum_list(EventCategory, v)
        return parsed or None

    @field_validator("priority", mode="before")
    @classmethod
    def parse_priority(cls, v):
        return EventPriority.parse(v) if v else None

    @field_validator("search")
    @classmethod
    def normalize_search(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        return v.strip()

    @model_validator(mode="after")
    def check_range(self) -> "QuerySpec":
        if (
            self.start_date
            and self.end_date
            and ensure_utc(self.end_date) < ensure_utc(self.start_date)
        ):
            raise ValueError("end_date must not be before start_date")
        return self

    @classmethod
    def parse(cls, **params: Any) -> "QuerySpec":
        """
        Build a QuerySpec from raw parameters.

        Raises:
            CalendarValidationError: If any parameter is invalid
        """
        try:
            return cls(**params)
        except ValidationError as e:
            messages = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or 'query'}: {err['msg']}"
                for err in e.errors()
            )
            raise CalendarValidationError(f"Invalid query: {messages}", original_error=e)

    def localized(self, tz: tzinfo) -> "QuerySpec":
        """Copy with naive bounds read as wall-clock time in tz, stored as UTC."""
        updates = {}
        for name in ("start_date", "end_date"):
            value = getattr(self, name)
            if value is not None and value.tzinfo is None:
                updates[name] = ensure_utc(value.replace(tzinfo=tz))
        return self.model_copy(update=updates) if updates else self

    @property
    def category_set(self) -> Optional[frozenset[EventCategory]]:
        return frozenset(self.categories) if self.categories else None


@dataclass
class QueryResult:
    """
    Merged, filtered, sorted query output.

    degraded is True when one source failed and only the other source's
    events are present; warnings explains why.
    """

    events: list[Event]
    degraded: bool = False
    warnings: list[str] = field(default_factory=list)

    def __iter__(self) -> Iterator[Event]:
        return iter(self.events)

    def __len__(self) -> int:
        return len(self.events)


class CalendarStatistics(BaseModel):
    """Aggregate counts over one query result."""

    total_events: int
    events_by_category: dict[EventCategory, int]
    events_by_priority: dict[EventPriority, int]
    events_by_month: dict[str, int] = Field(default_factory=dict)
    upcoming_events: int
    degraded: bool = False
