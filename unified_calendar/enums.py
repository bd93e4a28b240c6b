"""
Closed enumerations shared by every calendar component.

Values are upper-case strings. Parsing is case-insensitive and an unknown
value is an error, never a pass-through.
"""

import logging
from enum import Enum
from typing import Optional

from unified_calendar.exceptions import CalendarValidationError

logger = logging.getLogger(__name__)


class _ClosedEnum(str, Enum):
    """String enum with case-insensitive lookup."""

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            normalized = value.strip().upper()
            for member in cls:
                if member.value == normalized:
                    return member
        return None

    @classmethod
    def parse(cls, value):
        """
        Parse a raw value into a member.

        Raises:
            CalendarValidationError: If the value is not a member
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError as e:
            allowed = ", ".join(m.value for m in cls)
            raise CalendarValidationError(
                f"Unknown {cls.__name__} '{value}'. Allowed: {allowed}",
                original_error=e,
            )

    def __str__(self) -> str:
        return self.value


class EventCategory(_ClosedEnum):
    ACADEMIC = "ACADEMIC"
    HOLIDAY = "HOLIDAY"
    SPECIAL = "SPECIAL"
    PARENT = "PARENT"
    ADMINISTRATIVE = "ADMINISTRATIVE"
    EXAM = "EXAM"
    MEETING = "MEETING"
    VACATION = "VACATION"
    EVENT = "EVENT"
    DEADLINE = "DEADLINE"
    OTHER = "OTHER"


class EventPriority(_ClosedEnum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class EventSource(_ClosedEnum):
    STATIC = "STATIC"
    PERSISTED = "PERSISTED"


class RecurrencePattern(_ClosedEnum):
    NONE = "NONE"
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"
    YEARLY = "YEARLY"
    CUSTOM = "CUSTOM"


class Weekday(_ClosedEnum):
    """iCalendar weekday codes, Monday first (matches datetime.weekday())."""

    MO = "MO"
    TU = "TU"
    WE = "WE"
    TH = "TH"
    FR = "FR"
    SA = "SA"
    SU = "SU"

    @property
    def day_number(self) -> int:
        return list(Weekday).index(self)


class ExportFormat(_ClosedEnum):
    CSV = "CSV"
    JSON = "JSON"
    ICAL = "ICAL"

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str) and value.strip().upper() == "ICS":
            return cls.ICAL
        return super()._missing_(value)


class CallerRole(_ClosedEnum):
    """
    Caller roles supplied by the identity provider.

    GUEST is anonymous. PARENT, TEACHER and STAFF are standard
    authenticated roles. ADMIN and MASTER are elevated.
    """

    GUEST = "GUEST"
    PARENT = "PARENT"
    TEACHER = "TEACHER"
    STAFF = "STAFF"
    ADMIN = "ADMIN"
    MASTER = "MASTER"

    @property
    def is_elevated(self) -> bool:
        return self in (CallerRole.ADMIN, CallerRole.MASTER)

    @property
    def is_authenticated(self) -> bool:
        return self is not CallerRole.GUEST

    @property
    def can_create_events(self) -> bool:
        return self in (
            CallerRole.TEACHER,
            CallerRole.STAFF,
            CallerRole.ADMIN,
            CallerRole.MASTER,
        )

    @classmethod
    def resolve(cls, value: Optional[str]) -> "CallerRole":
        """
        Resolve a role for read access, failing closed.

        Missing or unrecognized roles get GUEST visibility.
        """
        if not value:
            return cls.GUEST
        try:
            return cls(value)
        except ValueError:
            logger.warning(f"Unrecognized caller role '{value}', using GUEST visibility")
            return cls.GUEST
