"""
Exceptions for calendar operations.

Provides structured error handling with retryable flags.
"""


class CalendarError(Exception):
    """Base exception for calendar operations."""

    retryable: bool = False

    def __init__(self, message: str, original_error: Exception | None = None):
        super().__init__(message)
        self.message = message
        self.original_error = original_error


class CalendarValidationError(CalendarError, ValueError):
    """
    Malformed input rejected before any adapter call.

    Causes:
    - Query end date before start date
    - Unknown category, priority, role or export format
    """

    retryable = False


class StoreUnavailableError(CalendarError):
    """
    The persisted event store could not be reached.

    Queries degrade to static-only results instead of raising this.
    """

    retryable = True


class AuthorizationError(CalendarError):
    """
    Caller is not allowed to mutate the event.

    Raised by the store for non-owning, non-elevated callers.
    """

    retryable = False


class EventNotFoundError(CalendarError):
    """Event id does not exist in the store."""

    retryable = False


class RecurrenceDefinitionError(CalendarError):
    """
    Invalid recurrence rule.

    Causes:
    - Both end date and occurrence count set
    - Interval below 1
    - Week of month or month of year out of range
    """

    retryable = False


class StaticDatasetError(CalendarError):
    """Embedded static calendar data is malformed."""

    retryable = False


class IdentityCollisionError(CalendarError):
    """A persisted id uses a prefix reserved for static events."""

    retryable = False
