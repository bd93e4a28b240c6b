"""
Event store protocol and base types.

Defines the interface for persisted event backends (local database, or an
external service behind the same contract).
"""

from abc import abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Protocol, Sequence

from unified_calendar.enums import EventCategory, EventPriority
from unified_calendar.schemas import CallerContext, Event, EventCreate, EventUpdate


@dataclass(frozen=True)
class StoreFilters:
    """
    Store-level narrowing applied before events reach the query engine.

    A performance optimization only: the query engine still runs the
    visibility filter over whatever the store returns.
    """

    categories: Optional[frozenset[EventCategory]] = None
    priority: Optional[EventPriority] = None


class EventStore(Protocol):
    """
    Protocol for persisted event backends.

    Implementations:
    - SQLAlchemyEventStore: Uses the local database

    Mutations enforce authorization: update/delete succeed only for the
    event's author or an elevated role.
    """

    @abstractmethod
    def create(self, data: EventCreate, caller: CallerContext) -> Event:
        """
        Create a new event authored by the caller.

        Args:
            data: Event data, including an optional recurrence rule
            caller: Authenticated caller

        Returns:
            Created event with its store id

        Raises:
            AuthorizationError: If the caller's role cannot create events
            RecurrenceDefinitionError: If the recurrence rule is invalid
        """
        ...

    @abstractmethod
    def update(self, event_id: str, changes: EventUpdate, caller: CallerContext) -> Event:
        """
        Apply a partial update.

        Raises:
            EventNotFoundError: If the event does not exist
            AuthorizationError: If the caller is not author or elevated
        """
        ...

    @abstractmethod
    def delete(self, event_id: str, caller: CallerContext) -> None:
        """
        Delete an event together with its recurrence rule and attachments.

        Raises:
            EventNotFoundError: If the event does not exist
            AuthorizationError: If the caller is not author or elevated
        """
        ...

    @abstractmethod
    def get(self, event_id: str) -> Optional[Event]:
        """Get a single event by id, or None."""
        ...

    @abstractmethod
    def list(
        self,
        start: Optional[datetime],
        end: Optional[datetime],
        filters: StoreFilters,
        caller: CallerContext,
    ) -> Sequence[Event]:
        """
        List events intersecting a range, plus recurring bases that start
        on or before the range end.

        Returned events carry their recurrence rule when present.

        Raises:
            StoreUnavailableError: If the backend cannot be reached
        """
        ...
