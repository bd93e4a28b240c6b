"""
Database-backed event store.

Provides the local database as a persisted event backend.
"""

from unified_calendar.integrations.database.mapper import (
    apply_rule,
    event_from_record,
    rule_from_record,
)
from unified_calendar.integrations.database.repository import SQLAlchemyEventStore

__all__ = [
    "SQLAlchemyEventStore",
    "apply_rule",
    "event_from_record",
    "rule_from_record",
]
