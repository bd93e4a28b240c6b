"""
Event sources for the Unified Calendar.

Provides the embedded static calendar and the persisted event store contract.
"""

from unified_calendar.integrations.base import EventStore, StoreFilters

__all__ = ["EventStore", "StoreFilters"]
