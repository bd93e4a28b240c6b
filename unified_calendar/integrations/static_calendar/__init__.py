"""
Embedded holiday and academic calendar.

Static events are regenerated from the dataset on construction and never
mutated or persisted.
"""

from unified_calendar.integrations.static_calendar.dataset import DATASET_VERSION
from unified_calendar.integrations.static_calendar.source import (
    ACADEMIC_PREFIX,
    HOLIDAY_PREFIX,
    StaticCalendarSource,
)

__all__ = [
    "ACADEMIC_PREFIX",
    "DATASET_VERSION",
    "HOLIDAY_PREFIX",
    "StaticCalendarSource",
]
