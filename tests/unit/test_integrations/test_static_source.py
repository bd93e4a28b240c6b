"""
Unit tests for the static calendar source.

Tests dataset mapping, range and category reads, and dataset validation.
"""

from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from unified_calendar.enums import EventCategory, EventPriority, EventSource
from unified_calendar.exceptions import StaticDatasetError
from unified_calendar.integrations.static_calendar import (
    DATASET_VERSION,
    StaticCalendarSource,
)

SANTIAGO = ZoneInfo("America/Santiago")


def local(year, month, day, hour=0, minute=0):
    return datetime(year, month, day, hour, minute, tzinfo=SANTIAGO)


class TestMapping:
    """Test how dataset entries become events."""

    def test_all_events_are_static_all_day_and_public(self, static_source):
        events = static_source.list_static()

        assert len(events) == len(static_source)
        assert all(e.source is EventSource.STATIC for e in events)
        assert all(e.is_all_day and e.is_public for e in events)
        assert all(e.author_id is None and e.recurrence is None for e in events)

    def test_holiday_mapping(self, static_source):
        holiday = next(
            e for e in static_source.list_static() if e.id == "holiday-independence-day-2025"
        )

        assert holiday.title == "Independence Day"
        assert holiday.category is EventCategory.HOLIDAY
        assert holiday.priority is EventPriority.HIGH
        assert holiday.start_date == local(2025, 9, 18)
        assert holiday.end_date == local(2025, 9, 19)
        assert holiday.metadata["isNationalHoliday"] is True
        assert holiday.metadata["datasetVersion"] == DATASET_VERSION

    def test_multi_day_span_has_exclusive_end(self, static_source):
        winter = next(e for e in static_source.list_static() if e.id == "academic-winter-break-2025")

        assert winter.category is EventCategory.VACATION
        assert winter.start_date == local(2025, 6, 23)
        # Last day is 2025-07-04 inclusive
        assert winter.end_date == local(2025, 7, 5)
        assert winter.metadata["academicPeriod"] == "VACACIONES"

    def test_academic_ids_use_prefix(self, static_source):
        ids = [e.id for e in static_source.list_static()]
        assert all(i.startswith(("holiday-", "academic-")) for i in ids)
        assert len(ids) == len(set(ids))

    def test_sorted_by_start(self, static_source):
        events = static_source.list_static()
        assert events == sorted(events, key=lambda e: e.sort_key)


class TestListStatic:
    """Test range and category reads."""

    def test_independence_day_appears_once_in_september(self, static_source):
        events = static_source.list_static(local(2025, 9, 1), local(2025, 9, 30, 23, 59))

        matches = [e for e in events if e.title == "Independence Day"]
        assert len(matches) == 1
        assert matches[0].start_date.astimezone(SANTIAGO).date().isoformat() == "2025-09-18"

    def test_range_excludes_outside_entries(self, static_source):
        events = static_source.list_static(local(2025, 3, 1), local(2025, 3, 31, 23, 59))

        assert {e.id for e in events} == {
            "academic-teacher-planning-2025",
            "academic-school-year-start-2025",
            "academic-parent-meeting-march-2025",
            "academic-world-water-day-2025",
        }

    def test_span_covering_whole_range_is_included(self, static_source):
        events = static_source.list_static(local(2025, 6, 30, 9), local(2025, 6, 30, 10))
        assert [e.id for e in events] == ["academic-winter-break-2025"]

    def test_day_after_holiday_excludes_it(self, static_source):
        # The holiday ends exactly at local midnight of the next day
        events = static_source.list_static(local(2025, 1, 2), local(2025, 1, 2, 12))
        assert "holiday-new-year-2025" not in [e.id for e in events]

    def test_category_filter(self, static_source):
        events = static_source.list_static(categories=[EventCategory.EXAM])

        assert events
        assert all(e.category is EventCategory.EXAM for e in events)

    def test_utc_bounds_are_equivalent(self, static_source):
        start = local(2025, 9, 1).astimezone(timezone.utc)
        end = local(2025, 9, 30, 23, 59).astimezone(timezone.utc)

        assert static_source.list_static(start, end) == static_source.list_static(
            local(2025, 9, 1), local(2025, 9, 30, 23, 59)
        )

    def test_late_evening_bound_keeps_local_day(self, static_source):
        # 23:30 in Santiago is already the next day in UTC
        events = static_source.list_static(local(2025, 10, 31, 23, 30), local(2025, 10, 31, 23, 45))
        assert [e.id for e in events] == ["holiday-reformation-day-2025"]

    def test_get_by_id(self, static_source):
        event = static_source.get("holiday-all-saints-2025")

        assert event.title == "All Saints' Day"
        assert static_source.get("holiday-unknown-2025") is None


class TestConvenienceReads:
    """Test by-year and holiday reads."""

    def test_list_by_year(self, static_source):
        events_2026 = static_source.list_by_year(2026)

        assert events_2026
        assert all(e.start_date.astimezone(SANTIAGO).year == 2026 for e in events_2026)
        # Summer break starts in 2025 and is not counted for 2026
        assert "academic-summer-break-2025" not in [e.id for e in events_2026]

    def test_list_holidays_for_year(self, static_source):
        holidays = static_source.list_holidays(2025)

        assert holidays
        assert all(e.category is EventCategory.HOLIDAY for e in holidays)
        assert "holiday-christmas-2025" in [e.id for e in holidays]
        assert "holiday-christmas-2026" not in [e.id for e in holidays]

    def test_list_all_holidays(self, static_source):
        assert len(static_source.list_holidays()) > len(static_source.list_holidays(2025))


class TestDatasetValidation:
    """Test that malformed datasets are rejected at construction."""

    def test_duplicate_keys_rejected(self):
        entry = {"key": "dup", "title": "Dup", "date": "2025-01-01"}
        with pytest.raises(StaticDatasetError, match="Duplicate"):
            StaticCalendarSource(SANTIAGO, holidays=[entry, dict(entry)], academic_events=[])

    def test_bad_date_rejected(self):
        with pytest.raises(StaticDatasetError, match="invalid date"):
            StaticCalendarSource(
                SANTIAGO,
                holidays=[{"key": "bad", "title": "Bad", "date": "2025-02-30"}],
                academic_events=[],
            )

    def test_reversed_span_rejected(self):
        with pytest.raises(StaticDatasetError, match="ends before"):
            StaticCalendarSource(
                SANTIAGO,
                holidays=[],
                academic_events=[
                    {"key": "rev", "title": "Reversed", "date": "2025-05-02", "end": "2025-05-01"}
                ],
            )

    def test_unknown_category_rejected(self):
        with pytest.raises(StaticDatasetError):
            StaticCalendarSource(
                SANTIAGO,
                holidays=[],
                academic_events=[
                    {"key": "x", "title": "X", "date": "2025-05-02", "category": "PARTY"}
                ],
            )

    def test_missing_key_rejected(self):
        with pytest.raises(StaticDatasetError, match="without key"):
            StaticCalendarSource(
                SANTIAGO,
                holidays=[{"title": "No key", "date": "2025-01-01"}],
                academic_events=[],
            )

    def test_custom_dataset(self):
        source = StaticCalendarSource(
            SANTIAGO,
            holidays=[{"key": "h", "title": "H", "date": "2030-01-01"}],
            academic_events=[{"key": "a", "title": "A", "date": "2030-03-01"}],
            version="test",
        )

        events = source.list_static()
        assert [e.id for e in events] == ["holiday-h", "academic-a"]
        assert events[1].category is EventCategory.ACADEMIC
        assert events[0].metadata["datasetVersion"] == "test"
        assert events[1].duration == timedelta(days=1)
