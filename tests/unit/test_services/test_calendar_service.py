"""
Unit tests for the calendar service (query/merge engine).

Tests merging static and persisted events, recurrence expansion,
visibility, filtering, degradation and the convenience reads.
"""

from datetime import date, datetime, timedelta, timezone
from unittest.mock import MagicMock
from zoneinfo import ZoneInfo

import pytest

from unified_calendar.config import Settings
from unified_calendar.enums import CallerRole, EventCategory, EventPriority
from unified_calendar.exceptions import (
    CalendarValidationError,
    EventNotFoundError,
    StaticDatasetError,
    StoreUnavailableError,
)
from unified_calendar.integrations.base import StoreFilters
from unified_calendar.integrations.static_calendar import StaticCalendarSource
from unified_calendar.schemas import (
    CallerContext,
    EventCreate,
    EventUpdate,
    QuerySpec,
    RecurrenceRule,
)
from unified_calendar.services.calendar_service import (
    STATIC_UNAVAILABLE_WARNING,
    STORE_UNAVAILABLE_WARNING,
    CalendarService,
    matches_filters,
)

SANTIAGO = ZoneInfo("America/Santiago")


def local(year, month, day, hour=0, minute=0):
    return datetime(year, month, day, hour, minute, tzinfo=SANTIAGO)


def local_dates(events):
    return [e.start_date.astimezone(SANTIAGO).date() for e in events]


@pytest.fixture
def empty_static():
    return StaticCalendarSource(SANTIAGO, holidays=[], academic_events=[])


@pytest.fixture
def failing_store():
    store = MagicMock()
    store.list.side_effect = StoreUnavailableError("Database unreachable")
    return store


@pytest.fixture
def staff_meeting_data():
    def _make(**rule_fields):
        rule = {"pattern": "WEEKLY", "interval": 1, "occurrences": 4}
        rule.update(rule_fields)
        return EventCreate(
            title="Staff Meeting",
            start_date=local(2025, 3, 3, 10),
            end_date=local(2025, 3, 3, 11),
            category="MEETING",
            recurrence=RecurrenceRule(**rule),
        )
    return _make


class TestStaticScenarios:
    """Test static events through the query engine."""

    def test_independence_day_appears_once(self, calendar_service, guest):
        spec = QuerySpec(start_date=local(2025, 9, 1), end_date=local(2025, 9, 30, 23, 59), caller=guest)

        result = calendar_service.query(spec)

        matches = [e for e in result if e.title == "Independence Day"]
        assert len(matches) == 1
        assert local_dates(matches) == [date(2025, 9, 18)]
        assert result.degraded is False

    def test_store_without_events_returns_static(self, calendar_service, parent):
        spec = QuerySpec(start_date=local(2025, 3, 1), end_date=local(2025, 3, 31, 23, 59), caller=parent)

        result = calendar_service.query(spec)

        assert len(result) == 4
        assert all(e.id.startswith(("holiday-", "academic-")) for e in result)

    def test_date_only_month_excludes_previous_day(self, calendar_service, guest):
        spec = QuerySpec.parse(start_date="2025-11-01", end_date="2025-11-30", caller=guest)

        ids = [e.id for e in calendar_service.query(spec)]

        assert "holiday-reformation-day-2025" not in ids
        assert "holiday-all-saints-2025" in ids

    def test_naive_bounds_read_in_local_time(self, calendar_service, guest):
        spec = QuerySpec(
            start_date=datetime(2025, 10, 31, 0, 0),
            end_date=datetime(2025, 10, 31, 23, 59),
            caller=guest,
        )

        ids = [e.id for e in calendar_service.query(spec)]

        assert "holiday-reformation-day-2025" in ids
        assert "holiday-all-saints-2025" not in ids

    def test_persisted_all_day_matches_by_local_day(self, calendar_service, teacher):
        calendar_service.create_event(
            EventCreate(
                title="Jornada de reflexión",
                start_date=local(2025, 10, 31),
                end_date=local(2025, 11, 1),
                is_all_day=True,
                category="ACADEMIC",
            ),
            teacher,
        )

        october = QuerySpec.parse(start_date="2025-10-31", end_date="2025-10-31", caller=teacher)
        november = QuerySpec.parse(start_date="2025-11-01", end_date="2025-11-30", caller=teacher)

        assert "Jornada de reflexión" in [e.title for e in calendar_service.query(october)]
        assert "Jornada de reflexión" not in [e.title for e in calendar_service.query(november)]


class TestRecurringScenarios:
    """Test weekly meeting expansion through the store."""

    def test_four_occurrences_without_base(self, calendar_service, teacher, staff_meeting_data):
        base = calendar_service.create_event(staff_meeting_data(), teacher)
        spec = QuerySpec(
            start_date=local(2025, 3, 1),
            end_date=local(2025, 12, 31, 23, 59),
            categories=["MEETING"],
            caller=teacher,
        )

        events = calendar_service.query(spec).events

        assert local_dates(events) == [
            date(2025, 3, 3),
            date(2025, 3, 10),
            date(2025, 3, 17),
            date(2025, 3, 24),
        ]
        assert base.id not in [e.id for e in events]
        assert all(e.recurrence_parent_id == base.id for e in events)

    def test_exception_leaves_three(self, calendar_service, teacher, staff_meeting_data):
        calendar_service.create_event(
            staff_meeting_data(exceptions=[date(2025, 3, 10)]), teacher
        )
        spec = QuerySpec(
            start_date=local(2025, 3, 1),
            end_date=local(2025, 12, 31, 23, 59),
            categories=["MEETING"],
            caller=teacher,
        )

        events = calendar_service.query(spec).events

        assert local_dates(events) == [date(2025, 3, 3), date(2025, 3, 17), date(2025, 3, 24)]

    def test_narrow_window_expands_base_from_before(self, calendar_service, teacher, staff_meeting_data):
        calendar_service.create_event(staff_meeting_data(occurrences=None), teacher)
        spec = QuerySpec(
            start_date=local(2025, 6, 1),
            end_date=local(2025, 6, 10),
            categories=["MEETING"],
            caller=teacher,
        )

        events = calendar_service.query(spec).events

        assert local_dates(events) == [date(2025, 6, 2), date(2025, 6, 9)]

    def test_open_window_uses_horizon(self, make_event, empty_static):
        settings = Settings(_env_file=None, recurrence_horizon_days=10)
        store = MagicMock()
        store.list.return_value = [make_event(recurrence=RecurrenceRule(pattern="DAILY"))]
        service = CalendarService(store, empty_static, settings)

        events = service.query(QuerySpec(caller=CallerContext(caller_id="teacher-1", role="TEACHER"))).events

        assert len(events) == 11
        assert events[-1].start_date - events[0].start_date == timedelta(days=10)

    def test_invalid_rule_kept_as_single_event(self, make_event, empty_static, teacher, settings):
        store = MagicMock()
        store.list.return_value = [make_event(recurrence=RecurrenceRule(pattern="DAILY", interval=0))]
        service = CalendarService(store, empty_static, settings)

        events = service.query(QuerySpec(caller=teacher)).events

        assert [e.id for e in events] == ["evt-1"]

    def test_non_intersecting_single_event_dropped(self, make_event, empty_static, teacher, settings):
        store = MagicMock()
        store.list.return_value = [make_event()]
        service = CalendarService(store, empty_static, settings)

        spec = QuerySpec(start_date=local(2025, 4, 1), end_date=local(2025, 4, 30), caller=teacher)

        assert service.query(spec).events == []


class TestVisibility:
    """Test that the engine applies read visibility."""

    def test_private_event_hidden_from_guest(self, calendar_service, teacher, guest):
        calendar_service.create_event(
            EventCreate(
                title="Private review",
                start_date=local(2025, 3, 4, 15),
                end_date=local(2025, 3, 4, 16),
                category="MEETING",
            ),
            teacher,
        )
        spec = dict(start_date=local(2025, 3, 1), end_date=local(2025, 3, 31, 23, 59))

        guest_titles = [e.title for e in calendar_service.query(QuerySpec(caller=guest, **spec))]
        author_titles = [e.title for e in calendar_service.query(QuerySpec(caller=teacher, **spec))]

        assert "Private review" not in guest_titles
        assert "Private review" in author_titles

    def test_engine_filters_even_if_store_does_not(self, make_event, empty_static, guest, settings):
        store = MagicMock()
        store.list.return_value = [make_event(is_public=False)]
        service = CalendarService(store, empty_static, settings)

        assert service.query(QuerySpec(caller=guest)).events == []


class TestFilteringAndOrdering:
    """Test category, priority, search and sort."""

    def test_category_filter_applies_to_static(self, calendar_service, guest):
        spec = QuerySpec(
            start_date=local(2025, 3, 1),
            end_date=local(2025, 3, 31, 23, 59),
            categories=["PARENT"],
            caller=guest,
        )

        events = calendar_service.query(spec).events

        assert [e.id for e in events] == ["academic-parent-meeting-march-2025"]

    def test_priority_filter_applies_to_static(self, calendar_service, guest):
        spec = QuerySpec(
            start_date=local(2025, 1, 1),
            end_date=local(2025, 12, 31),
            priority="HIGH",
            caller=guest,
        )

        events = calendar_service.query(spec).events

        assert events
        assert all(e.priority is EventPriority.HIGH for e in events)

    def test_search_is_case_insensitive(self, calendar_service, guest):
        spec = QuerySpec(search="WATER", caller=guest)

        events = calendar_service.query(spec).events

        assert [e.title for e in events] == ["World Water Day"]

    def test_store_receives_filters(self, empty_static, teacher, settings):
        store = MagicMock()
        store.list.return_value = []
        service = CalendarService(store, empty_static, settings)
        spec = QuerySpec(categories=["EXAM"], priority="LOW", caller=teacher)

        service.query(spec)

        store.list.assert_called_once_with(
            None,
            None,
            StoreFilters(categories=frozenset({EventCategory.EXAM}), priority=EventPriority.LOW),
            teacher,
        )

    def test_sorted_and_deterministic(self, calendar_service, admin):
        spec = QuerySpec(start_date=local(2025, 1, 1), end_date=local(2026, 12, 31), caller=admin)

        first = calendar_service.query(spec).events
        second = calendar_service.query(spec).events

        assert first == second
        assert first == sorted(first, key=lambda e: e.sort_key)

    def test_same_start_ordered_by_category_then_id(self, make_event, empty_static, admin, settings):
        store = MagicMock()
        store.list.return_value = [
            make_event(id="b", category="MEETING"),
            make_event(id="a", category="MEETING"),
            make_event(id="c", category="EXAM"),
        ]
        service = CalendarService(store, empty_static, settings)

        events = service.query(QuerySpec(caller=admin)).events

        assert [e.id for e in events] == ["c", "a", "b"]

    def test_matches_filters_searches_description(self, make_event):
        event = make_event(description="Bring the Science fair posters")
        assert matches_filters(event, QuerySpec(search="science"))
        assert not matches_filters(event, QuerySpec(search="music"))


class TestDegradation:
    """Test partial results when a source fails."""

    def test_store_failure_returns_static_only(self, failing_store, static_source, guest, settings):
        service = CalendarService(failing_store, static_source, settings)
        spec = QuerySpec(start_date=local(2025, 9, 1), end_date=local(2025, 9, 30), caller=guest)

        result = service.query(spec)

        assert result.degraded is True
        assert result.warnings == [STORE_UNAVAILABLE_WARNING]
        assert "Independence Day" in [e.title for e in result]

    def test_missing_static_source(self, store, teacher, settings):
        service = CalendarService(store, None, settings)

        result = service.query(QuerySpec(caller=teacher))

        assert result.degraded is True
        assert result.warnings == [STATIC_UNAVAILABLE_WARNING]

    def test_static_failure(self, store, teacher, settings):
        static = MagicMock()
        static.list_static.side_effect = StaticDatasetError("corrupt dataset")
        service = CalendarService(store, static, settings)

        result = service.query(QuerySpec(caller=teacher))

        assert result.degraded is True
        assert result.events == []

    def test_unexpected_store_error_degrades(self, static_source, guest, settings):
        store = MagicMock()
        store.list.side_effect = ConnectionError("socket reset")
        service = CalendarService(store, static_source, settings)
        spec = QuerySpec(start_date=local(2025, 9, 1), end_date=local(2025, 9, 30), caller=guest)

        result = service.query(spec)

        assert result.degraded is True
        assert result.warnings == [STORE_UNAVAILABLE_WARNING]
        assert "Independence Day" in [e.title for e in result]

    def test_unexpected_static_error_degrades(self, store, teacher, settings):
        static = MagicMock()
        static.list_static.side_effect = KeyError("category")
        service = CalendarService(store, static, settings)

        result = service.query(QuerySpec(caller=teacher))

        assert result.degraded is True
        assert result.warnings == [STATIC_UNAVAILABLE_WARNING]

    def test_reserved_prefix_dropped(self, make_event, empty_static, admin, settings):
        store = MagicMock()
        store.list.return_value = [make_event(id="holiday-forged"), make_event(id="evt-2")]
        service = CalendarService(store, empty_static, settings)

        events = service.query(QuerySpec(caller=admin)).events

        assert [e.id for e in events] == ["evt-2"]


class TestSummarize:
    """Test statistics through the service."""

    def test_total_matches_query(self, calendar_service, teacher, staff_meeting_data):
        calendar_service.create_event(staff_meeting_data(), teacher)
        spec = QuerySpec(start_date=local(2025, 1, 1), end_date=local(2025, 12, 31), caller=teacher)

        stats = calendar_service.summarize(spec, now=local(2025, 6, 1))

        assert stats.total_events == len(calendar_service.query(spec))
        assert stats.events_by_category[EventCategory.MEETING] == 4
        assert stats.events_by_month["2025-03"] >= 4

    def test_degraded_flag(self, failing_store, static_source, guest, settings):
        service = CalendarService(failing_store, static_source, settings)
        assert service.summarize(QuerySpec(caller=guest)).degraded is True


class TestExport:
    """Test export through the service."""

    def test_format_checked_before_query(self, failing_store, static_source, guest, settings):
        service = CalendarService(failing_store, static_source, settings)

        with pytest.raises(CalendarValidationError):
            service.export(QuerySpec(caller=guest), "xlsx")

        failing_store.list.assert_not_called()

    def test_ical_export(self, calendar_service, guest, settings):
        spec = QuerySpec(start_date=local(2025, 9, 18), end_date=local(2025, 9, 18, 12), caller=guest)

        text = calendar_service.export(spec, "ics")

        assert text.count("BEGIN:VEVENT") == len(calendar_service.query(spec))
        assert settings.ical_prodid in text


class TestConvenienceReads:
    """Test upcoming, current month and grouping."""

    def test_upcoming(self, calendar_service, guest):
        events = calendar_service.upcoming(guest, days=10, now=local(2025, 3, 1))

        assert [e.id for e in events] == [
            "academic-teacher-planning-2025",
            "academic-school-year-start-2025",
        ]

    def test_upcoming_limit(self, calendar_service, guest):
        events = calendar_service.upcoming(guest, days=10, limit=1, now=local(2025, 3, 1))
        assert [e.id for e in events] == ["academic-teacher-planning-2025"]

    def test_upcoming_excludes_already_started(self, calendar_service, guest):
        # Winter break is in progress on 2025-06-30
        events = calendar_service.upcoming(guest, days=1, now=local(2025, 6, 30, 9))
        assert "academic-winter-break-2025" not in [e.id for e in events]

    def test_current_month(self, calendar_service, guest):
        result = calendar_service.current_month(guest, now=local(2025, 9, 10))

        assert "holiday-independence-day-2025" in [e.id for e in result]
        assert all(e.intersects(local(2025, 9, 1), local(2025, 10, 1)) for e in result)

    def test_current_month_december(self, calendar_service, guest):
        result = calendar_service.current_month(guest, now=local(2025, 12, 10))
        assert "holiday-christmas-2025" in [e.id for e in result]

    def test_group_by_date(self, calendar_service, guest):
        spec = QuerySpec(start_date=local(2025, 3, 1), end_date=local(2025, 3, 31, 23, 59), caller=guest)

        grouped = calendar_service.group_by_date(spec)

        assert list(grouped) == sorted(grouped)
        assert "2025-03-03" in grouped
        assert sum(len(events) for events in grouped.values()) == len(calendar_service.query(spec))


class TestGetEvent:
    """Test reading a single event by id."""

    def test_static_event(self, calendar_service, guest):
        event = calendar_service.get_event("holiday-reformation-day-2025", guest)

        assert event.title == "Reformation Day"
        assert event.is_all_day is True

    def test_unknown_static_event(self, calendar_service, guest):
        with pytest.raises(EventNotFoundError):
            calendar_service.get_event("holiday-unknown-2025", guest)

    def test_persisted_event(self, calendar_service, teacher):
        created = calendar_service.create_event(
            EventCreate(
                title="Consejo de profesores",
                start_date=local(2025, 3, 4, 15),
                end_date=local(2025, 3, 4, 16),
                category="MEETING",
            ),
            teacher,
        )

        event = calendar_service.get_event(created.id, teacher)

        assert event.id == created.id
        assert event.title == "Consejo de profesores"

    def test_private_event_hidden_from_guest(self, calendar_service, teacher, guest):
        created = calendar_service.create_event(
            EventCreate(
                title="Private review",
                start_date=local(2025, 3, 4, 15),
                end_date=local(2025, 3, 4, 16),
                category="MEETING",
            ),
            teacher,
        )

        with pytest.raises(EventNotFoundError):
            calendar_service.get_event(created.id, guest)

    def test_occurrence(self, calendar_service, teacher, staff_meeting_data):
        base = calendar_service.create_event(staff_meeting_data(), teacher)
        spec = QuerySpec(start_date=local(2025, 3, 1), end_date=local(2025, 3, 31), caller=teacher)
        second = [e for e in calendar_service.query(spec) if e.recurrence_parent_id == base.id][1]

        event = calendar_service.get_event(second.id, teacher)

        assert event.id == second.id
        assert event.recurrence_parent_id == base.id
        assert local_dates([event]) == [date(2025, 3, 10)]

    def test_occurrence_off_schedule(self, calendar_service, teacher, staff_meeting_data):
        base = calendar_service.create_event(staff_meeting_data(), teacher)

        with pytest.raises(EventNotFoundError):
            calendar_service.get_event(f"{base.id}:20250304T130000", teacher)
        with pytest.raises(EventNotFoundError):
            calendar_service.get_event(f"{base.id}:not-a-date", teacher)

    def test_persisted_read_requires_store(self, static_source, teacher, settings):
        service = CalendarService(None, static_source, settings)

        assert service.get_event("holiday-all-saints-2025", teacher).id == "holiday-all-saints-2025"
        with pytest.raises(StoreUnavailableError):
            service.get_event("evt-1", teacher)


class TestMutations:
    """Test mutations delegated to the store."""

    def test_update_and_delete(self, calendar_service, teacher):
        created = calendar_service.create_event(
            EventCreate(
                title="Consejo de profesores",
                start_date=local(2025, 3, 4, 15),
                end_date=local(2025, 3, 4, 16),
                category="MEETING",
            ),
            teacher,
        )

        updated = calendar_service.update_event(created.id, EventUpdate(title="Consejo"), teacher)
        assert updated.title == "Consejo"

        calendar_service.delete_event(created.id, teacher)
        spec = QuerySpec(categories=["MEETING"], caller=teacher)
        assert calendar_service.query(spec).events == []

    def test_mutations_require_store(self, static_source, teacher, settings):
        service = CalendarService(None, static_source, settings)
        data = EventCreate(
            title="Orphan",
            start_date=local(2025, 3, 4, 15),
            end_date=local(2025, 3, 4, 16),
        )

        with pytest.raises(StoreUnavailableError):
            service.create_event(data, teacher)
        with pytest.raises(StoreUnavailableError):
            service.delete_event("evt-1", teacher)

    def test_query_without_store_is_static_only(self, static_source, settings):
        service = CalendarService(None, static_source, settings)
        caller = CallerContext(caller_id="p", role=CallerRole.PARENT)

        result = service.query(QuerySpec(start_date=local(2025, 9, 1), end_date=local(2025, 9, 30), caller=caller))

        assert result.degraded is False
        assert result.events
