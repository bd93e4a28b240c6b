"""
Recurrence expansion service.

Expands the recurrence rule of a persisted base event into concrete
occurrences inside a query window:
- Rules are stored as structured records, not RRULE text
- Expansion runs in the institution timezone so wall-clock times survive
  DST changes
- Exception dates are removed after counting, so an excluded date still
  consumes one of a rule's occurrences

Uses python-dateutil for the date arithmetic.
"""

import logging
from datetime import datetime, time, timedelta, timezone, tzinfo

from dateutil.rrule import DAILY, MONTHLY, WEEKLY, YEARLY, rrule, weekdays

from unified_calendar.enums import RecurrencePattern
from unified_calendar.exceptions import RecurrenceDefinitionError
from unified_calendar.schemas import Event, RecurrenceRule, ensure_utc

logger = logging.getLogger(__name__)

DEFAULT_MAX_INSTANCES = 500

FREQUENCIES = {
    RecurrencePattern.DAILY: DAILY,
    RecurrencePattern.WEEKLY: WEEKLY,
    RecurrencePattern.MONTHLY: MONTHLY,
    RecurrencePattern.YEARLY: YEARLY,
}


def build_rrule(rule: RecurrenceRule, dtstart: datetime, tz: tzinfo = timezone.utc) -> rrule:
    """
    Translate a recurrence rule into a dateutil rrule.

    Args:
        rule: Recurrence definition
        dtstart: Start of the base event
        tz: Timezone the rule is evaluated in

    Returns:
        rrule producing aware datetimes in tz

    Raises:
        RecurrenceDefinitionError: If the rule is invalid or has pattern NONE
    """
    rule.validate_definition()
    if not rule.is_recurring:
        raise RecurrenceDefinitionError("Pattern NONE does not recur")

    local_start = ensure_utc(dtstart).astimezone(tz)

    if rule.pattern is RecurrencePattern.CUSTOM:
        freq = WEEKLY if rule.days_of_week else DAILY
    else:
        freq = FREQUENCIES[rule.pattern]

    kwargs: dict = {
        "dtstart": local_start,
        "interval": rule.interval,
    }

    if rule.pattern in (RecurrencePattern.WEEKLY, RecurrencePattern.CUSTOM) and rule.days_of_week:
        kwargs["byweekday"] = [weekdays[day.day_number] for day in rule.days_of_week]

    if rule.pattern in (RecurrencePattern.MONTHLY, RecurrencePattern.YEARLY):
        if rule.week_of_month is not None:
            days = [day.day_number for day in rule.days_of_week] or [local_start.weekday()]
            kwargs["byweekday"] = [weekdays[day](rule.week_of_month) for day in days]
            if rule.pattern is RecurrencePattern.YEARLY:
                # Without a month, dateutil reads the ordinal as week of year
                kwargs["bymonth"] = rule.month_of_year or local_start.month
        if rule.month_of_year is not None:
            kwargs["bymonth"] = rule.month_of_year

    if rule.occurrences is not None:
        kwargs["count"] = rule.occurrences
    elif rule.end_date is not None:
        kwargs["until"] = datetime.combine(rule.end_date, time.max, tzinfo=tz)

    return rrule(freq, **kwargs)


def expand(
    base: Event,
    window_start: datetime,
    window_end: datetime,
    tz: tzinfo = timezone.utc,
    max_instances: int = DEFAULT_MAX_INSTANCES,
) -> list[Event]:
    """
    Expand a recurring base event into occurrences within a window.

    Occurrences keep the base duration, carry the base id as
    recurrence_parent_id and never carry a rule. A malformed rule is logged
    and yields no occurrences.

    Args:
        base: Persisted event carrying a recurrence rule
        window_start: Window start (inclusive)
        window_end: Window end (inclusive)
        tz: Timezone the rule and its exception dates are evaluated in
        max_instances: Safety limit on returned occurrences

    Returns:
        Occurrences sorted by start (the base itself is not included)
    """
    if not base.is_recurring_base:
        return []

    rule = base.recurrence
    try:
        schedule = build_rrule(rule, base.start_date, tz)
    except RecurrenceDefinitionError as e:
        logger.warning(f"Skipping recurrence of event '{base.id}': {e.message}")
        return []

    window_start = ensure_utc(window_start)
    window_end = ensure_utc(window_end)
    if window_end < window_start:
        return []

    excluded = set(rule.exceptions)
    duration = base.duration

    # Widen the search so occurrences already running at window start are found.
    # All-day occurrences match by calendar day, so they get a day on each side.
    day = timedelta(days=1) if base.is_all_day else timedelta(0)
    search_start = (window_start - duration - day).astimezone(tz)
    search_end = (window_end + day).astimezone(tz)
    candidates = schedule.between(search_start, search_end, inc=True)

    occurrences = []
    for candidate in candidates:
        if candidate.date() in excluded:
            continue

        occurrence = base.occurrence_at(candidate)
        if not occurrence.intersects(window_start, window_end, tz):
            continue

        occurrences.append(occurrence)
        if len(occurrences) >= max_instances:
            logger.warning(
                f"Recurrence of event '{base.id}' truncated at {max_instances} occurrences"
            )
            break

    return occurrences

