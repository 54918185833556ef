"""
DayPlan: Availability Resolver.

Turns a working-hours window, the day's calendar entries and any
time-blocked tasks into the list of free intervals the scheduler may fill.
Free intervals are computed per request and never persisted.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, tzinfo
from zoneinfo import ZoneInfo

from dayplan.config import settings
from dayplan.core.intervals import Interval, intersect_intervals, merge_intervals, subtract_all
from dayplan.data.models import InvalidInputError, ScheduleEntry, Task, TimeWindow

logger = logging.getLogger(__name__)


def coerce_date(value: date | str) -> date:
    """Accept a date or an ISO "YYYY-MM-DD" string."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(value)
    except (TypeError, ValueError) as exc:
        raise InvalidInputError(f"malformed date {value!r}") from exc


def window_interval(target_date: date, window: TimeWindow, tz: tzinfo | None = None) -> Interval:
    """Anchor an HH:MM window on a calendar date."""
    return Interval(
        datetime.combine(target_date, window.start_time, tzinfo=tz),
        datetime.combine(target_date, window.end_time, tzinfo=tz),
    )


def align(dt: datetime, tz: tzinfo | None) -> datetime:
    """Bring dt into the window's time zone.

    A naive window compares against local wall-clock time in
    settings.TIMEZONE; an aware window treats naive inputs as its own zone.
    """
    if tz is None:
        if dt.tzinfo is None:
            return dt
        return dt.astimezone(ZoneInfo(settings.TIMEZONE)).replace(tzinfo=None)
    if dt.tzinfo is None:
        return dt.replace(tzinfo=tz)
    return dt.astimezone(tz)


def occupied_intervals(
    target_date: date | str,
    working_hours: TimeWindow,
    existing_events: list[ScheduleEntry],
    time_blocked_tasks: list[Task],
    tz: tzinfo | None = None,
) -> list[Interval]:
    """Merged busy spans clipped to the working window of target_date.

    All-day entries and tasks without a scheduled start/end never occupy time.
    """
    day = coerce_date(target_date)
    window = window_interval(day, working_hours, tz)

    busy: list[Interval] = []
    for ev in existing_events:
        if ev.all_day:
            continue
        busy.append(Interval(align(ev.start, tz), align(ev.end, tz)))
    for task in time_blocked_tasks:
        if not task.is_time_blocked:
            continue
        busy.append(Interval(align(task.scheduled_start, tz), align(task.scheduled_end, tz)))

    clipped = [c for c in (iv.intersection(window) for iv in busy) if c is not None]
    return merge_intervals(clipped)


def resolve_free_intervals(
    target_date: date | str,
    working_hours: TimeWindow,
    existing_events: list[ScheduleEntry],
    time_blocked_tasks: list[Task],
    *,
    business_hours: TimeWindow | None = None,
    business_only: bool = False,
    min_duration_minutes: int | None = None,
    tz: tzinfo | None = None,
) -> list[Interval]:
    """Compute free time for one day.

    Args:
        target_date: The calendar date (date or "YYYY-MM-DD").
        working_hours: Outer window, e.g. 09:00-17:00.
        existing_events: Calendar commitments; only those overlapping the
            window matter.
        time_blocked_tasks: Tasks already placed on the calendar.
        business_hours: Optional narrower business window.
        business_only: Restrict the result to business hours.
        min_duration_minutes: Drop free intervals shorter than this
            (default settings.MIN_FREE_INTERVAL_MINUTES).
        tz: Time zone of the window; None keeps everything naive.

    Returns:
        Ordered, non-overlapping free intervals.

    Raises:
        InvalidInputError: malformed date, or business_only without
            business_hours.
    """
    day = coerce_date(target_date)
    if business_only and business_hours is None:
        raise InvalidInputError("business_only scheduling requires business_hours")
    if min_duration_minutes is None:
        min_duration_minutes = settings.MIN_FREE_INTERVAL_MINUTES

    window = window_interval(day, working_hours, tz)
    busy = occupied_intervals(day, working_hours, existing_events, time_blocked_tasks, tz)
    free = subtract_all([window], busy)

    if business_only:
        free = intersect_intervals(free, [window_interval(day, business_hours, tz)])

    usable = [iv for iv in free if iv.duration_minutes >= min_duration_minutes]
    dropped = len(free) - len(usable)
    if dropped:
        logger.debug("Dropped %d free interval(s) shorter than %d min", dropped, min_duration_minutes)

    logger.info(
        "Free time on %s: %d interval(s), %d min (busy %d min)",
        day.isoformat(), len(usable),
        sum(iv.duration_minutes for iv in usable),
        sum(iv.duration_minutes for iv in busy),
    )
    return usable
