"""
DayPlan: Planning Pipeline.

Runs the whole data flow for one day:

    tasks -> dependency graph -> classification -> free intervals -> schedule

plan_daily_schedule() is pure and takes a complete snapshot. plan_day() is
the port-driven variant: it reads tasks and calendar events through the
TaskSourcePort / CalendarPort protocols, then delegates to the pure version.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, tzinfo
from typing import TYPE_CHECKING

from pydantic import ValidationError

from dayplan.core.availability import coerce_date, resolve_free_intervals
from dayplan.core.daily_scheduler import DailySchedule, generate_daily_schedule
from dayplan.core.dependency_analyzer import (
    Bottleneck,
    TaskClassification,
    bottleneck_tasks,
    classify_tasks,
    validate_dependencies,
)
from dayplan.core.intervals import Interval
from dayplan.core.task_graph import GraphBuildResult, build_dependency_graph
from dayplan.data.models import ScheduleEntry, SchedulingPreferences, Task, parse_tasks

if TYPE_CHECKING:
    from dayplan.ports.calendar_port import CalendarPort
    from dayplan.ports.task_port import TaskSourcePort

logger = logging.getLogger(__name__)


@dataclass
class DailyPlan:
    """Everything computed for one day, intermediate results included."""

    target_date: date
    build: GraphBuildResult
    classification: TaskClassification
    free_intervals: list[Interval]
    schedule: DailySchedule
    bottlenecks: list[Bottleneck] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


def plan_daily_schedule(
    tasks: list[Task],
    target_date: date | str,
    existing_events: list[ScheduleEntry],
    preferences: SchedulingPreferences,
    *,
    business_only: bool = False,
    now: datetime | None = None,
    tz: tzinfo | None = None,
) -> DailyPlan:
    """Build a recommended schedule for target_date from a task snapshot.

    Tasks that already carry a scheduled start/end occupy their time and
    are not scheduled again. Structural anomalies (cycles, dangling
    references) end up in DailyPlan.warnings.

    Raises:
        InvalidInputError: malformed date or duplicate task ids.
    """
    day = coerce_date(target_date)

    build = build_dependency_graph(tasks)
    classification = classify_tasks(build.graph, tasks)

    time_blocked = [t for t in tasks if t.is_time_blocked]
    free = resolve_free_intervals(
        day,
        preferences.working_hours,
        existing_events,
        time_blocked,
        business_hours=preferences.business_hours,
        business_only=business_only,
        tz=tz,
    )

    candidates = [t for t in classification.available if not t.is_time_blocked]
    schedule = generate_daily_schedule(candidates, free, preferences, graph=build.graph, now=now)

    report = validate_dependencies(build, tasks)
    return DailyPlan(
        target_date=day,
        build=build,
        classification=classification,
        free_intervals=free,
        schedule=schedule,
        bottlenecks=bottleneck_tasks(build.graph, tasks),
        warnings=report.errors + report.warnings,
    )


def events_to_entries(events: list[dict]) -> list[ScheduleEntry]:
    """Convert calendar port events into ScheduleEntry records.

    All-day events (bare dates, no "T") never block time and are dropped;
    events with unparseable times are skipped with a warning.
    """
    entries: list[ScheduleEntry] = []
    for ev in events:
        start = ev.get("start_time", "")
        end = ev.get("end_time", "")
        if "T" not in start or "T" not in end:
            continue
        try:
            entries.append(ScheduleEntry(
                title=ev.get("summary", "(no title)"),
                start=start,
                end=end,
            ))
        except ValidationError as exc:
            logger.warning("Skipping malformed calendar event %r: %s", ev.get("summary"), exc)
    return entries


async def plan_day(
    task_source: TaskSourcePort,
    calendar: CalendarPort,
    target_date: date | str,
    preferences: SchedulingPreferences,
    *,
    project_id: str | None = None,
    business_only: bool = False,
    now: datetime | None = None,
    tz: tzinfo | None = None,
) -> DailyPlan:
    """Fetch the snapshot through the ports and plan the day.

    Graceful degradation:
    - Calendar API fails -> plan as if the day had no existing events
    - Task source fails -> the error propagates; there is nothing to plan

    project_id narrows the snapshot to one project's tasks.
    """
    day = coerce_date(target_date)

    records = await task_source.list_tasks(project_id=project_id)
    tasks = parse_tasks(records)

    try:
        events = await calendar.find_events(target_date=day.isoformat())
    except Exception as exc:
        logger.error("Failed to fetch events for planning on %s: %s", day.isoformat(), exc)
        events = []

    plan = plan_daily_schedule(
        tasks, day, events_to_entries(events), preferences,
        business_only=business_only, now=now, tz=tz,
    )
    logger.info(
        "Planned %s: %d scheduled, %d unscheduled, %d warning(s)",
        day.isoformat(), len(plan.schedule.scheduled_items),
        len(plan.schedule.unscheduled_task_ids), len(plan.warnings),
    )
    return plan
