"""
DayPlan: Daily Scheduler.

Greedy best-fit placement of available tasks into free intervals.

Each round scores every (task, slot) pair still possible, places the single
best one at the start of its slot, carves the used time out of the free list
and starts over. This is a deliberate approximation: optimal task-to-slot
assignment is a packing problem and is not attempted.

Insufficient capacity is never an error; tasks that cannot be placed are
returned in unscheduled_task_ids and the workload summary says how loaded
the day is.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, tzinfo
from enum import Enum
from typing import TYPE_CHECKING

from dayplan.config import settings
from dayplan.core.availability import align
from dayplan.core.intervals import (
    Interval,
    intersect_intervals,
    merge_intervals,
    subtract_all,
    subtract_interval,
    time_str_to_minutes,
    total_minutes,
)
from dayplan.core.scoring import (
    ScoringWeights,
    composite_score,
    days_until_due,
    dependency_weight_score,
    effort_fit_score,
    urgency_score,
    weights_from_preferences,
)
from dayplan.data.models import (
    EnergyLevel,
    InvalidInputError,
    SchedulingPreferences,
    Task,
    TaskContext,
)

if TYPE_CHECKING:
    from dayplan.core.task_graph import DependencyGraph

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------


class OverloadRisk(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass
class ScheduledItem:
    """One suggested placement. The caller decides whether to persist it."""

    task_id: str
    title: str
    start: datetime
    duration_minutes: int
    score: float
    rationale: str
    block_type: str = "regular"   # "focus" | "regular"

    @property
    def end(self) -> datetime:
        return self.start + timedelta(minutes=self.duration_minutes)

    @property
    def interval(self) -> Interval:
        return Interval(self.start, self.end)


@dataclass
class WorkloadSummary:
    scheduled_hours: float
    available_hours: float
    utilization_percentage: float
    overload_risk: OverloadRisk
    demand_hours: float = 0.0
    unscheduled_task_ids: list[str] = field(default_factory=list)


@dataclass
class DailySchedule:
    scheduled_items: list[ScheduledItem] = field(default_factory=list)
    unscheduled_task_ids: list[str] = field(default_factory=list)
    workload_summary: WorkloadSummary | None = None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def task_slot_minutes(task: Task, increment: int) -> int:
    """Estimated duration rounded up to the scheduling increment (at least one)."""
    minutes = round(task.estimated_hours * 60, 6)
    blocks = max(1, math.ceil(minutes / increment))
    return blocks * increment


def classify_overload(utilization_percentage: float) -> OverloadRisk:
    if utilization_percentage > settings.OVERLOAD_HIGH_THRESHOLD:
        return OverloadRisk.HIGH
    if utilization_percentage >= settings.OVERLOAD_MEDIUM_THRESHOLD:
        return OverloadRisk.MEDIUM
    return OverloadRisk.LOW


def _whole_day(day: date, tz: tzinfo | None) -> Interval:
    start = datetime.combine(day, time.min, tzinfo=tz)
    return Interval(start, start + timedelta(days=1))


def _hour_windows(hours: list[str], day: date, tz: tzinfo | None) -> list[Interval]:
    windows: list[Interval] = []
    for hour in hours:
        minutes = time_str_to_minutes(hour)
        if minutes is None:
            continue
        start = datetime.combine(day, time.min, tzinfo=tz) + timedelta(minutes=minutes)
        windows.append(Interval(start, start + timedelta(hours=1)))
    return merge_intervals(windows)


@dataclass
class _Candidate:
    task: Task
    span: Interval          # eligible part of a free interval
    duration_minutes: int
    score: float
    dependents: int
    energy_match: str | None   # "peak" | "low" | None


class _SlotRules:
    """Per-day placement constraints derived from preferences."""

    def __init__(self, prefs: SchedulingPreferences) -> None:
        self._prefs = prefs

    def eligible_spans(self, task: Task, free_iv: Interval) -> list[tuple[Interval, str | None]]:
        """Parts of free_iv the task may occupy, each tagged with its energy match."""
        day = free_iv.start.date()
        tz = free_iv.start.tzinfo
        spans = [free_iv]

        business = self._prefs.business_hours
        if business is not None:
            window = Interval(
                datetime.combine(day, business.start_time, tzinfo=tz),
                datetime.combine(day, business.end_time, tzinfo=tz),
            )
            if task.task_context == TaskContext.BUSINESS and not self._prefs.allow_business_in_personal_time:
                spans = intersect_intervals(spans, [window])
            elif task.task_context == TaskContext.PERSONAL and not self._prefs.allow_personal_in_business_time:
                personal = subtract_interval([_whole_day(day, tz)], window)
                spans = intersect_intervals(spans, personal)

        if task.energy_level == EnergyLevel.HIGH and self._prefs.peak_energy_hours:
            peak = _hour_windows(self._prefs.peak_energy_hours, day, tz)
            return [(span, "peak") for span in intersect_intervals(spans, peak)]

        if task.energy_level == EnergyLevel.LOW and self._prefs.low_energy_hours:
            low = _hour_windows(self._prefs.low_energy_hours, day, tz)
            matched = [(span, "low") for span in intersect_intervals(spans, low)]
            return matched + [(span, None) for span in subtract_all(spans, low)]

        return [(span, None) for span in spans]


def _rationale(cand: _Candidate, now: datetime, high_energy_unmatched: bool) -> str:
    parts: list[str] = []
    task = cand.task
    if task.due_date is None:
        parts.append("no due date")
    else:
        days = days_until_due(task, now)
        if align(task.due_date, now.tzinfo) < now:
            parts.append("overdue")
        elif days <= 0:
            parts.append("due today")
        else:
            parts.append(f"due in {days} day{'s' if days != 1 else ''}")
    parts.append(f"{task.priority.value} priority")

    slot = cand.span.label()
    if cand.duration_minutes == cand.span.duration_minutes:
        parts.append(f"fills {slot} exactly")
    else:
        parts.append(f"fits {cand.duration_minutes} min into {slot}")

    if cand.dependents:
        parts.append(f"unblocks {cand.dependents} task{'s' if cand.dependents != 1 else ''}")
    if cand.energy_match == "peak":
        parts.append("peak-energy slot")
    elif cand.energy_match == "low":
        parts.append("low-energy slot")
    elif high_energy_unmatched:
        parts.append("high-energy task, no peak hours declared")
    return "; ".join(parts)


# ---------------------------------------------------------------------------
# Scheduler
# ---------------------------------------------------------------------------


def generate_daily_schedule(
    available_tasks: list[Task],
    free_intervals: list[Interval],
    preferences: SchedulingPreferences,
    *,
    graph: DependencyGraph | None = None,
    now: datetime | None = None,
    increment_minutes: int | None = None,
) -> DailySchedule:
    """Fill free intervals with available tasks, best score first.

    Args:
        available_tasks: Tasks classified Available; completed ones are skipped.
        free_intervals: Output of resolve_free_intervals().
        preferences: Weights, energy hours, focus/break/buffer settings.
        graph: Dependency graph used to reward tasks that unblock others.
        now: Reference time for urgency (default: current time in the zone
            of the free intervals).
        increment_minutes: Duration rounding step
            (default settings.SCHEDULE_INCREMENT_MINUTES).

    Returns:
        DailySchedule with items in chronological order, the ids that could
        not be placed and a WorkloadSummary.

    Raises:
        InvalidInputError: increment_minutes is zero or negative.
    """
    if increment_minutes is None:
        increment_minutes = settings.SCHEDULE_INCREMENT_MINUTES
    if increment_minutes <= 0:
        raise InvalidInputError(f"increment_minutes must be > 0, got {increment_minutes}")
    increment = increment_minutes
    min_leftover = settings.MIN_FREE_INTERVAL_MINUTES
    weights: ScoringWeights = weights_from_preferences(preferences)
    rules = _SlotRules(preferences)

    free = merge_intervals(free_intervals)
    capacity_minutes = total_minutes(free)
    if now is None:
        zone = free[0].start.tzinfo if free else None
        now = datetime.now(zone) if zone is not None else datetime.now()

    pending = [t for t in available_tasks if not t.is_completed]
    durations = {t.id: task_slot_minutes(t, increment) for t in pending}
    urgency = {t.id: urgency_score(t, now) for t in pending}
    dependents = {t.id: _open_dependents(graph, t.id) for t in pending}
    max_dependents = max(dependents.values(), default=0)
    no_peak_hours = not preferences.peak_energy_hours

    items: list[ScheduledItem] = []
    while pending and free:
        best: _Candidate | None = None
        best_key: tuple | None = None
        for task in pending:
            need = durations[task.id]
            dep_score = dependency_weight_score(dependents[task.id], max_dependents)
            penalty = (
                settings.HIGH_ENERGY_PENALTY
                if task.energy_level == EnergyLevel.HIGH and no_peak_hours
                else 0.0
            )
            for free_iv in free:
                for span, energy_match in rules.eligible_spans(task, free_iv):
                    if span.duration_minutes < need:
                        continue
                    fit = effort_fit_score(need, span.duration_minutes, min_leftover)
                    bonus = settings.LOW_ENERGY_BONUS if energy_match == "low" else 0.0
                    score = composite_score(weights, urgency[task.id], fit, dep_score) - penalty + bonus
                    key = _tie_break_key(score, task, span, now)
                    if best_key is None or key < best_key:
                        best_key = key
                        best = _Candidate(
                            task=task, span=span, duration_minutes=need,
                            score=score,
                            dependents=dependents[task.id], energy_match=energy_match,
                        )
        if best is None:
            break

        item = _place(best, preferences, now, no_peak_hours)
        items.append(item)
        free = _consume(free, best, item, preferences)
        pending = [t for t in pending if t.id != best.task.id]

    items.sort(key=lambda it: it.start)
    unscheduled = [t.id for t in pending]
    summary = _summarize(items, capacity_minutes, durations, unscheduled)

    if unscheduled:
        logger.warning(
            "Could not place %d task(s) for lack of capacity: %s",
            len(unscheduled), ", ".join(unscheduled),
        )
    logger.info(
        "Scheduled %d task(s), %.1fh of %.1fh (%.1f%%, risk %s)",
        len(items), summary.scheduled_hours, summary.available_hours,
        summary.utilization_percentage, summary.overload_risk.value,
    )
    return DailySchedule(
        scheduled_items=items,
        unscheduled_task_ids=unscheduled,
        workload_summary=summary,
    )


def _open_dependents(graph: DependencyGraph | None, task_id: str) -> int:
    if graph is None or task_id not in graph:
        return 0
    return sum(1 for dep in graph.neighbors(task_id) if not graph.task(dep).is_completed)


def _tie_break_key(score: float, task: Task, span: Interval, now: datetime) -> tuple:
    """Sort key, smallest wins: score, due date, priority, id, slot start."""
    if task.due_date is None:
        due_key = (1, now)
    else:
        due_key = (0, align(task.due_date, now.tzinfo))
    return (-round(score, 9), due_key, -task.priority.rank, task.id, span.start)


def _place(cand: _Candidate, prefs: SchedulingPreferences, now: datetime, no_peak_hours: bool) -> ScheduledItem:
    task = cand.task
    is_focus = prefs.focus_block_minutes > 0 and cand.duration_minutes >= prefs.focus_block_minutes
    high_unmatched = task.energy_level == EnergyLevel.HIGH and no_peak_hours
    return ScheduledItem(
        task_id=task.id,
        title=task.title,
        start=cand.span.start,
        duration_minutes=cand.duration_minutes,
        score=round(cand.score, 4),
        rationale=_rationale(cand, now, high_unmatched),
        block_type="focus" if is_focus else "regular",
    )


def _consume(
    free: list[Interval],
    cand: _Candidate,
    item: ScheduledItem,
    prefs: SchedulingPreferences,
) -> list[Interval]:
    """Remove the placed item, its context-switch buffer and any focus break."""
    tail = prefs.context_switch_buffer_minutes
    if item.block_type == "focus":
        tail += prefs.break_minutes
    containing = next(iv for iv in free if iv.contains(cand.span))
    used_end = min(item.end + timedelta(minutes=tail), containing.end)
    return subtract_interval(free, Interval(item.start, used_end))


def _summarize(
    items: list[ScheduledItem],
    capacity_minutes: int,
    durations: dict[str, int],
    unscheduled: list[str],
) -> WorkloadSummary:
    scheduled_minutes = sum(it.duration_minutes for it in items)
    demand_minutes = sum(durations.values())

    if capacity_minutes > 0:
        utilization = round(scheduled_minutes / capacity_minutes * 100, 1)
        risk = classify_overload(utilization)
    else:
        utilization = 0.0
        risk = OverloadRisk.HIGH if unscheduled else OverloadRisk.LOW

    return WorkloadSummary(
        scheduled_hours=round(scheduled_minutes / 60, 2),
        available_hours=round(capacity_minutes / 60, 2),
        utilization_percentage=utilization,
        overload_risk=risk,
        demand_hours=round(demand_minutes / 60, 2),
        unscheduled_task_ids=list(unscheduled),
    )
