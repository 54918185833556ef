"""Suitability scoring for (task, slot) pairs: pure business logic.

composite = w_deadline * urgency + w_effort * effort_fit + w_deps * dependency_weight

Every component lies in [0, 1], and the weights are normalized, so the
composite lies in [0, 1] before any energy penalty.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime

from dayplan.core.availability import align
from dayplan.data.models import InvalidInputError, SchedulingPreferences, Task

NO_DUE_DATE_URGENCY = 0.2

# (max days remaining, score), checked in order
_URGENCY_BANDS = [
    (3, 0.9),
    (7, 0.7),
    (14, 0.5),
    (30, 0.3),
]
_MINIMAL_URGENCY = 0.1


@dataclass(frozen=True)
class ScoringWeights:
    deadline: float
    effort: float
    deps: float


def normalize_weights(deadline: float, effort: float, deps: float) -> ScoringWeights:
    """Scale weights to sum to 1; all-zero weights fall back to equal thirds."""
    if min(deadline, effort, deps) < 0:
        raise InvalidInputError("priority weights must be >= 0")
    total = deadline + effort + deps
    if total <= 0:
        return ScoringWeights(1 / 3, 1 / 3, 1 / 3)
    return ScoringWeights(deadline / total, effort / total, deps / total)


def weights_from_preferences(prefs: SchedulingPreferences) -> ScoringWeights:
    return normalize_weights(
        prefs.priority_weight_deadline,
        prefs.priority_weight_effort,
        prefs.priority_weight_deps,
    )


def days_until_due(task: Task, now: datetime) -> int | None:
    """Whole days left until the due date (rounded up), or None."""
    if task.due_date is None:
        return None
    due = align(task.due_date, now.tzinfo)
    return math.ceil((due - now).total_seconds() / 86400)


def urgency_score(task: Task, now: datetime) -> float:
    """Banded urgency: overdue saturates at 1.0, no due date is a low baseline."""
    if task.due_date is None:
        return NO_DUE_DATE_URGENCY
    if align(task.due_date, now.tzinfo) < now:
        return 1.0
    days = days_until_due(task, now)
    for limit, score in _URGENCY_BANDS:
        if days <= limit:
            return score
    return _MINIMAL_URGENCY


def effort_fit_score(duration_minutes: int, slot_minutes: int, min_leftover_minutes: int) -> float:
    """How cleanly a task fills a slot.

    1.0 when it fills the slot exactly or leaves a remainder still big enough
    to host other work; between 0.5 and 1.0 when it strands an unusable sliver;
    0.0 when it does not fit at all.
    """
    if duration_minutes <= 0 or duration_minutes > slot_minutes:
        return 0.0
    leftover = slot_minutes - duration_minutes
    if leftover == 0 or leftover >= min_leftover_minutes:
        return 1.0
    return 1.0 - 0.5 * (leftover / min_leftover_minutes)


def dependency_weight_score(dependent_count: int, max_dependent_count: int) -> float:
    """Share of the best unblocking power among the candidates."""
    if max_dependent_count <= 0:
        return 0.0
    return min(dependent_count / max_dependent_count, 1.0)


def composite_score(
    weights: ScoringWeights,
    urgency: float,
    effort_fit: float,
    dependency_weight: float,
) -> float:
    return (
        weights.deadline * urgency
        + weights.effort * effort_fit
        + weights.deps * dependency_weight
    )
