"""
DayPlan: Dependency Analyzer.

Classifies every task of a snapshot as Available, Blocked, Completed or
CycleParticipant. The classification is recomputed from current task
state on every call and never cached.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum

from dayplan.config import settings
from dayplan.core.task_graph import DependencyGraph, GraphBuildResult
from dayplan.data.models import Task

logger = logging.getLogger(__name__)


class TaskState(Enum):
    AVAILABLE = "available"
    BLOCKED = "blocked"
    COMPLETED = "completed"
    CYCLE_PARTICIPANT = "cycle_participant"


@dataclass
class BlockedTask:
    """A blocked task and the direct prerequisites still outstanding."""

    task: Task
    blocking_tasks: list[Task] = field(default_factory=list)


@dataclass
class ClassificationSummary:
    total: int
    available: int
    blocked: int
    completed: int
    cycle_participants: int
    edges: int


@dataclass
class TaskClassification:
    """Result of classify_tasks()."""

    available: list[Task] = field(default_factory=list)
    blocked: list[BlockedTask] = field(default_factory=list)
    cycle_participants: list[Task] = field(default_factory=list)
    completed: list[Task] = field(default_factory=list)
    edge_count: int = 0
    states: dict[str, TaskState] = field(default_factory=dict)

    def available_tasks(self) -> list[Task]:
        return list(self.available)

    def blocked_tasks(self) -> list[BlockedTask]:
        return list(self.blocked)

    def total_edge_count(self) -> int:
        return self.edge_count

    def status_of(self, task_id: str) -> TaskState | None:
        return self.states.get(task_id)

    def summary(self) -> ClassificationSummary:
        return ClassificationSummary(
            total=len(self.states),
            available=len(self.available),
            blocked=len(self.blocked),
            completed=len(self.completed),
            cycle_participants=len(self.cycle_participants),
            edges=self.edge_count,
        )


def classify_tasks(graph: DependencyGraph, tasks: list[Task]) -> TaskClassification:
    """Classify each task against the statuses in `tasks`.

    Rules, in order:
    - own status Completed -> COMPLETED
    - on a dependency cycle -> CYCLE_PARTICIPANT (counted in neither
      available nor blocked)
    - any direct dependency not Completed -> BLOCKED
    - otherwise -> AVAILABLE

    Blocking lists hold direct dependencies only, not the transitive closure.
    Dependencies missing from the snapshot never block.
    """
    by_id = {t.id: t for t in tasks}
    cyclic = graph.has_cycle()
    result = TaskClassification(edge_count=graph.edge_count)

    for task in tasks:
        if task.is_completed:
            result.completed.append(task)
            result.states[task.id] = TaskState.COMPLETED
            continue

        if task.id in cyclic:
            result.cycle_participants.append(task)
            result.states[task.id] = TaskState.CYCLE_PARTICIPANT
            continue

        blocking = [
            by_id[dep_id]
            for dep_id in graph.dependencies(task.id)
            if dep_id in by_id and not by_id[dep_id].is_completed
        ]
        if blocking:
            result.blocked.append(BlockedTask(task=task, blocking_tasks=blocking))
            result.states[task.id] = TaskState.BLOCKED
        else:
            result.available.append(task)
            result.states[task.id] = TaskState.AVAILABLE

    logger.info(
        "Classified %d tasks: %d available, %d blocked, %d completed, %d cyclic",
        len(tasks), len(result.available), len(result.blocked),
        len(result.completed), len(result.cycle_participants),
    )
    return result


# ---------------------------------------------------------------------------
# Aggregate statistics
# ---------------------------------------------------------------------------


@dataclass
class Bottleneck:
    task: Task
    blocked_dependents: int       # incomplete direct dependents held up
    total_dependents: int         # everything downstream, transitively


def bottleneck_tasks(graph: DependencyGraph, tasks: list[Task]) -> list[Bottleneck]:
    """Incomplete tasks holding up other incomplete tasks, worst first."""
    by_id = {t.id: t for t in tasks}
    found: list[Bottleneck] = []
    for task in tasks:
        if task.is_completed:
            continue
        waiting = [
            dep for dep in graph.neighbors(task.id)
            if dep in by_id and not by_id[dep].is_completed
        ]
        if not waiting:
            continue
        found.append(Bottleneck(
            task=task,
            blocked_dependents=len(waiting),
            total_dependents=len(graph.transitive_dependents(task.id)),
        ))
    found.sort(key=lambda b: (-b.blocked_dependents, -b.total_dependents, b.task.id))
    return found


@dataclass
class TaskDependencyStats:
    direct_dependencies: int
    total_dependencies: int
    direct_dependents: int
    total_dependents: int
    is_blocked: bool
    blocking_tasks: list[Task] = field(default_factory=list)


def task_dependency_stats(graph: DependencyGraph, task_id: str) -> TaskDependencyStats:
    """Dependency counts for one task; zeros when the id is unknown."""
    if task_id not in graph:
        return TaskDependencyStats(0, 0, 0, 0, False, [])

    task = graph.task(task_id)
    blocking = [
        graph.task(dep) for dep in graph.dependencies(task_id)
        if not graph.task(dep).is_completed
    ]
    return TaskDependencyStats(
        direct_dependencies=len(graph.dependencies(task_id)),
        total_dependencies=len(graph.transitive_dependencies(task_id)),
        direct_dependents=graph.dependent_count(task_id),
        total_dependents=len(graph.transitive_dependents(task_id)),
        is_blocked=bool(blocking) and not task.is_completed,
        blocking_tasks=blocking,
    )


@dataclass
class DependencyReport:
    """Human-readable integrity report over a graph build."""

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors


def validate_dependencies(build: GraphBuildResult, tasks: list[Task]) -> DependencyReport:
    """Turn structural anomalies into messages the caller can show as warnings."""
    report = DependencyReport()
    titles = {t.id: t.title for t in tasks}

    for task_id, missing in build.dangling_references.items():
        for dep_id in missing:
            report.errors.append(
                f'Task "{titles.get(task_id, task_id)}" references non-existent dependency: {dep_id}'
            )

    if build.cyclic_task_ids:
        names = ", ".join(titles.get(tid, tid) for tid in sorted(build.cyclic_task_ids))
        report.errors.append(f"Circular dependency detected among: {names}")

    limit = settings.MANY_DEPENDENCIES_WARNING
    for task in tasks:
        if len(task.dependencies) > limit:
            report.warnings.append(
                f'Task "{task.title}" has many dependencies ({len(task.dependencies)}), '
                "consider breaking it down"
            )

    classification = classify_tasks(build.graph, tasks)
    incomplete = sum(1 for t in tasks if not t.is_completed)
    if incomplete and len(classification.blocked) > incomplete * 0.5:
        report.warnings.append(
            f"High percentage of tasks are blocked ({len(classification.blocked)} of "
            f"{incomplete}), review dependency structure"
        )
    return report
