"""
DayPlan: Task Dependency Graph.

Builds a directed graph from a task snapshot. An edge A -> B means
"B depends on A": A must be completed before B can start.

The graph is rebuilt from scratch for every request and never mutated
afterwards. Structural problems (cycles, references to missing tasks) are
reported alongside the graph instead of being raised, so the healthy part of
the graph stays queryable.
"""

from __future__ import annotations

import heapq
import logging
from dataclasses import dataclass, field
from enum import Enum

from dayplan.data.models import Task, ensure_unique_ids

logger = logging.getLogger(__name__)


class VisitState(Enum):
    UNVISITED = 0
    IN_PROGRESS = 1
    DONE = 2


class DependencyGraph:
    """Read-only adjacency view over one task snapshot."""

    def __init__(self, tasks: list[Task]) -> None:
        self._tasks: dict[str, Task] = {t.id: t for t in tasks}
        self._order: dict[str, int] = {t.id: i for i, t in enumerate(tasks)}
        self._dependents: dict[str, list[str]] = {t.id: [] for t in tasks}
        self._dependencies: dict[str, list[str]] = {t.id: [] for t in tasks}
        self._edge_count = 0

        for task in tasks:
            for dep_id in task.dependencies:
                if dep_id not in self._tasks:
                    continue
                self._dependents[dep_id].append(task.id)
                self._dependencies[task.id].append(dep_id)
                self._edge_count += 1

        self._cyclic: frozenset[str] = frozenset(self._find_cycle_members())

    # -- basic queries ------------------------------------------------------

    def __contains__(self, task_id: object) -> bool:
        return task_id in self._tasks

    def __len__(self) -> int:
        return len(self._tasks)

    @property
    def task_ids(self) -> list[str]:
        return list(self._tasks)

    @property
    def edge_count(self) -> int:
        return self._edge_count

    def task(self, task_id: str) -> Task:
        return self._tasks[task_id]

    def neighbors(self, task_id: str) -> list[str]:
        """Direct dependents: tasks waiting on task_id."""
        return list(self._dependents.get(task_id, []))

    def dependencies(self, task_id: str) -> list[str]:
        """Direct prerequisites of task_id that exist in the snapshot."""
        return list(self._dependencies.get(task_id, []))

    def dependent_count(self, task_id: str) -> int:
        return len(self._dependents.get(task_id, []))

    def edges(self) -> list[tuple[str, str]]:
        return [(src, dst) for src, dsts in self._dependents.items() for dst in dsts]

    # -- reachability -------------------------------------------------------

    def transitive_dependents(self, task_id: str) -> set[str]:
        """Every task that (directly or indirectly) waits on task_id."""
        return self._reach(task_id, self._dependents)

    def transitive_dependencies(self, task_id: str) -> set[str]:
        """Every task that task_id (directly or indirectly) waits on."""
        return self._reach(task_id, self._dependencies)

    def is_reachable(self, source: str, target: str) -> bool:
        """True when target transitively depends on source."""
        return target in self.transitive_dependents(source)

    @staticmethod
    def _reach(start: str, adjacency: dict[str, list[str]]) -> set[str]:
        seen: set[str] = set()
        stack = list(adjacency.get(start, []))
        while stack:
            node = stack.pop()
            if node in seen:
                continue
            seen.add(node)
            stack.extend(adjacency[node])
        seen.discard(start)
        return seen

    # -- cycles & ordering --------------------------------------------------

    def has_cycle(self) -> set[str]:
        """Ids of all tasks lying on at least one dependency cycle."""
        return set(self._cyclic)

    def topological_order(self) -> list[str]:
        """Kahn's algorithm over the graph minus its cyclic tasks.

        Tasks downstream of a cycle (but not on it) are still ordered.
        Ties are broken by snapshot input order.
        """
        in_degree = {
            tid: sum(1 for d in self._dependencies[tid] if d not in self._cyclic)
            for tid in self._tasks
            if tid not in self._cyclic
        }
        ready = [(self._order[tid], tid) for tid, deg in in_degree.items() if deg == 0]
        heapq.heapify(ready)

        order: list[str] = []
        while ready:
            _, tid = heapq.heappop(ready)
            order.append(tid)
            for nxt in self._dependents[tid]:
                if nxt in self._cyclic:
                    continue
                in_degree[nxt] -= 1
                if in_degree[nxt] == 0:
                    heapq.heappush(ready, (self._order[nxt], nxt))
        return order

    def critical_path(self) -> list[str]:
        """Longest dependency chain (by task count) in the acyclic part."""
        best_len: dict[str, int] = {}
        best_prev: dict[str, str | None] = {}
        for tid in self.topological_order():
            prev = None
            length = 1
            for dep in self._dependencies[tid]:
                if dep in best_len and best_len[dep] + 1 > length:
                    length = best_len[dep] + 1
                    prev = dep
            best_len[tid] = length
            best_prev[tid] = prev

        if not best_len:
            return []
        tail = max(best_len, key=lambda tid: (best_len[tid], -self._order[tid]))
        path: list[str] = []
        node: str | None = tail
        while node is not None:
            path.append(node)
            node = best_prev[node]
        path.reverse()
        return path

    def _find_cycle_members(self) -> set[str]:
        """Three-color DFS; back edges into an IN_PROGRESS node mark cycles.

        Each back edge contributes the stack slice from its target up to the
        current node. The result is then widened to whole strongly connected
        components, since a node whose only cycle edge points at an already
        DONE cycle member never produces a back edge of its own.
        """
        state = {tid: VisitState.UNVISITED for tid in self._tasks}
        members: set[str] = set()

        for root in self._tasks:
            if state[root] is not VisitState.UNVISITED:
                continue
            state[root] = VisitState.IN_PROGRESS
            path = [root]
            stack = [(root, iter(self._dependents[root]))]
            while stack:
                node, children = stack[-1]
                child = next(children, None)
                if child is None:
                    state[node] = VisitState.DONE
                    stack.pop()
                    path.pop()
                    continue
                if state[child] is VisitState.IN_PROGRESS:
                    members.update(path[path.index(child):])
                elif state[child] is VisitState.UNVISITED:
                    state[child] = VisitState.IN_PROGRESS
                    path.append(child)
                    stack.append((child, iter(self._dependents[child])))

        if not members:
            return members

        closed: set[str] = set()
        for seed in members:
            if seed in closed:
                continue
            downstream = self._reach(seed, self._dependents) | {seed}
            upstream = self._reach(seed, self._dependencies) | {seed}
            component = downstream & upstream
            if len(component) > 1:
                closed |= component
        return closed


@dataclass
class GraphBuildResult:
    """A graph plus the anomalies found while building it."""

    graph: DependencyGraph
    cyclic_task_ids: set[str] = field(default_factory=set)
    dangling_dependency_ids: list[str] = field(default_factory=list)
    # task id -> missing dependency ids it references
    dangling_references: dict[str, list[str]] = field(default_factory=dict)

    @property
    def has_anomalies(self) -> bool:
        return bool(self.cyclic_task_ids or self.dangling_dependency_ids)


def build_dependency_graph(tasks: list[Task]) -> GraphBuildResult:
    """Build the dependency graph for a task snapshot.

    Dependencies that point at unknown tasks are left out of the graph and
    listed in dangling_dependency_ids; upstream data may be transiently
    inconsistent (e.g. a referenced task was deleted).

    Raises:
        InvalidInputError: only for duplicate task ids.
    """
    ensure_unique_ids(tasks)
    known = {t.id for t in tasks}

    dangling_refs: dict[str, list[str]] = {}
    for task in tasks:
        missing = [d for d in task.dependencies if d not in known]
        if missing:
            dangling_refs[task.id] = missing
    dangling_ids = list(dict.fromkeys(d for refs in dangling_refs.values() for d in refs))

    graph = DependencyGraph(tasks)
    cyclic = graph.has_cycle()

    if cyclic:
        logger.warning("Dependency cycle among tasks: %s", ", ".join(sorted(cyclic)))
    if dangling_ids:
        logger.warning("Dangling dependency references: %s", ", ".join(dangling_ids))
    logger.info(
        "Built dependency graph: %d tasks, %d edges, %d cyclic, %d dangling",
        len(graph), graph.edge_count, len(cyclic), len(dangling_ids),
    )

    return GraphBuildResult(
        graph=graph,
        cyclic_task_ids=cyclic,
        dangling_dependency_ids=dangling_ids,
        dangling_references=dangling_refs,
    )
