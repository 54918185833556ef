"""Interval arithmetic: pure business logic.

Free and busy time are modelled as half-open [start, end) intervals.
Everything that needs "what is left of the day" goes through
subtract_interval() rather than ad hoc datetime comparisons.

No I/O: this module only transforms data.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable


@dataclass(frozen=True, order=True)
class Interval:
    """A half-open span of time [start, end)."""

    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        if self.end < self.start:
            raise ValueError(f"interval ends before it starts: {self.start} > {self.end}")

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    @property
    def duration_minutes(self) -> int:
        return int(self.duration.total_seconds() // 60)

    def overlaps(self, other: Interval) -> bool:
        return self.start < other.end and other.start < self.end

    def contains(self, other: Interval) -> bool:
        return self.start <= other.start and other.end <= self.end

    def intersection(self, other: Interval) -> Interval | None:
        start = max(self.start, other.start)
        end = min(self.end, other.end)
        if start >= end:
            return None
        return Interval(start, end)

    def label(self) -> str:
        """Return "HH:MM-HH:MM" for rationale strings and logs."""
        return f"{self.start:%H:%M}-{self.end:%H:%M}"


def merge_intervals(intervals: Iterable[Interval]) -> list[Interval]:
    """Union overlapping or touching intervals, sorted by start."""
    merged: list[Interval] = []
    for iv in sorted(intervals):
        if iv.start == iv.end:
            continue
        if merged and iv.start <= merged[-1].end:
            last = merged[-1]
            merged[-1] = Interval(last.start, max(last.end, iv.end))
        else:
            merged.append(iv)
    return merged


def subtract_interval(free: list[Interval], occupied: Interval) -> list[Interval]:
    """Remove one occupied span from a list of free intervals.

    An occupied span inside a free interval splits it in two, one covering
    an edge shrinks it, one covering it completely removes it.
    """
    result: list[Interval] = []
    for iv in free:
        if not iv.overlaps(occupied):
            result.append(iv)
            continue
        if iv.start < occupied.start:
            result.append(Interval(iv.start, occupied.start))
        if occupied.end < iv.end:
            result.append(Interval(occupied.end, iv.end))
    return result


def subtract_all(free: list[Interval], occupied: Iterable[Interval]) -> list[Interval]:
    for busy in occupied:
        free = subtract_interval(free, busy)
    return free


def intersect_intervals(left: list[Interval], right: list[Interval]) -> list[Interval]:
    """Pairwise intersection of two interval lists, sorted by start."""
    out: list[Interval] = []
    for a in left:
        for b in right:
            common = a.intersection(b)
            if common is not None:
                out.append(common)
    return merge_intervals(out)


def total_minutes(intervals: Iterable[Interval]) -> int:
    return sum(iv.duration_minutes for iv in intervals)


def time_str_to_minutes(time_str: str) -> int | None:
    """Convert an ISO datetime or HH:MM string to minutes from midnight."""
    if not time_str:
        return None
    try:
        if "T" in time_str:
            t = datetime.fromisoformat(time_str).time()
        else:
            t = datetime.strptime(time_str, "%H:%M").time()
        return t.hour * 60 + t.minute
    except (ValueError, TypeError):
        return None
