"""Calendar port: abstract interface for reading existing commitments.

Core modules depend on this protocol, never on a specific provider.
"""

from __future__ import annotations

from typing import Protocol


class CalendarError(Exception):
    """Raised when any calendar provider operation fails."""


class CalendarPort(Protocol):
    """Read-only calendar interface used by the planning pipeline.

    Events are dicts with "summary", "start_time" and "end_time". Timed
    events carry ISO datetimes ("2026-10-19T12:00:00+03:00"); all-day
    events carry a bare date ("2026-10-19").
    """

    async def find_events(self, target_date: str) -> list[dict]: ...
