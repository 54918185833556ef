"""Task source port: abstract interface for loading a task snapshot.

Persistence lives in the application shell; the planner only reads.
"""

from __future__ import annotations

from typing import Protocol


class TaskSourceError(Exception):
    """Raised when the task store cannot produce a snapshot."""


class TaskSourcePort(Protocol):
    """Snapshot reader used by the planning pipeline."""

    async def list_tasks(self, project_id: str | None = None) -> list[dict]: ...
