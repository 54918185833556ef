"""Shared test fixtures and configuration.

Sets up environment variables before any dayplan import so the settings
singleton is deterministic, and provides task/preference factories.
"""

import os

# Patch env vars BEFORE any dayplan imports
os.environ.setdefault("TIMEZONE", "UTC")
os.environ.setdefault("MIN_FREE_INTERVAL_MINUTES", "15")
os.environ.setdefault("SCHEDULE_INCREMENT_MINUTES", "15")
os.environ.setdefault("OVERLOAD_MEDIUM_THRESHOLD", "70")
os.environ.setdefault("OVERLOAD_HIGH_THRESHOLD", "90")
os.environ.setdefault("HIGH_ENERGY_PENALTY", "0.1")
os.environ.setdefault("LOW_ENERGY_BONUS", "0.1")

from datetime import date, datetime

import pytest


@pytest.fixture
def day():
    """The calendar date every scheduling test plans."""
    return date(2026, 10, 19)


@pytest.fixture
def now():
    """Reference time for urgency scoring: 08:00 on the planned day."""
    return datetime(2026, 10, 19, 8, 0)


@pytest.fixture
def make_task():
    """Return a factory building Task models with sensible defaults."""
    from dayplan.data.models import Task

    def _make(task_id, hours=1.0, deps=None, **kwargs):
        return Task(
            id=task_id,
            title=kwargs.pop("title", f"Task {task_id}"),
            estimated_hours=hours,
            dependencies=deps or [],
            **kwargs,
        )

    return _make


@pytest.fixture
def prefs():
    """Default preferences with 09:00-17:00 working hours."""
    from dayplan.data.models import SchedulingPreferences

    return SchedulingPreferences()
