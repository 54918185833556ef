"""
DayPlan: Centralized configuration.

Loads scheduling defaults from .env and validates them on startup.
Every core module reads its tunables from the `settings` singleton.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv
from pydantic import BaseModel, ValidationError, field_validator, model_validator

# Load .env from project root (two levels up from dayplan/config.py)
_ENV_PATH = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_ENV_PATH)


class Settings(BaseModel):
    """Scheduling settings loaded from environment variables."""

    # Local zone used when aware timestamps meet naive working hours
    TIMEZONE: str = "UTC"

    # Availability
    MIN_FREE_INTERVAL_MINUTES: int = 15

    # Scheduler
    SCHEDULE_INCREMENT_MINUTES: int = 15
    HIGH_ENERGY_PENALTY: float = 0.1
    LOW_ENERGY_BONUS: float = 0.1

    # Workload bands (utilization percentage)
    OVERLOAD_MEDIUM_THRESHOLD: float = 70.0
    OVERLOAD_HIGH_THRESHOLD: float = 90.0

    # Dependency validation
    MANY_DEPENDENCIES_WARNING: int = 10

    @field_validator("TIMEZONE")
    @classmethod
    def check_timezone(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"unknown timezone {v!r}") from exc
        return v

    @field_validator("MIN_FREE_INTERVAL_MINUTES", "MANY_DEPENDENCIES_WARNING")
    @classmethod
    def non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("must be >= 0")
        return v

    @field_validator("SCHEDULE_INCREMENT_MINUTES")
    @classmethod
    def positive_increment(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("must be > 0")
        return v

    @model_validator(mode="after")
    def check_thresholds(self) -> Settings:
        if not 0 <= self.OVERLOAD_MEDIUM_THRESHOLD <= self.OVERLOAD_HIGH_THRESHOLD:
            raise ValueError(
                "OVERLOAD_MEDIUM_THRESHOLD must be between 0 and OVERLOAD_HIGH_THRESHOLD"
            )
        return self


def _load_settings() -> Settings:
    """Load settings from environment, exiting on invalid values."""
    try:
        return Settings(
            TIMEZONE=os.getenv("TIMEZONE", "UTC"),
            MIN_FREE_INTERVAL_MINUTES=os.getenv("MIN_FREE_INTERVAL_MINUTES", "15"),
            SCHEDULE_INCREMENT_MINUTES=os.getenv("SCHEDULE_INCREMENT_MINUTES", "15"),
            HIGH_ENERGY_PENALTY=os.getenv("HIGH_ENERGY_PENALTY", "0.1"),
            LOW_ENERGY_BONUS=os.getenv("LOW_ENERGY_BONUS", "0.1"),
            OVERLOAD_MEDIUM_THRESHOLD=os.getenv("OVERLOAD_MEDIUM_THRESHOLD", "70"),
            OVERLOAD_HIGH_THRESHOLD=os.getenv("OVERLOAD_HIGH_THRESHOLD", "90"),
            MANY_DEPENDENCIES_WARNING=os.getenv("MANY_DEPENDENCIES_WARNING", "10"),
        )
    except ValidationError as exc:
        print(f"ERROR: invalid DayPlan configuration in .env:\n{exc}", file=sys.stderr)
        sys.exit(1)


# Singleton: imported by all other modules as:
#   from dayplan.config import settings
settings = _load_settings()
