"""
DayPlan: Data Models.

Tasks, calendar entries and scheduling preferences arrive from the
application shell as plain dicts. They are validated here, once, so the
graph builder, analyzer and scheduler can trust what they receive.
"""

from __future__ import annotations

from datetime import date, datetime, time
from enum import Enum

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator


class InvalidInputError(ValueError):
    """Raised when upstream data is malformed (bad date, negative duration, ...)."""


class TaskPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {
    TaskPriority.LOW: 1,
    TaskPriority.MEDIUM: 2,
    TaskPriority.HIGH: 3,
    TaskPriority.URGENT: 4,
}


class TaskStatus(str, Enum):
    TODO = "todo"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


class EnergyLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class TaskContext(str, Enum):
    PERSONAL = "personal"
    BUSINESS = "business"
    INHERITED = "inherited"


def parse_hhmm(value: str) -> time:
    """Parse a 24h "HH:MM" string, raising ValueError on anything else."""
    try:
        return datetime.strptime(value, "%H:%M").time()
    except (TypeError, ValueError) as exc:
        raise ValueError(f"expected HH:MM time, got {value!r}") from exc


class Task(BaseModel):
    """A unit of work, as stored by the application.

    JSON example:
    {
        "id": "t-42",
        "title": "Write quarterly report",
        "priority": "high",
        "status": "todo",
        "estimated_hours": 2.5,
        "dependencies": ["t-41"],
        "due_date": "2026-10-23",
        "energy_level": "high"
    }
    """

    id: str
    title: str
    priority: TaskPriority = TaskPriority.MEDIUM
    status: TaskStatus = TaskStatus.TODO
    estimated_hours: float = 0.0
    dependencies: list[str] = Field(default_factory=list)
    due_date: datetime | None = None
    scheduled_start: datetime | None = None
    scheduled_end: datetime | None = None
    project_id: str | None = None
    energy_level: EnergyLevel = EnergyLevel.MEDIUM
    progress: int | None = None
    task_context: TaskContext = TaskContext.INHERITED
    tags: list[str] = Field(default_factory=list)

    @field_validator("id")
    @classmethod
    def id_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("task id must not be empty")
        return v

    @field_validator("estimated_hours")
    @classmethod
    def duration_non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("estimated_hours must be >= 0")
        return v

    @field_validator("progress")
    @classmethod
    def progress_in_range(cls, v: int | None) -> int | None:
        if v is not None and not 0 <= v <= 100:
            raise ValueError("progress must be between 0 and 100")
        return v

    @field_validator("due_date", mode="before")
    @classmethod
    def date_only_means_end_of_day(cls, v: object) -> object:
        # "2026-10-23" is due at the end of that day, not at midnight
        if isinstance(v, str) and len(v) == 10 and "T" not in v:
            try:
                return datetime.combine(date.fromisoformat(v), time(23, 59, 59))
            except ValueError as exc:
                raise ValueError(f"malformed due_date {v!r}") from exc
        if isinstance(v, date) and not isinstance(v, datetime):
            return datetime.combine(v, time(23, 59, 59))
        return v

    @field_validator("dependencies")
    @classmethod
    def dedupe_dependencies(cls, v: list[str]) -> list[str]:
        return list(dict.fromkeys(v))

    @model_validator(mode="after")
    def check_consistency(self) -> Task:
        if self.id in self.dependencies:
            raise ValueError(f"task {self.id!r} depends on itself")
        if (self.scheduled_start is None) != (self.scheduled_end is None):
            raise ValueError("scheduled_start and scheduled_end must be set together")
        if self.scheduled_start is not None and _mixed_awareness(self.scheduled_start, self.scheduled_end):
            raise ValueError("start and end must both be naive or both be timezone-aware")
        if self.scheduled_start is not None and self.scheduled_end <= self.scheduled_start:
            raise ValueError("scheduled_end must be after scheduled_start")
        return self

    @property
    def is_completed(self) -> bool:
        return self.status == TaskStatus.COMPLETED

    @property
    def is_time_blocked(self) -> bool:
        return self.scheduled_start is not None and self.scheduled_end is not None


def _mixed_awareness(start: datetime, end: datetime) -> bool:
    return (start.tzinfo is None) != (end.tzinfo is None)


class ScheduleEntry(BaseModel):
    """An existing calendar commitment (meeting, lunch, appointment)."""

    title: str = ""
    start: datetime
    end: datetime
    all_day: bool = False

    @model_validator(mode="after")
    def end_after_start(self) -> ScheduleEntry:
        if _mixed_awareness(self.start, self.end):
            raise ValueError("start and end must both be naive or both be timezone-aware")
        if self.end < self.start:
            raise ValueError("schedule entry ends before it starts")
        return self


class TimeWindow(BaseModel):
    """A same-day window such as working hours, e.g. 09:00-17:00."""

    start: str
    end: str

    @field_validator("start", "end")
    @classmethod
    def valid_hhmm(cls, v: str) -> str:
        parse_hhmm(v)
        return v

    @model_validator(mode="after")
    def end_after_start(self) -> TimeWindow:
        if parse_hhmm(self.end) <= parse_hhmm(self.start):
            raise ValueError(f"window end {self.end} must be after start {self.start}")
        return self

    @property
    def start_time(self) -> time:
        return parse_hhmm(self.start)

    @property
    def end_time(self) -> time:
        return parse_hhmm(self.end)


class SchedulingPreferences(BaseModel):
    """Per-user scheduling preferences.

    Priority weights are user-editable and not required to sum to 1;
    the scorer normalizes them.
    """

    working_hours: TimeWindow = Field(
        default_factory=lambda: TimeWindow(start="09:00", end="17:00")
    )
    business_hours: TimeWindow | None = None
    focus_block_minutes: int = 90
    break_minutes: int = 0
    allow_business_in_personal_time: bool = True
    allow_personal_in_business_time: bool = True
    context_switch_buffer_minutes: int = 0
    priority_weight_deadline: float = 0.4
    priority_weight_effort: float = 0.3
    priority_weight_deps: float = 0.3
    peak_energy_hours: list[str] = Field(default_factory=list)   # hour starts, e.g. ["09:00", "10:00"]
    low_energy_hours: list[str] = Field(default_factory=list)

    @field_validator("focus_block_minutes", "break_minutes", "context_switch_buffer_minutes")
    @classmethod
    def minutes_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("minutes must be >= 0")
        return v

    @field_validator("priority_weight_deadline", "priority_weight_effort", "priority_weight_deps")
    @classmethod
    def weight_non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("priority weights must be >= 0")
        return v

    @field_validator("peak_energy_hours", "low_energy_hours")
    @classmethod
    def valid_hours(cls, v: list[str]) -> list[str]:
        for hour in v:
            parse_hhmm(hour)
        return v


# ---------------------------------------------------------------------------
# Plain-data entry points
# ---------------------------------------------------------------------------


def parse_tasks(records: list[dict]) -> list[Task]:
    """Validate raw task records, rejecting duplicates.

    Raises:
        InvalidInputError: naming the first offending task.
    """
    tasks: list[Task] = []
    for index, record in enumerate(records):
        try:
            tasks.append(Task.model_validate(record))
        except ValidationError as exc:
            task_id = record.get("id", f"#{index}") if isinstance(record, dict) else f"#{index}"
            raise InvalidInputError(f"invalid task {task_id}: {exc}") from exc
    ensure_unique_ids(tasks)
    return tasks


def parse_preferences(record: dict) -> SchedulingPreferences:
    """Validate a raw preferences record."""
    try:
        return SchedulingPreferences.model_validate(record)
    except ValidationError as exc:
        raise InvalidInputError(f"invalid scheduling preferences: {exc}") from exc


def parse_schedule_entries(records: list[dict]) -> list[ScheduleEntry]:
    entries: list[ScheduleEntry] = []
    for record in records:
        try:
            entries.append(ScheduleEntry.model_validate(record))
        except ValidationError as exc:
            raise InvalidInputError(f"invalid schedule entry {record!r}: {exc}") from exc
    return entries


def ensure_unique_ids(tasks: list[Task]) -> None:
    seen: set[str] = set()
    for task in tasks:
        if task.id in seen:
            raise InvalidInputError(f"duplicate task id {task.id!r}")
        seen.add(task.id)
