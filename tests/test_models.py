"""Tests for dayplan.data.models: validation of plain-data input."""

from datetime import datetime

import pytest
from pydantic import ValidationError

from dayplan.data.models import (
    EnergyLevel,
    InvalidInputError,
    SchedulingPreferences,
    Task,
    TaskPriority,
    TaskStatus,
    TimeWindow,
    parse_preferences,
    parse_schedule_entries,
    parse_tasks,
)


class TestTask:
    def test_defaults(self):
        task = Task(id="a", title="Write report")
        assert task.priority == TaskPriority.MEDIUM
        assert task.status == TaskStatus.TODO
        assert task.energy_level == EnergyLevel.MEDIUM
        assert task.dependencies == []
        assert task.is_completed is False
        assert task.is_time_blocked is False

    def test_status_from_plain_string(self):
        task = Task(id="a", title="x", status="in-progress")
        assert task.status == TaskStatus.IN_PROGRESS

    def test_negative_duration_rejected(self):
        with pytest.raises(ValidationError):
            Task(id="a", title="x", estimated_hours=-1)

    def test_self_dependency_rejected(self):
        with pytest.raises(ValidationError, match="depends on itself"):
            Task(id="a", title="x", dependencies=["a"])

    def test_duplicate_dependencies_collapsed(self):
        task = Task(id="a", title="x", dependencies=["b", "c", "b"])
        assert task.dependencies == ["b", "c"]

    def test_date_only_due_is_end_of_day(self):
        task = Task(id="a", title="x", due_date="2026-10-23")
        assert task.due_date == datetime(2026, 10, 23, 23, 59, 59)

    def test_malformed_due_date_rejected(self):
        with pytest.raises(ValidationError):
            Task(id="a", title="x", due_date="2026-13-45")

    def test_progress_out_of_range(self):
        with pytest.raises(ValidationError):
            Task(id="a", title="x", progress=120)

    def test_half_time_block_rejected(self):
        with pytest.raises(ValidationError):
            Task(id="a", title="x", scheduled_start="2026-10-19T10:00:00")

    def test_time_block(self):
        task = Task(
            id="a", title="x",
            scheduled_start="2026-10-19T10:00:00",
            scheduled_end="2026-10-19T11:00:00",
        )
        assert task.is_time_blocked is True

    def test_priority_rank_ordering(self):
        ranks = [p.rank for p in (TaskPriority.LOW, TaskPriority.MEDIUM, TaskPriority.HIGH, TaskPriority.URGENT)]
        assert ranks == sorted(ranks)


class TestTimeWindow:
    def test_valid(self):
        window = TimeWindow(start="09:00", end="17:30")
        assert window.start_time.hour == 9
        assert window.end_time.minute == 30

    def test_inverted_window_rejected(self):
        with pytest.raises(ValidationError):
            TimeWindow(start="17:00", end="09:00")

    def test_bad_format_rejected(self):
        with pytest.raises(ValidationError):
            TimeWindow(start="9am", end="17:00")


class TestParseHelpers:
    def test_parse_tasks(self):
        tasks = parse_tasks([
            {"id": "a", "title": "A"},
            {"id": "b", "title": "B", "dependencies": ["a"]},
        ])
        assert [t.id for t in tasks] == ["a", "b"]

    def test_parse_tasks_names_offender(self):
        with pytest.raises(InvalidInputError, match="invalid task b"):
            parse_tasks([
                {"id": "a", "title": "A"},
                {"id": "b", "title": "B", "estimated_hours": -2},
            ])

    def test_parse_tasks_duplicate_ids(self):
        with pytest.raises(InvalidInputError, match="duplicate"):
            parse_tasks([{"id": "a", "title": "A"}, {"id": "a", "title": "again"}])

    def test_invalid_input_error_is_value_error(self):
        with pytest.raises(ValueError):
            parse_tasks([{"id": "a", "title": "A", "dependencies": ["a"]}])

    def test_parse_preferences(self):
        prefs = parse_preferences({
            "working_hours": {"start": "08:00", "end": "16:00"},
            "priority_weight_deadline": 2,
            "peak_energy_hours": ["09:00", "10:00"],
        })
        assert prefs.working_hours.start == "08:00"
        assert prefs.priority_weight_deadline == 2

    def test_parse_preferences_negative_weight(self):
        with pytest.raises(InvalidInputError):
            parse_preferences({"priority_weight_effort": -0.5})

    def test_parse_preferences_bad_peak_hour(self):
        with pytest.raises(InvalidInputError):
            parse_preferences({"peak_energy_hours": ["nine"]})

    def test_parse_preferences_low_energy_hours(self):
        prefs = parse_preferences({"low_energy_hours": ["14:00", "15:00"]})
        assert prefs.low_energy_hours == ["14:00", "15:00"]
        with pytest.raises(InvalidInputError):
            parse_preferences({"low_energy_hours": ["25:00"]})

    def test_parse_schedule_entries(self):
        entries = parse_schedule_entries([
            {"title": "Lunch", "start": "2026-10-19T12:00:00", "end": "2026-10-19T13:00:00"},
        ])
        assert entries[0].title == "Lunch"

    def test_parse_schedule_entry_inverted(self):
        with pytest.raises(InvalidInputError):
            parse_schedule_entries([
                {"start": "2026-10-19T13:00:00", "end": "2026-10-19T12:00:00"},
            ])

    def test_parse_schedule_entry_mixed_awareness(self):
        with pytest.raises(InvalidInputError, match="both be naive or both be timezone-aware"):
            parse_schedule_entries([
                {"start": "2026-10-19T12:00:00+03:00", "end": "2026-10-19T13:00:00"},
            ])

    def test_parse_tasks_mixed_awareness_time_block(self):
        with pytest.raises(InvalidInputError, match="invalid task a"):
            parse_tasks([{
                "id": "a",
                "title": "A",
                "scheduled_start": "2026-10-19T09:00:00",
                "scheduled_end": "2026-10-19T10:00:00+00:00",
            }])


def test_default_preferences():
    prefs = SchedulingPreferences()
    assert prefs.working_hours.start == "09:00"
    assert prefs.working_hours.end == "17:00"
    assert prefs.business_hours is None
    assert prefs.context_switch_buffer_minutes == 0
