"""Tests for dayplan.core.planner: end-to-end planning pipeline."""

from datetime import datetime
from unittest.mock import AsyncMock, MagicMock

import pytest

from dayplan.core.daily_scheduler import OverloadRisk
from dayplan.core.planner import events_to_entries, plan_day, plan_daily_schedule
from dayplan.data.models import InvalidInputError, ScheduleEntry, SchedulingPreferences
from dayplan.ports.calendar_port import CalendarError
from dayplan.ports.task_port import TaskSourceError


def at(hour, minute=0):
    return datetime(2026, 10, 19, hour, minute)


LUNCH = ScheduleEntry(title="Lunch", start=at(12), end=at(13))


class TestPlanDailySchedule:
    def test_full_flow(self, make_task, prefs, day, now):
        tasks = [
            make_task("design", hours=2),
            make_task("build", hours=3, deps=["design"]),
            make_task("docs", hours=1),
            make_task("old", status="completed"),
        ]
        plan = plan_daily_schedule(tasks, day, [LUNCH], prefs, now=now)

        assert [t.id for t in plan.classification.available] == ["design", "docs"]
        assert [b.task.id for b in plan.classification.blocked] == ["build"]
        assert [f.label() for f in plan.free_intervals] == ["09:00-12:00", "13:00-17:00"]
        scheduled = [it.task_id for it in plan.schedule.scheduled_items]
        assert scheduled == ["design", "docs"]
        assert plan.bottlenecks[0].task.id == "design"
        assert plan.warnings == []

    def test_blocked_tasks_never_scheduled(self, make_task, prefs, day, now):
        tasks = [make_task("a"), make_task("b", deps=["a"])]
        plan = plan_daily_schedule(tasks, day, [], prefs, now=now)
        assert [it.task_id for it in plan.schedule.scheduled_items] == ["a"]

    def test_time_blocked_tasks_occupy_and_are_not_rescheduled(self, make_task, prefs, day, now):
        tasks = [
            make_task("pinned", hours=2, scheduled_start=at(9), scheduled_end=at(11)),
            make_task("loose", hours=1),
        ]
        plan = plan_daily_schedule(tasks, day, [], prefs, now=now)
        items = plan.schedule.scheduled_items
        assert [(it.task_id, it.start) for it in items] == [("loose", at(11))]

    def test_cycles_become_warnings(self, make_task, prefs, day, now):
        tasks = [make_task("a", deps=["b"]), make_task("b", deps=["a"]), make_task("c")]
        plan = plan_daily_schedule(tasks, day, [], prefs, now=now)
        assert plan.build.cyclic_task_ids == {"a", "b"}
        assert [it.task_id for it in plan.schedule.scheduled_items] == ["c"]
        assert any("Circular dependency" in w for w in plan.warnings)

    def test_business_only(self, make_task, day, now):
        prefs = SchedulingPreferences.model_validate({
            "working_hours": {"start": "08:00", "end": "18:00"},
            "business_hours": {"start": "10:00", "end": "12:00"},
        })
        tasks = [make_task("a", hours=2), make_task("b", hours=1)]
        plan = plan_daily_schedule(tasks, day, [], prefs, business_only=True, now=now)
        assert [f.label() for f in plan.free_intervals] == ["10:00-12:00"]
        assert plan.schedule.unscheduled_task_ids == ["b"]
        assert plan.schedule.workload_summary.overload_risk == OverloadRisk.HIGH

    def test_duplicate_ids_raise(self, make_task, prefs, day):
        with pytest.raises(InvalidInputError):
            plan_daily_schedule([make_task("a"), make_task("a")], day, [], prefs)


class TestEventsToEntries:
    def test_timed_events_converted(self):
        entries = events_to_entries([
            {"summary": "Standup", "start_time": "2026-10-19T09:00:00", "end_time": "2026-10-19T09:15:00"},
        ])
        assert entries[0].title == "Standup"
        assert entries[0].start == at(9)

    def test_all_day_and_untimed_skipped(self):
        entries = events_to_entries([
            {"summary": "Holiday", "start_time": "2026-10-19", "end_time": "2026-10-20"},
            {"summary": "No time"},
        ])
        assert entries == []

    def test_malformed_skipped(self):
        entries = events_to_entries([
            {"summary": "Broken", "start_time": "2026-10-19T11:00:00", "end_time": "2026-10-19T10:00:00"},
            {"summary": "Fine", "start_time": "2026-10-19T14:00:00", "end_time": "2026-10-19T15:00:00"},
        ])
        assert [e.title for e in entries] == ["Fine"]

    def test_mixed_awareness_skipped(self):
        entries = events_to_entries([
            {"summary": "Offset", "start_time": "2026-10-19T12:00:00+03:00", "end_time": "2026-10-19T13:00:00"},
        ])
        assert entries == []


class TestPlanDay:
    @pytest.mark.asyncio
    async def test_reads_snapshot_through_ports(self, prefs, now):
        source = MagicMock()
        source.list_tasks = AsyncMock(return_value=[
            {"id": "a", "title": "Report", "estimated_hours": 2},
            {"id": "b", "title": "Review", "estimated_hours": 1, "dependencies": ["a"]},
        ])
        calendar = MagicMock()
        calendar.find_events = AsyncMock(return_value=[
            {"summary": "Sync", "start_time": "2026-10-19T09:00:00", "end_time": "2026-10-19T10:00:00"},
        ])

        plan = await plan_day(source, calendar, "2026-10-19", prefs, now=now)

        calendar.find_events.assert_awaited_once_with(target_date="2026-10-19")
        assert [(it.task_id, it.start) for it in plan.schedule.scheduled_items] == [("a", at(10))]
        assert [b.task.id for b in plan.classification.blocked] == ["b"]

    @pytest.mark.asyncio
    async def test_project_filter_forwarded_to_task_source(self, prefs, now):
        source = MagicMock()
        source.list_tasks = AsyncMock(return_value=[{"id": "a", "title": "Report"}])
        calendar = MagicMock()
        calendar.find_events = AsyncMock(return_value=[])

        await plan_day(source, calendar, "2026-10-19", prefs, project_id="proj-1", now=now)

        source.list_tasks.assert_awaited_once_with(project_id="proj-1")

    @pytest.mark.asyncio
    async def test_calendar_failure_plans_empty_day(self, prefs, now):
        source = MagicMock()
        source.list_tasks = AsyncMock(return_value=[{"id": "a", "title": "Report"}])
        calendar = MagicMock()
        calendar.find_events = AsyncMock(side_effect=CalendarError("API down"))

        plan = await plan_day(source, calendar, "2026-10-19", prefs, now=now)

        assert [f.label() for f in plan.free_intervals] == ["09:00-17:00"]
        assert [it.start for it in plan.schedule.scheduled_items] == [at(9)]

    @pytest.mark.asyncio
    async def test_task_source_failure_propagates(self, prefs):
        source = MagicMock()
        source.list_tasks = AsyncMock(side_effect=TaskSourceError("db gone"))
        calendar = MagicMock()
        calendar.find_events = AsyncMock(return_value=[])

        with pytest.raises(TaskSourceError):
            await plan_day(source, calendar, "2026-10-19", prefs)

    @pytest.mark.asyncio
    async def test_invalid_task_record_raises(self, prefs):
        source = MagicMock()
        source.list_tasks = AsyncMock(return_value=[{"id": "a", "title": "x", "estimated_hours": -1}])
        calendar = MagicMock()
        calendar.find_events = AsyncMock(return_value=[])

        with pytest.raises(InvalidInputError):
            await plan_day(source, calendar, "2026-10-19", prefs)
