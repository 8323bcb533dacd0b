# ruff: noqa: INP001
"""Task orchestration: creation, manual completion, deletion and day reset."""

from __future__ import annotations

from datetime import UTC, date, datetime, timedelta

import pytest
from fastapi import HTTPException
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from habit_tracker.models.task_completions import TaskCompletion
from habit_tracker.models.tasks import TIMER_NOT_STARTED, TIMER_RUNNING, Task
from habit_tracker.schemas.tasks import TaskCreate, TaskUpdate
from habit_tracker.services.tasks import NO_COMPLETION_FOUND, TASK_NOT_FOUND, TaskService
from habit_tracker.services.timezones import day_range_for_offset

NOW = datetime(2024, 1, 3, 15, 0)


async def _make_session_maker() -> async_sessionmaker[AsyncSession]:
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with engine.connect() as conn, conn.begin():
        await conn.run_sync(SQLModel.metadata.create_all)
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.mark.asyncio
async def test_create_without_frequency_is_one_time_task() -> None:
    session_maker = await _make_session_maker()
    async with session_maker() as session:
        service = TaskService(session, clock=lambda: NOW)

        task = await service.create(TaskCreate(text="  Meditate  ", duration_seconds=300))

        assert task.text == "Meditate"
        assert task.frequency_type is None
        assert task.frequency_data is None
        assert task.is_recurring is False
        assert task.duration_seconds == 300
        assert task.created_at == NOW


@pytest.mark.asyncio
async def test_create_with_frequency_stores_rule_columns() -> None:
    session_maker = await _make_session_maker()
    async with session_maker() as session:
        service = TaskService(session, clock=lambda: NOW)

        task = await service.create(
            TaskCreate.model_validate(
                {
                    "text": "Gym",
                    "frequency": {"type": "specific_days", "data": {"days": [1, 3]}},
                    "projectId": "health",
                },
            ),
        )

        assert task.frequency_type == "specific_days"
        assert task.frequency_data == {"days": ["monday", "wednesday"]}
        assert task.project_id == "health"


@pytest.mark.asyncio
async def test_require_raises_not_found() -> None:
    session_maker = await _make_session_maker()
    async with session_maker() as session:
        service = TaskService(session, clock=lambda: NOW)

        with pytest.raises(HTTPException) as exc:
            await service.require(Task().id)

        assert exc.value.status_code == 404
        assert exc.value.detail == TASK_NOT_FOUND


@pytest.mark.asyncio
async def test_update_applies_only_sent_fields_and_can_clear_frequency() -> None:
    session_maker = await _make_session_maker()
    async with session_maker() as session:
        service = TaskService(session, clock=lambda: NOW)
        task = await service.create(
            TaskCreate.model_validate({"text": "Journal", "frequency": {"type": "daily"}}),
        )

        task = await service.update(task, TaskUpdate.model_validate({"durationSeconds": 120}))
        assert task.text == "Journal"
        assert task.frequency_type == "daily"
        assert task.duration_seconds == 120

        task = await service.update(task, TaskUpdate.model_validate({"frequency": None}))
        assert task.frequency_type is None


@pytest.mark.asyncio
async def test_update_completed_resets_active_timer() -> None:
    session_maker = await _make_session_maker()
    async with session_maker() as session:
        service = TaskService(session, clock=lambda: NOW)
        task = await service.create(TaskCreate(text="Meditate", duration_seconds=300))
        task = await service.start_timer(task)
        assert task.timer_status == TIMER_RUNNING

        task = await service.update(task, TaskUpdate(completed=True))

        assert task.completed is True
        assert task.timer_status == TIMER_NOT_STARTED
        assert task.timer_started_at is None


@pytest.mark.asyncio
async def test_complete_and_uncomplete_one_time_task() -> None:
    session_maker = await _make_session_maker()
    async with session_maker() as session:
        service = TaskService(session, clock=lambda: NOW)
        task = await service.create(TaskCreate(text="Call bank", duration_seconds=60))
        task = await service.start_timer(task)
        day = day_range_for_offset(NOW.date(), 0)

        status = await service.complete(task)
        assert status.completed_today is True
        assert status.task.completed is True
        assert status.task.timer_status == TIMER_NOT_STARTED

        task = await service.uncomplete(status.task, day)
        assert task.completed is False

        with pytest.raises(HTTPException) as exc:
            await service.uncomplete(task, day)
        assert exc.value.status_code == 404
        assert exc.value.detail == NO_COMPLETION_FOUND


@pytest.mark.asyncio
async def test_complete_recurring_task_is_idempotent_per_local_day() -> None:
    session_maker = await _make_session_maker()
    async with session_maker() as session:
        service = TaskService(session, clock=lambda: NOW)
        task = await service.create(
            TaskCreate.model_validate({"text": "Read", "frequency": {"type": "daily"}}),
        )

        # 22:00 and 23:30 on 2024-01-02 in UTC-5, which straddle UTC midnight.
        await service.complete(
            task,
            completed_at=datetime(2024, 1, 3, 3, 0, tzinfo=UTC),
            timezone_offset=300,
        )
        status = await service.complete(
            task,
            completed_at=datetime(2024, 1, 3, 4, 30, tzinfo=UTC),
            timezone_offset=300,
        )

        completions = await TaskCompletion.objects.filter_by(task_id=task.id).all(session)
        assert len(completions) == 1
        assert completions[0].completed_at == datetime(2024, 1, 3, 4, 30)
        assert status.last_completed_at == datetime(2024, 1, 3, 4, 30)

        local_day = day_range_for_offset(date(2024, 1, 2), 300)
        views = await service.list_with_today_status(local_day, active_on=local_day.local_date)
        assert [view.completed_today for view in views] == [True]


@pytest.mark.asyncio
async def test_uncomplete_recurring_task_removes_event_for_that_day() -> None:
    session_maker = await _make_session_maker()
    async with session_maker() as session:
        service = TaskService(session, clock=lambda: NOW)
        task = await service.create(
            TaskCreate.model_validate({"text": "Read", "frequency": {"type": "daily"}}),
        )
        await service.complete(task, completed_at=NOW - timedelta(days=1))
        await service.complete(task)

        await service.uncomplete(task, day_range_for_offset(NOW.date(), 0))

        remaining = await TaskCompletion.objects.filter_by(task_id=task.id).all(session)
        assert [completion.completed_at for completion in remaining] == [NOW - timedelta(days=1)]


@pytest.mark.asyncio
async def test_delete_cascades_to_completions() -> None:
    session_maker = await _make_session_maker()
    async with session_maker() as session:
        service = TaskService(session, clock=lambda: NOW)
        task = await service.create(
            TaskCreate.model_validate({"text": "Read", "frequency": {"type": "daily"}}),
        )
        await service.complete(task)
        task_id = task.id

        await service.delete(task)

        assert await service.get(task_id) is None
        assert await TaskCompletion.objects.filter_by(task_id=task_id).all(session) == []


@pytest.mark.asyncio
async def test_reset_day_visits_every_task() -> None:
    session_maker = await _make_session_maker()
    async with session_maker() as session:
        service = TaskService(session, clock=lambda: NOW)
        read = await service.create(
            TaskCreate.model_validate({"text": "Read", "frequency": {"type": "daily"}}),
        )
        walk = await service.create(
            TaskCreate.model_validate({"text": "Walk", "frequency": {"type": "daily"}}),
        )
        await service.create(TaskCreate(text="Errand"))
        await service.complete(read)
        await service.complete(walk)
        await service.complete(walk, completed_at=NOW - timedelta(days=1))

        reset = await service.reset_day(day_range_for_offset(NOW.date(), 0))

        assert reset == 3
        remaining = await TaskCompletion.objects.all(session)
        assert [completion.task_id for completion in remaining] == [walk.id]


@pytest.mark.asyncio
async def test_stats_uses_default_window() -> None:
    session_maker = await _make_session_maker()
    async with session_maker() as session:
        service = TaskService(session, clock=lambda: NOW)
        task = await service.create(
            TaskCreate.model_validate({"text": "Read", "frequency": {"type": "daily"}}),
        )
        for offset in range(3):
            await service.complete(task, completed_at=NOW - timedelta(days=offset))

        stats = await service.stats(task)

        assert stats.total_days == 30
        assert stats.completed_days == 2
        assert stats.streak == 3
