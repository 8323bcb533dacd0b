# ruff: noqa: INP001
"""Timer state machine, lazy expiry and stale-timer recovery."""

from __future__ import annotations

from datetime import datetime, timedelta

import pytest
from fastapi import HTTPException
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from habit_tracker.models.task_completions import TaskCompletion
from habit_tracker.models.tasks import (
    TIMER_COMPLETED,
    TIMER_NOT_STARTED,
    TIMER_PAUSED,
    TIMER_RUNNING,
    Task,
)
from habit_tracker.schemas.timers import TimerOutcome
from habit_tracker.services.timers import NO_DURATION_MESSAGE, NOT_RUNNING_MESSAGE, TimerEngine

NOW = datetime(2024, 3, 1, 9, 0)


class _Clock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


async def _make_session_maker() -> async_sessionmaker[AsyncSession]:
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with engine.connect() as conn, conn.begin():
        await conn.run_sync(SQLModel.metadata.create_all)
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def _seed_task(session: AsyncSession, **values: object) -> Task:
    values.setdefault("text", "Meditate")
    task = Task(**values)
    session.add(task)
    await session.commit()
    await session.refresh(task)
    return task


@pytest.mark.asyncio
async def test_start_requires_duration() -> None:
    session_maker = await _make_session_maker()
    async with session_maker() as session:
        task = await _seed_task(session)
        engine = TimerEngine(session, clock=_Clock(NOW))

        with pytest.raises(HTTPException) as exc:
            await engine.start(task)

        assert exc.value.status_code == 400
        assert exc.value.detail == NO_DURATION_MESSAGE


@pytest.mark.asyncio
async def test_fresh_timer_reports_full_remaining_time() -> None:
    session_maker = await _make_session_maker()
    async with session_maker() as session:
        task = await _seed_task(session, duration_seconds=300)
        engine = TimerEngine(session, clock=_Clock(NOW))

        task = await engine.start(task)
        snapshot = await engine.status(task)

        assert task.timer_status == TIMER_RUNNING
        assert task.timer_started_at == NOW
        assert 295 < snapshot.remaining_seconds <= 300
        assert snapshot.elapsed == 0
        assert snapshot.is_expired is False
        assert snapshot.outcome == TimerOutcome.NONE


@pytest.mark.asyncio
async def test_idle_timer_has_no_remaining_time() -> None:
    session_maker = await _make_session_maker()
    async with session_maker() as session:
        task = await _seed_task(session, duration_seconds=300)
        engine = TimerEngine(session, clock=_Clock(NOW))

        snapshot = await engine.status(task)

        assert snapshot.status == TIMER_NOT_STARTED
        assert snapshot.remaining_seconds is None
        assert snapshot.elapsed == 0


@pytest.mark.asyncio
async def test_pause_requires_running_timer() -> None:
    session_maker = await _make_session_maker()
    async with session_maker() as session:
        task = await _seed_task(session, duration_seconds=300)
        engine = TimerEngine(session, clock=_Clock(NOW))

        with pytest.raises(HTTPException) as exc:
            await engine.pause(task)

        assert exc.value.status_code == 400
        assert exc.value.detail == NOT_RUNNING_MESSAGE


@pytest.mark.asyncio
async def test_resume_after_pause_keeps_original_start() -> None:
    session_maker = await _make_session_maker()
    async with session_maker() as session:
        task = await _seed_task(session, duration_seconds=600)
        clock = _Clock(NOW)
        engine = TimerEngine(session, clock=clock)
        task = await engine.start(task)

        clock.now = NOW + timedelta(seconds=100)
        task = await engine.pause(task)
        assert task.timer_status == TIMER_PAUSED

        clock.now = NOW + timedelta(seconds=400)
        paused = await engine.status(task)
        assert paused.is_expired is False
        assert paused.remaining_seconds == 200

        task = await engine.start(task)
        assert task.timer_status == TIMER_RUNNING
        assert task.timer_started_at == NOW


@pytest.mark.asyncio
async def test_stop_always_resets() -> None:
    session_maker = await _make_session_maker()
    async with session_maker() as session:
        task = await _seed_task(
            session,
            duration_seconds=300,
            timer_status=TIMER_COMPLETED,
            timer_started_at=NOW - timedelta(hours=2),
        )
        engine = TimerEngine(session, clock=_Clock(NOW))

        task = await engine.stop(task)

        assert task.timer_status == TIMER_NOT_STARTED
        assert task.timer_started_at is None


@pytest.mark.asyncio
async def test_recently_expired_one_time_timer_completes_task() -> None:
    session_maker = await _make_session_maker()
    async with session_maker() as session:
        task = await _seed_task(
            session,
            duration_seconds=300,
            timer_status=TIMER_RUNNING,
            timer_started_at=NOW - timedelta(seconds=400),
        )
        engine = TimerEngine(session, clock=_Clock(NOW))

        snapshot = await engine.status(task)

        assert snapshot.is_expired is True
        assert snapshot.remaining_seconds == 0
        assert snapshot.elapsed == 400
        assert snapshot.outcome == TimerOutcome.AUTO_COMPLETED
        refreshed = await Task.objects.by_id(task.id).first(session)
        assert refreshed is not None
        assert refreshed.completed is True
        assert refreshed.timer_status == TIMER_COMPLETED


@pytest.mark.asyncio
async def test_recently_expired_recurring_timer_records_completion() -> None:
    session_maker = await _make_session_maker()
    async with session_maker() as session:
        task = await _seed_task(
            session,
            frequency_type="daily",
            frequency_data={},
            duration_seconds=300,
            timer_status=TIMER_RUNNING,
            timer_started_at=NOW - timedelta(seconds=900),
        )
        engine = TimerEngine(session, clock=_Clock(NOW))

        snapshot = await engine.status(task)
        await engine.status(task)

        assert snapshot.outcome == TimerOutcome.AUTO_COMPLETED
        completions = await TaskCompletion.objects.filter_by(task_id=task.id).all(session)
        assert len(completions) == 1
        assert completions[0].completed_at == NOW - timedelta(seconds=600)
        assert task.timer_status == TIMER_RUNNING
        assert task.completed is False


@pytest.mark.asyncio
async def test_expired_recurring_timer_polled_past_midnight_credits_only_its_day() -> None:
    session_maker = await _make_session_maker()
    async with session_maker() as session:
        started = datetime(2024, 3, 1, 23, 50)
        task = await _seed_task(
            session,
            frequency_type="daily",
            frequency_data={},
            duration_seconds=300,
            timer_status=TIMER_RUNNING,
            timer_started_at=started,
        )
        clock = _Clock(datetime(2024, 3, 1, 23, 56))
        engine = TimerEngine(session, clock=clock)

        first = await engine.status(task)
        clock.now = datetime(2024, 3, 2, 0, 10)
        second = await engine.status(task)

        assert first.outcome == TimerOutcome.AUTO_COMPLETED
        assert second.outcome == TimerOutcome.AUTO_COMPLETED
        completions = await TaskCompletion.objects.filter_by(task_id=task.id).all(session)
        assert [c.completed_at for c in completions] == [datetime(2024, 3, 1, 23, 55)]


@pytest.mark.asyncio
async def test_stale_timer_resets_without_completing() -> None:
    session_maker = await _make_session_maker()
    async with session_maker() as session:
        task = await _seed_task(
            session,
            duration_seconds=300,
            timer_status=TIMER_RUNNING,
            timer_started_at=NOW - timedelta(seconds=5000),
        )
        engine = TimerEngine(session, clock=_Clock(NOW))

        snapshot = await engine.status(task)

        assert snapshot.outcome == TimerOutcome.STALE_RESET
        assert snapshot.status == TIMER_NOT_STARTED
        assert snapshot.is_expired is False
        refreshed = await Task.objects.by_id(task.id).first(session)
        assert refreshed is not None
        assert refreshed.timer_status == TIMER_NOT_STARTED
        assert refreshed.timer_started_at is None
        assert refreshed.completed is False


@pytest.mark.asyncio
async def test_expiry_exactly_one_hour_old_still_completes() -> None:
    session_maker = await _make_session_maker()
    async with session_maker() as session:
        task = await _seed_task(
            session,
            duration_seconds=300,
            timer_status=TIMER_RUNNING,
            timer_started_at=NOW - timedelta(seconds=300 + 3600),
        )
        engine = TimerEngine(session, clock=_Clock(NOW))

        snapshot = await engine.status(task)

        assert snapshot.outcome == TimerOutcome.AUTO_COMPLETED


@pytest.mark.asyncio
async def test_meditate_scenario_completes_after_duration_elapses() -> None:
    session_maker = await _make_session_maker()
    async with session_maker() as session:
        task = await _seed_task(session, text="Meditate", duration_seconds=300)
        clock = _Clock(NOW)
        engine = TimerEngine(session, clock=clock)
        task = await engine.start(task)

        clock.now = NOW + timedelta(seconds=300)
        snapshot = await engine.status(task)

        assert snapshot.is_expired is True
        assert task.completed is True
        assert task.timer_status == TIMER_COMPLETED


@pytest.mark.asyncio
async def test_force_reset_only_touches_active_timers() -> None:
    session_maker = await _make_session_maker()
    async with session_maker() as session:
        idle = await _seed_task(session, duration_seconds=60)
        paused = await _seed_task(
            session,
            duration_seconds=60,
            timer_status=TIMER_PAUSED,
            timer_started_at=NOW,
        )
        engine = TimerEngine(session, clock=_Clock(NOW))

        assert await engine.force_reset(idle) is False
        assert await engine.force_reset(paused) is True
        assert paused.timer_status == TIMER_NOT_STARTED
        assert paused.timer_started_at is None


@pytest.mark.asyncio
async def test_find_and_clean_stale_timers() -> None:
    session_maker = await _make_session_maker()
    async with session_maker() as session:
        stale = await _seed_task(
            session,
            text="Abandoned",
            duration_seconds=300,
            timer_status=TIMER_RUNNING,
            timer_started_at=NOW - timedelta(hours=3),
        )
        no_duration = await _seed_task(
            session,
            text="No duration",
            timer_status=TIMER_PAUSED,
            timer_started_at=NOW - timedelta(minutes=5),
        )
        await _seed_task(
            session,
            text="Recent",
            duration_seconds=300,
            timer_status=TIMER_RUNNING,
            timer_started_at=NOW - timedelta(minutes=20),
        )
        await _seed_task(session, text="Idle", duration_seconds=300)
        engine = TimerEngine(session, clock=_Clock(NOW))

        found = await engine.find_stale_timers()
        assert [entry.task.id for entry in found] == [stale.id, no_duration.id]
        assert found[0].seconds_since_expiry == 3 * 3600 - 300
        assert found[1].seconds_since_expiry is None

        dry_run = await engine.cleanup_stale_timers()
        assert len(dry_run) == 2
        assert len(await engine.find_stale_timers()) == 2

        cleaned = await engine.cleanup_stale_timers(apply=True)
        assert len(cleaned) == 2
        assert await engine.find_stale_timers() == []
        running = await Task.objects.filter_by(timer_status=TIMER_RUNNING).all(session)
        assert [task.text for task in running] == ["Recent"]
