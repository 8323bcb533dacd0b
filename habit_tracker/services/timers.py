"""Pull-based countdown timers attached to tasks.

Nothing ticks in the background: expiry is evaluated when a client polls
`TimerEngine.status`, and the side effects of an expired timer are applied
at that moment.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import TYPE_CHECKING

from fastapi import HTTPException, status
from sqlmodel import col

from habit_tracker.core.time import utcnow
from habit_tracker.db import crud
from habit_tracker.models.tasks import (
    ACTIVE_TIMER_STATUSES,
    TIMER_COMPLETED,
    TIMER_NOT_STARTED,
    TIMER_PAUSED,
    TIMER_RUNNING,
    Task,
)
from habit_tracker.schemas.timers import TimerOutcome, TimerSnapshot
from habit_tracker.services.completions import CompletionTracker
from habit_tracker.services.db_service import DBService
from habit_tracker.services.timezones import day_range_for_offset

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime

    from sqlmodel.ext.asyncio.session import AsyncSession

# Expiry older than this is treated as an abandoned timer, not a completion.
STALE_TIMER_THRESHOLD = timedelta(hours=1)

NO_DURATION_MESSAGE = "Task has no duration set"
NOT_RUNNING_MESSAGE = "Timer is not running"


@dataclass(frozen=True)
class StaleTimer:
    """An active timer found by the maintenance sweep."""

    task: Task
    elapsed: int
    # None when the task has no duration at all.
    seconds_since_expiry: int | None


def elapsed_seconds(started_at: datetime | None, now: datetime) -> int:
    """Whole seconds between `started_at` and `now` (0 when never started)."""
    if started_at is None:
        return 0
    return max(0, int((now - started_at).total_seconds()))


class TimerEngine(DBService):
    """State machine over `not_started`, `running`, `paused` and `completed`."""

    def __init__(
        self,
        session: AsyncSession,
        *,
        clock: Callable[[], datetime] = utcnow,
        completions: CompletionTracker | None = None,
    ) -> None:
        super().__init__(session, clock=clock)
        self.completions = completions or CompletionTracker(session, clock=clock)

    async def _write(self, task: Task, updates: dict[str, object], *, commit: bool = True) -> Task:
        updates["updated_at"] = self.clock()
        return await crud.patch(self.session, task, updates, commit=commit)

    async def start(self, task: Task) -> Task:
        """Start or resume the countdown.

        Resuming from `paused` keeps the original start instant, so time spent
        paused still counts toward the duration.
        """
        if not task.duration_seconds:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=NO_DURATION_MESSAGE)
        started_at = task.timer_started_at
        if task.timer_status not in ACTIVE_TIMER_STATUSES or started_at is None:
            started_at = self.clock()
        task = await self._write(
            task,
            {"timer_status": TIMER_RUNNING, "timer_started_at": started_at},
        )
        self.logger.info(
            "tasks.timer.started",
            extra={"task_id": str(task.id), "started_at": started_at.isoformat()},
        )
        return task

    async def pause(self, task: Task) -> Task:
        if task.timer_status != TIMER_RUNNING:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=NOT_RUNNING_MESSAGE)
        task = await self._write(task, {"timer_status": TIMER_PAUSED})
        self.logger.info("tasks.timer.paused", extra={"task_id": str(task.id)})
        return task

    async def stop(self, task: Task) -> Task:
        task = await self._write(
            task,
            {"timer_status": TIMER_NOT_STARTED, "timer_started_at": None},
        )
        self.logger.info("tasks.timer.stopped", extra={"task_id": str(task.id)})
        return task

    async def force_reset(self, task: Task, *, commit: bool = True) -> bool:
        """Reset a non-idle timer to `not_started`; returns whether anything changed."""
        if task.timer_status == TIMER_NOT_STARTED:
            return False
        previous = task.timer_status
        await self._write(
            task,
            {"timer_status": TIMER_NOT_STARTED, "timer_started_at": None},
            commit=commit,
        )
        self.logger.info(
            "tasks.timer.force_reset",
            extra={"task_id": str(task.id), "previous_status": previous},
        )
        return True

    async def status(self, task: Task) -> TimerSnapshot:
        """Compute the timer snapshot, applying expiry side effects.

        A running timer that ran out at most `STALE_TIMER_THRESHOLD` ago
        completes the task: recurring tasks get a completion event and keep
        their timer fields, one-time tasks are marked completed. Anything
        older is reset to `not_started` without completing the task.
        """
        now = self.clock()
        elapsed = 0
        remaining: int | None = None
        if task.timer_started_at is not None and task.duration_seconds:
            elapsed = elapsed_seconds(task.timer_started_at, now)
            remaining = max(0, task.duration_seconds - elapsed)

        snapshot = TimerSnapshot(
            task_id=task.id,
            status=task.timer_status,
            duration_seconds=task.duration_seconds,
            started_at=task.timer_started_at,
            elapsed=elapsed,
            remaining_seconds=remaining,
            is_expired=remaining == 0 and task.timer_status == TIMER_RUNNING,
        )
        if not snapshot.is_expired or task.duration_seconds is None:
            return snapshot

        overdue = timedelta(seconds=elapsed - task.duration_seconds)
        if overdue > STALE_TIMER_THRESHOLD:
            await self._write(
                task,
                {"timer_status": TIMER_NOT_STARTED, "timer_started_at": None},
            )
            self.logger.warning(
                "tasks.timer.stale_reset",
                extra={"task_id": str(task.id), "overdue_seconds": int(overdue.total_seconds())},
            )
            return snapshot.model_copy(
                update={
                    "status": TIMER_NOT_STARTED,
                    "started_at": None,
                    "is_expired": False,
                    "outcome": TimerOutcome.STALE_RESET,
                },
            )

        if task.is_recurring:
            await self._credit_expired_run(task)
        else:
            await self._write(task, {"completed": True, "timer_status": TIMER_COMPLETED})
        self.logger.info(
            "tasks.timer.auto_completed",
            extra={"task_id": str(task.id), "recurring": task.is_recurring},
        )
        return snapshot.model_copy(update={"outcome": TimerOutcome.AUTO_COMPLETED})

    async def _credit_expired_run(self, task: Task) -> None:
        """Record one completion for a recurring run, dated at its expiry.

        The timer keeps running after expiry, so later polls land here again;
        they reuse the same instant and skip the write once the expiry's UTC
        day already holds a completion.
        """
        if task.timer_started_at is None or not task.duration_seconds:
            return
        expired_at = task.timer_started_at + timedelta(seconds=task.duration_seconds)
        window = day_range_for_offset(expired_at.date(), 0)
        if await self.completions.is_completed_today(
            task.id,
            window.start_of_day,
            window.end_of_day,
        ):
            return
        await self.completions.mark_complete(task.id, expired_at, day_range=window)

    async def find_stale_timers(self, now: datetime | None = None) -> list[StaleTimer]:
        """Running or paused timers that expired over an hour ago or have no duration."""
        current = now or self.clock()
        tasks = await (
            Task.objects.filter(
                col(Task.timer_status).in_(sorted(ACTIVE_TIMER_STATUSES)),
                col(Task.timer_started_at).is_not(None),
            )
            .order_by(col(Task.timer_started_at).asc())
            .all(self.session)
        )
        stale: list[StaleTimer] = []
        for task in tasks:
            elapsed = elapsed_seconds(task.timer_started_at, current)
            if not task.duration_seconds:
                stale.append(StaleTimer(task=task, elapsed=elapsed, seconds_since_expiry=None))
                continue
            since_expiry = elapsed - task.duration_seconds
            if since_expiry > STALE_TIMER_THRESHOLD.total_seconds():
                stale.append(
                    StaleTimer(task=task, elapsed=elapsed, seconds_since_expiry=since_expiry),
                )
        return stale

    async def cleanup_stale_timers(
        self,
        *,
        apply: bool = False,
        now: datetime | None = None,
    ) -> list[StaleTimer]:
        """Find stale timers and, when `apply` is set, reset them to `not_started`."""
        stale = await self.find_stale_timers(now)
        if not apply or not stale:
            return stale
        reset = await crud.update_where(
            self.session,
            Task,
            col(Task.id).in_([entry.task.id for entry in stale]),
            timer_status=TIMER_NOT_STARTED,
            timer_started_at=None,
            updated_at=self.clock(),
        )
        self.logger.info("tasks.timer.stale_cleanup", extra={"reset_count": reset})
        return stale
