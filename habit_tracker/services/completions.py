"""Completion history: per-day done flags, streaks and completion statistics."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import timedelta
from typing import TYPE_CHECKING

from sqlalchemy import func
from sqlmodel import col, select

from habit_tracker.core.time import to_naive_utc
from habit_tracker.db import crud
from habit_tracker.models.task_completions import TaskCompletion
from habit_tracker.models.tasks import Task
from habit_tracker.schemas.frequency import frequency_from_row
from habit_tracker.services.db_service import DBService
from habit_tracker.services.frequency import is_active_on_date
from habit_tracker.services.timezones import DayRange, day_range_for_offset

if TYPE_CHECKING:
    from datetime import date, datetime
    from uuid import UUID


@dataclass(frozen=True)
class TaskStatus:
    """A task together with its completion state inside one day window."""

    task: Task
    completed_today: bool
    last_completed_at: datetime | None


@dataclass(frozen=True)
class CompletionRecord:
    """A completion row joined with the text of its task."""

    completion: TaskCompletion
    text: str


@dataclass(frozen=True)
class CompletionStats:
    """Trailing-window completion summary for one task."""

    total_days: int
    completed_days: int
    completion_rate: int
    streak: int


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def _in_window(start: datetime, end: datetime) -> tuple[object, object]:
    return (
        col(TaskCompletion.completed_at) >= start,
        col(TaskCompletion.completed_at) < end,
    )


class CompletionTracker(DBService):
    """Reads and writes `TaskCompletion` rows for recurring tasks.

    Lookups for unknown task ids return empty or zero results; callers check
    that the task exists first.
    """

    async def mark_complete(
        self,
        task_id: UUID,
        at: datetime | None = None,
        *,
        day_range: DayRange | None = None,
        commit: bool = True,
    ) -> TaskCompletion:
        """Record a completion, replacing any existing one in the same day window.

        Without an explicit window the UTC calendar day of `at` is used.
        """
        completed_at = to_naive_utc(at) if at is not None else self.clock()
        window = day_range or day_range_for_offset(completed_at.date(), 0)
        existing = await (
            TaskCompletion.objects.filter_by(task_id=task_id)
            .filter(*_in_window(window.start_of_day, window.end_of_day))
            .order_by(col(TaskCompletion.completed_at).asc())
            .all(self.session)
        )
        if existing:
            completion, duplicates = existing[0], existing[1:]
            for duplicate in duplicates:
                await self.session.delete(duplicate)
            completion.completed_at = completed_at
        else:
            completion = TaskCompletion(task_id=task_id, completed_at=completed_at)
        completion = await crud.save(self.session, completion, commit=commit)
        self.logger.info(
            "tasks.completion.recorded",
            extra={
                "task_id": str(task_id),
                "completed_at": completed_at.isoformat(),
                "replaced": bool(existing),
            },
        )
        return completion

    async def mark_incomplete(
        self,
        task_id: UUID,
        start_of_day: datetime,
        end_of_day: datetime,
        *,
        commit: bool = True,
    ) -> bool:
        """Delete completions inside `[start_of_day, end_of_day)`; True if any were removed."""
        removed = await crud.delete_where(
            self.session,
            TaskCompletion,
            col(TaskCompletion.task_id) == task_id,
            *_in_window(start_of_day, end_of_day),
            commit=commit,
        )
        if removed:
            self.logger.info(
                "tasks.completion.removed",
                extra={"task_id": str(task_id), "count": removed},
            )
        return removed > 0

    async def is_completed_today(
        self,
        task_id: UUID,
        start_of_day: datetime,
        end_of_day: datetime,
    ) -> bool:
        return await (
            TaskCompletion.objects.filter_by(task_id=task_id)
            .filter(*_in_window(start_of_day, end_of_day))
            .exists(self.session)
        )

    async def get_tasks_with_status(
        self,
        start_of_day: datetime,
        end_of_day: datetime,
        *,
        active_on: date,
    ) -> list[TaskStatus]:
        """All tasks active on `active_on`, each with its done flag for the window.

        Recurring tasks are done when a completion falls inside the window;
        one-time tasks report their own `completed` column.
        """
        latest = (
            select(
                col(TaskCompletion.task_id).label("task_id"),
                func.max(TaskCompletion.completed_at).label("last_completed_at"),
            )
            .where(*_in_window(start_of_day, end_of_day))
            .group_by(col(TaskCompletion.task_id))
            .subquery()
        )
        statement = (
            select(Task, latest.c.last_completed_at)
            .outerjoin(latest, col(Task.id) == latest.c.task_id)
            .order_by(col(Task.created_at).asc())
        )
        rows = await self.session.exec(statement)

        statuses: list[TaskStatus] = []
        for task, last_completed_at in rows:
            if not is_active_on_date(frequency_from_row(task), active_on):
                continue
            completed_today = (
                last_completed_at is not None if task.is_recurring else task.completed
            )
            statuses.append(
                TaskStatus(
                    task=task,
                    completed_today=completed_today,
                    last_completed_at=last_completed_at,
                ),
            )
        return statuses

    async def _completion_instants(
        self,
        task_id: UUID,
        *,
        since: datetime | None = None,
        until: datetime | None = None,
    ) -> list[datetime]:
        statement = select(TaskCompletion.completed_at).where(
            col(TaskCompletion.task_id) == task_id,
        )
        if since is not None:
            statement = statement.where(col(TaskCompletion.completed_at) >= since)
        if until is not None:
            statement = statement.where(col(TaskCompletion.completed_at) < until)
        return list(await self.session.exec(statement))

    async def get_streak(self, task_id: UUID, *, today: date | None = None) -> int:
        """Consecutive UTC days with a completion, counting back from `today`.

        A day without a completion ends the chain, including today itself.
        """
        cursor = today or self.clock().date()
        completed_dates = {instant.date() for instant in await self._completion_instants(task_id)}
        streak = 0
        while cursor in completed_dates:
            streak += 1
            cursor -= timedelta(days=1)
        return streak

    async def get_stats(
        self,
        task_id: UUID,
        window_days: int = 30,
        *,
        now: datetime | None = None,
    ) -> CompletionStats:
        """Distinct completion days within `[now - window_days, now)` and the streak."""
        current = now or self.clock()
        instants = await self._completion_instants(
            task_id,
            since=current - timedelta(days=window_days),
            until=current,
        )
        completed_days = len({instant.date() for instant in instants})
        completion_rate = (
            _round_half_up(completed_days / window_days * 100) if window_days > 0 else 0
        )
        return CompletionStats(
            total_days=window_days,
            completed_days=completed_days,
            completion_rate=completion_rate,
            streak=await self.get_streak(task_id, today=current.date()),
        )

    async def list_completions(
        self,
        start: datetime,
        end: datetime,
        *,
        task_id: UUID | None = None,
    ) -> list[CompletionRecord]:
        """Completions inside `[start, end)` joined with their task text."""
        statement = (
            select(TaskCompletion, Task.text)
            .join(Task, col(Task.id) == col(TaskCompletion.task_id))
            .where(*_in_window(start, end))
            .order_by(col(TaskCompletion.completed_at).asc())
        )
        if task_id is not None:
            statement = statement.where(col(TaskCompletion.task_id) == task_id)
        rows = await self.session.exec(statement)
        return [CompletionRecord(completion=completion, text=text) for completion, text in rows]

    async def delete_for_task(self, task_id: UUID, *, commit: bool = False) -> int:
        return await crud.delete_where(
            self.session,
            TaskCompletion,
            col(TaskCompletion.task_id) == task_id,
            commit=commit,
        )
