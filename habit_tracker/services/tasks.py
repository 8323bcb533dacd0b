"""Task orchestration: CRUD, day views, manual completion and timer passthroughs."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import HTTPException, status
from sqlmodel import col

from habit_tracker.core.config import settings
from habit_tracker.core.time import utcnow
from habit_tracker.db import crud
from habit_tracker.models.tasks import Task
from habit_tracker.schemas.frequency import frequency_to_columns
from habit_tracker.services.completions import CompletionTracker, TaskStatus
from habit_tracker.services.db_service import DBService
from habit_tracker.services.timers import TimerEngine
from habit_tracker.services.timezones import (
    current_local_date,
    day_range_containing,
    normalize_instant,
)

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import date, datetime
    from uuid import UUID

    from sqlmodel.ext.asyncio.session import AsyncSession

    from habit_tracker.schemas.tasks import TaskCreate, TaskUpdate
    from habit_tracker.schemas.timers import TimerSnapshot
    from habit_tracker.services.completions import CompletionRecord, CompletionStats
    from habit_tracker.services.timezones import DayRange

TASK_NOT_FOUND = "Task not found"
NO_COMPLETION_FOUND = "No completion found for this date"


class TaskService(DBService):
    """Entry point used by the API layer; composes completions and timers."""

    def __init__(
        self,
        session: AsyncSession,
        *,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        super().__init__(session, clock=clock)
        self.completions = CompletionTracker(session, clock=clock)
        self.timers = TimerEngine(session, clock=clock, completions=self.completions)

    async def get(self, task_id: UUID) -> Task | None:
        return await Task.objects.by_id(task_id).first(self.session)

    async def require(self, task_id: UUID) -> Task:
        task = await self.get(task_id)
        if task is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=TASK_NOT_FOUND)
        return task

    async def list_with_today_status(
        self,
        day_range: DayRange,
        *,
        active_on: date | None = None,
    ) -> list[TaskStatus]:
        """Tasks active today, each flagged done/not-done within `day_range`.

        Frequency gating uses the server's current date rather than the
        queried one unless `active_on` is given.
        """
        return await self.completions.get_tasks_with_status(
            day_range.start_of_day,
            day_range.end_of_day,
            active_on=active_on or current_local_date(),
        )

    async def create(self, payload: TaskCreate) -> Task:
        """Create a task. A missing frequency makes it a one-time task."""
        now = self.clock()
        task = Task(
            text=payload.text,
            duration_seconds=payload.duration_seconds,
            project_id=payload.project_id,
            created_at=now,
            updated_at=now,
            **frequency_to_columns(payload.frequency),
        )
        task = await crud.save(self.session, task)
        self.logger.info(
            "tasks.created",
            extra={"task_id": str(task.id), "frequency_type": task.frequency_type},
        )
        return task

    async def update(self, task: Task, payload: TaskUpdate) -> Task:
        """Apply the fields present in `payload`.

        Setting `completed` to true counts as a manual completion and resets
        any active timer.
        """
        fields = payload.model_fields_set
        updates: dict[str, object] = {}
        for name in ("text", "duration_seconds", "project_id", "completed"):
            if name in fields:
                updates[name] = getattr(payload, name)
        if "frequency" in fields:
            updates.update(frequency_to_columns(payload.frequency))
        if updates.get("completed") is True:
            await self.timers.force_reset(task, commit=False)
        updates["updated_at"] = self.clock()
        task = await crud.patch(self.session, task, updates)
        self.logger.info(
            "tasks.updated",
            extra={"task_id": str(task.id), "fields": sorted(fields)},
        )
        return task

    async def delete(self, task: Task) -> None:
        """Delete a task together with its completion history."""
        removed = await self.completions.delete_for_task(task.id, commit=False)
        await crud.delete(self.session, task)
        self.logger.info(
            "tasks.deleted",
            extra={"task_id": str(task.id), "completions_removed": removed},
        )

    async def complete(
        self,
        task: Task,
        *,
        completed_at: datetime | None = None,
        timezone_offset: int | None = None,
        timezone_name: str | None = None,
    ) -> TaskStatus:
        """Mark a task done.

        Recurring tasks get one completion event per day window; one-time tasks
        set their `completed` flag. Either way an active timer is reset. With a
        timezone hint the window is the client's local day containing the
        completion, otherwise its UTC day.
        """
        instant = normalize_instant(completed_at) if completed_at is not None else self.clock()
        day_range = None
        if timezone_offset is not None or timezone_name:
            day_range = day_range_containing(
                instant,
                timezone_offset=timezone_offset,
                timezone_name=timezone_name,
            )
        await self.timers.force_reset(task, commit=False)
        if task.is_recurring:
            completion = await self.completions.mark_complete(
                task.id,
                instant,
                day_range=day_range,
                commit=False,
            )
            instant = completion.completed_at
            task.updated_at = self.clock()
            task = await crud.save(self.session, task)
        else:
            task = await crud.patch(
                self.session,
                task,
                {"completed": True, "updated_at": self.clock()},
            )
        return TaskStatus(task=task, completed_today=True, last_completed_at=instant)

    async def uncomplete(self, task: Task, day_range: DayRange) -> Task:
        """Undo a completion within `day_range`, or raise 404 when there is none."""
        removed = await self.completions.mark_incomplete(
            task.id,
            day_range.start_of_day,
            day_range.end_of_day,
            commit=False,
        )
        if not task.is_recurring and task.completed:
            task.completed = False
            removed = True
        if not removed:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=NO_COMPLETION_FOUND)
        await self.timers.force_reset(task, commit=False)
        task.updated_at = self.clock()
        task = await crud.save(self.session, task)
        self.logger.info(
            "tasks.uncompleted",
            extra={"task_id": str(task.id), "local_date": day_range.local_date.isoformat()},
        )
        return task

    async def stats(self, task: Task, days: int | None = None) -> CompletionStats:
        return await self.completions.get_stats(task.id, days or settings.stats_default_days)

    async def completions_for(self, day_range: DayRange) -> list[CompletionRecord]:
        """Completion events inside one resolved day (or span of days)."""
        return await self.completions.list_completions(
            day_range.start_of_day,
            day_range.end_of_day,
        )

    async def reset_day(self, day_range: DayRange) -> int:
        """Remove every task's completions within `day_range`, one task at a time.

        Each task is committed separately, so a failure part-way leaves the
        earlier tasks reset. Returns the number of tasks visited.
        """
        tasks = await Task.objects.order_by(col(Task.created_at).asc()).all(self.session)
        for task in tasks:
            await self.completions.mark_incomplete(
                task.id,
                day_range.start_of_day,
                day_range.end_of_day,
            )
        self.logger.info(
            "tasks.day_reset",
            extra={"local_date": day_range.local_date.isoformat(), "task_count": len(tasks)},
        )
        return len(tasks)

    async def start_timer(self, task: Task) -> Task:
        return await self.timers.start(task)

    async def pause_timer(self, task: Task) -> Task:
        return await self.timers.pause(task)

    async def stop_timer(self, task: Task) -> Task:
        return await self.timers.stop(task)

    async def timer_status(self, task: Task) -> TimerSnapshot:
        return await self.timers.status(task)
