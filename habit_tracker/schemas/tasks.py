"""Schemas for task CRUD, completion views and statistics."""

from __future__ import annotations

from datetime import date, datetime
from typing import TYPE_CHECKING
from uuid import UUID

from pydantic import Field, field_validator

from habit_tracker.schemas.common import ApiModel, Envelope, NonEmptyStr
from habit_tracker.schemas.frequency import AnyFrequency, Frequency, frequency_from_row

if TYPE_CHECKING:
    from habit_tracker.models.tasks import Task
    from habit_tracker.services.completions import (
        CompletionRecord,
        CompletionStats,
        TaskStatus,
    )
    from habit_tracker.services.timezones import DayRange

RUNTIME_ANNOTATION_TYPES = (date, datetime, UUID)


def _task_fields(task: Task) -> dict[str, object]:
    return {
        "id": task.id,
        "text": task.text,
        "frequency": frequency_from_row(task),
        "completed": task.completed,
        "duration_seconds": task.duration_seconds,
        "timer_status": task.timer_status,
        "timer_started_at": task.timer_started_at,
        "project_id": task.project_id,
        "created_at": task.created_at,
        "updated_at": task.updated_at,
    }


class TaskCreate(ApiModel):
    """Payload for creating a task; omit `frequency` for a one-time task."""

    text: NonEmptyStr = Field(examples=["Meditate"])
    frequency: Frequency | None = None
    duration_seconds: int | None = Field(default=None, gt=0, examples=[300])
    project_id: str | None = None


class TaskUpdate(ApiModel):
    """Partial update; only fields present in the request are applied."""

    text: NonEmptyStr | None = None
    frequency: Frequency | None = None
    duration_seconds: int | None = Field(default=None, gt=0)
    project_id: str | None = None
    completed: bool | None = None

    @field_validator("text")
    @classmethod
    def _text_not_null(cls, value: str | None) -> str | None:
        if value is None:
            msg = "Task text cannot be empty"
            raise ValueError(msg)
        return value


class TaskRead(ApiModel):
    """Task as returned by the API."""

    id: UUID
    text: str
    frequency: AnyFrequency | None = None
    completed: bool
    duration_seconds: int | None = None
    timer_status: str
    timer_started_at: datetime | None = None
    project_id: str | None = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_task(cls, task: Task) -> TaskRead:
        return cls(**_task_fields(task))


class TaskView(TaskRead):
    """Task plus its done state for the requested day."""

    completed_today: bool = False
    last_completed_at: datetime | None = None

    @classmethod
    def from_status(cls, task_status: TaskStatus) -> TaskView:
        return cls(
            **_task_fields(task_status.task),
            completed_today=task_status.completed_today,
            last_completed_at=task_status.last_completed_at,
        )


class DayRangeRead(ApiModel):
    """UTC window of the resolved local day."""

    start_of_day: datetime
    end_of_day: datetime

    @classmethod
    def from_range(cls, day_range: DayRange) -> DayRangeRead:
        return cls(start_of_day=day_range.start_of_day, end_of_day=day_range.end_of_day)


class TaskListResponse(Envelope[list[TaskView]]):
    """Task list for one local day."""

    local_date: date = Field(alias="date")
    range: DayRangeRead


class CompleteRequest(ApiModel):
    """Body for marking a task complete; every field is optional."""

    completed_at: datetime | None = None
    timezone_offset: int | None = Field(default=None, ge=-840, le=840)
    timezone: str | None = None


class CompletionRead(ApiModel):
    """A completion event with its task's text."""

    id: UUID
    task_id: UUID
    text: str | None = None
    completed_at: datetime

    @classmethod
    def from_record(cls, record: CompletionRecord) -> CompletionRead:
        return cls(
            id=record.completion.id,
            task_id=record.completion.task_id,
            text=record.text,
            completed_at=record.completion.completed_at,
        )


class CompletionDayQuery(ApiModel):
    """Body variant of the completions-for-a-day lookup."""

    date: str | None = None
    timezone_offset: int | None = Field(default=None, ge=-840, le=840)
    timezone: str | None = None


class CompletionRangeQuery(ApiModel):
    """Body variant of the completions-in-a-range lookup."""

    start_date: str | None = None
    end_date: str | None = None
    timezone_offset: int | None = Field(default=None, ge=-840, le=840)
    timezone: str | None = None


class CompletionDayResponse(Envelope[list[CompletionRead]]):
    local_date: date = Field(alias="date")
    range: DayRangeRead


class CompletionRangeResponse(Envelope[list[CompletionRead]]):
    start_date: date
    end_date: date
    range: DayRangeRead


class TaskStatsRead(ApiModel):
    total_days: int
    completed_days: int
    completion_rate: int
    streak: int

    @classmethod
    def from_stats(cls, stats: CompletionStats) -> TaskStatsRead:
        return cls(
            total_days=stats.total_days,
            completed_days=stats.completed_days,
            completion_rate=stats.completion_rate,
            streak=stats.streak,
        )


class TaskStatsResponse(ApiModel):
    task: TaskRead
    stats: TaskStatsRead


class ResetDayRequest(ApiModel):
    date: str | None = None
    timezone_offset: int | None = Field(default=None, ge=-840, le=840)
    timezone: str | None = None


class ResetDayRead(ApiModel):
    reset_count: int
    local_date: date = Field(alias="date")
