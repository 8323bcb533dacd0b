"""Task model: one-time or recurring work items with an optional countdown timer."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import JSON, Column
from sqlmodel import Field

from habit_tracker.core.time import utcnow
from habit_tracker.models.base import QueryModel

RUNTIME_ANNOTATION_TYPES = (datetime,)

TIMER_NOT_STARTED = "not_started"
TIMER_RUNNING = "running"
TIMER_PAUSED = "paused"
TIMER_COMPLETED = "completed"
TIMER_STATUSES = frozenset({TIMER_NOT_STARTED, TIMER_RUNNING, TIMER_PAUSED, TIMER_COMPLETED})
ACTIVE_TIMER_STATUSES = frozenset({TIMER_RUNNING, TIMER_PAUSED})


class Task(QueryModel, table=True):
    """A task row; recurring tasks track completion through `TaskCompletion` rows."""

    __tablename__ = "tasks"  # pyright: ignore[reportAssignmentType]

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    text: str

    # NULL frequency_type marks a one-time task.
    frequency_type: str | None = Field(default=None, index=True)
    frequency_data: dict[str, object] | None = Field(default=None, sa_column=Column(JSON))
    frequency_time: str | None = None

    # Only meaningful for one-time tasks.
    completed: bool = Field(default=False)

    duration_seconds: int | None = None
    timer_status: str = Field(default=TIMER_NOT_STARTED, index=True)
    timer_started_at: datetime | None = None

    project_id: str | None = Field(default=None, index=True)

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @property
    def is_recurring(self) -> bool:
        return self.frequency_type is not None
