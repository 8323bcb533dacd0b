"""Completion events recorded for recurring tasks."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID, uuid4

from sqlmodel import Field

from habit_tracker.core.time import utcnow
from habit_tracker.models.base import QueryModel

RUNTIME_ANNOTATION_TYPES = (datetime,)


class TaskCompletion(QueryModel, table=True):
    """One user "done" action, located in time by its UTC instant."""

    __tablename__ = "task_completions"  # pyright: ignore[reportAssignmentType]

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    task_id: UUID = Field(foreign_key="tasks.id", index=True)
    completed_at: datetime = Field(default_factory=utcnow, index=True)
