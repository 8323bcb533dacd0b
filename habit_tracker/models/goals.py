"""Goals group projects under a longer-term aim."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID, uuid4

from sqlmodel import Field

from habit_tracker.core.time import utcnow
from habit_tracker.models.base import QueryModel

RUNTIME_ANNOTATION_TYPES = (datetime,)


class Goal(QueryModel, table=True):
    """Top-level grouping; a goal cannot be deleted while projects reference it."""

    __tablename__ = "goals"  # pyright: ignore[reportAssignmentType]

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    name: str
    description: str | None = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
