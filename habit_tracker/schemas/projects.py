"""Schemas for goals and the projects grouped under them."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Annotated
from uuid import UUID

from pydantic import AfterValidator, Field

from habit_tracker.schemas.common import ApiModel, NonEmptyStr

if TYPE_CHECKING:
    from habit_tracker.services.projects import GoalSummary, ProjectSummary

RUNTIME_ANNOTATION_TYPES = (datetime, UUID)


def _blank_to_none(value: str | None) -> str | None:
    if value is None:
        return None
    return value.strip() or None


OptionalText = Annotated[str | None, AfterValidator(_blank_to_none)]


class GoalWrite(ApiModel):
    """Create or fully replace a goal; an omitted description is cleared."""

    name: NonEmptyStr = Field(examples=["Get fit"])
    description: OptionalText = None


class GoalRead(ApiModel):
    id: UUID
    name: str
    description: str | None = None
    project_count: int = 0
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_summary(cls, summary: GoalSummary) -> GoalRead:
        goal = summary.goal
        return cls(
            id=goal.id,
            name=goal.name,
            description=goal.description,
            project_count=summary.project_count,
            created_at=goal.created_at,
            updated_at=goal.updated_at,
        )


class ProjectWrite(ApiModel):
    """Create or fully replace a project; `goalId` must name an existing goal."""

    name: NonEmptyStr = Field(examples=["Morning routine"])
    description: OptionalText = None
    goal_id: UUID | None = None


class ProjectRead(ApiModel):
    id: UUID
    name: str
    description: str | None = None
    goal_id: UUID | None = None
    goal_name: str | None = None
    task_count: int = 0
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_summary(cls, summary: ProjectSummary) -> ProjectRead:
        project = summary.project
        return cls(
            id=project.id,
            name=project.name,
            description=project.description,
            goal_id=project.goal_id,
            goal_name=summary.goal_name,
            task_count=summary.task_count,
            created_at=project.created_at,
            updated_at=project.updated_at,
        )
