"""Reusable FastAPI dependencies for task, project and goal routes.

They provide the request-scoped services, the "load or 404"
lookups, and the resolved local-day window from `date`/`timezoneOffset`/
`timezone` query parameters.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import Depends, Query
from sqlmodel.ext.asyncio.session import AsyncSession

from habit_tracker.db.session import get_session
from habit_tracker.models.goals import Goal
from habit_tracker.models.projects import Project
from habit_tracker.models.tasks import Task
from habit_tracker.services.projects import GoalService, ProjectService
from habit_tracker.services.tasks import TaskService
from habit_tracker.services.timezones import DayRange, resolve_day_range

SESSION_DEP = Depends(get_session)
DATE_QUERY = Query(default=None, alias="date", description="Local calendar date, YYYY-MM-DD.")
TIMEZONE_OFFSET_QUERY = Query(
    default=None,
    alias="timezoneOffset",
    ge=-840,
    le=840,
    description="Minutes to add to local time to reach UTC (positive west of Greenwich).",
)
TIMEZONE_NAME_QUERY = Query(
    default=None,
    alias="timezone",
    description="IANA zone name; takes precedence over timezoneOffset.",
)


def get_task_service(session: AsyncSession = SESSION_DEP) -> TaskService:
    """Build the task service bound to the request session."""
    return TaskService(session)


TASK_SERVICE_DEP = Depends(get_task_service)


async def get_task_or_404(
    task_id: UUID,
    service: TaskService = TASK_SERVICE_DEP,
) -> Task:
    """Load a task by id or raise 404."""
    return await service.require(task_id)


def get_day_range(
    local_date: str | None = DATE_QUERY,
    timezone_offset: int | None = TIMEZONE_OFFSET_QUERY,
    timezone_name: str | None = TIMEZONE_NAME_QUERY,
) -> DayRange:
    """Resolve the UTC window of the caller's local day from query parameters."""
    return resolve_day_range(local_date, timezone_offset, timezone_name)


TASK_DEP = Depends(get_task_or_404)
DAY_RANGE_DEP = Depends(get_day_range)


def get_project_service(session: AsyncSession = SESSION_DEP) -> ProjectService:
    return ProjectService(session)


def get_goal_service(session: AsyncSession = SESSION_DEP) -> GoalService:
    return GoalService(session)


PROJECT_SERVICE_DEP = Depends(get_project_service)
GOAL_SERVICE_DEP = Depends(get_goal_service)


async def get_project_or_404(
    project_id: UUID,
    service: ProjectService = PROJECT_SERVICE_DEP,
) -> Project:
    """Load a project by id or raise 404."""
    return await service.require(project_id)


async def get_goal_or_404(
    goal_id: UUID,
    service: GoalService = GOAL_SERVICE_DEP,
) -> Goal:
    """Load a goal by id or raise 404."""
    return await service.require(goal_id)


PROJECT_DEP = Depends(get_project_or_404)
GOAL_DEP = Depends(get_goal_or_404)
