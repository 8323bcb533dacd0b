"""Project endpoints: CRUD and the tasks filed under a project."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Query, status

from habit_tracker.api.deps import PROJECT_DEP, PROJECT_SERVICE_DEP
from habit_tracker.models.projects import Project
from habit_tracker.schemas.common import Envelope, OkResponse
from habit_tracker.schemas.projects import ProjectRead, ProjectWrite
from habit_tracker.schemas.tasks import TaskRead
from habit_tracker.services.projects import ProjectService

router = APIRouter(prefix="/projects", tags=["projects"])

GOAL_ID_QUERY = Query(default=None, alias="goalId", description="Only projects under this goal.")


@router.get("", response_model=Envelope[list[ProjectRead]])
async def list_projects(
    goal_id: UUID | None = GOAL_ID_QUERY,
    service: ProjectService = PROJECT_SERVICE_DEP,
) -> Envelope[list[ProjectRead]]:
    """List projects newest first with their goal name and task count."""
    summaries = await service.list_projects(goal_id=goal_id)
    return Envelope[list[ProjectRead]](
        data=[ProjectRead.from_summary(summary) for summary in summaries],
    )


@router.post("", response_model=Envelope[ProjectRead], status_code=status.HTTP_201_CREATED)
async def create_project(
    payload: ProjectWrite,
    service: ProjectService = PROJECT_SERVICE_DEP,
) -> Envelope[ProjectRead]:
    project = await service.create(payload)
    return Envelope[ProjectRead](
        data=ProjectRead.from_summary(await service.summary(project)),
        message="Project created successfully",
    )


@router.get("/{project_id}", response_model=Envelope[ProjectRead])
async def get_project(
    project: Project = PROJECT_DEP,
    service: ProjectService = PROJECT_SERVICE_DEP,
) -> Envelope[ProjectRead]:
    return Envelope[ProjectRead](data=ProjectRead.from_summary(await service.summary(project)))


@router.get("/{project_id}/tasks", response_model=Envelope[list[TaskRead]])
async def list_project_tasks(
    project: Project = PROJECT_DEP,
    service: ProjectService = PROJECT_SERVICE_DEP,
) -> Envelope[list[TaskRead]]:
    """Tasks filed under the project, newest first."""
    tasks = await service.tasks_for(project)
    return Envelope[list[TaskRead]](data=[TaskRead.from_task(task) for task in tasks])


@router.put("/{project_id}", response_model=Envelope[ProjectRead])
async def update_project(
    payload: ProjectWrite,
    project: Project = PROJECT_DEP,
    service: ProjectService = PROJECT_SERVICE_DEP,
) -> Envelope[ProjectRead]:
    """Replace a project's name, description and goal."""
    project = await service.update(project, payload)
    return Envelope[ProjectRead](
        data=ProjectRead.from_summary(await service.summary(project)),
        message="Project updated successfully",
    )


@router.delete("/{project_id}", response_model=OkResponse)
async def delete_project(
    project: Project = PROJECT_DEP,
    service: ProjectService = PROJECT_SERVICE_DEP,
) -> OkResponse:
    """Delete a project; refused while tasks still reference it."""
    await service.delete(project)
    return OkResponse(message="Project deleted successfully")
