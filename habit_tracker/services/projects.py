"""Goals and projects: CRUD plus the counts shown alongside them."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from fastapi import HTTPException, status
from sqlalchemy import func
from sqlmodel import col, select

from habit_tracker.db import crud
from habit_tracker.models.goals import Goal
from habit_tracker.models.projects import Project
from habit_tracker.models.tasks import Task
from habit_tracker.services.db_service import DBService

if TYPE_CHECKING:
    from uuid import UUID

    from habit_tracker.schemas.projects import GoalWrite, ProjectWrite

GOAL_NOT_FOUND = "Goal not found"
PROJECT_NOT_FOUND = "Project not found"
GOAL_HAS_PROJECTS = (
    "Cannot delete goal that has projects. Please delete or reassign projects first."
)
PROJECT_HAS_TASKS = "Cannot delete project that has tasks. Please delete or reassign tasks first."


@dataclass(frozen=True)
class GoalSummary:
    goal: Goal
    project_count: int


@dataclass(frozen=True)
class ProjectSummary:
    project: Project
    goal_name: str | None
    task_count: int


class ProjectService(DBService):
    """Project CRUD. Tasks reference projects by the string form of the id."""

    async def get(self, project_id: UUID) -> Project | None:
        return await Project.objects.by_id(project_id).first(self.session)

    async def require(self, project_id: UUID) -> Project:
        project = await self.get(project_id)
        if project is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=PROJECT_NOT_FOUND)
        return project

    async def _task_counts(self) -> dict[str, int]:
        statement = (
            select(col(Task.project_id), func.count(col(Task.id)))
            .where(col(Task.project_id).is_not(None))
            .group_by(col(Task.project_id))
        )
        rows = await self.session.exec(statement)
        return {project_id: int(count) for project_id, count in rows}

    async def task_count(self, project: Project) -> int:
        statement = select(func.count(col(Task.id))).where(
            col(Task.project_id) == str(project.id),
        )
        result = await self.session.exec(statement)
        return int(result.one())

    async def list_projects(self, *, goal_id: UUID | None = None) -> list[ProjectSummary]:
        """Projects newest first, optionally only those under one goal."""
        statement = select(Project, Goal.name).outerjoin(
            Goal,
            col(Project.goal_id) == col(Goal.id),
        )
        if goal_id is not None:
            statement = statement.where(col(Project.goal_id) == goal_id)
        statement = statement.order_by(col(Project.created_at).desc())
        rows = await self.session.exec(statement)
        counts = await self._task_counts()
        return [
            ProjectSummary(
                project=project,
                goal_name=goal_name,
                task_count=counts.get(str(project.id), 0),
            )
            for project, goal_name in rows
        ]

    async def summary(self, project: Project) -> ProjectSummary:
        goal = None
        if project.goal_id is not None:
            goal = await Goal.objects.by_id(project.goal_id).first(self.session)
        return ProjectSummary(
            project=project,
            goal_name=goal.name if goal is not None else None,
            task_count=await self.task_count(project),
        )

    async def _check_goal(self, goal_id: UUID | None) -> None:
        if goal_id is None:
            return
        if not await Goal.objects.by_id(goal_id).exists(self.session):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=GOAL_NOT_FOUND)

    async def create(self, payload: ProjectWrite) -> Project:
        await self._check_goal(payload.goal_id)
        now = self.clock()
        project = Project(
            name=payload.name,
            description=payload.description,
            goal_id=payload.goal_id,
            created_at=now,
            updated_at=now,
        )
        project = await crud.save(self.session, project)
        self.logger.info(
            "projects.created",
            extra={"project_id": str(project.id), "goal_id": str(project.goal_id)},
        )
        return project

    async def update(self, project: Project, payload: ProjectWrite) -> Project:
        """Replace name, description and goal; omitted optional fields are cleared."""
        await self._check_goal(payload.goal_id)
        project = await crud.patch(
            self.session,
            project,
            {
                "name": payload.name,
                "description": payload.description,
                "goal_id": payload.goal_id,
                "updated_at": self.clock(),
            },
        )
        self.logger.info("projects.updated", extra={"project_id": str(project.id)})
        return project

    async def delete(self, project: Project) -> None:
        if await self.task_count(project) > 0:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=PROJECT_HAS_TASKS)
        await crud.delete(self.session, project)
        self.logger.info("projects.deleted", extra={"project_id": str(project.id)})

    async def tasks_for(self, project: Project) -> list[Task]:
        return await (
            Task.objects.filter_by(project_id=str(project.id))
            .order_by(col(Task.created_at).desc())
            .all(self.session)
        )


class GoalService(DBService):
    """Goal CRUD; a goal with projects cannot be deleted."""

    async def get(self, goal_id: UUID) -> Goal | None:
        return await Goal.objects.by_id(goal_id).first(self.session)

    async def require(self, goal_id: UUID) -> Goal:
        goal = await self.get(goal_id)
        if goal is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=GOAL_NOT_FOUND)
        return goal

    async def project_count(self, goal: Goal) -> int:
        statement = select(func.count(col(Project.id))).where(col(Project.goal_id) == goal.id)
        result = await self.session.exec(statement)
        return int(result.one())

    async def list_goals(self) -> list[GoalSummary]:
        goals = await Goal.objects.order_by(col(Goal.created_at).desc()).all(self.session)
        statement = (
            select(col(Project.goal_id), func.count(col(Project.id)))
            .where(col(Project.goal_id).is_not(None))
            .group_by(col(Project.goal_id))
        )
        counts = {goal_id: int(count) for goal_id, count in await self.session.exec(statement)}
        return [GoalSummary(goal=goal, project_count=counts.get(goal.id, 0)) for goal in goals]

    async def summary(self, goal: Goal) -> GoalSummary:
        return GoalSummary(goal=goal, project_count=await self.project_count(goal))

    async def create(self, payload: GoalWrite) -> Goal:
        now = self.clock()
        goal = Goal(
            name=payload.name,
            description=payload.description,
            created_at=now,
            updated_at=now,
        )
        goal = await crud.save(self.session, goal)
        self.logger.info("goals.created", extra={"goal_id": str(goal.id)})
        return goal

    async def update(self, goal: Goal, payload: GoalWrite) -> Goal:
        goal = await crud.patch(
            self.session,
            goal,
            {
                "name": payload.name,
                "description": payload.description,
                "updated_at": self.clock(),
            },
        )
        self.logger.info("goals.updated", extra={"goal_id": str(goal.id)})
        return goal

    async def delete(self, goal: Goal) -> None:
        if await self.project_count(goal) > 0:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=GOAL_HAS_PROJECTS)
        await crud.delete(self.session, goal)
        self.logger.info("goals.deleted", extra={"goal_id": str(goal.id)})
