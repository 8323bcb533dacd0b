"""Goal endpoints: CRUD and the projects under a goal."""

from __future__ import annotations

from fastapi import APIRouter, status

from habit_tracker.api.deps import GOAL_DEP, GOAL_SERVICE_DEP, PROJECT_SERVICE_DEP
from habit_tracker.models.goals import Goal
from habit_tracker.schemas.common import Envelope, OkResponse
from habit_tracker.schemas.projects import GoalRead, GoalWrite, ProjectRead
from habit_tracker.services.projects import GoalService, ProjectService

router = APIRouter(prefix="/goals", tags=["goals"])


@router.get("", response_model=Envelope[list[GoalRead]])
async def list_goals(service: GoalService = GOAL_SERVICE_DEP) -> Envelope[list[GoalRead]]:
    """List goals newest first with their project counts."""
    summaries = await service.list_goals()
    return Envelope[list[GoalRead]](data=[GoalRead.from_summary(summary) for summary in summaries])


@router.post("", response_model=Envelope[GoalRead], status_code=status.HTTP_201_CREATED)
async def create_goal(
    payload: GoalWrite,
    service: GoalService = GOAL_SERVICE_DEP,
) -> Envelope[GoalRead]:
    goal = await service.create(payload)
    return Envelope[GoalRead](
        data=GoalRead.from_summary(await service.summary(goal)),
        message="Goal created successfully",
    )


@router.get("/{goal_id}", response_model=Envelope[GoalRead])
async def get_goal(
    goal: Goal = GOAL_DEP,
    service: GoalService = GOAL_SERVICE_DEP,
) -> Envelope[GoalRead]:
    return Envelope[GoalRead](data=GoalRead.from_summary(await service.summary(goal)))


@router.get("/{goal_id}/projects", response_model=Envelope[list[ProjectRead]])
async def list_goal_projects(
    goal: Goal = GOAL_DEP,
    projects: ProjectService = PROJECT_SERVICE_DEP,
) -> Envelope[list[ProjectRead]]:
    summaries = await projects.list_projects(goal_id=goal.id)
    return Envelope[list[ProjectRead]](
        data=[ProjectRead.from_summary(summary) for summary in summaries],
    )


@router.put("/{goal_id}", response_model=Envelope[GoalRead])
async def update_goal(
    payload: GoalWrite,
    goal: Goal = GOAL_DEP,
    service: GoalService = GOAL_SERVICE_DEP,
) -> Envelope[GoalRead]:
    """Replace a goal's name and description."""
    goal = await service.update(goal, payload)
    return Envelope[GoalRead](
        data=GoalRead.from_summary(await service.summary(goal)),
        message="Goal updated successfully",
    )


@router.delete("/{goal_id}", response_model=OkResponse)
async def delete_goal(
    goal: Goal = GOAL_DEP,
    service: GoalService = GOAL_SERVICE_DEP,
) -> OkResponse:
    """Delete a goal; refused while projects still reference it."""
    await service.delete(goal)
    return OkResponse(message="Goal deleted successfully")
