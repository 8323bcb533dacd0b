"""Public schema exports shared across API route modules."""

from habit_tracker.schemas.common import Envelope, OkResponse
from habit_tracker.schemas.frequency import Frequency, Weekday
from habit_tracker.schemas.health import HealthStatusResponse, ReadinessResponse
from habit_tracker.schemas.projects import GoalRead, GoalWrite, ProjectRead, ProjectWrite
from habit_tracker.schemas.tasks import (
    CompleteRequest,
    TaskCreate,
    TaskListResponse,
    TaskRead,
    TaskUpdate,
    TaskView,
)
from habit_tracker.schemas.timers import TimerOutcome, TimerSnapshot

__all__ = [
    "CompleteRequest",
    "Envelope",
    "Frequency",
    "GoalRead",
    "GoalWrite",
    "HealthStatusResponse",
    "OkResponse",
    "ProjectRead",
    "ProjectWrite",
    "ReadinessResponse",
    "TaskCreate",
    "TaskListResponse",
    "TaskRead",
    "TaskUpdate",
    "TaskView",
    "TimerOutcome",
    "TimerSnapshot",
    "Weekday",
]
