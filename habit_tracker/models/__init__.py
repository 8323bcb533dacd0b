"""Model exports for SQLAlchemy/SQLModel metadata discovery."""

from habit_tracker.models.goals import Goal
from habit_tracker.models.projects import Project
from habit_tracker.models.task_completions import TaskCompletion
from habit_tracker.models.tasks import Task

__all__ = [
    "Goal",
    "Project",
    "Task",
    "TaskCompletion",
]
