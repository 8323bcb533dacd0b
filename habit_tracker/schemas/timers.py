"""Schemas for countdown timer status snapshots."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import Field

from habit_tracker.schemas.common import ApiModel

RUNTIME_ANNOTATION_TYPES = (datetime, UUID)


class TimerOutcome(str, Enum):
    """Side effect a status poll applied to the task."""

    NONE = "none"
    AUTO_COMPLETED = "auto_completed"
    STALE_RESET = "stale_reset"


class TimerSnapshot(ApiModel):
    """Point-in-time view of a task timer, computed when polled."""

    task_id: UUID
    status: str = Field(examples=["running"])
    duration_seconds: int | None = None
    started_at: datetime | None = None
    elapsed: int = Field(default=0, description="Whole seconds since the timer was started.")
    remaining_seconds: int | None = Field(
        default=None,
        description="Seconds left; null when no duration is set or the timer never started.",
    )
    is_expired: bool = False
    outcome: TimerOutcome = TimerOutcome.NONE
