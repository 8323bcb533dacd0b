"""Health and readiness probe response schemas."""

from __future__ import annotations

from pydantic import Field
from sqlmodel import SQLModel


class HealthStatusResponse(SQLModel):
    """Liveness payload; the process is up and serving requests."""

    ok: bool = Field(
        description="Indicates whether the probe check succeeded.",
        examples=[True],
    )


class ReadinessResponse(HealthStatusResponse):
    """Readiness payload including the database round-trip result."""

    database: bool = Field(
        description="Whether a trivial query against the task database succeeded.",
        examples=[True],
    )
