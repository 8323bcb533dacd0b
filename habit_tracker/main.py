"""FastAPI application entrypoint and router wiring for the habit tracker API."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import APIRouter, FastAPI, Response, status
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel.ext.asyncio.session import AsyncSession

from habit_tracker.api.deps import SESSION_DEP
from habit_tracker.api.goals import router as goals_router
from habit_tracker.api.projects import router as projects_router
from habit_tracker.api.tasks import router as tasks_router
from habit_tracker.core.config import settings
from habit_tracker.core.error_handling import REQUEST_ID_HEADER, install_error_handling
from habit_tracker.core.logging import configure_logging, get_logger
from habit_tracker.db.session import dispose_db, init_db
from habit_tracker.schemas.health import HealthStatusResponse, ReadinessResponse

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

configure_logging()
logger = get_logger(__name__)
OPENAPI_TAGS = [
    {
        "name": "health",
        "description": "Service liveness/readiness probes used by infrastructure checks.",
    },
    {
        "name": "tasks",
        "description": (
            "Task CRUD, per-day completion tracking, statistics, and countdown timer "
            "operations."
        ),
    },
    {
        "name": "projects",
        "description": "Project CRUD and the tasks filed under each project.",
    },
    {
        "name": "goals",
        "description": "Goal CRUD and the projects grouped under each goal.",
    },
]


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    """Initialize the database before serving and release it on shutdown."""
    logger.info(
        "app.lifecycle.starting",
        extra={
            "environment": settings.environment,
            "db_auto_migrate": settings.db_auto_migrate,
        },
    )
    await init_db()
    logger.info("app.lifecycle.started")
    try:
        yield
    finally:
        await dispose_db()
        logger.info("app.lifecycle.stopped")


app = FastAPI(
    title="Habit Tracker API",
    version="0.1.0",
    lifespan=lifespan,
    openapi_tags=OPENAPI_TAGS,
)

origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()]
if origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[REQUEST_ID_HEADER],
    )
    logger.info("app.cors.enabled", extra={"origins_count": len(origins)})
else:
    logger.info("app.cors.disabled")

install_error_handling(app)


@app.get(
    "/health",
    tags=["health"],
    response_model=HealthStatusResponse,
    summary="Health Check",
    description="Lightweight liveness probe endpoint.",
)
def health() -> HealthStatusResponse:
    """Lightweight liveness probe endpoint."""
    return HealthStatusResponse(ok=True)


@app.get(
    "/healthz",
    tags=["health"],
    response_model=HealthStatusResponse,
    summary="Health Alias Check",
    description="Alias liveness probe endpoint for platform compatibility.",
)
def healthz() -> HealthStatusResponse:
    """Alias liveness probe endpoint for platform compatibility."""
    return HealthStatusResponse(ok=True)


@app.get(
    "/readyz",
    tags=["health"],
    response_model=ReadinessResponse,
    summary="Readiness Check",
    description="Readiness probe that round-trips a trivial query to the database.",
    responses={
        status.HTTP_503_SERVICE_UNAVAILABLE: {
            "description": "Database is unreachable.",
            "content": {"application/json": {"example": {"ok": False, "database": False}}},
        },
    },
)
async def readyz(
    response: Response,
    session: AsyncSession = SESSION_DEP,
) -> ReadinessResponse:
    """Readiness probe: the app is ready once the database answers."""
    try:
        await session.exec(text("SELECT 1"))  # type: ignore[call-overload]
    except SQLAlchemyError:
        logger.exception("app.readiness.database_unavailable")
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return ReadinessResponse(ok=False, database=False)
    return ReadinessResponse(ok=True, database=True)


api_v1 = APIRouter(prefix="/api/v1")
api_v1.include_router(tasks_router)
api_v1.include_router(projects_router)
api_v1.include_router(goals_router)
app.include_router(api_v1)
