"""Task endpoints: CRUD, day view, completions, statistics and timers."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Query, status

from habit_tracker.api.deps import (
    DAY_RANGE_DEP,
    TASK_DEP,
    TASK_SERVICE_DEP,
    TIMEZONE_NAME_QUERY,
    TIMEZONE_OFFSET_QUERY,
)
from habit_tracker.models.tasks import Task
from habit_tracker.schemas.common import Envelope, OkResponse
from habit_tracker.schemas.tasks import (
    CompleteRequest,
    CompletionDayQuery,
    CompletionDayResponse,
    CompletionRangeQuery,
    CompletionRangeResponse,
    CompletionRead,
    DayRangeRead,
    ResetDayRead,
    ResetDayRequest,
    TaskCreate,
    TaskListResponse,
    TaskRead,
    TaskStatsRead,
    TaskStatsResponse,
    TaskUpdate,
    TaskView,
)
from habit_tracker.schemas.timers import TimerSnapshot
from habit_tracker.services.completions import TaskStatus
from habit_tracker.services.tasks import TaskService
from habit_tracker.services.timezones import (
    DayRange,
    parse_local_date,
    resolve_date_span,
    resolve_day_range,
)

router = APIRouter(prefix="/tasks", tags=["tasks"])

RANGE_REQUIRED_MESSAGE = "Both startDate and endDate are required"


def _new_task_view(task: Task) -> TaskView:
    return TaskView.from_status(
        TaskStatus(task=task, completed_today=task.completed, last_completed_at=None),
    )


async def _completions_for_day(service: TaskService, day_range: DayRange) -> CompletionDayResponse:
    records = await service.completions_for(day_range)
    return CompletionDayResponse(
        data=[CompletionRead.from_record(record) for record in records],
        date=day_range.local_date,
        range=DayRangeRead.from_range(day_range),
    )


async def _completions_for_span(
    service: TaskService,
    start_date: str | None,
    end_date: str | None,
    *,
    timezone_offset: int | None,
    timezone_name: str | None,
) -> CompletionRangeResponse:
    if not start_date or not end_date:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=RANGE_REQUIRED_MESSAGE)
    span = resolve_date_span(
        start_date,
        end_date,
        timezone_offset=timezone_offset,
        timezone_name=timezone_name,
    )
    records = await service.completions_for(span)
    return CompletionRangeResponse(
        data=[CompletionRead.from_record(record) for record in records],
        start_date=span.local_date,
        end_date=parse_local_date(end_date),
        range=DayRangeRead.from_range(span),
    )


@router.get("", response_model=TaskListResponse)
async def list_tasks(
    day_range: DayRange = DAY_RANGE_DEP,
    service: TaskService = TASK_SERVICE_DEP,
) -> TaskListResponse:
    """List tasks active today with their done state for the requested local day."""
    statuses = await service.list_with_today_status(day_range)
    return TaskListResponse(
        data=[TaskView.from_status(task_status) for task_status in statuses],
        date=day_range.local_date,
        range=DayRangeRead.from_range(day_range),
    )


@router.post("", response_model=Envelope[TaskView], status_code=status.HTTP_201_CREATED)
async def create_task(
    payload: TaskCreate,
    service: TaskService = TASK_SERVICE_DEP,
) -> Envelope[TaskView]:
    """Create a task; without a frequency it is a one-time task."""
    task = await service.create(payload)
    return Envelope[TaskView](data=_new_task_view(task), message="Task created successfully")


@router.get("/completions/today", response_model=CompletionDayResponse)
async def completions_today(
    day_range: DayRange = DAY_RANGE_DEP,
    service: TaskService = TASK_SERVICE_DEP,
) -> CompletionDayResponse:
    """Completion events recorded within one local day."""
    return await _completions_for_day(service, day_range)


@router.post("/completions/today", response_model=CompletionDayResponse)
async def completions_today_from_body(
    payload: CompletionDayQuery | None = None,
    service: TaskService = TASK_SERVICE_DEP,
) -> CompletionDayResponse:
    """Same as the GET variant, reading the day from a JSON body."""
    query = payload or CompletionDayQuery()
    day_range = resolve_day_range(query.date, query.timezone_offset, query.timezone)
    return await _completions_for_day(service, day_range)


@router.get("/completions/range", response_model=CompletionRangeResponse)
async def completions_range(
    start_date: str | None = Query(default=None, alias="startDate"),
    end_date: str | None = Query(default=None, alias="endDate"),
    timezone_offset: int | None = TIMEZONE_OFFSET_QUERY,
    timezone_name: str | None = TIMEZONE_NAME_QUERY,
    service: TaskService = TASK_SERVICE_DEP,
) -> CompletionRangeResponse:
    """Completion events from `startDate` through `endDate`, inclusive."""
    return await _completions_for_span(
        service,
        start_date,
        end_date,
        timezone_offset=timezone_offset,
        timezone_name=timezone_name,
    )


@router.post("/completions/range", response_model=CompletionRangeResponse)
async def completions_range_from_body(
    payload: CompletionRangeQuery,
    service: TaskService = TASK_SERVICE_DEP,
) -> CompletionRangeResponse:
    """Same as the GET variant, reading the range from a JSON body."""
    return await _completions_for_span(
        service,
        payload.start_date,
        payload.end_date,
        timezone_offset=payload.timezone_offset,
        timezone_name=payload.timezone,
    )


@router.post("/reset-day", response_model=Envelope[ResetDayRead])
async def reset_day(
    payload: ResetDayRequest | None = None,
    service: TaskService = TASK_SERVICE_DEP,
) -> Envelope[ResetDayRead]:
    """Remove every task's completions for one local day."""
    request = payload or ResetDayRequest()
    day_range = resolve_day_range(request.date, request.timezone_offset, request.timezone)
    reset_count = await service.reset_day(day_range)
    local_date = day_range.local_date.isoformat()
    return Envelope[ResetDayRead](
        data=ResetDayRead(reset_count=reset_count, date=day_range.local_date),
        message=f"All recurring tasks reset for {local_date}",
    )


@router.get("/{task_id}", response_model=Envelope[TaskRead])
async def get_task(task: Task = TASK_DEP) -> Envelope[TaskRead]:
    return Envelope[TaskRead](data=TaskRead.from_task(task))


@router.put("/{task_id}", response_model=Envelope[TaskRead])
async def update_task(
    payload: TaskUpdate,
    task: Task = TASK_DEP,
    service: TaskService = TASK_SERVICE_DEP,
) -> Envelope[TaskRead]:
    """Partially update a task; only fields present in the body change."""
    task = await service.update(task, payload)
    return Envelope[TaskRead](data=TaskRead.from_task(task), message="Task updated successfully")


@router.delete("/{task_id}", response_model=OkResponse)
async def delete_task(
    task: Task = TASK_DEP,
    service: TaskService = TASK_SERVICE_DEP,
) -> OkResponse:
    """Delete a task and its completion history."""
    await service.delete(task)
    return OkResponse(message="Task deleted successfully")


@router.post("/{task_id}/complete", response_model=Envelope[TaskView])
async def complete_task(
    payload: CompleteRequest | None = None,
    task: Task = TASK_DEP,
    service: TaskService = TASK_SERVICE_DEP,
) -> Envelope[TaskView]:
    """Mark a task complete, at `completedAt` or now."""
    request = payload or CompleteRequest()
    task_status = await service.complete(
        task,
        completed_at=request.completed_at,
        timezone_offset=request.timezone_offset,
        timezone_name=request.timezone,
    )
    return Envelope[TaskView](
        data=TaskView.from_status(task_status),
        message="Task marked as completed",
    )


@router.delete("/{task_id}/complete", response_model=OkResponse)
async def uncomplete_task(
    task: Task = TASK_DEP,
    day_range: DayRange = DAY_RANGE_DEP,
    service: TaskService = TASK_SERVICE_DEP,
) -> OkResponse:
    """Undo the completion for one local day (today by default)."""
    await service.uncomplete(task, day_range)
    return OkResponse(message="Task marked as incomplete")


@router.get("/{task_id}/stats", response_model=Envelope[TaskStatsResponse])
async def task_stats(
    days: int | None = Query(default=None, ge=1, le=3650),
    task: Task = TASK_DEP,
    service: TaskService = TASK_SERVICE_DEP,
) -> Envelope[TaskStatsResponse]:
    """Completion rate over the trailing `days` window plus the current streak."""
    stats = await service.stats(task, days)
    return Envelope[TaskStatsResponse](
        data=TaskStatsResponse(
            task=TaskRead.from_task(task),
            stats=TaskStatsRead.from_stats(stats),
        ),
    )


@router.post("/{task_id}/timer/start", response_model=Envelope[TaskRead])
async def start_timer(
    task: Task = TASK_DEP,
    service: TaskService = TASK_SERVICE_DEP,
) -> Envelope[TaskRead]:
    task = await service.start_timer(task)
    return Envelope[TaskRead](data=TaskRead.from_task(task), message="Timer started")


@router.post("/{task_id}/timer/pause", response_model=Envelope[TaskRead])
async def pause_timer(
    task: Task = TASK_DEP,
    service: TaskService = TASK_SERVICE_DEP,
) -> Envelope[TaskRead]:
    task = await service.pause_timer(task)
    return Envelope[TaskRead](data=TaskRead.from_task(task), message="Timer paused")


@router.post("/{task_id}/timer/stop", response_model=Envelope[TaskRead])
async def stop_timer(
    task: Task = TASK_DEP,
    service: TaskService = TASK_SERVICE_DEP,
) -> Envelope[TaskRead]:
    task = await service.stop_timer(task)
    return Envelope[TaskRead](data=TaskRead.from_task(task), message="Timer stopped")


@router.get("/{task_id}/timer/status", response_model=Envelope[TimerSnapshot])
async def timer_status(
    task: Task = TASK_DEP,
    service: TaskService = TASK_SERVICE_DEP,
) -> Envelope[TimerSnapshot]:
    """Poll the timer; an expired timer completes or resets the task here."""
    snapshot = await service.timer_status(task)
    return Envelope[TimerSnapshot](data=snapshot)

