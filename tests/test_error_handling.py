# ruff: noqa: INP001
"""Error envelopes, request ids and request logging on the task API."""

from __future__ import annotations

from collections.abc import AsyncIterator
from itertools import count
from uuid import uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient, Response
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from habit_tracker.core import error_handling
from habit_tracker.core.error_handling import (
    REQUEST_ID_HEADER,
    _error_payload,
    _json_safe,
    _validation_message,
)
from habit_tracker.db.session import get_session
from habit_tracker.main import app
from habit_tracker.services.timezones import INVALID_DATE_MESSAGE


async def _make_session_maker() -> async_sessionmaker[AsyncSession]:
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with engine.connect() as conn, conn.begin():
        await conn.run_sync(SQLModel.metadata.create_all)
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def client() -> AsyncIterator[AsyncClient]:
    session_maker = await _make_session_maker()

    async def _override_get_session() -> AsyncIterator[AsyncSession]:
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_session] = _override_get_session
    try:
        async with AsyncClient(
            transport=ASGITransport(app=app, raise_app_exceptions=False),
            base_url="http://testserver",
        ) as http:
            yield http
    finally:
        app.dependency_overrides.clear()


def _assert_request_id_echoed(response: Response) -> None:
    body = response.json()
    assert isinstance(body.get("request_id"), str)
    assert body["request_id"]
    assert response.headers.get(REQUEST_ID_HEADER) == body["request_id"]


@pytest.mark.asyncio
async def test_malformed_date_is_400_envelope(client: AsyncClient) -> None:
    response = await client.get("/api/v1/tasks", params={"date": "2024-13-01"})

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["error"] == INVALID_DATE_MESSAGE
    assert body["message"] == INVALID_DATE_MESSAGE
    assert body["detail"] == INVALID_DATE_MESSAGE
    _assert_request_id_echoed(response)


@pytest.mark.asyncio
async def test_last_calendar_day_is_400_not_500(client: AsyncClient) -> None:
    response = await client.get("/api/v1/tasks", params={"date": "9999-12-31"})

    assert response.status_code == 400
    assert response.json()["message"] == INVALID_DATE_MESSAGE


@pytest.mark.asyncio
async def test_unknown_task_is_404_envelope(client: AsyncClient) -> None:
    response = await client.get(f"/api/v1/tasks/{uuid4()}")

    assert response.status_code == 404
    body = response.json()
    assert body["success"] is False
    assert body["error"] == "Task not found"
    assert body["message"] == "Task not found"
    _assert_request_id_echoed(response)


@pytest.mark.asyncio
async def test_timer_start_without_duration_is_400_envelope(client: AsyncClient) -> None:
    created = await client.post("/api/v1/tasks", json={"text": "Stretch"})
    task_id = created.json()["data"]["id"]

    response = await client.post(f"/api/v1/tasks/{task_id}/timer/start")

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["message"] == "Task has no duration set"
    _assert_request_id_echoed(response)


@pytest.mark.asyncio
async def test_body_validation_is_400_with_field_location(client: AsyncClient) -> None:
    response = await client.post("/api/v1/tasks", json={"text": "Read", "durationSeconds": 0})

    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "Validation error"
    assert body["message"].startswith("durationSeconds:")
    assert isinstance(body["detail"], list)
    _assert_request_id_echoed(response)


@pytest.mark.asyncio
async def test_non_json_body_is_400_not_500(client: AsyncClient) -> None:
    response = await client.post(
        "/api/v1/tasks",
        content=b"plain-text-body",
        headers={"content-type": "application/json"},
    )

    assert response.status_code == 400
    assert isinstance(response.json()["detail"], list)
    _assert_request_id_echoed(response)


@pytest.mark.asyncio
async def test_successful_route_echoes_generated_request_id(client: AsyncClient) -> None:
    response = await client.get("/api/v1/tasks")

    assert response.status_code == 200
    assert response.headers.get(REQUEST_ID_HEADER)


@pytest.mark.asyncio
async def test_client_provided_request_id_is_trimmed_and_preserved(client: AsyncClient) -> None:
    response = await client.get(
        f"/api/v1/tasks/{uuid4()}",
        headers={REQUEST_ID_HEADER: "  req-123  "},
    )

    assert response.status_code == 404
    assert response.json()["request_id"] == "req-123"
    assert response.headers.get(REQUEST_ID_HEADER) == "req-123"


@pytest.mark.asyncio
async def test_unhandled_failure_is_500_envelope() -> None:
    async def _broken_session() -> AsyncSession:
        msg = "database exploded"
        raise RuntimeError(msg)

    app.dependency_overrides[get_session] = _broken_session
    try:
        async with AsyncClient(
            transport=ASGITransport(app=app, raise_app_exceptions=False),
            base_url="http://testserver",
        ) as http:
            response = await http.get("/api/v1/tasks")
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 500
    body = response.json()
    assert body["success"] is False
    assert body["detail"] == "Internal Server Error"
    _assert_request_id_echoed(response)


@pytest.mark.asyncio
async def test_slow_request_logs_warning(
    client: AsyncClient,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    warnings: list[tuple[str, dict[str, object]]] = []

    def _fake_warning(message: str, *args: object, **kwargs: object) -> None:
        _ = args
        extra = kwargs.get("extra")
        warnings.append((message, extra if isinstance(extra, dict) else {}))

    ticks = count(start=100.0, step=0.5)
    monkeypatch.setattr(error_handling.settings, "request_log_slow_ms", 1)
    monkeypatch.setattr(error_handling, "perf_counter", lambda: next(ticks))
    monkeypatch.setattr(error_handling.logger, "warning", _fake_warning)

    response = await client.get("/api/v1/tasks")

    assert response.status_code == 200
    assert any(
        message == "http.request.slow"
        and extra.get("path") == "/api/v1/tasks"
        and extra.get("slow_threshold_ms") == 1
        for message, extra in warnings
    )


@pytest.mark.asyncio
async def test_health_requests_skip_logging_when_disabled(
    client: AsyncClient,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    logged: list[str] = []
    monkeypatch.setattr(error_handling.settings, "request_log_include_health", False)
    monkeypatch.setattr(
        error_handling.logger,
        "info",
        lambda message, *args, **kwargs: logged.append(message),
    )

    health = await client.get("/healthz")
    tasks = await client.get("/api/v1/tasks")

    assert health.status_code == 200
    assert tasks.status_code == 200
    assert health.headers.get(REQUEST_ID_HEADER)
    assert logged == ["http.request.complete"]


def test_error_payload_omits_request_id_when_none() -> None:
    assert _error_payload(detail="Task not found", request_id=None) == {
        "success": False,
        "error": "Task not found",
        "message": "Task not found",
        "detail": "Task not found",
    }


def test_error_payload_prefers_explicit_error_and_message() -> None:
    payload = _error_payload(
        detail=[{"loc": ["query", "timezoneOffset"]}],
        request_id="req-1",
        error="Validation error",
        message="timezoneOffset: bad",
    )

    assert payload == {
        "success": False,
        "error": "Validation error",
        "message": "timezoneOffset: bad",
        "detail": [{"loc": ["query", "timezoneOffset"]}],
        "request_id": "req-1",
    }


def test_validation_message_strips_body_prefix() -> None:
    errors: list[object] = [{"loc": ["body", "text"], "msg": "Field required"}]

    assert _validation_message(errors) == "text: Field required"
    assert _validation_message([]) == "Request validation failed."


def test_json_safe_covers_bytes_and_fallback_str() -> None:
    assert _json_safe(b"\xff") == "\ufffd"
    assert _json_safe(bytearray(b"\xff")) == "\ufffd"
    assert _json_safe({"ctx": (1, memoryview(b"ok"))}) == {"ctx": [1, "ok"]}

    class Weird:
        def __str__(self) -> str:
            return "weird"

    assert _json_safe(Weird()) == "weird"
