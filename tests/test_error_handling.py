# ruff: noqa: INP001
"""Error envelope, request-id, and cache header behavior on the agent engine routes."""

from __future__ import annotations

from typing import Any
from uuid import uuid4

import pytest
from fastapi import APIRouter, FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from app.api import agent as agent_api
from app.api import calendar as calendar_api
from app.core import error_handling
from app.core.api_errors import ApiErrorCode, api_error
from app.core.error_handling import REQUEST_ID_HEADER, install_error_handling
from app.db.session import get_session
from app.models.agent_state import AgentState

AGENT_ID = "gideon"


async def _make_session_maker() -> tuple[AsyncEngine, async_sessionmaker[AsyncSession]]:
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with engine.connect() as conn, conn.begin():
        await conn.run_sync(SQLModel.metadata.create_all)
    maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with maker() as session:
        session.add(AgentState(agent_id=AGENT_ID))
        await session.commit()
    return engine, maker


def _build_test_app(session_maker: async_sessionmaker[AsyncSession]) -> FastAPI:
    app = FastAPI()
    install_error_handling(app)
    api_v1 = APIRouter(prefix="/api/v1")
    api_v1.include_router(agent_api.router)
    api_v1.include_router(calendar_api.router)
    app.include_router(api_v1)

    async def _override_get_session() -> AsyncSession:
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_session] = _override_get_session
    app.dependency_overrides[agent_api.AGENT_ID_DEP.dependency] = lambda: AGENT_ID
    return app


def _client(app: FastAPI, *, raise_app_exceptions: bool = True) -> AsyncClient:
    return AsyncClient(
        transport=ASGITransport(app=app, raise_app_exceptions=raise_app_exceptions),
        base_url="http://testserver",
    )


def _assert_request_id(resp: Any) -> str:
    body = resp.json()
    request_id = body.get("request_id")
    assert isinstance(request_id, str) and request_id
    assert resp.headers.get(REQUEST_ID_HEADER) == request_id
    return request_id


@pytest.mark.asyncio
async def test_missing_task_id_is_bad_request_with_request_id() -> None:
    engine, maker = await _make_session_maker()
    try:
        async with _client(_build_test_app(maker)) as client:
            resp = await client.post("/api/v1/agent/assign", json={"task_id": "   "})

        assert resp.status_code == 400
        assert resp.json()["detail"] == {
            "code": "bad_request",
            "message": "task_id is required",
        }
        assert resp.headers.get("cache-control") == "no-store"
        _assert_request_id(resp)
    finally:
        await engine.dispose()


@pytest.mark.asyncio
async def test_unknown_task_is_not_found_and_keeps_caller_request_id() -> None:
    engine, maker = await _make_session_maker()
    try:
        async with _client(_build_test_app(maker)) as client:
            resp = await client.post(
                "/api/v1/agent/complete",
                json={"task_id": str(uuid4())},
                headers={REQUEST_ID_HEADER: "  scheduler-run-42  "},
            )

        assert resp.status_code == 404
        assert resp.json()["detail"]["code"] == "not_found"
        assert resp.json()["detail"]["message"] == "Task not found"
        assert _assert_request_id(resp) == "scheduler-run-42"
    finally:
        await engine.dispose()


@pytest.mark.asyncio
async def test_store_failure_during_pickup_is_internal_error(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    engine, maker = await _make_session_maker()

    async def _unreachable_store(*args: object, **kwargs: object) -> None:
        raise OperationalError("SELECT", {}, Exception("database is down"))

    monkeypatch.setattr(agent_api, "pickup_next_task", _unreachable_store)
    try:
        async with _client(_build_test_app(maker)) as client:
            resp = await client.get("/api/v1/agent/pickup")

        assert resp.status_code == 500
        assert resp.json()["detail"] == {
            "code": "internal_error",
            "message": "Failed to pick up a task",
        }
        assert resp.headers.get("cache-control") == "no-store"
        _assert_request_id(resp)
    finally:
        await engine.dispose()


@pytest.mark.asyncio
async def test_malformed_json_body_is_validation_error() -> None:
    engine, maker = await _make_session_maker()
    try:
        async with _client(_build_test_app(maker)) as client:
            resp = await client.post(
                "/api/v1/agent/assign",
                content=b"{not json",
                headers={"content-type": "application/json"},
            )

        assert resp.status_code == 422
        assert isinstance(resp.json()["detail"], list)
        _assert_request_id(resp)
    finally:
        await engine.dispose()


@pytest.mark.asyncio
async def test_out_of_range_autonomy_update_is_validation_error() -> None:
    engine, maker = await _make_session_maker()
    try:
        async with _client(_build_test_app(maker)) as client:
            resp = await client.patch(
                "/api/v1/agent/state",
                json={"max_concurrent_tasks": 0},
            )

        assert resp.status_code == 422
        errors = resp.json()["detail"]
        assert any("max_concurrent_tasks" in error["loc"] for error in errors)
        _assert_request_id(resp)
    finally:
        await engine.dispose()


@pytest.mark.asyncio
async def test_unexpected_calendar_failure_hides_internals(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    engine, maker = await _make_session_maker()

    def _broken_engine(*args: object, **kwargs: object) -> list[object]:
        raise RuntimeError("zoneinfo database missing")

    monkeypatch.setattr(calendar_api, "generate_recommendations", _broken_engine)
    try:
        app = _build_test_app(maker)
        async with _client(app, raise_app_exceptions=False) as client:
            resp = await client.get("/api/v1/calendar/recommendations")

        assert resp.status_code == 500
        assert resp.json()["detail"] == "Internal Server Error"
        assert "zoneinfo" not in resp.text
        _assert_request_id(resp)
    finally:
        await engine.dispose()


@pytest.mark.asyncio
async def test_slow_calendar_summary_logs_warning(monkeypatch: pytest.MonkeyPatch) -> None:
    engine, maker = await _make_session_maker()
    slow_events: list[dict[str, object]] = []

    def _capture_warning(message: str, *args: object, **kwargs: object) -> None:
        extra = kwargs.get("extra")
        if message == "http.request.slow" and isinstance(extra, dict):
            slow_events.append(extra)

    ticks = iter((50.0, 52.5))
    monkeypatch.setattr(error_handling, "perf_counter", lambda: next(ticks))
    monkeypatch.setattr(error_handling.settings, "request_log_slow_ms", 500)
    monkeypatch.setattr(error_handling.logger, "warning", _capture_warning)
    try:
        async with _client(_build_test_app(maker)) as client:
            resp = await client.get("/api/v1/calendar/summary")

        assert resp.status_code == 200
        assert len(slow_events) == 1
        assert slow_events[0]["path"] == "/api/v1/calendar/summary"
        assert slow_events[0]["slow_threshold_ms"] == 500
        assert slow_events[0]["duration_ms"] == 2500.0
    finally:
        await engine.dispose()


def test_api_error_maps_codes_to_statuses_and_carries_details() -> None:
    not_found = api_error(ApiErrorCode.NOT_FOUND, "Agent state not found")
    assert not_found.status_code == 404
    assert not_found.detail == {"code": "not_found", "message": "Agent state not found"}

    failed = api_error(
        ApiErrorCode.INTERNAL_ERROR,
        "Failed to assign task",
        details="connection reset",
    )
    assert failed.status_code == 500
    assert failed.detail["details"] == "connection reset"
    assert failed.headers == {"Cache-Control": "no-store"}
