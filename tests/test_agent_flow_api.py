# ruff: noqa: INP001
"""End-to-end API tests for the pickup -> assign -> complete loop."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any

import pytest
from fastapi import APIRouter, FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from app.api import agent as agent_api
from app.api.agent import router as agent_router
from app.core.error_handling import REQUEST_ID_HEADER, install_error_handling
from app.core.time import utcnow
from app.db.session import get_session
from app.models.agent_state import AgentState
from app.models.tasks import Task

AGENT_ID = "gideon"


async def _make_engine() -> AsyncEngine:
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with engine.connect() as conn, conn.begin():
        await conn.run_sync(SQLModel.metadata.create_all)
    return engine


def _build_test_app(session_maker: async_sessionmaker[AsyncSession]) -> FastAPI:
    app = FastAPI()
    install_error_handling(app)
    api_v1 = APIRouter(prefix="/api/v1")
    api_v1.include_router(agent_router)
    app.include_router(api_v1)

    async def _override_get_session() -> AsyncSession:
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_session] = _override_get_session
    return app


async def _seed_two_tasks(session: AsyncSession) -> tuple[Task, Task]:
    session.add(AgentState(agent_id=AGENT_ID, max_concurrent_tasks=1))
    task_1 = Task(
        title="task-1",
        column_status="todo",
        priority="high",
        created_at=datetime(2026, 2, 1, 9, 0),
    )
    task_2 = Task(
        title="task-2",
        column_status="todo",
        priority="medium",
        created_at=datetime(2026, 2, 1, 10, 0),
    )
    session.add(task_1)
    session.add(task_2)
    await session.commit()
    return task_1, task_2


def _client(app: FastAPI) -> AsyncClient:
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver")


@pytest.mark.asyncio
async def test_pickup_assign_complete_loop() -> None:
    engine = await _make_engine()
    maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with maker() as session:
        task_1, task_2 = await _seed_two_tasks(session)
    app = _build_test_app(maker)

    try:
        async with _client(app) as client:
            pickup = await client.get("/api/v1/agent/pickup")
            assert pickup.status_code == 200
            assert pickup.headers.get("cache-control") == "no-store"
            assert set(pickup.json()) == {"task"}
            assert pickup.json()["task"]["id"] == str(task_1.id)

            assigned = await client.post(
                "/api/v1/agent/assign",
                json={"task_id": str(task_1.id)},
            )
            assert assigned.status_code == 200
            assert assigned.json()["ok"] is True
            assert assigned.json()["task"]["column_status"] == "in-progress"
            assert assigned.json()["task"]["assignee"] == AGENT_ID
            assert (await client.get("/api/v1/agent/state")).json()["status"] == "active"

            busy = await client.get("/api/v1/agent/pickup")
            assert busy.json() == {
                "task": None,
                "reason": "max_concurrent_reached",
                "in_progress": 1,
            }

            completed = await client.post(
                "/api/v1/agent/complete",
                json={"task_id": str(task_1.id)},
            )
            assert completed.status_code == 200
            assert completed.json()["task"]["column_status"] == "done"
            assert (await client.get("/api/v1/agent/state")).json()["status"] == "idle"

            next_pickup = await client.get("/api/v1/agent/pickup")
            assert next_pickup.json()["task"]["id"] == str(task_2.id)

            await client.post("/api/v1/agent/assign", json={"task_id": str(task_2.id)})
            await client.post("/api/v1/agent/complete", json={"task_id": str(task_2.id)})

            drained = await client.get("/api/v1/agent/pickup")
            assert drained.json() == {"task": None, "reason": "no_eligible_tasks"}
    finally:
        await engine.dispose()


@pytest.mark.asyncio
async def test_pickup_disabled_reason() -> None:
    engine = await _make_engine()
    maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with maker() as session:
        session.add(AgentState(agent_id=AGENT_ID, auto_pickup_enabled=False))
        session.add(Task(title="waiting", column_status="todo", priority="urgent"))
        await session.commit()
    app = _build_test_app(maker)

    try:
        async with _client(app) as client:
            response = await client.get("/api/v1/agent/pickup")
        assert response.json() == {"task": None, "reason": "auto_pickup_disabled"}
    finally:
        await engine.dispose()


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [None, {}, {"task_id": ""}, {"task_id": "   "}])
async def test_assign_requires_task_id(body: dict[str, Any] | None) -> None:
    engine = await _make_engine()
    maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    app = _build_test_app(maker)

    try:
        async with _client(app) as client:
            if body is None:
                response = await client.post("/api/v1/agent/assign")
            else:
                response = await client.post("/api/v1/agent/assign", json=body)

        assert response.status_code == 400
        payload = response.json()
        assert payload["detail"] == {"code": "bad_request", "message": "task_id is required"}
        assert payload["request_id"] == response.headers.get(REQUEST_ID_HEADER)
        assert response.headers.get("cache-control") == "no-store"
    finally:
        await engine.dispose()


@pytest.mark.asyncio
async def test_complete_unknown_task_is_not_found() -> None:
    engine = await _make_engine()
    maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    app = _build_test_app(maker)

    try:
        async with _client(app) as client:
            response = await client.post(
                "/api/v1/agent/complete",
                json={"task_id": "aaaaaaaa-aaaa-aaaa-aaaa-aaaaaaaaaaaa"},
            )

        assert response.status_code == 404
        assert response.json()["detail"]["code"] == "not_found"
    finally:
        await engine.dispose()


@pytest.mark.asyncio
async def test_malformed_json_is_rejected() -> None:
    engine = await _make_engine()
    maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    app = _build_test_app(maker)

    try:
        async with _client(app) as client:
            response = await client.post(
                "/api/v1/agent/assign",
                content=b"{not json",
                headers={"content-type": "application/json"},
            )

        assert response.status_code == 422
        assert isinstance(response.json().get("request_id"), str)
    finally:
        await engine.dispose()


@pytest.mark.asyncio
async def test_store_failure_maps_to_internal_error(monkeypatch: pytest.MonkeyPatch) -> None:
    engine = await _make_engine()
    maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    app = _build_test_app(maker)

    async def _broken_pickup(*args: Any, **kwargs: Any) -> None:
        raise OperationalError("SELECT", {}, Exception("server closed the connection"))

    monkeypatch.setattr(agent_api, "pickup_next_task", _broken_pickup)

    try:
        async with _client(app) as client:
            response = await client.get("/api/v1/agent/pickup")

        assert response.status_code == 500
        assert response.json()["detail"] == {
            "code": "internal_error",
            "message": "Failed to pick up a task",
        }
    finally:
        await engine.dispose()


@pytest.mark.asyncio
async def test_missing_agent_state_on_pickup_is_internal_error() -> None:
    engine = await _make_engine()
    maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    app = _build_test_app(maker)

    try:
        async with _client(app) as client:
            pickup = await client.get("/api/v1/agent/pickup")
            state = await client.get("/api/v1/agent/state")

        assert pickup.status_code == 500
        assert pickup.json()["detail"]["code"] == "internal_error"
        assert state.status_code == 404
        assert state.json()["detail"]["code"] == "not_found"
    finally:
        await engine.dispose()


@pytest.mark.asyncio
async def test_patch_state_updates_autonomy_config() -> None:
    engine = await _make_engine()
    maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with maker() as session:
        session.add(AgentState(agent_id=AGENT_ID))
        await session.commit()
    app = _build_test_app(maker)

    try:
        async with _client(app) as client:
            updated = await client.patch(
                "/api/v1/agent/state",
                json={"auto_pickup_enabled": False, "max_concurrent_tasks": 3},
            )
            rejected = await client.patch(
                "/api/v1/agent/state",
                json={"max_concurrent_tasks": 0},
            )
            out_of_range = await client.patch(
                "/api/v1/agent/state",
                json={"nightly_start_hour": 24},
            )

        assert updated.status_code == 200
        body = updated.json()
        assert body["auto_pickup_enabled"] is False
        assert body["max_concurrent_tasks"] == 3
        assert body["due_date_urgency_hours"] == 48
        assert rejected.status_code == 422
        assert out_of_range.status_code == 422
    finally:
        await engine.dispose()


@pytest.mark.asyncio
async def test_due_soon_low_priority_task_is_picked_before_urgent_undated() -> None:
    engine = await _make_engine()
    maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with maker() as session:
        session.add(AgentState(agent_id=AGENT_ID, due_date_urgency_hours=48))
        session.add(
            Task(
                title="A",
                column_status="todo",
                priority="urgent",
                created_at=datetime(2026, 2, 1),
            ),
        )
        due_soon = Task(
            title="B",
            column_status="todo",
            priority="low",
            due_date=utcnow() + timedelta(hours=24),
            created_at=datetime(2026, 2, 2),
        )
        session.add(due_soon)
        await session.commit()
    app = _build_test_app(maker)

    try:
        async with _client(app) as client:
            response = await client.get("/api/v1/agent/pickup")
        assert response.json()["task"]["id"] == str(due_soon.id)
    finally:
        await engine.dispose()
