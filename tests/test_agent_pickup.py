# ruff: noqa: INP001
"""Pickup selector ordering and autonomy gate tests."""

from __future__ import annotations

from datetime import datetime, timedelta

import pytest
from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from app.models.agent_state import AgentState
from app.models.tasks import Task
from app.services.agent_pickup import PickupReason, pickup_next_task, select_next_task

AGENT_ID = "gideon"
NOW = datetime(2026, 2, 10, 9, 0)


def _task(
    title: str,
    *,
    priority: str | None = None,
    due: datetime | None = None,
    created: datetime = datetime(2026, 2, 1),
    column_status: str = "todo",
    assignee: str | None = None,
) -> Task:
    return Task(
        title=title,
        priority=priority,
        due_date=due,
        created_at=created,
        column_status=column_status,
        assignee=assignee,
    )


def test_due_date_urgency_beats_priority() -> None:
    a = _task("A", priority="urgent", created=datetime(2026, 2, 1))
    b = _task("B", priority="low", due=NOW + timedelta(hours=24), created=datetime(2026, 2, 2))

    assert select_next_task([a, b], urgency_hours=48, now=NOW) is b


def test_due_date_outside_window_falls_back_to_priority() -> None:
    a = _task("A", priority="urgent")
    b = _task("B", priority="low", due=NOW + timedelta(hours=72))

    assert select_next_task([b, a], urgency_hours=48, now=NOW) is a


def test_highest_priority_wins_without_due_dates() -> None:
    low = _task("low", priority="low")
    high = _task("high", priority="high")
    urgent = _task("urgent", priority="urgent")

    assert select_next_task([low, high, urgent], urgency_hours=48, now=NOW) is urgent


def test_older_task_wins_for_equal_priority() -> None:
    newer = _task("newer", priority="medium", created=datetime(2026, 2, 3))
    older = _task("older", priority="medium", created=datetime(2026, 2, 1))

    assert select_next_task([newer, older], urgency_hours=48, now=NOW) is older


def test_earlier_due_wins_among_urgent_and_past_due_counts() -> None:
    past_due = _task("past", priority="low", due=NOW - timedelta(days=3))
    soon = _task("soon", priority="urgent", due=NOW + timedelta(hours=2))

    assert select_next_task([soon, past_due], urgency_hours=48, now=NOW) is past_due


def test_missing_priority_sorts_as_low() -> None:
    unset = _task("unset", priority=None, created=datetime(2026, 1, 1))
    medium = _task("medium", priority="medium", created=datetime(2026, 2, 5))
    low = _task("low", priority="low", created=datetime(2026, 1, 15))

    assert select_next_task([unset, low, medium], urgency_hours=48, now=NOW) is medium
    assert select_next_task([low, unset], urgency_hours=48, now=NOW) is unset


def test_empty_candidates_select_nothing() -> None:
    assert select_next_task([], urgency_hours=48, now=NOW) is None


async def _make_engine() -> AsyncEngine:
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with engine.connect() as conn, conn.begin():
        await conn.run_sync(SQLModel.metadata.create_all)
    return engine


async def _session_maker() -> tuple[AsyncEngine, async_sessionmaker[AsyncSession]]:
    engine = await _make_engine()
    return engine, async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.mark.asyncio
async def test_disabled_auto_pickup_short_circuits() -> None:
    engine, maker = await _session_maker()
    try:
        async with maker() as session:
            session.add(AgentState(agent_id=AGENT_ID, auto_pickup_enabled=False))
            session.add(_task("ready", priority="urgent"))
            await session.commit()

            decision = await pickup_next_task(session, agent_id=AGENT_ID, now=NOW)

        assert decision.task is None
        assert decision.reason is PickupReason.AUTO_PICKUP_DISABLED
        assert decision.in_progress is None
    finally:
        await engine.dispose()


@pytest.mark.asyncio
async def test_max_concurrent_reached_reports_count() -> None:
    engine, maker = await _session_maker()
    try:
        async with maker() as session:
            session.add(AgentState(agent_id=AGENT_ID, max_concurrent_tasks=1))
            session.add(_task("busy", column_status="in-progress", assignee=AGENT_ID))
            session.add(_task("other agent", column_status="in-progress", assignee="someone"))
            session.add(_task("ready", priority="high"))
            await session.commit()

            decision = await pickup_next_task(session, agent_id=AGENT_ID, now=NOW)

        assert decision.task is None
        assert decision.reason is PickupReason.MAX_CONCURRENT_REACHED
        assert decision.in_progress == 1
    finally:
        await engine.dispose()


@pytest.mark.asyncio
async def test_eligible_set_is_todo_unassigned_or_owned() -> None:
    engine, maker = await _session_maker()
    try:
        async with maker() as session:
            session.add(AgentState(agent_id=AGENT_ID, max_concurrent_tasks=2))
            session.add(_task("backlog", priority="urgent", column_status="backlog"))
            session.add(_task("review", priority="urgent", column_status="review"))
            session.add(_task("someone else's", priority="urgent", assignee="someone"))
            owned = _task("owned", priority="medium", assignee=AGENT_ID)
            session.add(owned)
            session.add(_task("unassigned", priority="low"))
            await session.commit()

            decision = await pickup_next_task(session, agent_id=AGENT_ID, now=NOW)

        assert decision.task is not None
        assert decision.task.id == owned.id
        assert decision.reason is None
    finally:
        await engine.dispose()


@pytest.mark.asyncio
async def test_no_eligible_tasks_reason() -> None:
    engine, maker = await _session_maker()
    try:
        async with maker() as session:
            session.add(AgentState(agent_id=AGENT_ID))
            session.add(_task("finished", column_status="done"))
            await session.commit()

            decision = await pickup_next_task(session, agent_id=AGENT_ID, now=NOW)

        assert decision.task is None
        assert decision.reason is PickupReason.NO_ELIGIBLE_TASKS
    finally:
        await engine.dispose()


@pytest.mark.asyncio
async def test_missing_agent_state_is_internal_error() -> None:
    engine, maker = await _session_maker()
    try:
        async with maker() as session:
            with pytest.raises(HTTPException) as exc_info:
                await pickup_next_task(session, agent_id=AGENT_ID, now=NOW)

        assert exc_info.value.status_code == 500
        assert exc_info.value.detail == {
            "code": "internal_error",
            "message": "Failed to fetch agent state",
        }
    finally:
        await engine.dispose()
