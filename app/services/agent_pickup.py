"""Select the next task for the agent under its autonomy gates."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import func, or_
from sqlmodel import col, select

from app.core.api_errors import ApiErrorCode, api_error
from app.core.logging import get_logger
from app.core.task_states import TaskColumn, priority_rank
from app.core.time import as_utc, utcnow
from app.models.tasks import Task
from app.services.agent_state import get_agent_state

if TYPE_CHECKING:
    from sqlmodel.ext.asyncio.session import AsyncSession

logger = get_logger(__name__)


class PickupReason(str, Enum):
    """Why pickup returned no task."""

    AUTO_PICKUP_DISABLED = "auto_pickup_disabled"
    MAX_CONCURRENT_REACHED = "max_concurrent_reached"
    NO_ELIGIBLE_TASKS = "no_eligible_tasks"


@dataclass(frozen=True)
class PickupDecision:
    task: Task | None
    reason: PickupReason | None = None
    in_progress: int | None = None


def is_due_urgent(task: Task, *, urgency_window: timedelta, now: datetime) -> bool:
    """True when the task is due within the window; past-due counts as urgent."""
    if task.due_date is None:
        return False
    return as_utc(task.due_date) - as_utc(now) <= urgency_window


def pickup_sort_key(
    task: Task,
    *,
    urgency_window: timedelta,
    now: datetime,
) -> tuple[int, float, int, float]:
    """Urgent-by-due-date first, then earlier due, then priority, then age."""
    urgent = is_due_urgent(task, urgency_window=urgency_window, now=now)
    due_order = as_utc(task.due_date).timestamp() if urgent and task.due_date else 0.0
    return (
        0 if urgent else 1,
        due_order,
        priority_rank(task.priority),
        as_utc(task.created_at).timestamp(),
    )


def select_next_task(
    tasks: Sequence[Task],
    *,
    urgency_hours: int,
    now: datetime,
) -> Task | None:
    """Pure ordering step of pickup; ties keep input order."""
    if not tasks:
        return None
    window = timedelta(hours=urgency_hours)
    return min(tasks, key=lambda task: pickup_sort_key(task, urgency_window=window, now=now))


async def count_in_progress(session: AsyncSession, *, agent_id: str) -> int:
    statement = (
        select(func.count())
        .select_from(Task)
        .where(col(Task.column_status) == TaskColumn.IN_PROGRESS.value)
        .where(col(Task.assignee) == agent_id)
    )
    return int((await session.exec(statement)).one())


async def eligible_tasks(session: AsyncSession, *, agent_id: str) -> list[Task]:
    """Todo tasks that are unassigned or already assigned to this agent."""
    return await (
        Task.objects.filter(
            col(Task.column_status) == TaskColumn.TODO.value,
            or_(col(Task.assignee).is_(None), col(Task.assignee) == agent_id),
        )
        .order_by(col(Task.created_at).asc())
        .all(session)
    )


async def pickup_next_task(
    session: AsyncSession,
    *,
    agent_id: str,
    now: datetime | None = None,
) -> PickupDecision:
    """Decide what the agent should work on next. Read only."""
    state = await get_agent_state(session, agent_id=agent_id)
    if state is None:
        raise api_error(ApiErrorCode.INTERNAL_ERROR, "Failed to fetch agent state")

    if not state.auto_pickup_enabled:
        return PickupDecision(task=None, reason=PickupReason.AUTO_PICKUP_DISABLED)

    in_progress = await count_in_progress(session, agent_id=agent_id)
    if in_progress >= state.max_concurrent_tasks:
        return PickupDecision(
            task=None,
            reason=PickupReason.MAX_CONCURRENT_REACHED,
            in_progress=in_progress,
        )

    candidates = await eligible_tasks(session, agent_id=agent_id)
    task = select_next_task(
        candidates,
        urgency_hours=state.due_date_urgency_hours,
        now=now or utcnow(),
    )
    if task is None:
        return PickupDecision(task=None, reason=PickupReason.NO_ELIGIBLE_TASKS)

    logger.info(
        "agent.pickup.selected",
        extra={"agent_id": agent_id, "task_id": str(task.id), "candidates": len(candidates)},
    )
    return PickupDecision(task=task)
