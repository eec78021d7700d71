"""Assign and complete transitions for agent-owned tasks.

Each transition is a two-step saga: the task update and its activity entry are
committed together first, then the agent status mirror is updated as a
best-effort follow-up that is logged but never fails the call.
"""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError

from app.core.api_errors import ApiErrorCode, api_error
from app.core.logging import get_logger
from app.core.task_states import AgentStatus, TaskColumn
from app.core.time import utcnow
from app.models.tasks import Task
from app.services.activity_log import ENTITY_TASK, field_change, record_activity
from app.services.agent_pickup import count_in_progress
from app.services.agent_state import set_agent_status

if TYPE_CHECKING:
    from sqlmodel.ext.asyncio.session import AsyncSession

logger = get_logger(__name__)

ACTION_TASK_ASSIGNED = "task_assigned"
ACTION_TASK_COMPLETED = "task_completed"


async def _get_task_or_404(session: AsyncSession, task_id: str) -> Task:
    try:
        parsed = UUID(task_id)
    except ValueError:
        raise api_error(ApiErrorCode.NOT_FOUND, "Task not found") from None
    task = await Task.objects.by_id(parsed).first(session)
    if task is None:
        raise api_error(ApiErrorCode.NOT_FOUND, "Task not found")
    return task


async def _commit_transition(session: AsyncSession, task: Task) -> None:
    await session.commit()
    await session.refresh(task)
    # Detach so a rollback in the advisory status write cannot expire the row.
    session.expunge(task)


async def assign_task(session: AsyncSession, *, task_id: str, agent_id: str) -> Task:
    """Move a task to in-progress under `agent_id`, then mark the agent active."""
    task = await _get_task_or_404(session, task_id)
    old_column = task.column_status
    old_assignee = task.assignee

    task.column_status = TaskColumn.IN_PROGRESS.value
    task.assignee = agent_id
    task.updated_at = utcnow()
    session.add(task)
    await record_activity(
        session,
        actor=agent_id,
        action=ACTION_TASK_ASSIGNED,
        entity_type=ENTITY_TASK,
        entity_id=str(task.id),
        changes={
            "assignee": field_change(old_assignee, agent_id),
            "column": field_change(old_column, TaskColumn.IN_PROGRESS.value),
        },
        metadata={"title": task.title},
        commit=False,
    )
    await _commit_transition(session, task)
    logger.info(
        "agent.task.assigned",
        extra={"agent_id": agent_id, "task_id": str(task.id), "from_column": old_column},
    )

    await set_agent_status(session, agent_id=agent_id, status=AgentStatus.ACTIVE)
    return task


async def _status_after_completion(session: AsyncSession, *, agent_id: str) -> AgentStatus:
    try:
        remaining = await count_in_progress(session, agent_id=agent_id)
    except SQLAlchemyError:
        logger.warning(
            "agent.task.remaining_count_failed",
            extra={"agent_id": agent_id},
            exc_info=True,
        )
        await session.rollback()
        return AgentStatus.IDLE
    return AgentStatus.ACTIVE if remaining else AgentStatus.IDLE


async def complete_task(session: AsyncSession, *, task_id: str, agent_id: str) -> Task:
    """Move a task to done, then set the agent idle unless it still owns work."""
    task = await _get_task_or_404(session, task_id)
    old_column = task.column_status

    task.column_status = TaskColumn.DONE.value
    task.updated_at = utcnow()
    session.add(task)
    await record_activity(
        session,
        actor=agent_id,
        action=ACTION_TASK_COMPLETED,
        entity_type=ENTITY_TASK,
        entity_id=str(task.id),
        changes={"column": field_change(old_column, TaskColumn.DONE.value)},
        metadata={"title": task.title},
        commit=False,
    )
    await _commit_transition(session, task)
    logger.info(
        "agent.task.completed",
        extra={"agent_id": agent_id, "task_id": str(task.id), "from_column": old_column},
    )

    status = await _status_after_completion(session, agent_id=agent_id)
    await set_agent_status(session, agent_id=agent_id, status=status)
    return task
