"""Agent API routes: task pickup, assign/complete transitions, and agent state."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING

from fastapi import APIRouter, Body, Depends, Response, status
from sqlalchemy.exc import SQLAlchemyError

from app.api.deps import AGENT_ID_DEP, SESSION_DEP, get_agent_state_or_404
from app.core.api_errors import ApiErrorCode, api_error
from app.core.logging import get_logger
from app.schemas.agent import (
    AgentAutonomyUpdate,
    AgentStateRead,
    PickupResponse,
    TaskActionRequest,
    TaskActionResponse,
)
from app.schemas.errors import ApiErrorResponse
from app.schemas.tasks import TaskRead
from app.services.agent_pickup import PickupDecision, pickup_next_task
from app.services.agent_state import update_autonomy_config
from app.services.agent_tasks import assign_task, complete_task

if TYPE_CHECKING:
    from sqlmodel.ext.asyncio.session import AsyncSession

    from app.models.agent_state import AgentState


def _no_store(response: Response) -> None:
    response.headers["Cache-Control"] = "no-store"


router = APIRouter(prefix="/agent", tags=["agent"], dependencies=[Depends(_no_store)])
logger = get_logger(__name__)
AGENT_STATE_DEP = Depends(get_agent_state_or_404)
TASK_ACTION_BODY = Body(default=None)

_ERROR_RESPONSES: dict[int | str, dict[str, object]] = {
    status.HTTP_400_BAD_REQUEST: {"model": ApiErrorResponse},
    status.HTTP_404_NOT_FOUND: {"model": ApiErrorResponse},
    status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ApiErrorResponse},
}


def _agent_openapi_hints(
    *,
    intent: str,
    when_to_use: list[str],
    side_effects: list[str],
) -> dict[str, object]:
    return {
        "x-llm-intent": intent,
        "x-when-to-use": when_to_use,
        "x-side-effects": side_effects,
    }


@contextmanager
def _store_errors(message: str) -> Iterator[None]:
    """Surface database failures as `internal_error`."""
    try:
        yield
    except SQLAlchemyError as exc:
        logger.exception("agent.store_failed", extra={"error_message": message})
        raise api_error(ApiErrorCode.INTERNAL_ERROR, message) from exc


def _require_task_id(payload: TaskActionRequest | None) -> str:
    task_id = (payload.task_id or "").strip() if payload is not None else ""
    if not task_id:
        raise api_error(ApiErrorCode.BAD_REQUEST, "task_id is required")
    return task_id


def _pickup_response(decision: PickupDecision) -> PickupResponse:
    if decision.task is not None:
        return PickupResponse(task=TaskRead.model_validate(decision.task, from_attributes=True))
    if decision.in_progress is not None:
        return PickupResponse(
            task=None,
            reason=decision.reason.value if decision.reason else None,
            in_progress=decision.in_progress,
        )
    return PickupResponse(task=None, reason=decision.reason.value if decision.reason else None)


@router.get(
    "/pickup",
    response_model=PickupResponse,
    response_model_exclude_unset=True,
    responses={status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ApiErrorResponse}},
    summary="Pick the next task",
    description=(
        "Return the task the agent should work on next, or a reason code when "
        "autonomy gates or an empty queue prevent a pickup.\n\n"
        "Pickup is read only; call `POST /agent/assign` to claim the task."
    ),
    openapi_extra=_agent_openapi_hints(
        intent="agent_task_pickup",
        when_to_use=["Scheduler polling loop deciding what the agent works on next"],
        side_effects=["None"],
    ),
)
async def pickup(
    session: AsyncSession = SESSION_DEP,
    agent_id: str = AGENT_ID_DEP,
) -> PickupResponse:
    """Select the next eligible task for the agent."""
    with _store_errors("Failed to pick up a task"):
        decision = await pickup_next_task(session, agent_id=agent_id)
    if decision.task is None and decision.reason is not None:
        logger.info(
            "agent.pickup.none",
            extra={"agent_id": agent_id, "reason": decision.reason.value},
        )
    return _pickup_response(decision)


@router.post(
    "/assign",
    response_model=TaskActionResponse,
    responses=_ERROR_RESPONSES,
    summary="Assign a task to the agent",
    description=(
        "Move the task to `in-progress` under the agent and mark the agent active. "
        "Any task id is accepted, not only the one returned by pickup."
    ),
    openapi_extra=_agent_openapi_hints(
        intent="agent_task_assign",
        when_to_use=["Claim the task returned by pickup", "Manually hand a task to the agent"],
        side_effects=["Task column and assignee change", "task_assigned activity entry"],
    ),
)
async def assign(
    payload: TaskActionRequest | None = TASK_ACTION_BODY,
    session: AsyncSession = SESSION_DEP,
    agent_id: str = AGENT_ID_DEP,
) -> TaskActionResponse:
    """Assign a task to the agent and start it."""
    task_id = _require_task_id(payload)
    with _store_errors("Failed to assign task"):
        task = await assign_task(session, task_id=task_id, agent_id=agent_id)
    return TaskActionResponse(task=TaskRead.model_validate(task, from_attributes=True))


@router.post(
    "/complete",
    response_model=TaskActionResponse,
    responses=_ERROR_RESPONSES,
    summary="Complete a task",
    description=(
        "Move the task to `done` and set the agent idle unless it still owns "
        "other in-progress tasks."
    ),
    openapi_extra=_agent_openapi_hints(
        intent="agent_task_complete",
        when_to_use=["Agent finished work on its current task"],
        side_effects=["Task column changes to done", "task_completed activity entry"],
    ),
)
async def complete(
    payload: TaskActionRequest | None = TASK_ACTION_BODY,
    session: AsyncSession = SESSION_DEP,
    agent_id: str = AGENT_ID_DEP,
) -> TaskActionResponse:
    """Mark a task done on behalf of the agent."""
    task_id = _require_task_id(payload)
    with _store_errors("Failed to complete task"):
        task = await complete_task(session, task_id=task_id, agent_id=agent_id)
    return TaskActionResponse(task=TaskRead.model_validate(task, from_attributes=True))


@router.get(
    "/state",
    response_model=AgentStateRead,
    responses={status.HTTP_404_NOT_FOUND: {"model": ApiErrorResponse}},
    summary="Read agent state",
)
async def read_state(state: AgentState = AGENT_STATE_DEP) -> AgentStateRead:
    """Return agent status and autonomy configuration."""
    return AgentStateRead.model_validate(state, from_attributes=True)


@router.patch(
    "/state",
    response_model=AgentStateRead,
    responses={status.HTTP_404_NOT_FOUND: {"model": ApiErrorResponse}},
    summary="Update autonomy configuration",
)
async def update_state(
    payload: AgentAutonomyUpdate,
    state: AgentState = AGENT_STATE_DEP,
    session: AsyncSession = SESSION_DEP,
) -> AgentStateRead:
    """Apply a partial autonomy configuration update."""
    updated = await update_autonomy_config(session, state=state, payload=payload)
    return AgentStateRead.model_validate(updated, from_attributes=True)
