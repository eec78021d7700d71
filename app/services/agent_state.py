"""Agent state singleton access: bootstrap, reads, and advisory status writes."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy.exc import SQLAlchemyError

from app.core.logging import get_logger
from app.core.time import utcnow
from app.models.agent_state import AgentState

if TYPE_CHECKING:
    from sqlmodel.ext.asyncio.session import AsyncSession

    from app.core.task_states import AgentStatus
    from app.schemas.agent import AgentAutonomyUpdate

logger = get_logger(__name__)


async def get_agent_state(session: AsyncSession, *, agent_id: str) -> AgentState | None:
    """Return the singleton row for `agent_id`, if bootstrapped."""
    return await AgentState.objects.filter_by(agent_id=agent_id).first(session)


async def ensure_agent_state(
    session: AsyncSession,
    *,
    agent_id: str,
    current_model: str = "",
) -> AgentState:
    """Create the agent row with default autonomy settings when missing."""
    existing = await get_agent_state(session, agent_id=agent_id)
    if existing is not None:
        return existing
    state = AgentState(agent_id=agent_id, current_model=current_model)
    session.add(state)
    await session.commit()
    await session.refresh(state)
    logger.info("agent.state.bootstrapped", extra={"agent_id": agent_id})
    return state


async def set_agent_status(
    session: AsyncSession,
    *,
    agent_id: str,
    status: AgentStatus,
) -> bool:
    """Best-effort status write.

    Task rows are the source of truth; this mirror may drift when the write
    fails, so errors are logged and reported as False instead of raised.
    """
    try:
        state = await get_agent_state(session, agent_id=agent_id)
        if state is None:
            logger.warning("agent.state.missing", extra={"agent_id": agent_id})
            return False
        state.status = status.value
        state.updated_at = utcnow()
        session.add(state)
        await session.commit()
    except SQLAlchemyError:
        logger.warning(
            "agent.state.status_update_failed",
            extra={"agent_id": agent_id, "status": status.value},
            exc_info=True,
        )
        await session.rollback()
        return False
    return True


async def update_autonomy_config(
    session: AsyncSession,
    *,
    state: AgentState,
    payload: AgentAutonomyUpdate,
) -> AgentState:
    """Apply the provided autonomy fields and persist the row."""
    updates = payload.model_dump(exclude_unset=True, exclude_none=True)
    for key, value in updates.items():
        setattr(state, key, value)
    state.updated_at = utcnow()
    session.add(state)
    await session.commit()
    await session.refresh(state)
    logger.info(
        "agent.state.autonomy_updated",
        extra={"agent_id": state.agent_id, "fields": sorted(updates)},
    )
    return state
