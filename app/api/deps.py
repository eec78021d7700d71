"""Reusable FastAPI dependencies for the agent engine routes.

Routers compose from these instead of reaching into settings or `app.state`
directly, so tests can swap identity, sessions, and the reprioritiser through
`app.dependency_overrides`.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import Depends, Request

from app.core.api_errors import ApiErrorCode, api_error
from app.core.config import settings
from app.db.session import get_session
from app.services.agent_state import get_agent_state

if TYPE_CHECKING:
    from sqlmodel.ext.asyncio.session import AsyncSession

    from app.models.agent_state import AgentState
    from app.services.calendar.auto_reprioritise import AutoReprioritiser

SESSION_DEP = Depends(get_session)


def get_agent_id() -> str:
    """Fixed identity the engine acts as."""
    return settings.agent_id


AGENT_ID_DEP = Depends(get_agent_id)


async def get_agent_state_or_404(
    session: AsyncSession = SESSION_DEP,
    agent_id: str = AGENT_ID_DEP,
) -> AgentState:
    """Load the agent singleton row or raise `not_found`."""
    state = await get_agent_state(session, agent_id=agent_id)
    if state is None:
        raise api_error(ApiErrorCode.NOT_FOUND, "Agent state not found")
    return state


def get_auto_reprioritiser(request: Request) -> AutoReprioritiser:
    """Return the process-wide reprioritiser built at application startup."""
    return request.app.state.auto_reprioritiser
