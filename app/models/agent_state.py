"""Singleton agent state row holding status and autonomy configuration."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import JSON, Column
from sqlmodel import Field

from app.core.task_states import AgentStatus
from app.core.time import utcnow
from app.models.base import QueryModel

RUNTIME_ANNOTATION_TYPES = (datetime,)


class AgentState(QueryModel, table=True):
    """Agent-wide status plus the knobs that gate autonomous task pickup."""

    __tablename__ = "agent_state"  # pyright: ignore[reportAssignmentType]

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    agent_id: str = Field(index=True, unique=True)
    status: str = Field(default=AgentStatus.IDLE.value)
    current_model: str = Field(default="")
    model_list: list[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    last_heartbeat: datetime | None = None

    auto_pickup_enabled: bool = Field(default=True)
    max_concurrent_tasks: int = Field(default=1)
    due_date_urgency_hours: int = Field(default=48)
    # Consumed by the external scheduling cadence only.
    nightly_start_hour: int = Field(default=22)
    repick_window_minutes: int = Field(default=120)

    updated_at: datetime | None = Field(default_factory=utcnow)
