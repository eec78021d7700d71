"""Schemas for agent pickup, assignment, and state endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import Field
from sqlmodel import SQLModel
from sqlmodel._compat import SQLModelConfig

from app.schemas.tasks import TaskRead

RUNTIME_ANNOTATION_TYPES = (datetime, UUID, TaskRead)

PickupReason = Literal["auto_pickup_disabled", "max_concurrent_reached", "no_eligible_tasks"]


class PickupResponse(SQLModel):
    """Result of asking which task the agent should work on next."""

    model_config = SQLModelConfig(
        json_schema_extra={
            "x-llm-intent": "agent_task_pickup",
            "x-when-to-use": [
                "Polling loop deciding what the agent works on next",
            ],
            "x-side-effects": ["None; pickup is read-only"],
        },
    )

    task: TaskRead | None = Field(
        default=None,
        description="Selected task, or null when nothing should be picked up.",
    )
    reason: PickupReason | None = Field(
        default=None,
        description="Why no task was returned. Omitted when a task is selected.",
        examples=["max_concurrent_reached"],
    )
    in_progress: int | None = Field(
        default=None,
        description="In-progress task count; present with `max_concurrent_reached`.",
        examples=[1],
    )


class TaskActionRequest(SQLModel):
    """Body for assign/complete calls."""

    task_id: str | None = Field(
        default=None,
        description="Identifier of the task to transition.",
        examples=["aaaaaaaa-aaaa-aaaa-aaaa-aaaaaaaaaaaa"],
    )


class TaskActionResponse(SQLModel):
    """Successful assign/complete response."""

    ok: bool = True
    task: TaskRead


class AgentStateRead(SQLModel):
    """Agent status and autonomy configuration."""

    agent_id: str
    status: str
    current_model: str
    model_list: list[str] = Field(default_factory=list)
    last_heartbeat: datetime | None = None
    auto_pickup_enabled: bool
    max_concurrent_tasks: int
    due_date_urgency_hours: int
    nightly_start_hour: int
    repick_window_minutes: int
    updated_at: datetime | None = None


class AgentAutonomyUpdate(SQLModel):
    """Partial update of the autonomy knobs shown on the settings screen."""

    auto_pickup_enabled: bool | None = None
    max_concurrent_tasks: int | None = Field(default=None, ge=1)
    due_date_urgency_hours: int | None = Field(default=None, ge=0)
    nightly_start_hour: int | None = Field(default=None, ge=0, le=23)
    repick_window_minutes: int | None = Field(default=None, ge=1)
