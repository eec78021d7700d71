"""Schemas for task payloads returned by agent and calendar endpoints."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import Field
from sqlmodel import SQLModel

RUNTIME_ANNOTATION_TYPES = (datetime, UUID)


class TaskRead(SQLModel):
    """Task payload as stored in the task table."""

    id: UUID
    title: str
    description: str | None = None
    column_status: str = Field(
        description="Kanban column: backlog, todo, in-progress, review, or done.",
        examples=["todo"],
    )
    priority: str | None = Field(
        default=None,
        description="Task priority; unset is treated as low for pickup ordering.",
        examples=["high"],
    )
    assignee: str | None = None
    due_date: datetime | None = None
    labels: list[str] = Field(default_factory=list)
    created_by: str = ""
    created_at: datetime
    updated_at: datetime
