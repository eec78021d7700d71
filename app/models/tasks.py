"""Task model representing kanban work items the agent can pick up."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import JSON, Column
from sqlmodel import Field

from app.core.task_states import TaskColumn
from app.core.time import utcnow
from app.models.base import QueryModel

RUNTIME_ANNOTATION_TYPES = (datetime,)


class Task(QueryModel, table=True):
    """Kanban task row with ownership, priority, and due-date fields."""

    __tablename__ = "tasks"  # pyright: ignore[reportAssignmentType]

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    title: str
    description: str | None = None
    column_status: str = Field(default=TaskColumn.BACKLOG.value, index=True)
    priority: str | None = Field(default=None, index=True)
    assignee: str | None = Field(default=None, index=True)
    due_date: datetime | None = Field(default=None, index=True)
    labels: list[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    created_by: str = Field(default="")

    created_at: datetime = Field(default_factory=utcnow, index=True)
    updated_at: datetime = Field(default_factory=utcnow)
