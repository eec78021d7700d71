"""Append-only activity log model for task and agent mutations."""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import JSON, Column
from sqlmodel import Field

from app.core.time import utcnow
from app.models.base import QueryModel

RUNTIME_ANNOTATION_TYPES = (datetime,)


class ActivityLog(QueryModel, table=True):
    """Immutable record of who changed what on which entity."""

    __tablename__ = "activity_log"  # pyright: ignore[reportAssignmentType]

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    actor: str = Field(index=True)
    action: str = Field(index=True)
    entity_type: str = Field(index=True)
    entity_id: str | None = Field(default=None, index=True)
    changes: dict[str, Any] | None = Field(default=None, sa_column=Column(JSON))
    # `metadata` is reserved on declarative models; keep the column name.
    event_metadata: dict[str, Any] | None = Field(
        default=None,
        sa_column=Column("metadata", JSON),
    )
    created_at: datetime = Field(default_factory=utcnow, index=True)
