"""Schemas for the activity log query API."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any
from uuid import UUID

from pydantic import BaseModel

if TYPE_CHECKING:
    from app.models.activity_log import ActivityLog

RUNTIME_ANNOTATION_TYPES = (datetime, UUID)


class ActivityLogRead(BaseModel):
    """Activity log entry payload returned by read endpoints.

    Plain pydantic model: SQLModel reserves the `metadata` attribute.
    """

    id: UUID
    actor: str
    action: str
    entity_type: str
    entity_id: str | None = None
    changes: dict[str, Any] | None = None
    metadata: dict[str, Any] | None = None
    created_at: datetime

    @classmethod
    def from_entry(cls, entry: ActivityLog) -> ActivityLogRead:
        return cls(
            id=entry.id,
            actor=entry.actor,
            action=entry.action,
            entity_type=entry.entity_type,
            entity_id=entry.entity_id,
            changes=entry.changes,
            metadata=entry.event_metadata,
            created_at=entry.created_at,
        )
