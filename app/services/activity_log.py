"""Activity log writer for task and agent mutations."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from app.core.time import utcnow
from app.models.activity_log import ActivityLog

if TYPE_CHECKING:
    from sqlmodel.ext.asyncio.session import AsyncSession

ENTITY_TASK = "task"


def field_change(old: object, new: object) -> dict[str, object]:
    """Shape one entry of an activity `changes` mapping."""
    return {"old": old, "new": new}


async def record_activity(
    session: AsyncSession,
    *,
    actor: str,
    action: str,
    entity_type: str,
    entity_id: str | None = None,
    changes: dict[str, Any] | None = None,
    metadata: dict[str, Any] | None = None,
    commit: bool = True,
) -> ActivityLog:
    """Append an activity entry; rows are never updated afterwards."""
    entry = ActivityLog(
        actor=actor,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        changes=changes,
        event_metadata=metadata,
        created_at=utcnow(),
    )
    session.add(entry)
    if commit:
        await session.commit()
        await session.refresh(entry)
    return entry
