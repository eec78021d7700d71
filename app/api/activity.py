"""Activity log query endpoint."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import TYPE_CHECKING, Any

from fastapi import APIRouter, Query
from sqlmodel import col, select

from app.api.deps import SESSION_DEP
from app.core.time import as_utc
from app.db.pagination import paginate
from app.models.activity_log import ActivityLog
from app.schemas.activity import ActivityLogRead
from app.schemas.pagination import DefaultLimitOffsetPage

if TYPE_CHECKING:
    from fastapi_pagination.limit_offset import LimitOffsetPage
    from sqlmodel.ext.asyncio.session import AsyncSession

router = APIRouter(prefix="/activity", tags=["activity"])
ACTION_QUERY = Query(default=None, description="Repeat to match any of several actions.")


def _naive_utc(value: datetime) -> datetime:
    return as_utc(value).replace(tzinfo=None)


def _to_reads(items: Sequence[Any]) -> list[ActivityLogRead]:
    return [ActivityLogRead.from_entry(item) for item in items]


@router.get(
    "",
    response_model=DefaultLimitOffsetPage[ActivityLogRead],
    summary="List activity log entries",
    description="Newest first. All filters are optional and combined with AND.",
)
async def list_activity(
    session: AsyncSession = SESSION_DEP,
    actor: str | None = None,
    action: list[str] | None = ACTION_QUERY,
    entity_type: str | None = None,
    entity_id: str | None = None,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
) -> LimitOffsetPage[ActivityLogRead]:
    """Query the append-only activity log."""
    statement = select(ActivityLog)
    if actor is not None:
        statement = statement.where(col(ActivityLog.actor) == actor)
    if action:
        statement = statement.where(col(ActivityLog.action).in_(action))
    if entity_type is not None:
        statement = statement.where(col(ActivityLog.entity_type) == entity_type)
    if entity_id is not None:
        statement = statement.where(col(ActivityLog.entity_id) == entity_id)
    if date_from is not None:
        statement = statement.where(col(ActivityLog.created_at) >= _naive_utc(date_from))
    if date_to is not None:
        statement = statement.where(col(ActivityLog.created_at) <= _naive_utc(date_to))
    statement = statement.order_by(col(ActivityLog.created_at).desc(), col(ActivityLog.id).desc())
    return await paginate(session, statement, transformer=_to_reads)
