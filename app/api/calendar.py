"""Calendar routes: due-date thresholds and priority reprioritisation."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, status
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import col

from app.api.deps import SESSION_DEP, get_auto_reprioritiser
from app.core.api_errors import ApiErrorCode, api_error
from app.core.config import settings
from app.core.logging import get_logger
from app.core.task_states import TaskColumn
from app.core.time import utcnow
from app.models.tasks import Task
from app.schemas.calendar import (
    ReprioritisationRecommendationRead,
    ReprioritisationResultRead,
    ThresholdSummaryRead,
)
from app.schemas.errors import ApiErrorResponse
from app.services.calendar.threshold_engine import generate_recommendations, summarize_thresholds

if TYPE_CHECKING:
    from sqlmodel.ext.asyncio.session import AsyncSession

    from app.services.calendar.auto_reprioritise import AutoReprioritiser

router = APIRouter(prefix="/calendar", tags=["calendar"])
logger = get_logger(__name__)
REPRIORITISER_DEP = Depends(get_auto_reprioritiser)
_INTERNAL_ERROR_RESPONSES: dict[int | str, dict[str, object]] = {
    status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ApiErrorResponse},
}


async def _open_tasks(session: AsyncSession) -> list[Task]:
    try:
        return await (
            Task.objects.filter(col(Task.column_status) != TaskColumn.DONE.value)
            .order_by(col(Task.created_at).asc())
            .all(session)
        )
    except SQLAlchemyError as exc:
        logger.exception("calendar.tasks.load_failed")
        raise api_error(ApiErrorCode.INTERNAL_ERROR, "Failed to load tasks") from exc


@router.get(
    "/recommendations",
    response_model=list[ReprioritisationRecommendationRead],
    responses=_INTERNAL_ERROR_RESPONSES,
    summary="List reprioritisation recommendations",
    description=(
        "Suggested priority upgrades for open tasks across every threshold tier. "
        "Nothing is written; `auto_apply` marks the ones the automatic loop would apply."
    ),
)
async def list_recommendations(
    session: AsyncSession = SESSION_DEP,
) -> list[ReprioritisationRecommendationRead]:
    """Return upgrade suggestions in task creation order."""
    tasks = await _open_tasks(session)
    recommendations = generate_recommendations(tasks, now=utcnow(), tz=settings.calendar_tz)
    return [
        ReprioritisationRecommendationRead(
            task_id=rec.task_id,
            current_priority=rec.current_priority.value,
            recommended_priority=rec.recommended_priority.value,
            reason=rec.reason,
            threshold_state=rec.threshold_state.value,
            auto_apply=rec.auto_apply,
        )
        for rec in recommendations
    ]


@router.get(
    "/summary",
    response_model=ThresholdSummaryRead,
    responses=_INTERNAL_ERROR_RESPONSES,
    summary="Count tasks per threshold tier",
)
async def threshold_summary(session: AsyncSession = SESSION_DEP) -> ThresholdSummaryRead:
    """Return overdue/critical/warning/watch counters for open, dated tasks."""
    tasks = await _open_tasks(session)
    counts = summarize_thresholds(tasks, now=utcnow(), tz=settings.calendar_tz)
    return ThresholdSummaryRead(**counts)


@router.post(
    "/reprioritise",
    response_model=list[ReprioritisationResultRead],
    summary="Run automatic reprioritisation",
    description=(
        "Apply critical and overdue upgrades once per task. Returns an empty list "
        "when the feature is disabled or a run is already in flight; per-task "
        "failures are reported in the result items."
    ),
)
async def run_reprioritisation(
    session: AsyncSession = SESSION_DEP,
    reprioritiser: AutoReprioritiser = REPRIORITISER_DEP,
) -> list[ReprioritisationResultRead]:
    """Run the auto-reprioritisation loop now."""
    results = await reprioritiser.run(session)
    return [
        ReprioritisationResultRead(
            task_id=result.task_id,
            success=result.success,
            from_priority=result.from_priority,
            to_priority=result.to_priority,
            reason=result.reason,
            error=result.error,
        )
        for result in results
    ]
