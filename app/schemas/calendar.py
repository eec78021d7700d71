"""Schemas for calendar threshold and reprioritisation endpoints."""

from __future__ import annotations

from uuid import UUID

from sqlmodel import SQLModel

RUNTIME_ANNOTATION_TYPES = (UUID,)


class ReprioritisationRecommendationRead(SQLModel):
    """Suggested priority upgrade for one task."""

    task_id: UUID
    current_priority: str
    recommended_priority: str
    reason: str
    threshold_state: str
    auto_apply: bool


class ReprioritisationResultRead(SQLModel):
    """Outcome of one auto-applied priority change."""

    task_id: UUID
    success: bool
    from_priority: str
    to_priority: str
    reason: str
    error: str | None = None


class ThresholdSummaryRead(SQLModel):
    """Counts of open, dated tasks per threshold tier."""

    overdue: int = 0
    critical: int = 0
    warning: int = 0
    watch: int = 0
