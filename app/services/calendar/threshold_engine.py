"""Due-date threshold tiers and priority upgrade recommendations.

Everything here is pure: callers pass "now" (and optionally the reference
timezone) explicitly so results are deterministic.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime, tzinfo
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID

from app.core.task_states import TaskColumn, TaskPriority
from app.core.time import as_utc

if TYPE_CHECKING:
    from app.models.tasks import Task


class ThresholdState(str, Enum):
    """Urgency tier derived from whole calendar days until due."""

    NORMAL = "normal"
    WATCH = "watch"
    WARNING = "warning"
    CRITICAL = "critical"
    OVERDUE = "overdue"


# Upper bound (inclusive) of days-until-due for each tier, most urgent first.
THRESHOLD_RULES: tuple[tuple[int, ThresholdState], ...] = (
    (1, ThresholdState.CRITICAL),
    (3, ThresholdState.WARNING),
    (7, ThresholdState.WATCH),
)

AUTO_APPLY_STATES = frozenset({ThresholdState.CRITICAL, ThresholdState.OVERDUE})

# Missing priorities are displayed (and reported) as medium on the dashboard.
DISPLAY_DEFAULT_PRIORITY = TaskPriority.MEDIUM


def days_until_due(
    due_date: datetime | None,
    *,
    now: datetime,
    tz: tzinfo = UTC,
) -> int | None:
    """Whole calendar days from today to the due date in `tz`; time of day ignored."""
    if due_date is None:
        return None
    due_day = as_utc(due_date).astimezone(tz).date()
    today = as_utc(now).astimezone(tz).date()
    return (due_day - today).days


def classify_threshold(
    due_date: datetime | None,
    *,
    now: datetime,
    tz: tzinfo = UTC,
) -> ThresholdState:
    """Map a due date to its threshold tier; no due date is always NORMAL."""
    diff_days = days_until_due(due_date, now=now, tz=tz)
    if diff_days is None:
        return ThresholdState.NORMAL
    if diff_days < 0:
        return ThresholdState.OVERDUE
    for max_days, state in THRESHOLD_RULES:
        if diff_days <= max_days:
            return state
    return ThresholdState.NORMAL


def should_auto_reprioritise(state: ThresholdState) -> bool:
    """Only critical and overdue tiers escalate without a human."""
    return state in AUTO_APPLY_STATES


@dataclass(frozen=True)
class ReprioritisationRecommendation:
    """Proposed upgrade for one task; never persisted."""

    task_id: UUID
    current_priority: TaskPriority
    recommended_priority: TaskPriority
    reason: str
    threshold_state: ThresholdState

    @property
    def auto_apply(self) -> bool:
        return should_auto_reprioritise(self.threshold_state)


def _recommend(
    state: ThresholdState,
    priority: str | None,
) -> tuple[TaskPriority, str] | None:
    if state is ThresholdState.OVERDUE and priority != TaskPriority.URGENT.value:
        return TaskPriority.URGENT, "Overdue task requires immediate attention"
    if state is ThresholdState.CRITICAL and priority not in {
        TaskPriority.HIGH.value,
        TaskPriority.URGENT.value,
    }:
        return TaskPriority.HIGH, "Due within 24 hours"
    if state is ThresholdState.WARNING and priority == TaskPriority.LOW.value:
        return TaskPriority.MEDIUM, "Due within 3 days"
    return None


def generate_recommendations(
    tasks: Iterable[Task],
    *,
    now: datetime,
    tz: tzinfo = UTC,
) -> list[ReprioritisationRecommendation]:
    """Propose upgrades for open tasks, preserving input order."""
    recommendations: list[ReprioritisationRecommendation] = []
    for task in tasks:
        if task.column_status == TaskColumn.DONE.value:
            continue
        state = classify_threshold(task.due_date, now=now, tz=tz)
        proposal = _recommend(state, task.priority)
        if proposal is None:
            continue
        recommended, reason = proposal
        current = (
            TaskPriority(task.priority)
            if task.priority in {p.value for p in TaskPriority}
            else DISPLAY_DEFAULT_PRIORITY
        )
        recommendations.append(
            ReprioritisationRecommendation(
                task_id=task.id,
                current_priority=current,
                recommended_priority=recommended,
                reason=reason,
                threshold_state=state,
            ),
        )
    return recommendations


def summarize_thresholds(
    tasks: Iterable[Task],
    *,
    now: datetime,
    tz: tzinfo = UTC,
) -> dict[str, int]:
    """Count open, dated tasks per non-normal tier."""
    counts = {
        ThresholdState.OVERDUE.value: 0,
        ThresholdState.CRITICAL.value: 0,
        ThresholdState.WARNING.value: 0,
        ThresholdState.WATCH.value: 0,
    }
    for task in tasks:
        if task.due_date is None or task.column_status == TaskColumn.DONE.value:
            continue
        state = classify_threshold(task.due_date, now=now, tz=tz)
        if state.value in counts:
            counts[state.value] += 1
    return counts
