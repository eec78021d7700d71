"""Automatic priority escalation for tasks whose due dates are close or past.

`AutoReprioritiser` applies only the critical/overdue recommendations from the
threshold engine. One instance is meant to live for the whole process: it owns
the set of task ids already escalated (so reruns do not repeat the write or the
notification) and the in-flight flag that turns overlapping runs into no-ops.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, tzinfo
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import col

from app.core.logging import get_logger
from app.core.time import utcnow
from app.models.tasks import Task
from app.services.activity_log import ENTITY_TASK, field_change, record_activity
from app.services.calendar.threshold_engine import (
    ReprioritisationRecommendation,
    generate_recommendations,
)
from app.services.notifications import TaskNotification, enqueue_notification

if TYPE_CHECKING:
    from sqlmodel.ext.asyncio.session import AsyncSession

    from app.core.config import Settings

logger = get_logger(__name__)

ACTION_TASK_REPRIORITISED = "task_reprioritised"
SYSTEM_ACTOR = "system"


@dataclass(frozen=True)
class ReprioritiseFlags:
    """Feature flags gating the loop; both must be on for it to run."""

    calendar_v2_enabled: bool = True
    auto_reprioritise_enabled: bool = True

    @property
    def enabled(self) -> bool:
        return self.calendar_v2_enabled and self.auto_reprioritise_enabled

    @classmethod
    def from_settings(cls, settings: Settings) -> ReprioritiseFlags:
        return cls(
            calendar_v2_enabled=settings.calendar_v2_enabled,
            auto_reprioritise_enabled=settings.calendar_auto_reprioritise_enabled,
        )


@dataclass(frozen=True)
class ReprioritisationResult:
    """Outcome of one attempted priority escalation."""

    task_id: UUID
    success: bool
    from_priority: str
    to_priority: str
    reason: str
    error: str | None = None


class AutoReprioritiser:
    """Applies auto-apply recommendations at most once per task per instance."""

    def __init__(
        self,
        *,
        flags: ReprioritiseFlags,
        tz: tzinfo = UTC,
        actor: str = SYSTEM_ACTOR,
        processed: set[UUID] | None = None,
        notify: Callable[[TaskNotification], bool] = enqueue_notification,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._flags = flags
        self._tz = tz
        self._actor = actor
        self._processed = processed if processed is not None else set()
        self._notify = notify
        self._clock = clock
        self._running = False

    @classmethod
    def from_settings(cls, settings: Settings) -> AutoReprioritiser:
        return cls(flags=ReprioritiseFlags.from_settings(settings), tz=settings.calendar_tz)

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def processed(self) -> set[UUID]:
        return self._processed

    async def run(self, session: AsyncSession) -> list[ReprioritisationResult]:
        """Escalate critical/overdue tasks; never raises.

        Returns an empty list when the flags are off or another run is in flight.
        """
        if not self._flags.enabled:
            logger.debug("calendar.reprioritise.disabled")
            return []
        if self._running:
            logger.info("calendar.reprioritise.skipped_in_flight")
            return []
        self._running = True
        try:
            return await self._run(session)
        finally:
            self._running = False

    async def _run(self, session: AsyncSession) -> list[ReprioritisationResult]:
        try:
            tasks = await Task.objects.all().order_by(col(Task.created_at).asc()).all(session)
        except SQLAlchemyError:
            logger.exception("calendar.reprioritise.load_failed")
            await session.rollback()
            return []

        pending = [
            rec
            for rec in generate_recommendations(tasks, now=self._clock(), tz=self._tz)
            if rec.auto_apply and rec.task_id not in self._processed
        ]
        results = [await self._apply(session, rec) for rec in pending]
        if results:
            logger.info(
                "calendar.reprioritise.complete",
                extra={
                    "applied": sum(1 for result in results if result.success),
                    "failed": sum(1 for result in results if not result.success),
                },
            )
        return results

    async def _apply(
        self,
        session: AsyncSession,
        rec: ReprioritisationRecommendation,
    ) -> ReprioritisationResult:
        from_priority = rec.current_priority.value
        to_priority = rec.recommended_priority.value
        try:
            # Re-read: a failed write earlier in this run rolls back and expires rows.
            task = await Task.objects.by_id(rec.task_id).first(session)
            if task is None:
                return ReprioritisationResult(
                    task_id=rec.task_id,
                    success=False,
                    from_priority=from_priority,
                    to_priority=to_priority,
                    reason=rec.reason,
                    error="Task not found",
                )
            title = task.title
            old_priority = task.priority
            task.priority = to_priority
            task.updated_at = utcnow()
            session.add(task)
            await record_activity(
                session,
                actor=self._actor,
                action=ACTION_TASK_REPRIORITISED,
                entity_type=ENTITY_TASK,
                entity_id=str(rec.task_id),
                changes={"priority": field_change(old_priority, to_priority)},
                metadata={
                    "reason": rec.reason,
                    "threshold_state": rec.threshold_state.value,
                    "auto_reprioritised": True,
                },
                commit=False,
            )
            await session.commit()
        except SQLAlchemyError as exc:
            await session.rollback()
            logger.warning(
                "calendar.reprioritise.write_failed",
                extra={"task_id": str(rec.task_id), "error": str(exc)},
            )
            return ReprioritisationResult(
                task_id=rec.task_id,
                success=False,
                from_priority=from_priority,
                to_priority=to_priority,
                reason=rec.reason,
                error=str(exc),
            )

        self._processed.add(rec.task_id)
        await asyncio.to_thread(
            self._notify,
            TaskNotification(
                event_type=ACTION_TASK_REPRIORITISED,
                task_id=rec.task_id,
                title=title,
                payload={
                    "from_priority": from_priority,
                    "to_priority": to_priority,
                    "reason": rec.reason,
                    "threshold_state": rec.threshold_state.value,
                },
            ),
        )
        logger.info(
            "calendar.reprioritise.applied",
            extra={
                "task_id": str(rec.task_id),
                "from_priority": from_priority,
                "to_priority": to_priority,
                "threshold_state": rec.threshold_state.value,
            },
        )
        return ReprioritisationResult(
            task_id=rec.task_id,
            success=True,
            from_priority=from_priority,
            to_priority=to_priority,
            reason=rec.reason,
        )
