"""Task notification queue persistence helpers."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from app.core.config import settings
from app.core.logging import get_logger
from app.services.queue import QueuedTask, enqueue_task
from app.services.queue import requeue_if_failed as generic_requeue_if_failed

logger = get_logger(__name__)
TASK_TYPE = "task_notification"


@dataclass(frozen=True)
class TaskNotification:
    """Payload for a user-facing task event."""

    event_type: str  # task_reprioritised
    task_id: UUID
    title: str
    payload: dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    attempts: int = 0


def _task_from_notification(notification: TaskNotification) -> QueuedTask:
    return QueuedTask(
        task_type=TASK_TYPE,
        payload={
            "event_type": notification.event_type,
            "task_id": str(notification.task_id),
            "title": notification.title,
            "payload": notification.payload,
        },
        created_at=notification.created_at,
        attempts=notification.attempts,
    )


def decode_notification_task(task: QueuedTask) -> TaskNotification:
    """Decode a QueuedTask into a TaskNotification."""
    if task.task_type != TASK_TYPE:
        raise ValueError(f"Unexpected task_type={task.task_type!r}; expected {TASK_TYPE!r}")

    p: dict[str, Any] = task.payload
    return TaskNotification(
        event_type=str(p["event_type"]),
        task_id=UUID(p["task_id"]),
        title=str(p.get("title", "")),
        payload=p.get("payload", {}),
        created_at=task.created_at,
        attempts=task.attempts,
    )


def enqueue_notification(notification: TaskNotification) -> bool:
    """Persist a task notification in the Redis queue; never raises."""
    queued = enqueue_task(
        _task_from_notification(notification),
        settings.rq_queue_name,
        redis_url=settings.rq_redis_url,
    )
    if queued:
        logger.info(
            "notification.enqueued",
            extra={
                "event_type": notification.event_type,
                "task_id": str(notification.task_id),
            },
        )
    return queued


def requeue_if_failed(
    notification: TaskNotification,
    *,
    delay_seconds: float = 0,
) -> bool:
    """Requeue a failed notification with capped retries."""
    return generic_requeue_if_failed(
        _task_from_notification(notification),
        settings.rq_queue_name,
        max_retries=settings.rq_dispatch_max_retries,
        redis_url=settings.rq_redis_url,
        delay_seconds=delay_seconds,
    )
