"""Task notification dispatch handler."""

from __future__ import annotations

import httpx

from app.core.config import settings
from app.core.logging import get_logger
from app.services.notifications.queue import (
    TaskNotification,
    decode_notification_task,
    requeue_if_failed,
)
from app.services.queue import QueuedTask

logger = get_logger(__name__)


def _webhook_body(notification: TaskNotification) -> dict[str, object]:
    return {
        "event_type": notification.event_type,
        "task_id": str(notification.task_id),
        "title": notification.title,
        "payload": notification.payload,
        "created_at": notification.created_at.isoformat(),
    }


async def _dispatch(notification: TaskNotification) -> None:
    """Log the notification and forward it to the configured webhook, if any.

    Raises on webhook delivery failure so the worker can requeue.
    """
    logger.info(
        "notification.dispatch",
        extra={
            "event_type": notification.event_type,
            "task_id": str(notification.task_id),
            "payload_keys": sorted(notification.payload),
        },
    )
    url = settings.notification_webhook_url.strip()
    if not url:
        return
    async with httpx.AsyncClient(timeout=settings.notification_timeout_seconds) as client:
        response = await client.post(url, json=_webhook_body(notification))
        response.raise_for_status()


async def process_notification_task(task: QueuedTask) -> None:
    """Decode and dispatch a task notification."""
    notification = decode_notification_task(task)
    await _dispatch(notification)


def requeue_notification_task(task: QueuedTask, *, delay_seconds: float = 0) -> bool:
    """Requeue a failed notification task."""
    notification = decode_notification_task(task)
    return requeue_if_failed(notification, delay_seconds=delay_seconds)
