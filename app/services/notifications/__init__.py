"""User-facing task notification queueing + dispatch utilities."""

from app.services.notifications.queue import (
    TASK_TYPE,
    TaskNotification,
    decode_notification_task,
    enqueue_notification,
)

__all__ = [
    "TASK_TYPE",
    "TaskNotification",
    "decode_notification_task",
    "enqueue_notification",
]
