"""Redis list-backed queue for background notification and sweep work."""

from __future__ import annotations

import json
import time
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, cast

import redis

from app.core.config import settings
from app.core.logging import get_logger

logger = get_logger(__name__)

_SCHEDULED_SUFFIX = ":scheduled"
_DRAIN_BATCH_SIZE = 100


@dataclass(frozen=True)
class QueuedTask:
    """Envelope stored on the queue; `task_type` selects the worker handler."""

    task_type: str
    payload: dict[str, Any]
    created_at: datetime
    attempts: int = 0

    def to_json(self) -> str:
        return json.dumps(
            {
                "task_type": self.task_type,
                "payload": self.payload,
                "created_at": self.created_at.isoformat(),
                "attempts": self.attempts,
            },
            sort_keys=True,
        )

    @classmethod
    def from_json(cls, raw: str | bytes) -> QueuedTask:
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        data: dict[str, Any] = json.loads(raw)
        return cls(
            task_type=str(data["task_type"]),
            payload=dict(data.get("payload") or {}),
            created_at=datetime.fromisoformat(data["created_at"]),
            attempts=int(data.get("attempts", 0)),
        )


def _redis_client(redis_url: str | None = None) -> redis.Redis:
    return redis.Redis.from_url(redis_url or settings.rq_redis_url)


def _scheduled_key(queue_name: str) -> str:
    return f"{queue_name}{_SCHEDULED_SUFFIX}"


def _promote_due_tasks(client: redis.Redis, queue_name: str) -> None:
    """Move delayed tasks whose time has come onto the main list."""
    ready = cast(
        "list[str | bytes]",
        client.zrangebyscore(
            _scheduled_key(queue_name),
            "-inf",
            time.time(),
            start=0,
            num=_DRAIN_BATCH_SIZE,
        ),
    )
    if not ready:
        return
    client.lpush(queue_name, *ready)
    client.zrem(_scheduled_key(queue_name), *ready)
    logger.debug("queue.promoted_scheduled", extra={"queue_name": queue_name, "count": len(ready)})


def enqueue_task(
    task: QueuedTask,
    queue_name: str,
    *,
    redis_url: str | None = None,
    delay_seconds: float = 0,
) -> bool:
    """Push a task now, or park it in the delayed set; returns False on Redis errors."""
    delay = max(0.0, float(delay_seconds))
    try:
        client = _redis_client(redis_url=redis_url)
        if delay:
            client.zadd(_scheduled_key(queue_name), {task.to_json(): time.time() + delay})
        else:
            client.lpush(queue_name, task.to_json())
    except redis.RedisError as exc:
        logger.warning(
            "queue.enqueue_failed",
            extra={"task_type": task.task_type, "queue_name": queue_name, "error": str(exc)},
        )
        return False
    logger.info(
        "queue.enqueued",
        extra={
            "task_type": task.task_type,
            "queue_name": queue_name,
            "attempt": task.attempts,
            "delay_seconds": delay,
        },
    )
    return True


def dequeue_task(
    queue_name: str,
    *,
    redis_url: str | None = None,
    block_timeout: float = 0,
) -> QueuedTask | None:
    """Pop the oldest task; blocks up to `block_timeout` seconds when positive."""
    client = _redis_client(redis_url=redis_url)
    if block_timeout > 0:
        _promote_due_tasks(client, queue_name)
        popped = cast(
            "tuple[bytes | str, bytes | str] | None",
            client.brpop([queue_name], timeout=block_timeout),
        )
        raw = popped[1] if popped is not None else None
    else:
        raw = cast("str | bytes | None", client.rpop(queue_name))
    if raw is None:
        return None
    try:
        return QueuedTask.from_json(raw)
    except (ValueError, KeyError, TypeError):
        logger.error(
            "queue.decode_failed",
            extra={"queue_name": queue_name, "raw_payload": str(raw)},
        )
        raise


def requeue_if_failed(
    task: QueuedTask,
    queue_name: str,
    *,
    max_retries: int,
    redis_url: str | None = None,
    delay_seconds: float = 0,
) -> bool:
    """Requeue with one more attempt unless `max_retries` is exhausted."""
    retried = replace(task, attempts=task.attempts + 1)
    if retried.attempts > max_retries:
        logger.warning(
            "queue.drop_failed_task",
            extra={
                "task_type": task.task_type,
                "queue_name": queue_name,
                "attempts": retried.attempts,
            },
        )
        return False
    return enqueue_task(
        retried,
        queue_name,
        redis_url=redis_url,
        delay_seconds=delay_seconds,
    )
