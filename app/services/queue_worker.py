"""Generic queue worker with task-type dispatch."""

from __future__ import annotations

import asyncio
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from app.core.config import settings
from app.core.logging import get_logger
from app.db.session import session_scope
from app.services.calendar.auto_reprioritise import AutoReprioritiser
from app.services.calendar.scheduler import SWEEP_TASK_TYPE
from app.services.notifications import TASK_TYPE as NOTIFICATION_TASK_TYPE
from app.services.notifications.dispatch import (
    process_notification_task,
    requeue_notification_task,
)
from app.services.queue import QueuedTask, dequeue_task

logger = get_logger(__name__)
_WORKER_BLOCK_TIMEOUT_SECONDS = 5.0

# Worker-owned instance; its processed set lives as long as the worker process.
_reprioritiser = AutoReprioritiser.from_settings(settings)


@dataclass(frozen=True)
class _TaskHandler:
    handler: Callable[[QueuedTask], Awaitable[None]]
    attempts_to_delay: Callable[[int], float]
    requeue: Callable[[QueuedTask, float], bool]


def _backoff_seconds(attempts: int) -> float:
    return min(
        settings.rq_dispatch_retry_base_seconds * (2 ** max(0, attempts)),
        settings.rq_dispatch_retry_max_seconds,
    )


async def process_reprioritise_sweep(task: QueuedTask) -> None:
    """Run one auto-reprioritisation pass with the worker's reprioritiser."""
    del task
    async with session_scope() as session:
        results = await _reprioritiser.run(session)
    logger.info(
        "queue.worker.reprioritise_sweep",
        extra={
            "applied": sum(1 for result in results if result.success),
            "failed": sum(1 for result in results if not result.success),
        },
    )


def _drop_sweep(task: QueuedTask, delay: float) -> bool:
    # The next scheduled sweep covers anything this one missed.
    del task, delay
    return False


_TASK_HANDLERS: dict[str, _TaskHandler] = {
    NOTIFICATION_TASK_TYPE: _TaskHandler(
        handler=process_notification_task,
        attempts_to_delay=_backoff_seconds,
        requeue=lambda task, delay: requeue_notification_task(task, delay_seconds=delay),
    ),
    SWEEP_TASK_TYPE: _TaskHandler(
        handler=process_reprioritise_sweep,
        attempts_to_delay=_backoff_seconds,
        requeue=_drop_sweep,
    ),
}


def _compute_jitter(base_delay: float) -> float:
    return random.uniform(0, min(settings.rq_dispatch_retry_max_seconds / 10, base_delay * 0.1))


async def flush_queue(*, block_timeout: float = 0) -> int:
    """Consume queued tasks until the queue is empty and dispatch by task type."""
    processed = 0
    while True:
        try:
            task = dequeue_task(
                settings.rq_queue_name,
                redis_url=settings.rq_redis_url,
                block_timeout=block_timeout,
            )
        except Exception:
            logger.exception(
                "queue.worker.dequeue_failed",
                extra={"queue_name": settings.rq_queue_name},
            )
            break

        if task is None:
            break

        handler = _TASK_HANDLERS.get(task.task_type)
        if handler is None:
            logger.warning(
                "queue.worker.task_unhandled",
                extra={
                    "task_type": task.task_type,
                    "queue_name": settings.rq_queue_name,
                },
            )
            continue

        try:
            await handler.handler(task)
            processed += 1
            logger.info(
                "queue.worker.success",
                extra={
                    "task_type": task.task_type,
                    "attempt": task.attempts,
                },
            )
        except Exception as exc:
            logger.exception(
                "queue.worker.failed",
                extra={
                    "task_type": task.task_type,
                    "attempt": task.attempts,
                    "error": str(exc),
                },
            )
            base_delay = handler.attempts_to_delay(task.attempts)
            delay = base_delay + _compute_jitter(base_delay)
            if not handler.requeue(task, delay):
                logger.warning(
                    "queue.worker.drop_task",
                    extra={
                        "task_type": task.task_type,
                        "attempt": task.attempts,
                    },
                )
        await asyncio.sleep(settings.rq_dispatch_throttle_seconds)

    if processed > 0:
        logger.info("queue.worker.batch_complete", extra={"count": processed})
    return processed


async def _run_worker_loop() -> None:
    while True:
        try:
            await flush_queue(
                # Keep a finite timeout so delayed retries are periodically promoted.
                block_timeout=_WORKER_BLOCK_TIMEOUT_SECONDS,
            )
        except Exception:
            logger.exception(
                "queue.worker.loop_failed",
                extra={"queue_name": settings.rq_queue_name},
            )
            await asyncio.sleep(1)


def run_worker() -> None:
    """Entrypoint for running continuous queue processing."""
    logger.info(
        "queue.worker.started",
        extra={"throttle_seconds": settings.rq_dispatch_throttle_seconds},
    )
    try:
        asyncio.run(_run_worker_loop())
    finally:
        logger.info("queue.worker.stopped", extra={"queue_name": settings.rq_queue_name})
