"""Recurring reprioritise sweep bootstrap for rq-scheduler."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

from redis import Redis
from rq_scheduler import Scheduler  # type: ignore[import-untyped]

from app.core.config import settings
from app.core.logging import get_logger
from app.services.queue import QueuedTask, enqueue_task

logger = get_logger(__name__)
SWEEP_TASK_TYPE = "calendar_reprioritise_sweep"


def enqueue_reprioritise_sweep() -> bool:
    """Scheduled job body: hand one sweep to the queue worker."""
    return enqueue_task(
        QueuedTask(task_type=SWEEP_TASK_TYPE, payload={}, created_at=datetime.now(UTC)),
        settings.rq_queue_name,
        redis_url=settings.rq_redis_url,
    )


def bootstrap_reprioritise_schedule(interval_seconds: int | None = None) -> None:
    """Register the recurring sweep job, replacing any previous registration."""
    connection = Redis.from_url(settings.rq_redis_url)
    scheduler = Scheduler(queue_name=settings.rq_queue_name, connection=connection)

    for job in scheduler.get_jobs():
        if job.id == settings.reprioritise_schedule_id:
            scheduler.cancel(job)

    effective_interval_seconds = (
        settings.reprioritise_schedule_interval_seconds
        if interval_seconds is None
        else interval_seconds
    )

    scheduler.schedule(
        datetime.now(tz=UTC) + timedelta(seconds=5),
        func=enqueue_reprioritise_sweep,
        interval=effective_interval_seconds,
        repeat=None,
        id=settings.reprioritise_schedule_id,
        queue_name=settings.rq_queue_name,
    )
    logger.info(
        "calendar.reprioritise.schedule_registered",
        extra={
            "schedule_id": settings.reprioritise_schedule_id,
            "interval_seconds": effective_interval_seconds,
        },
    )
