"""
ARQ worker: runs the scheduled jobs on cron triggers.

    arq app.tasks.worker.WorkerSettings

Each cron entry runs under a Redis single-flight lock keyed by job name, so a
trigger that fires while the previous run of the same job is still going is
skipped instead of double-sending.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import timedelta
from typing import AsyncIterator

import structlog
from arq import cron
from arq.connections import RedisSettings
from redis.exceptions import LockError

from app.core.config import get_settings
from app.core.database import async_session_factory
from app.core.logging import configure_logging
from app.core.redis import close_redis, get_redis, redis_key
from app.services.delivery import NotificationDelivery
from app.services.email import SmtpEmailSender
from app.services.push import HttpPushSender
from app.tasks.chore_scheduler import ChoreSchedulerJob
from app.tasks.notification_dispatch import NotificationDispatchJob
from app.tasks.reminders import ReminderJob

log = structlog.get_logger()
settings = get_settings()


@asynccontextmanager
async def single_flight(redis, name: str, ttl_seconds: int) -> AsyncIterator[bool]:
    """Yield True when this process holds the job lock, False when another run does."""
    lock = redis.lock(redis_key("lock", name), timeout=ttl_seconds)
    acquired = await lock.acquire(blocking=False)
    try:
        yield acquired
    finally:
        if acquired:
            try:
                await lock.release()
            except LockError:
                log.warning("job.lock_expired", job=name, ttl=ttl_seconds)


async def run_job(ctx: dict, name: str) -> dict:
    job = ctx["jobs"][name]
    async with single_flight(ctx["lock_redis"], name, settings.job_lock_ttl_seconds) as acquired:
        if not acquired:
            log.warning("job.already_running", job=name)
            return {"job": name, "skipped": "locked"}
        result = await job.run()
    return result.as_dict()


async def dispatch_notifications(ctx: dict) -> dict:
    return await run_job(ctx, "notification_dispatch")


async def send_reminders(ctx: dict) -> dict:
    return await run_job(ctx, "reminders")


async def schedule_recurring_chores(ctx: dict) -> dict:
    return await run_job(ctx, "chore_scheduler")


async def startup(ctx: dict) -> None:
    configure_logging(settings.log_level, settings.log_format)

    push_sender = HttpPushSender(settings)
    await push_sender.open()
    delivery = NotificationDelivery(SmtpEmailSender(settings), push_sender)

    ctx["push_sender"] = push_sender
    ctx["lock_redis"] = await get_redis()
    ctx["jobs"] = {
        "notification_dispatch": NotificationDispatchJob(async_session_factory, delivery),
        "reminders": ReminderJob(
            async_session_factory,
            delivery,
            window=timedelta(hours=settings.reminder_window_hours),
        ),
        "chore_scheduler": ChoreSchedulerJob(async_session_factory),
    }
    log.info("worker.started", jobs=sorted(ctx["jobs"]))


async def shutdown(ctx: dict) -> None:
    push_sender = ctx.get("push_sender")
    if push_sender is not None:
        await push_sender.close()
    await close_redis()
    log.info("worker.stopped")


def every_n_minutes(n: int) -> set[int]:
    return set(range(0, 60, max(1, n)))


class WorkerSettings:
    """ARQ worker configuration."""

    functions = [dispatch_notifications, send_reminders, schedule_recurring_chores]
    cron_jobs = [
        cron(dispatch_notifications, minute=every_n_minutes(settings.notification_dispatch_minutes)),
        cron(send_reminders, hour=settings.reminder_hour, minute=settings.reminder_minute),  # daily
        cron(schedule_recurring_chores, hour=settings.chore_scheduler_hour, minute=0),  # daily
    ]
    on_startup = startup
    on_shutdown = shutdown
    redis_settings = RedisSettings.from_dsn(settings.redis_url)
    job_timeout = settings.job_lock_ttl_seconds
