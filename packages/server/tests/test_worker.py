"""
Tests for the ARQ worker wiring and the single-flight job lock.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.exceptions import LockNotOwnedError

from app.core.config import get_settings
from app.tasks.base import JobResult
from app.tasks.worker import (
    WorkerSettings,
    dispatch_notifications,
    every_n_minutes,
    run_job,
    schedule_recurring_chores,
    send_reminders,
    single_flight,
)

settings = get_settings()


def fake_redis(acquired: bool):
    lock = MagicMock()
    lock.acquire = AsyncMock(return_value=acquired)
    lock.release = AsyncMock()
    redis = MagicMock()
    redis.lock = MagicMock(return_value=lock)
    return redis, lock


class TestSingleFlight:
    @pytest.mark.asyncio
    async def test_acquires_and_releases(self):
        redis, lock = fake_redis(acquired=True)
        async with single_flight(redis, "reminders", 60) as acquired:
            assert acquired is True
        redis.lock.assert_called_once_with("hearth:lock:reminders", timeout=60)
        lock.acquire.assert_awaited_once_with(blocking=False)
        lock.release.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_busy_lock_not_released(self):
        redis, lock = fake_redis(acquired=False)
        async with single_flight(redis, "reminders", 60) as acquired:
            assert acquired is False
        lock.release.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_expired_lock_release_is_logged_not_raised(self):
        redis, lock = fake_redis(acquired=True)
        lock.release.side_effect = LockNotOwnedError("gone")
        async with single_flight(redis, "reminders", 1):
            pass


class TestRunJob:
    @pytest.mark.asyncio
    async def test_runs_job_and_returns_summary(self):
        redis, _ = fake_redis(acquired=True)
        job = MagicMock()
        job.run = AsyncMock(return_value=JobResult("reminders", processed=2, succeeded=2))
        ctx = {"lock_redis": redis, "jobs": {"reminders": job}}

        summary = await send_reminders(ctx)

        assert summary == {"job": "reminders", "processed": 2, "succeeded": 2, "failed": 0, "skipped": 0}

    @pytest.mark.asyncio
    async def test_skips_when_locked(self):
        redis, _ = fake_redis(acquired=False)
        job = MagicMock()
        job.run = AsyncMock()
        ctx = {"lock_redis": redis, "jobs": {"chore_scheduler": job}}

        summary = await run_job(ctx, "chore_scheduler")

        assert summary == {"job": "chore_scheduler", "skipped": "locked"}
        job.run.assert_not_awaited()


class TestWorkerSettings:
    def test_cron_jobs_registered(self):
        names = {job.name for job in WorkerSettings.cron_jobs}
        assert names == {
            "cron:dispatch_notifications",
            "cron:send_reminders",
            "cron:schedule_recurring_chores",
        }
        assert set(WorkerSettings.functions) == {
            dispatch_notifications,
            send_reminders,
            schedule_recurring_chores,
        }

    def test_reminders_run_once_a_day(self):
        job = next(j for j in WorkerSettings.cron_jobs if j.name == "cron:send_reminders")
        assert job.hour == settings.reminder_hour
        assert job.minute == settings.reminder_minute

    def test_every_n_minutes(self):
        assert every_n_minutes(5) == {0, 5, 10, 15, 20, 25, 30, 35, 40, 45, 50, 55}
        assert every_n_minutes(0) == set(range(60))
