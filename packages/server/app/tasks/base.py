"""Shared plumbing for the scheduled jobs."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.soft_delete import SoftDeleteStore
from app.core.store import Store

SessionFactory = Callable[[], AsyncSession]


@dataclass
class JobResult:
    """Outcome of one job run, returned to the scheduler."""

    name: str
    processed: int = 0
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0

    @property
    def ok(self) -> bool:
        return self.failed == 0

    def as_dict(self) -> dict:
        return {
            "job": self.name,
            "processed": self.processed,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "skipped": self.skipped,
        }


def soft_store(session: AsyncSession) -> SoftDeleteStore:
    return SoftDeleteStore(Store(session))
