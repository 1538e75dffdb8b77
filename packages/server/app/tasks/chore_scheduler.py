"""
Background job: materialize the next instance of every recurring chore.

For each household with an ADMIN among its active, accepted members, each
chore that has a recurrence rule spawns:

- an all-day CHORE event ``Chore: <title>`` spanning the next 24h, created by
  the admin and carrying the recurrence rule id
- a PENDING chore due ``now + offset`` linked to that event and assigned to a
  uniformly random active member

The spawned chore does not carry the recurrence rule, so only the original
definition keeps spawning.
"""

from __future__ import annotations

import random
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

import structlog
from sqlalchemy.orm import selectinload

from app.models.base import utcnow
from app.models.chore import Chore, ChoreAssignment
from app.models.event import Event
from app.models.household import Household, HouseholdMember
from app.tasks.base import JobResult, SessionFactory, soft_store
from hearth_shared.schemas.common import (
    ChoreStatus,
    EventCategory,
    EventStatus,
    HouseholdRole,
    RecurrenceFrequency,
)

log = structlog.get_logger()

JOB_NAME = "chore_scheduler"

FREQUENCY_OFFSETS = {
    RecurrenceFrequency.DAILY.value: timedelta(days=1),
    RecurrenceFrequency.WEEKLY.value: timedelta(days=7),
    RecurrenceFrequency.BIWEEKLY.value: timedelta(days=14),
    RecurrenceFrequency.MONTHLY.value: timedelta(days=30),
    RecurrenceFrequency.YEARLY.value: timedelta(days=365),
}
EVENT_DURATION = timedelta(hours=24)


def frequency_offset(frequency: str) -> Optional[timedelta]:
    return FREQUENCY_OFFSETS.get(frequency)


@dataclass
class _Template:
    chore_id: uuid.UUID
    household_id: uuid.UUID
    title: str
    description: Optional[str]
    priority: int
    recurrence_rule_id: uuid.UUID
    offset: timedelta


class ChoreSchedulerJob:
    def __init__(
        self,
        session_factory: SessionFactory,
        *,
        clock: Callable[[], datetime] = utcnow,
        rng: Optional[random.Random] = None,
    ):
        self._session_factory = session_factory
        self._clock = clock
        self._rng = rng or random.Random()

    async def _spawn(
        self,
        store,
        template: _Template,
        admin_id: uuid.UUID,
        member_ids: list[uuid.UUID],
    ) -> Chore:
        now = self._clock()
        assignee_id = self._rng.choice(member_ids)

        event = await store.create(
            Event,
            {
                "household_id": template.household_id,
                "title": f"Chore: {template.title}",
                "description": template.description,
                "start_time": now,
                "end_time": now + EVENT_DURATION,
                "created_by_id": admin_id,
                "category": EventCategory.CHORE.value,
                "status": EventStatus.SCHEDULED.value,
                "is_all_day": True,
                "is_private": False,
                "recurrence_rule_id": template.recurrence_rule_id,
            },
        )
        chore = await store.create(
            Chore,
            {
                "household_id": template.household_id,
                "title": template.title,
                "description": template.description,
                "due_date": now + template.offset,
                "status": ChoreStatus.PENDING.value,
                "priority": template.priority,
                "event_id": event.id,
            },
        )
        await store.create(
            ChoreAssignment,
            {"chore_id": chore.id, "user_id": assignee_id, "assigned_at": now},
        )
        log.info(
            "chore_scheduler.spawned",
            chore_id=str(chore.id),
            event_id=str(event.id),
            source_chore_id=str(template.chore_id),
            assignee_id=str(assignee_id),
            household_id=str(template.household_id),
        )
        return chore

    async def run(self) -> JobResult:
        result = JobResult(JOB_NAME)

        async with self._session_factory() as session:
            store = soft_store(session)
            household_ids = [household.id for household in await store.find_many(Household)]

            for household_id in household_ids:
                members = await store.find_many(
                    HouseholdMember,
                    {"household_id": household_id, "left_at": None, "is_accepted": True},
                    order_by=[HouseholdMember.joined_at],
                )
                admin = next((m for m in members if m.role == HouseholdRole.ADMIN.value), None)
                if admin is None:
                    log.warning("chore_scheduler.no_admin", household_id=str(household_id))
                    continue
                admin_id = admin.user_id
                member_ids = [m.user_id for m in members]

                chores = await store.find_many(
                    Chore,
                    {"household_id": household_id, "recurrence_rule_id__ne": None},
                    options=[selectinload(Chore.recurrence_rule)],
                )
                templates = []
                for chore in chores:
                    rule = chore.recurrence_rule
                    offset = frequency_offset(rule.frequency) if rule else None
                    if offset is None:
                        log.warning(
                            "chore_scheduler.unknown_frequency",
                            chore_id=str(chore.id),
                            frequency=rule.frequency if rule else None,
                        )
                        result.skipped += 1
                        continue
                    templates.append(
                        _Template(
                            chore_id=chore.id,
                            household_id=household_id,
                            title=chore.title,
                            description=chore.description,
                            priority=chore.priority,
                            recurrence_rule_id=chore.recurrence_rule_id,
                            offset=offset,
                        )
                    )

                for template in templates:
                    result.processed += 1
                    try:
                        await self._spawn(store, template, admin_id, member_ids)
                        await store.commit()
                        result.succeeded += 1
                    except Exception:
                        await store.rollback()
                        result.failed += 1
                        log.exception("chore_scheduler.failed", chore_id=str(template.chore_id))

        log.info(JOB_NAME + ".completed", **result.as_dict())
        return result
