"""Chore, assignment and recurrence rule models."""

from datetime import datetime
from typing import List, Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, Relationship, SQLModel

from .base import SoftDeleteMixin, TimestampMixin, UUIDMixin, utcnow


class RecurrenceRule(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "recurrence_rules"

    frequency: str = Field(nullable=False)  # DAILY | WEEKLY | BIWEEKLY | MONTHLY | YEARLY
    interval: int = Field(default=1, nullable=False)


class Chore(UUIDMixin, TimestampMixin, SoftDeleteMixin, SQLModel, table=True):
    __tablename__ = "chores"

    household_id: uuid.UUID = Field(foreign_key="households.id", nullable=False, index=True)
    title: str = Field(nullable=False)
    description: Optional[str] = None
    due_date: Optional[datetime] = Field(default=None, index=True, sa_type=sa.DateTime(timezone=True))
    status: str = Field(default="PENDING", nullable=False)  # PENDING | IN_PROGRESS | COMPLETED
    priority: int = Field(default=0, nullable=False)
    event_id: Optional[uuid.UUID] = Field(default=None, foreign_key="events.id")
    recurrence_rule_id: Optional[uuid.UUID] = Field(default=None, foreign_key="recurrence_rules.id")

    household: Optional["Household"] = Relationship(back_populates="chores")
    assignments: List["ChoreAssignment"] = Relationship(back_populates="chore")
    recurrence_rule: Optional["RecurrenceRule"] = Relationship()


class ChoreAssignment(UUIDMixin, SQLModel, table=True):
    __tablename__ = "chore_assignments"

    chore_id: uuid.UUID = Field(foreign_key="chores.id", nullable=False, index=True)
    user_id: uuid.UUID = Field(foreign_key="users.id", nullable=False, index=True)
    assigned_at: datetime = Field(default_factory=utcnow, sa_type=sa.DateTime(timezone=True))

    chore: Optional["Chore"] = Relationship(back_populates="assignments")
    user: Optional["User"] = Relationship()
