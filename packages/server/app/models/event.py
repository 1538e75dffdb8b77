"""Calendar event model."""

from datetime import datetime
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import SoftDeleteMixin, TimestampMixin, UUIDMixin


class Event(UUIDMixin, TimestampMixin, SoftDeleteMixin, SQLModel, table=True):
    __tablename__ = "events"

    household_id: uuid.UUID = Field(foreign_key="households.id", nullable=False, index=True)
    title: str = Field(nullable=False)
    description: Optional[str] = None
    start_time: datetime = Field(nullable=False, sa_type=sa.DateTime(timezone=True))
    end_time: datetime = Field(nullable=False, sa_type=sa.DateTime(timezone=True))
    created_by_id: uuid.UUID = Field(foreign_key="users.id", nullable=False)
    category: str = Field(default="OTHER", nullable=False)  # CHORE | MEETING | SOCIAL | OTHER
    status: str = Field(default="SCHEDULED", nullable=False)
    is_all_day: bool = Field(default=False, nullable=False)
    is_private: bool = Field(default=False, nullable=False)
    recurrence_rule_id: Optional[uuid.UUID] = Field(default=None, foreign_key="recurrence_rules.id")
