"""Household and membership models."""

from datetime import datetime
from typing import List, Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, Relationship, SQLModel

from .base import SoftDeleteMixin, TimestampMixin, UUIDMixin, utcnow


class Household(UUIDMixin, TimestampMixin, SoftDeleteMixin, SQLModel, table=True):
    __tablename__ = "households"

    name: str = Field(nullable=False, index=True)

    members: List["HouseholdMember"] = Relationship(back_populates="household")
    chores: List["Chore"] = Relationship(back_populates="household")


class HouseholdMember(UUIDMixin, SQLModel, table=True):
    """Membership join table. Ends via left_at, never soft-deleted."""

    __tablename__ = "household_members"
    __table_args__ = (sa.UniqueConstraint("user_id", "household_id"),)

    user_id: uuid.UUID = Field(foreign_key="users.id", nullable=False, index=True)
    household_id: uuid.UUID = Field(foreign_key="households.id", nullable=False, index=True)
    role: str = Field(nullable=False, default="MEMBER")  # ADMIN | MEMBER
    joined_at: datetime = Field(default_factory=utcnow, sa_type=sa.DateTime(timezone=True))
    left_at: Optional[datetime] = Field(default=None, sa_type=sa.DateTime(timezone=True))
    is_invited: bool = Field(default=False, nullable=False)
    is_accepted: bool = Field(default=False, nullable=False)

    household: Optional["Household"] = Relationship(back_populates="members")
    user: Optional["User"] = Relationship(back_populates="memberships")
