"""User model."""

from typing import List, Optional

import sqlalchemy as sa
from sqlmodel import Field, Relationship, SQLModel

from .base import SoftDeleteMixin, TimestampMixin, UUIDMixin


class User(UUIDMixin, TimestampMixin, SoftDeleteMixin, SQLModel, table=True):
    __tablename__ = "users"

    email: Optional[str] = Field(default=None, unique=True, index=True)
    name: str = Field(nullable=False)
    password_hash: Optional[str] = Field(default=None)  # bcrypt hash for email/password login
    device_tokens: List[str] = Field(
        default_factory=list,
        sa_column=sa.Column(sa.JSON, nullable=False, server_default="[]"),
    )

    memberships: List["HouseholdMember"] = Relationship(back_populates="user")
    notification_settings: List["NotificationSettings"] = Relationship(back_populates="user")
