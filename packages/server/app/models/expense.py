"""Expense, split and settlement transaction models."""

from datetime import datetime
from typing import List, Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, Relationship, SQLModel

from .base import SoftDeleteMixin, TimestampMixin, UUIDMixin


class Expense(UUIDMixin, TimestampMixin, SoftDeleteMixin, SQLModel, table=True):
    __tablename__ = "expenses"

    household_id: uuid.UUID = Field(foreign_key="households.id", nullable=False, index=True)
    created_by_id: uuid.UUID = Field(foreign_key="users.id", nullable=False)
    description: str = Field(nullable=False)
    amount: float = Field(nullable=False)
    due_date: Optional[datetime] = Field(default=None, index=True, sa_type=sa.DateTime(timezone=True))

    household: Optional["Household"] = Relationship()
    splits: List["ExpenseSplit"] = Relationship(back_populates="expense")


class ExpenseSplit(UUIDMixin, SQLModel, table=True):
    __tablename__ = "expense_splits"

    expense_id: uuid.UUID = Field(foreign_key="expenses.id", nullable=False, index=True)
    user_id: uuid.UUID = Field(foreign_key="users.id", nullable=False, index=True)
    amount: float = Field(nullable=False)

    expense: Optional["Expense"] = Relationship(back_populates="splits")
    user: Optional["User"] = Relationship()


class Transaction(UUIDMixin, TimestampMixin, SoftDeleteMixin, SQLModel, table=True):
    __tablename__ = "transactions"

    household_id: uuid.UUID = Field(foreign_key="households.id", nullable=False, index=True)
    expense_id: Optional[uuid.UUID] = Field(default=None, foreign_key="expenses.id")
    from_user_id: uuid.UUID = Field(foreign_key="users.id", nullable=False)
    to_user_id: uuid.UUID = Field(foreign_key="users.id", nullable=False)
    amount: float = Field(nullable=False)
    status: str = Field(default="PENDING", nullable=False)  # PENDING | COMPLETED
