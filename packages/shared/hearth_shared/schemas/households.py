"""Household-scoped schemas: chores and thread messages."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .common import ChoreStatus


class ChoreResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    household_id: uuid.UUID
    title: str
    description: Optional[str] = None
    due_date: Optional[datetime] = None
    status: ChoreStatus
    priority: int
    event_id: Optional[uuid.UUID] = None
    recurrence_rule_id: Optional[uuid.UUID] = None


class ChoreListResponse(BaseModel):
    data: List[ChoreResponse]


class MessageCreateRequest(BaseModel):
    content: str = Field(min_length=1, max_length=10000)


class MessageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    thread_id: uuid.UUID
    author_id: uuid.UUID
    content: str
    created_at: datetime
