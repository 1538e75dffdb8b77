"""Messaging thread, message and attachment models."""

from typing import Optional
import uuid

from sqlmodel import Field, SQLModel

from .base import SoftDeleteMixin, TimestampMixin, UUIDMixin


class Thread(UUIDMixin, TimestampMixin, SoftDeleteMixin, SQLModel, table=True):
    __tablename__ = "threads"

    household_id: uuid.UUID = Field(foreign_key="households.id", nullable=False, index=True)
    author_id: uuid.UUID = Field(foreign_key="users.id", nullable=False)
    title: Optional[str] = None


class Message(UUIDMixin, TimestampMixin, SoftDeleteMixin, SQLModel, table=True):
    __tablename__ = "messages"

    thread_id: uuid.UUID = Field(foreign_key="threads.id", nullable=False, index=True)
    author_id: uuid.UUID = Field(foreign_key="users.id", nullable=False, index=True)
    content: str = Field(nullable=False)


class Attachment(UUIDMixin, TimestampMixin, SoftDeleteMixin, SQLModel, table=True):
    __tablename__ = "attachments"

    message_id: uuid.UUID = Field(foreign_key="messages.id", nullable=False, index=True)
    url: str = Field(nullable=False)
    file_type: str = Field(nullable=False)
