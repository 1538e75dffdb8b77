"""Household schema: users, memberships, chores, events, expenses, threads, notifications.

Revision ID: 0001_household_schema
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "0001_household_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

# Tables hidden by the soft-delete store; each gets an index on deleted_at.
SOFT_DELETE_TABLES = [
    "users",
    "households",
    "events",
    "chores",
    "expenses",
    "transactions",
    "threads",
    "messages",
    "attachments",
]


def _uuid(name: str, **kwargs) -> sa.Column:
    return sa.Column(name, postgresql.UUID(as_uuid=True), **kwargs)


def _fk(name: str, target: str, nullable: bool = False) -> sa.Column:
    return _uuid(name, sa.ForeignKey(f"{target}.id"), nullable=nullable)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
    ]


# ---------------------------------------------------------------------------
# UPGRADE
# ---------------------------------------------------------------------------


def upgrade() -> None:
    # -----------------------------------------------------------------------
    # 1. Identity and households
    # -----------------------------------------------------------------------

    op.create_table(
        "users",
        _uuid("id", primary_key=True),
        sa.Column("email", sa.Text(), nullable=True, unique=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("password_hash", sa.Text(), nullable=True),
        sa.Column("device_tokens", sa.JSON(), nullable=False, server_default="[]"),
        *_timestamps(),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "households",
        _uuid("id", primary_key=True),
        sa.Column("name", sa.Text(), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_households_name", "households", ["name"])

    op.create_table(
        "household_members",
        _uuid("id", primary_key=True),
        _fk("user_id", "users"),
        _fk("household_id", "households"),
        sa.Column("role", sa.Text(), nullable=False, server_default="MEMBER"),
        sa.Column("joined_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("left_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_invited", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_accepted", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.UniqueConstraint("user_id", "household_id"),
    )
    op.create_index("ix_household_members_user_id", "household_members", ["user_id"])
    op.create_index("ix_household_members_household_id", "household_members", ["household_id"])

    # -----------------------------------------------------------------------
    # 2. Notifications
    # -----------------------------------------------------------------------

    op.create_table(
        "notifications",
        _uuid("id", primary_key=True),
        _fk("user_id", "users"),
        sa.Column("type", sa.Text(), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    )
    op.create_index("ix_notifications_user_id", "notifications", ["user_id"])
    # Dispatch job scans unread rows
    op.create_index(
        "ix_notifications_unread", "notifications", ["created_at"], postgresql_where=sa.text("is_read = false")
    )

    op.create_table(
        "notification_settings",
        _uuid("id", primary_key=True),
        _fk("user_id", "users"),
        _fk("household_id", "households", nullable=True),
        *[
            sa.Column(flag, sa.Boolean(), nullable=False, server_default=sa.true())
            for flag in (
                "message_notif",
                "mentions_notif",
                "reactions_notif",
                "chore_notif",
                "finance_notif",
                "calendar_notif",
                "reminders_notif",
            )
        ],
    )
    op.create_index("ix_notification_settings_user_id", "notification_settings", ["user_id"])

    # -----------------------------------------------------------------------
    # 3. Calendar and chores
    # -----------------------------------------------------------------------

    op.create_table(
        "recurrence_rules",
        _uuid("id", primary_key=True),
        sa.Column("frequency", sa.Text(), nullable=False),
        sa.Column("interval", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    )

    op.create_table(
        "events",
        _uuid("id", primary_key=True),
        _fk("household_id", "households"),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_time", sa.DateTime(timezone=True), nullable=False),
        _fk("created_by_id", "users"),
        sa.Column("category", sa.Text(), nullable=False, server_default="OTHER"),
        sa.Column("status", sa.Text(), nullable=False, server_default="SCHEDULED"),
        sa.Column("is_all_day", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_private", sa.Boolean(), nullable=False, server_default=sa.false()),
        _fk("recurrence_rule_id", "recurrence_rules", nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_events_household_id", "events", ["household_id"])

    op.create_table(
        "chores",
        _uuid("id", primary_key=True),
        _fk("household_id", "households"),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("due_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("status", sa.Text(), nullable=False, server_default="PENDING"),
        sa.Column("priority", sa.Integer(), nullable=False, server_default="0"),
        _fk("event_id", "events", nullable=True),
        _fk("recurrence_rule_id", "recurrence_rules", nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_chores_household_id", "chores", ["household_id"])
    op.create_index("ix_chores_due_date", "chores", ["due_date"])

    op.create_table(
        "chore_assignments",
        _uuid("id", primary_key=True),
        _fk("chore_id", "chores"),
        _fk("user_id", "users"),
        sa.Column("assigned_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    )
    op.create_index("ix_chore_assignments_chore_id", "chore_assignments", ["chore_id"])
    op.create_index("ix_chore_assignments_user_id", "chore_assignments", ["user_id"])

    # -----------------------------------------------------------------------
    # 4. Finance
    # -----------------------------------------------------------------------

    op.create_table(
        "expenses",
        _uuid("id", primary_key=True),
        _fk("household_id", "households"),
        _fk("created_by_id", "users"),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("amount", sa.Float(), nullable=False),
        sa.Column("due_date", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_expenses_household_id", "expenses", ["household_id"])
    op.create_index("ix_expenses_due_date", "expenses", ["due_date"])

    op.create_table(
        "expense_splits",
        _uuid("id", primary_key=True),
        _fk("expense_id", "expenses"),
        _fk("user_id", "users"),
        sa.Column("amount", sa.Float(), nullable=False),
    )
    op.create_index("ix_expense_splits_expense_id", "expense_splits", ["expense_id"])
    op.create_index("ix_expense_splits_user_id", "expense_splits", ["user_id"])

    op.create_table(
        "transactions",
        _uuid("id", primary_key=True),
        _fk("household_id", "households"),
        _fk("expense_id", "expenses", nullable=True),
        _fk("from_user_id", "users"),
        _fk("to_user_id", "users"),
        sa.Column("amount", sa.Float(), nullable=False),
        sa.Column("status", sa.Text(), nullable=False, server_default="PENDING"),
        *_timestamps(),
    )
    op.create_index("ix_transactions_household_id", "transactions", ["household_id"])

    # -----------------------------------------------------------------------
    # 5. Messaging
    # -----------------------------------------------------------------------

    op.create_table(
        "threads",
        _uuid("id", primary_key=True),
        _fk("household_id", "households"),
        _fk("author_id", "users"),
        sa.Column("title", sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_threads_household_id", "threads", ["household_id"])

    op.create_table(
        "messages",
        _uuid("id", primary_key=True),
        _fk("thread_id", "threads"),
        _fk("author_id", "users"),
        sa.Column("content", sa.Text(), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_messages_thread_id", "messages", ["thread_id", sa.text("created_at DESC")])
    op.create_index("ix_messages_author_id", "messages", ["author_id"])

    op.create_table(
        "attachments",
        _uuid("id", primary_key=True),
        _fk("message_id", "messages"),
        sa.Column("url", sa.Text(), nullable=False),
        sa.Column("file_type", sa.Text(), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_attachments_message_id", "attachments", ["message_id"])

    # -----------------------------------------------------------------------
    # 6. Soft-delete indexes
    # -----------------------------------------------------------------------

    for table in SOFT_DELETE_TABLES:
        op.create_index(f"ix_{table}_deleted_at", table, ["deleted_at"])


# ---------------------------------------------------------------------------
# DOWNGRADE
# ---------------------------------------------------------------------------


def downgrade() -> None:
    # Reverse dependency order; indexes go with their tables
    op.drop_table("attachments")
    op.drop_table("messages")
    op.drop_table("threads")
    op.drop_table("transactions")
    op.drop_table("expense_splits")
    op.drop_table("expenses")
    op.drop_table("chore_assignments")
    op.drop_table("chores")
    op.drop_table("events")
    op.drop_table("recurrence_rules")
    op.drop_table("notification_settings")
    op.drop_table("notifications")
    op.drop_table("household_members")
    op.drop_table("households")
    op.drop_table("users")
