"""create tasks, agent_state and activity_log tables

Revision ID: 1a2b3c4d5e6f
Revises:
Create Date: 2026-10-18 00:00:00.000000

"""

from __future__ import annotations

import sqlalchemy as sa
import sqlmodel
from alembic import op

# revision identifiers, used by Alembic.
revision = "1a2b3c4d5e6f"
down_revision = None
branch_labels = None
depends_on = None


def _has_table(table_name: str) -> bool:
    return sa.inspect(op.get_bind()).has_table(table_name)


def upgrade() -> None:
    if not _has_table("tasks"):
        op.create_table(
            "tasks",
            sa.Column("id", sa.Uuid(), nullable=False),
            sa.Column("title", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
            sa.Column("description", sqlmodel.sql.sqltypes.AutoString(), nullable=True),
            sa.Column("column_status", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
            sa.Column("priority", sqlmodel.sql.sqltypes.AutoString(), nullable=True),
            sa.Column("assignee", sqlmodel.sql.sqltypes.AutoString(), nullable=True),
            sa.Column("due_date", sa.DateTime(), nullable=True),
            sa.Column("labels", sa.JSON(), nullable=False),
            sa.Column("created_by", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.Column("updated_at", sa.DateTime(), nullable=False),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_tasks_column_status", "tasks", ["column_status"])
        op.create_index("ix_tasks_priority", "tasks", ["priority"])
        op.create_index("ix_tasks_assignee", "tasks", ["assignee"])
        op.create_index("ix_tasks_due_date", "tasks", ["due_date"])
        op.create_index("ix_tasks_created_at", "tasks", ["created_at"])

    if not _has_table("agent_state"):
        op.create_table(
            "agent_state",
            sa.Column("id", sa.Uuid(), nullable=False),
            sa.Column("agent_id", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
            sa.Column("status", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
            sa.Column("current_model", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
            sa.Column("model_list", sa.JSON(), nullable=False),
            sa.Column("last_heartbeat", sa.DateTime(), nullable=True),
            sa.Column("auto_pickup_enabled", sa.Boolean(), nullable=False),
            sa.Column("max_concurrent_tasks", sa.Integer(), nullable=False),
            sa.Column("due_date_urgency_hours", sa.Integer(), nullable=False),
            sa.Column("nightly_start_hour", sa.Integer(), nullable=False),
            sa.Column("repick_window_minutes", sa.Integer(), nullable=False),
            sa.Column("updated_at", sa.DateTime(), nullable=True),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_agent_state_agent_id", "agent_state", ["agent_id"], unique=True)

    if not _has_table("activity_log"):
        op.create_table(
            "activity_log",
            sa.Column("id", sa.Uuid(), nullable=False),
            sa.Column("actor", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
            sa.Column("action", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
            sa.Column("entity_type", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
            sa.Column("entity_id", sqlmodel.sql.sqltypes.AutoString(), nullable=True),
            sa.Column("changes", sa.JSON(), nullable=True),
            sa.Column("metadata", sa.JSON(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_activity_log_actor", "activity_log", ["actor"])
        op.create_index("ix_activity_log_action", "activity_log", ["action"])
        op.create_index("ix_activity_log_entity_type", "activity_log", ["entity_type"])
        op.create_index("ix_activity_log_entity_id", "activity_log", ["entity_id"])
        op.create_index("ix_activity_log_created_at", "activity_log", ["created_at"])


def downgrade() -> None:
    op.drop_table("activity_log")
    op.drop_table("agent_state")
    op.drop_table("tasks")
