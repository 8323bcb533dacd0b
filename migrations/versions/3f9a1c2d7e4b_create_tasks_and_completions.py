"""Create tasks and task_completions tables.

Revision ID: 3f9a1c2d7e4b
Revises:
Create Date: 2026-10-19 00:00:00.000000
"""

from __future__ import annotations

import sqlalchemy as sa
import sqlmodel
from alembic import op


# revision identifiers, used by Alembic.
revision = "3f9a1c2d7e4b"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Create the task and completion tables with their lookup indexes."""
    op.create_table(
        "tasks",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("text", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column("frequency_type", sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column("frequency_data", sa.JSON(), nullable=True),
        sa.Column("frequency_time", sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column("completed", sa.Boolean(), nullable=False),
        sa.Column("duration_seconds", sa.Integer(), nullable=True),
        sa.Column("timer_status", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column("timer_started_at", sa.DateTime(), nullable=True),
        sa.Column("project_id", sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_tasks_frequency_type", "tasks", ["frequency_type"])
    op.create_index("ix_tasks_timer_status", "tasks", ["timer_status"])
    op.create_index("ix_tasks_project_id", "tasks", ["project_id"])

    op.create_table(
        "task_completions",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("task_id", sa.Uuid(), nullable=False),
        sa.Column("completed_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["task_id"], ["tasks.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_task_completions_task_id", "task_completions", ["task_id"])
    op.create_index("ix_task_completions_completed_at", "task_completions", ["completed_at"])


def downgrade() -> None:
    """Drop the task and completion tables."""
    op.drop_index("ix_task_completions_completed_at", table_name="task_completions")
    op.drop_index("ix_task_completions_task_id", table_name="task_completions")
    op.drop_table("task_completions")
    op.drop_index("ix_tasks_project_id", table_name="tasks")
    op.drop_index("ix_tasks_timer_status", table_name="tasks")
    op.drop_index("ix_tasks_frequency_type", table_name="tasks")
    op.drop_table("tasks")
