"""Lesson catalog, learner progress and idempotent submissions."""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "20261019_01_math_learning_schema"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        *_timestamps(),
        sa.Column("username", sa.String(length=128), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("display_name", sa.String(length=255), nullable=True),
        sa.Column("total_xp", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("current_streak", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("best_streak", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_activity_date", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )
    op.create_index("ix_users_username", "users", ["username"], unique=True)

    op.create_table(
        "lessons",
        sa.Column("id", sa.String(length=64), primary_key=True, nullable=False),
        *_timestamps(),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("order", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("xp_reward", sa.Integer(), nullable=False, server_default="10"),
        sa.UniqueConstraint("order", name="uq_lessons_order"),
    )

    op.create_table(
        "problems",
        sa.Column("id", sa.String(length=64), primary_key=True, nullable=False),
        *_timestamps(),
        sa.Column("lesson_id", sa.String(length=64), sa.ForeignKey("lessons.id", ondelete="CASCADE"), nullable=False),
        sa.Column("question", sa.Text(), nullable=False),
        sa.Column("problem_type", sa.String(length=32), nullable=False),
        sa.Column("order", sa.Integer(), nullable=False),
        sa.Column("correct_answer", sa.Text(), nullable=True),
        sa.Column("explanation", sa.Text(), nullable=True),
        sa.Column("difficulty", sa.String(length=16), nullable=False, server_default="easy"),
        sa.UniqueConstraint("lesson_id", "order", name="uq_problems_lesson_order"),
    )
    op.create_index("ix_problems_lesson_id", "problems", ["lesson_id"])

    op.create_table(
        "problem_options",
        sa.Column("id", sa.String(length=64), primary_key=True, nullable=False),
        *_timestamps(),
        sa.Column("problem_id", sa.String(length=64), sa.ForeignKey("problems.id", ondelete="CASCADE"), nullable=False),
        sa.Column("option_text", sa.Text(), nullable=False),
        sa.Column("is_correct", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("order", sa.Integer(), nullable=False),
        sa.UniqueConstraint("problem_id", "order", name="uq_problem_options_problem_order"),
    )

    op.create_table(
        "submissions",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("user_id", sa.String(length=36), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("lesson_id", sa.String(length=64), sa.ForeignKey("lessons.id", ondelete="CASCADE"), nullable=False),
        sa.Column("attempt_id", sa.String(length=128), nullable=False),
        sa.Column("answers", sa.JSON(), nullable=False),
        sa.Column("is_correct", sa.Boolean(), nullable=False),
        sa.Column("xp_earned", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("time_spent_seconds", sa.Integer(), nullable=True),
        sa.Column("result", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.UniqueConstraint("user_id", "lesson_id", "attempt_id", name="uq_submissions_attempt"),
    )
    op.create_index("ix_submissions_user_lesson", "submissions", ["user_id", "lesson_id"])
    op.create_index("ix_submissions_created", "submissions", ["created_at"])

    op.create_table(
        "lesson_progress",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        *_timestamps(),
        sa.Column("user_id", sa.String(length=36), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("lesson_id", sa.String(length=64), sa.ForeignKey("lessons.id", ondelete="CASCADE"), nullable=False),
        sa.Column("is_completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("completion_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("score", sa.Float(), nullable=False, server_default="0"),
        sa.Column("best_score", sa.Float(), nullable=False, server_default="0"),
        sa.Column("attempts_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_xp_earned", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("started_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.Column("last_attempt_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.UniqueConstraint("user_id", "lesson_id", name="uq_lesson_progress_user_lesson"),
    )
    op.create_index("ix_lesson_progress_user", "lesson_progress", ["user_id"])


def downgrade() -> None:
    op.drop_index("ix_lesson_progress_user", table_name="lesson_progress")
    op.drop_table("lesson_progress")
    op.drop_index("ix_submissions_created", table_name="submissions")
    op.drop_index("ix_submissions_user_lesson", table_name="submissions")
    op.drop_table("submissions")
    op.drop_table("problem_options")
    op.drop_index("ix_problems_lesson_id", table_name="problems")
    op.drop_table("problems")
    op.drop_table("lessons")
    op.drop_index("ix_users_username", table_name="users")
    op.drop_table("users")
