"""initial schema

Revision ID: 20261018_0001
Revises:
Create Date: 2026-10-18 00:00:00
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "20261018_0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=150), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("role", sa.String(length=20), nullable=False),
        sa.Column("avatar_url", sa.String(length=500), nullable=True),
        sa.Column("bio", sa.Text(), nullable=True),
        sa.Column("invite_code", sa.String(length=12), nullable=True, unique=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("NOW()"), nullable=False),
    )
    op.create_index("ix_users_id", "users", ["id"], unique=False)
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "coach_client_connections",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("coach_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("client_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column("requested_at", sa.DateTime(timezone=True), server_default=sa.text("NOW()"), nullable=False),
        sa.Column("responded_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_coach_client_connections_coach_id", "coach_client_connections", ["coach_id"])
    op.create_index("ix_coach_client_connections_client_id", "coach_client_connections", ["client_id"])
    op.create_index(
        "uq_connections_live_pair",
        "coach_client_connections",
        ["coach_id", "client_id"],
        unique=True,
        postgresql_where=sa.text("status != 'declined'"),
        sqlite_where=sa.text("status != 'declined'"),
    )

    op.create_table(
        "workouts",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("coach_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(length=120), nullable=False),
    )
    op.create_index("ix_workouts_coach_id", "workouts", ["coach_id"])

    op.create_table(
        "workout_assignments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("client_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("workout_id", sa.Integer(), sa.ForeignKey("workouts.id", ondelete="CASCADE"), nullable=False),
        sa.Column("scheduled_date", sa.Date(), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="active"),
    )
    op.create_index("ix_workout_assignments_client_id", "workout_assignments", ["client_id"])

    op.create_table(
        "workout_history",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("client_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("workout_id", sa.Integer(), sa.ForeignKey("workouts.id", ondelete="SET NULL"), nullable=True),
        sa.Column("workout_name", sa.String(length=120), nullable=True),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("NOW()"), nullable=False),
    )
    op.create_index("ix_workout_history_client_id", "workout_history", ["client_id"])
    op.create_index("ix_workout_history_completed_at", "workout_history", ["completed_at"])

    op.create_table(
        "personal_bests",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("client_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("exercise_id", sa.String(length=64), nullable=False),
        sa.Column("exercise_name", sa.String(length=120), nullable=False),
        sa.Column("best_weight", sa.Float(), nullable=False),
        sa.Column("best_reps", sa.Integer(), nullable=True),
        sa.Column("previous_best_weight", sa.Float(), nullable=True),
        sa.Column("achieved_at", sa.DateTime(timezone=True), server_default=sa.text("NOW()"), nullable=False),
    )
    op.create_index("ix_personal_bests_client_id", "personal_bests", ["client_id"])

    op.create_table(
        "nutrition_logs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("client_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("logged_on", sa.Date(), nullable=False),
        sa.Column("calories", sa.Integer(), nullable=True),
        sa.Column("protein_g", sa.Float(), nullable=True),
    )
    op.create_index("ix_nutrition_logs_client_id", "nutrition_logs", ["client_id"])

    op.create_table(
        "ledger_entries",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("coach_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("kind", sa.String(length=20), nullable=False),
        sa.Column("item_id", sa.String(length=200), nullable=False),
        sa.Column("acknowledged_at", sa.DateTime(timezone=True), server_default=sa.text("NOW()"), nullable=False),
        sa.UniqueConstraint("coach_id", "kind", "item_id", name="ledger_entries_unique"),
    )
    op.create_index("ix_ledger_entries_coach_id", "ledger_entries", ["coach_id"])


def downgrade() -> None:
    op.drop_index("ix_ledger_entries_coach_id", table_name="ledger_entries")
    op.drop_table("ledger_entries")
    op.drop_index("ix_nutrition_logs_client_id", table_name="nutrition_logs")
    op.drop_table("nutrition_logs")
    op.drop_index("ix_personal_bests_client_id", table_name="personal_bests")
    op.drop_table("personal_bests")
    op.drop_index("ix_workout_history_completed_at", table_name="workout_history")
    op.drop_index("ix_workout_history_client_id", table_name="workout_history")
    op.drop_table("workout_history")
    op.drop_index("ix_workout_assignments_client_id", table_name="workout_assignments")
    op.drop_table("workout_assignments")
    op.drop_index("ix_workouts_coach_id", table_name="workouts")
    op.drop_table("workouts")
    op.drop_index("uq_connections_live_pair", table_name="coach_client_connections")
    op.drop_index("ix_coach_client_connections_client_id", table_name="coach_client_connections")
    op.drop_index("ix_coach_client_connections_coach_id", table_name="coach_client_connections")
    op.drop_table("coach_client_connections")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_index("ix_users_id", table_name="users")
    op.drop_table("users")
