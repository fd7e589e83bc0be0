"""add post adoption followups table

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


FOLLOWUP_TYPES = ("initial_3_days", "week_1", "week_2", "month_1", "month_3", "month_6", "year_1", "custom")
FOLLOWUP_STATUSES = ("pending", "completed", "skipped", "overdue")
ADAPTATION_LEVELS = ("excellent", "good", "fair", "poor", "concerning")
RISK_LEVELS = ("low", "medium", "high", "critical")


def upgrade() -> None:
    op.create_table(
        "post_adoption_followups",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("adoption_id", sa.String(length=64), nullable=False),
        sa.Column("adopter_id", sa.String(length=64), nullable=False),
        sa.Column("owner_id", sa.String(length=64), nullable=True),
        sa.Column("follow_up_type", sa.Enum(*FOLLOWUP_TYPES, name="followup_type"), nullable=False),
        sa.Column("status", sa.Enum(*FOLLOWUP_STATUSES, name="followup_status"), nullable=False, server_default="pending"),
        sa.Column("scheduled_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("completed_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("adaptation_level", sa.Enum(*ADAPTATION_LEVELS, name="adaptation_level"), nullable=True),
        sa.Column("eating_well", sa.Boolean(), nullable=True),
        sa.Column("sleeping_well", sa.Boolean(), nullable=True),
        sa.Column("using_bathroom_properly", sa.Boolean(), nullable=True),
        sa.Column("showing_affection", sa.Boolean(), nullable=True),
        sa.Column("behavioral_issues", sa.JSON(), nullable=False),
        sa.Column("health_concerns", sa.JSON(), nullable=False),
        sa.Column("vet_visit_scheduled", sa.Boolean(), nullable=True),
        sa.Column("vet_visit_date", sa.Date(), nullable=True),
        sa.Column("satisfaction_score", sa.Integer(), nullable=True),
        sa.Column("would_recommend", sa.Boolean(), nullable=True),
        sa.Column("additional_comments", sa.Text(), nullable=True),
        sa.Column("needs_support", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("support_type", sa.JSON(), nullable=False),
        sa.Column("risk_score", sa.Float(), nullable=True),
        sa.Column("risk_level", sa.Enum(*RISK_LEVELS, name="risk_level"), nullable=True),
        sa.Column("follow_up_required", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("reminder_sent", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("reminder_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_reminder_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_index("ix_post_adoption_followups_adoption_id", "post_adoption_followups", ["adoption_id"], unique=False)
    op.create_index("ix_post_adoption_followups_adopter_id", "post_adoption_followups", ["adopter_id"], unique=False)
    op.create_index("ix_followups_status_scheduled_date", "post_adoption_followups", ["status", "scheduled_date"], unique=False)
    op.create_index("ix_followups_owner_status", "post_adoption_followups", ["owner_id", "status"], unique=False)
    op.create_index(
        "uq_followups_adoption_type",
        "post_adoption_followups",
        ["adoption_id", "follow_up_type"],
        unique=True,
        postgresql_where=sa.text("follow_up_type <> 'custom'"),
    )


def downgrade() -> None:
    op.drop_index("uq_followups_adoption_type", table_name="post_adoption_followups")
    op.drop_index("ix_followups_owner_status", table_name="post_adoption_followups")
    op.drop_index("ix_followups_status_scheduled_date", table_name="post_adoption_followups")
    op.drop_index("ix_post_adoption_followups_adopter_id", table_name="post_adoption_followups")
    op.drop_index("ix_post_adoption_followups_adoption_id", table_name="post_adoption_followups")

    op.drop_table("post_adoption_followups")

    op.execute("DROP TYPE IF EXISTS risk_level")
    op.execute("DROP TYPE IF EXISTS adaptation_level")
    op.execute("DROP TYPE IF EXISTS followup_status")
    op.execute("DROP TYPE IF EXISTS followup_type")
