"""Create the canonical automation tables.

Revision ID: 001_automation_initial
Revises: —
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa

revision = "001_automation_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Create automation_use_cases and automation_runs."""

    # automation_use_cases
    op.create_table(
        "automation_use_cases",
        sa.Column("id", sa.Text, primary_key=True),
        sa.Column("name", sa.Text, nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("owner", sa.Text, nullable=True),
        sa.Column("status", sa.Text, nullable=False, server_default="ACTIVE", comment="ACTIVE | DEPRECATED | DRAFT"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("status IN ('ACTIVE','DEPRECATED','DRAFT')", name="ck_automation_use_cases_status"),
    )

    # automation_runs
    op.create_table(
        "automation_runs",
        sa.Column("id", sa.Text, primary_key=True),
        sa.Column(
            "use_case_id",
            sa.Text,
            sa.ForeignKey("automation_use_cases.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("status", sa.Text, nullable=False, comment="PASS | FAIL | SKIP | RUNNING"),
        sa.Column("duration_seconds", sa.Integer, nullable=False),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint("status IN ('PASS','FAIL','SKIP','RUNNING')", name="ck_automation_runs_status"),
    )
    op.create_index("ix_automation_runs_use_case_id", "automation_runs", ["use_case_id"])
    op.create_index("ix_automation_runs_started_at", "automation_runs", ["started_at"])


def downgrade() -> None:
    """Drop the canonical automation tables."""
    op.drop_index("ix_automation_runs_started_at", table_name="automation_runs")
    op.drop_index("ix_automation_runs_use_case_id", table_name="automation_runs")
    op.drop_table("automation_runs")
    op.drop_table("automation_use_cases")
