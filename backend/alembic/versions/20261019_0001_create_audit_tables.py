"""Create sites, audit_runs and dismissed_issues tables

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19 00:00:00.000000
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "20261019_0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "sites",
        sa.Column("id", sa.Uuid(), nullable=False, primary_key=True),
        sa.Column("name", sa.String(128), nullable=False),
        sa.Column("description", sa.String(512), nullable=True),
        sa.Column("source", sa.String(32), nullable=False, server_default="mock"),
        sa.Column("enabled", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("last_audit_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_sites_name", "sites", ["name"], unique=True)

    op.create_table(
        "audit_runs",
        sa.Column("id", sa.Uuid(), nullable=False, primary_key=True),
        sa.Column("site_id", sa.Uuid(), nullable=False),
        sa.Column("triggered_by", sa.String(32), nullable=False),
        sa.Column("status", sa.String(16), nullable=False),
        sa.Column("cancel_requested", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("celery_task_id", sa.String(256), nullable=True),
        sa.Column("score", sa.Integer(), nullable=True),
        sa.Column("grade", sa.String(1), nullable=True),
        sa.Column("issue_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("critical_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("recommended_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("informational_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("dismissed_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("issues_json", sa.Text(), nullable=True),
        sa.Column("hardening_notes_json", sa.Text(), nullable=True),
        sa.Column("stats_json", sa.Text(), nullable=True),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("error", sa.String(1024), nullable=True),
        sa.ForeignKeyConstraint(["site_id"], ["sites.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_audit_runs_site_id", "audit_runs", ["site_id"])
    op.create_index("ix_audit_runs_started_at", "audit_runs", ["started_at"])

    op.create_table(
        "dismissed_issues",
        sa.Column("id", sa.Uuid(), nullable=False, primary_key=True),
        sa.Column("site_id", sa.Uuid(), nullable=False),
        sa.Column("issue_key", sa.String(512), nullable=False),
        sa.Column("reason", sa.String(1024), nullable=True),
        sa.Column("dismissed_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["site_id"], ["sites.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("site_id", "issue_key", name="uq_dismissed_site_key"),
    )
    op.create_index("ix_dismissed_issues_site_id", "dismissed_issues", ["site_id"])


def downgrade() -> None:
    op.drop_index("ix_dismissed_issues_site_id", table_name="dismissed_issues")
    op.drop_table("dismissed_issues")
    op.drop_index("ix_audit_runs_started_at", table_name="audit_runs")
    op.drop_index("ix_audit_runs_site_id", table_name="audit_runs")
    op.drop_table("audit_runs")
    op.drop_index("ix_sites_name", table_name="sites")
    op.drop_table("sites")
