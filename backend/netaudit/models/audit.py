from typing import Optional
from datetime import datetime, timezone
import uuid

from sqlmodel import SQLModel, Field, Column
import sqlalchemy as sa


class AuditRun(SQLModel, table=True):
    __tablename__ = "audit_runs"
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    site_id: uuid.UUID = Field(
        sa_column=Column(
            sa.Uuid(),
            sa.ForeignKey("sites.id", ondelete="CASCADE"),
            index=True,
            nullable=False,
        )
    )
    triggered_by: str = Field(default="scheduled", max_length=32)  # scheduled | manual | api
    status: str = Field(default="running", max_length=16)  # running | completed | failed | cancelled
    cancel_requested: bool = Field(default=False)
    celery_task_id: Optional[str] = Field(default=None, max_length=256)
    score: Optional[int] = Field(default=None)
    grade: Optional[str] = Field(default=None, max_length=1)
    issue_count: int = Field(default=0)
    critical_count: int = Field(default=0)
    recommended_count: int = Field(default=0)
    informational_count: int = Field(default=0)
    dismissed_count: int = Field(default=0)
    issues_json: Optional[str] = Field(default=None, sa_column=Column(sa.Text, nullable=True))
    hardening_notes_json: Optional[str] = Field(
        default=None, sa_column=Column(sa.Text, nullable=True),
    )
    stats_json: Optional[str] = Field(default=None, sa_column=Column(sa.Text, nullable=True))
    started_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(sa.DateTime(timezone=True), index=True),
    )
    completed_at: Optional[datetime] = Field(
        default=None,
        sa_column=Column(sa.DateTime(timezone=True), nullable=True),
    )
    error: Optional[str] = Field(default=None, max_length=1024)


class DismissedIssue(SQLModel, table=True):
    __tablename__ = "dismissed_issues"
    __table_args__ = (
        sa.UniqueConstraint("site_id", "issue_key", name="uq_dismissed_site_key"),
    )
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    site_id: uuid.UUID = Field(
        sa_column=Column(
            sa.Uuid(),
            sa.ForeignKey("sites.id", ondelete="CASCADE"),
            index=True,
            nullable=False,
        )
    )
    issue_key: str = Field(max_length=512)
    reason: Optional[str] = Field(default=None, max_length=1024)
    dismissed_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(sa.DateTime(timezone=True)),
    )
