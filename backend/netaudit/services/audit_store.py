"""
Persistence for audit history and dismissed issues.
"""
import json
import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlmodel import Session, select

from netaudit.audit.engine import AuditResult
from netaudit.audit.issues import Issue
from netaudit.models.audit import AuditRun, DismissedIssue
from netaudit.models.site import Site

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 100


# ---------------------------------------------------------------------------
# Dismissals
# ---------------------------------------------------------------------------

def list_dismissed(session: Session, site_id: uuid.UUID) -> set[str]:
    return set(session.exec(
        select(DismissedIssue.issue_key).where(DismissedIssue.site_id == site_id)
    ).all())


def list_dismissed_rows(session: Session, site_id: uuid.UUID) -> list[DismissedIssue]:
    return list(session.exec(
        select(DismissedIssue)
        .where(DismissedIssue.site_id == site_id)
        .order_by(DismissedIssue.dismissed_at.desc())
    ).all())


def dismiss(
    session: Session,
    site_id: uuid.UUID,
    issue_key: str,
    reason: Optional[str] = None,
) -> DismissedIssue:
    """Record a dismissal.  Dismissing an already-dismissed key is a no-op."""
    existing = session.exec(
        select(DismissedIssue).where(
            DismissedIssue.site_id == site_id,
            DismissedIssue.issue_key == issue_key,
        )
    ).first()
    if existing:
        return existing
    row = DismissedIssue(
        site_id=site_id,
        issue_key=issue_key,
        reason=reason,
        dismissed_at=datetime.now(timezone.utc),
    )
    session.add(row)
    session.commit()
    session.refresh(row)
    logger.info("Dismissed issue %s for site %s", issue_key, site_id)
    return row


def restore(session: Session, site_id: uuid.UUID, issue_key: str) -> bool:
    row = session.exec(
        select(DismissedIssue).where(
            DismissedIssue.site_id == site_id,
            DismissedIssue.issue_key == issue_key,
        )
    ).first()
    if not row:
        return False
    session.delete(row)
    session.commit()
    return True


def clear_dismissed(session: Session, site_id: uuid.UUID) -> int:
    rows = list_dismissed_rows(session, site_id)
    for row in rows:
        session.delete(row)
    session.commit()
    return len(rows)


# ---------------------------------------------------------------------------
# Audit runs
# ---------------------------------------------------------------------------

def start_run(
    session: Session,
    site_id: uuid.UUID,
    triggered_by: str = "scheduled",
    celery_task_id: Optional[str] = None,
) -> AuditRun:
    run = AuditRun(
        site_id=site_id,
        triggered_by=triggered_by,
        celery_task_id=celery_task_id,
        status="running",
        started_at=datetime.now(timezone.utc),
    )
    session.add(run)
    session.commit()
    session.refresh(run)
    return run


def save_audit_result(
    session: Session,
    site_id: uuid.UUID,
    result: AuditResult,
    run: Optional[AuditRun] = None,
) -> AuditRun:
    """Store a completed audit, creating the run row if none was started."""
    if run is None:
        run = AuditRun(site_id=site_id, triggered_by="api", started_at=result.started_at)
    counts = result.severity_counts
    run.status = "completed"
    run.score = result.score
    run.grade = result.grade
    run.issue_count = len(result.issues)
    run.critical_count = counts["critical"]
    run.recommended_count = counts["recommended"]
    run.informational_count = counts["informational"]
    run.dismissed_count = len(result.dismissed_issues)
    run.issues_json = json.dumps([i.model_dump(mode="json") for i in result.issues])
    run.hardening_notes_json = json.dumps(result.hardening_notes)
    run.stats_json = json.dumps(result.stats)
    run.completed_at = result.completed_at
    session.add(run)

    site = session.get(Site, site_id)
    if site:
        site.last_audit_at = result.completed_at
        session.add(site)
    session.commit()
    session.refresh(run)
    return run


def finish_run(session: Session, run: AuditRun, status: str, error: Optional[str] = None) -> AuditRun:
    """Close a run that produced no result (failed or cancelled)."""
    run.status = status
    run.error = error[:1024] if error else None
    run.issues_json = None
    run.completed_at = datetime.now(timezone.utc)
    session.add(run)
    session.commit()
    session.refresh(run)
    return run


def request_cancel(session: Session, run: AuditRun) -> AuditRun:
    run.cancel_requested = True
    session.add(run)
    session.commit()
    session.refresh(run)
    return run


def is_cancel_requested(session: Session, run_id: uuid.UUID) -> bool:
    flag = session.exec(
        select(AuditRun.cancel_requested).where(AuditRun.id == run_id)
    ).first()
    return bool(flag)


def get_audit_run(session: Session, run_id: uuid.UUID) -> Optional[AuditRun]:
    return session.get(AuditRun, run_id)


def get_latest(session: Session, site_id: uuid.UUID) -> Optional[AuditRun]:
    return session.exec(
        select(AuditRun)
        .where(AuditRun.site_id == site_id, AuditRun.status == "completed")
        .order_by(AuditRun.started_at.desc())
    ).first()


def get_history(
    session: Session,
    site_id: uuid.UUID,
    limit: int = DEFAULT_HISTORY_LIMIT,
) -> list[AuditRun]:
    return list(session.exec(
        select(AuditRun)
        .where(AuditRun.site_id == site_id)
        .order_by(AuditRun.started_at.desc())
        .limit(limit)
    ).all())


def delete_old_audits(session: Session, retention_days: int) -> int:
    cutoff = datetime.now(timezone.utc) - timedelta(days=retention_days)
    old = session.exec(select(AuditRun).where(AuditRun.started_at < cutoff)).all()
    for run in old:
        session.delete(run)
    session.commit()
    if old:
        logger.info("Purged %d audit runs older than %d days", len(old), retention_days)
    return len(old)


def clear_all(session: Session, site_id: uuid.UUID) -> None:
    """Drop every stored run and dismissal for a site."""
    for run in session.exec(select(AuditRun).where(AuditRun.site_id == site_id)).all():
        session.delete(run)
    for row in list_dismissed_rows(session, site_id):
        session.delete(row)
    session.commit()


def run_issues(run: AuditRun) -> list[Issue]:
    if not run.issues_json:
        return []
    return [Issue.model_validate(d) for d in json.loads(run.issues_json)]
