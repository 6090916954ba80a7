"""
Celery tasks: run site audits, persist results, hand new issues to alerting.
"""
import logging
import time
import uuid
from typing import Optional

from sqlmodel import Session, select

from netaudit.audit.engine import AuditEngine, CancelCheck
from netaudit.audit.errors import AuditCancelled, SnapshotUnavailable
from netaudit.audit.issues import Severity
from netaudit.core.config import get_settings
from netaudit.db.session import get_engine
from netaudit.models.audit import AuditRun
from netaudit.models.site import Site
from netaudit.services import audit_store
from netaudit.services.diff import diff_issues
from netaudit.sources.registry import get_source
from netaudit.tasks.celery_app import celery_app

logger = logging.getLogger(__name__)

CANCEL_POLL_SECONDS = 0.5


def _cancel_poller(session: Session, run_id: uuid.UUID) -> CancelCheck:
    """Check the run's cancel flag at most every CANCEL_POLL_SECONDS."""
    bind = session.get_bind()
    state = {"checked_at": 0.0, "cancelled": False}

    def cancelled() -> bool:
        now = time.monotonic()
        if not state["cancelled"] and now - state["checked_at"] >= CANCEL_POLL_SECONDS:
            state["checked_at"] = now
            with Session(bind) as poll_session:
                state["cancelled"] = audit_store.is_cancel_requested(poll_session, run_id)
        return state["cancelled"]

    return cancelled


def _hand_off_alerts(site: Site, run: AuditRun, result, new_keys: list[str]) -> None:
    threshold = Severity(get_settings().alert_on_severity)
    new = set(new_keys)
    for issue in result.issues:
        if issue.key not in new or issue.severity.rank > threshold.rank:
            continue
        try:
            celery_app.send_task("alerts.fire_alert", args=["audit_issue", {
                "site_id": str(site.id),
                "site_name": site.name,
                "run_id": str(run.id),
                "issue_key": issue.key,
                "rule_id": issue.rule_id,
                "severity": issue.severity.value,
                "message": issue.message,
                "device_name": issue.device_name,
                "detected_at": result.completed_at.isoformat(),
            }])
        except Exception as exc:
            logger.warning("Could not hand off audit alert: %s", exc)


def execute_audit(
    session: Session,
    site: Site,
    run: AuditRun,
    cancel: Optional[CancelCheck] = None,
) -> AuditRun:
    """Fetch, evaluate and store one audit.  Returns the updated run row."""
    settings = get_settings()
    try:
        snapshot = get_source(site.source).fetch_snapshot(site.name)
    except SnapshotUnavailable as exc:
        logger.error("Audit could not run for site %s: %s", site.name, exc)
        return audit_store.finish_run(session, run, "failed", str(exc))
    except Exception as exc:
        logger.exception("Audit could not run for site %s: %s", site.name, exc)
        return audit_store.finish_run(session, run, "failed", f"Audit could not run: {exc}")

    previous = audit_store.get_latest(session, site.id)
    dismissed = audit_store.list_dismissed(session, site.id)
    engine = AuditEngine(max_workers=settings.audit_workers)
    try:
        result = engine.run(
            snapshot,
            dismissed_keys=dismissed,
            cancel=cancel or _cancel_poller(session, run.id),
            run_id=str(run.id),
        )
    except AuditCancelled:
        logger.info("Audit %s for site %s cancelled", run.id, site.name)
        return audit_store.finish_run(session, run, "cancelled")

    run = audit_store.save_audit_result(session, site.id, result, run)
    changes = diff_issues(audit_store.run_issues(previous) if previous else [], result.issues)
    logger.info(
        "Audit %s for site %s: score=%d grade=%s new=%d resolved=%d",
        run.id, site.name, result.score, result.grade,
        len(changes["new"]), len(changes["resolved"]),
    )
    _hand_off_alerts(site, run, result, changes["new"])
    return run


@celery_app.task(bind=True, name="audit.run_site_audit")
def run_site_audit(
    self,
    site_id: str,
    triggered_by: str = "scheduled",
    run_id: Optional[str] = None,
):
    engine = get_engine()
    with Session(engine) as session:
        site = session.get(Site, uuid.UUID(site_id))
        if not site:
            logger.warning("Audit requested for unknown site %s", site_id)
            return None
        run = session.get(AuditRun, uuid.UUID(run_id)) if run_id else None
        if run is None:
            run = audit_store.start_run(session, site.id, triggered_by, self.request.id)
        elif not run.celery_task_id:
            run.celery_task_id = self.request.id
            session.add(run)
            session.commit()
        run = execute_audit(session, site, run)
        return {"run_id": str(run.id), "status": run.status}


@celery_app.task(name="audit.run_all_sites")
def run_all_sites():
    engine = get_engine()
    with Session(engine) as session:
        sites = session.exec(select(Site).where(Site.enabled == True)).all()  # noqa: E712
        for site in sites:
            try:
                run_site_audit.delay(str(site.id), "scheduled")
            except Exception as exc:
                logger.exception("Could not queue audit for site %s: %s", site.name, exc)


@celery_app.task(name="audit.purge_old_audits")
def purge_old_audits():
    engine = get_engine()
    with Session(engine) as session:
        return audit_store.delete_old_audits(session, get_settings().audit_retention_days)
