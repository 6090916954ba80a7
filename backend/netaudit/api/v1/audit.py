import json
import uuid
from typing import Optional

from fastapi import APIRouter, HTTPException
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel
from sqlmodel import select

from netaudit.audit.engine import AuditEngine, AuditResult
from netaudit.audit.errors import SnapshotUnavailable
from netaudit.audit.models import NetworkSnapshot
from netaudit.core.deps import AppSettings, DBSession, SiteDep
from netaudit.models.audit import AuditRun, DismissedIssue
from netaudit.models.site import Site
from netaudit.services import audit_store
from netaudit.services.report import export_json, generate_text_report
from netaudit.sources.registry import get_source

router = APIRouter()


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------

class SiteCreate(BaseModel):
    name: str
    description: Optional[str] = None
    source: str = "mock"


class EvaluateBody(BaseModel):
    snapshot: Optional[NetworkSnapshot] = None
    persist: bool = True


class DismissBody(BaseModel):
    issue_key: str
    reason: Optional[str] = None


# ---------------------------------------------------------------------------
# Helper serialisers
# ---------------------------------------------------------------------------

def _site_dict(s: Site) -> dict:
    return {
        "id": str(s.id),
        "name": s.name,
        "description": s.description,
        "source": s.source,
        "enabled": s.enabled,
        "created_at": s.created_at,
        "last_audit_at": s.last_audit_at,
    }


def _run_dict(r: AuditRun, include_issues: bool = False) -> dict:
    d = {
        "id": str(r.id),
        "site_id": str(r.site_id),
        "triggered_by": r.triggered_by,
        "status": r.status,
        "cancel_requested": r.cancel_requested,
        "celery_task_id": r.celery_task_id,
        "score": r.score,
        "grade": r.grade,
        "issue_count": r.issue_count,
        "critical_count": r.critical_count,
        "recommended_count": r.recommended_count,
        "informational_count": r.informational_count,
        "dismissed_count": r.dismissed_count,
        "started_at": r.started_at,
        "completed_at": r.completed_at,
        "error": r.error,
    }
    if include_issues:
        d["issues"] = [
            {**i.model_dump(mode="json"), "key": i.key} for i in audit_store.run_issues(r)
        ]
        d["hardening_notes"] = json.loads(r.hardening_notes_json) if r.hardening_notes_json else []
        d["stats"] = json.loads(r.stats_json) if r.stats_json else {}
    return d


def _result_dict(result: AuditResult) -> dict:
    data = result.model_dump(mode="json")
    for issue, raw in zip(result.issues, data["issues"]):
        raw["key"] = issue.key
    for issue, raw in zip(result.dismissed_issues, data["dismissed_issues"]):
        raw["key"] = issue.key
    return data


def _result_from_run(site: Site, r: AuditRun) -> AuditResult:
    return AuditResult(
        run_id=str(r.id),
        site_name=site.name,
        started_at=r.started_at,
        completed_at=r.completed_at or r.started_at,
        issues=audit_store.run_issues(r),
        hardening_notes=json.loads(r.hardening_notes_json) if r.hardening_notes_json else [],
        score=r.score if r.score is not None else 100,
        grade=r.grade or "A",
        stats=json.loads(r.stats_json) if r.stats_json else {},
    )


def _get_run(session, run_id: uuid.UUID) -> AuditRun:
    r = audit_store.get_audit_run(session, run_id)
    if not r:
        raise HTTPException(status_code=404, detail="Audit run not found")
    return r


# ---------------------------------------------------------------------------
# Sites
# ---------------------------------------------------------------------------

@router.get("/sites")
def list_sites(session: DBSession):
    return [_site_dict(s) for s in session.exec(select(Site).order_by(Site.name)).all()]


@router.post("/sites", status_code=201)
def create_site(body: SiteCreate, session: DBSession):
    try:
        get_source(body.source)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    if session.exec(select(Site).where(Site.name == body.name)).first():
        raise HTTPException(status_code=409, detail="Site name already exists")
    site = Site(name=body.name, description=body.description, source=body.source)
    session.add(site)
    session.commit()
    session.refresh(site)
    return _site_dict(site)


@router.get("/sites/{site_id}")
def get_site(site: SiteDep):
    return _site_dict(site)


@router.delete("/sites/{site_id}", status_code=204)
def delete_site(site: SiteDep, session: DBSession):
    audit_store.clear_all(session, site.id)
    session.delete(site)
    session.commit()


# ---------------------------------------------------------------------------
# Runs
# ---------------------------------------------------------------------------

@router.post("/sites/{site_id}/runs", status_code=202)
def trigger_audit(site: SiteDep, session: DBSession):
    from netaudit.tasks.audit import run_site_audit
    run = audit_store.start_run(session, site.id, triggered_by="manual")
    task = run_site_audit.delay(str(site.id), "manual", str(run.id))
    return {"task_id": task.id, "run_id": str(run.id)}


@router.post("/sites/{site_id}/evaluate")
def evaluate_site(site: SiteDep, session: DBSession, settings: AppSettings,
                  body: Optional[EvaluateBody] = None):
    """Run an audit synchronously, over a posted snapshot or the site's source."""
    body = body or EvaluateBody()
    snapshot = body.snapshot
    if snapshot is None:
        try:
            snapshot = get_source(site.source).fetch_snapshot(site.name)
        except SnapshotUnavailable as exc:
            raise HTTPException(status_code=502, detail=f"Audit could not run: {exc.reason}")

    dismissed = audit_store.list_dismissed(session, site.id)
    result = AuditEngine(max_workers=settings.audit_workers).run(snapshot, dismissed_keys=dismissed)
    data = _result_dict(result)
    if body.persist:
        run = audit_store.save_audit_result(session, site.id, result)
        data["run_id"] = str(run.id)
    return data


@router.get("/sites/{site_id}/runs")
def list_runs(site: SiteDep, session: DBSession, settings: AppSettings,
              limit: Optional[int] = None):
    limit = min(limit or settings.audit_history_limit, settings.audit_history_limit)
    return [_run_dict(r) for r in audit_store.get_history(session, site.id, limit)]


@router.get("/sites/{site_id}/runs/latest")
def latest_run(site: SiteDep, session: DBSession):
    r = audit_store.get_latest(session, site.id)
    if not r:
        raise HTTPException(status_code=404, detail="No completed audit for this site")
    return _run_dict(r, include_issues=True)


@router.get("/runs/{run_id}")
def get_run(run_id: uuid.UUID, session: DBSession):
    return _run_dict(_get_run(session, run_id), include_issues=True)


@router.get("/runs/{run_id}/export")
def export_run(run_id: uuid.UUID, session: DBSession, format: str = "json"):
    r = _get_run(session, run_id)
    if r.status != "completed":
        raise HTTPException(status_code=409, detail=f"Audit run is {r.status}")
    site = session.get(Site, r.site_id)
    result = _result_from_run(site, r)
    fmt = format.lower()
    if fmt == "json":
        return PlainTextResponse(export_json(result), media_type="application/json")
    if fmt in ("text", "txt"):
        return PlainTextResponse(generate_text_report(result))
    raise HTTPException(status_code=400, detail=f"Unsupported export format: {format!r}")


@router.post("/runs/{run_id}/cancel")
def cancel_run(run_id: uuid.UUID, session: DBSession):
    r = _get_run(session, run_id)
    if r.status != "running":
        raise HTTPException(status_code=409, detail=f"Audit run is {r.status}")
    return _run_dict(audit_store.request_cancel(session, r))


# ---------------------------------------------------------------------------
# Dismissals
# ---------------------------------------------------------------------------

def _dismissed_dict(d: DismissedIssue) -> dict:
    return {
        "issue_key": d.issue_key,
        "reason": d.reason,
        "dismissed_at": d.dismissed_at,
    }


@router.get("/sites/{site_id}/dismissed")
def list_dismissed(site: SiteDep, session: DBSession):
    return [_dismissed_dict(d) for d in audit_store.list_dismissed_rows(session, site.id)]


@router.post("/sites/{site_id}/dismissed", status_code=201)
def dismiss_issue(body: DismissBody, site: SiteDep, session: DBSession):
    return _dismissed_dict(audit_store.dismiss(session, site.id, body.issue_key, body.reason))


@router.delete("/sites/{site_id}/dismissed/{issue_key:path}", status_code=204)
def restore_issue(issue_key: str, site: SiteDep, session: DBSession):
    if not audit_store.restore(session, site.id, issue_key):
        raise HTTPException(status_code=404, detail="Issue is not dismissed")


@router.delete("/sites/{site_id}/dismissed")
def clear_dismissed(site: SiteDep, session: DBSession):
    return {"removed": audit_store.clear_dismissed(session, site.id)}


# ---------------------------------------------------------------------------
# Summary
# ---------------------------------------------------------------------------

@router.get("/sites/{site_id}/summary")
def site_summary(site: SiteDep, session: DBSession):
    history = [r for r in audit_store.get_history(session, site.id, 30) if r.status == "completed"]
    latest = history[0] if history else None
    return {
        "site": _site_dict(site),
        "score": latest.score if latest else None,
        "grade": latest.grade if latest else None,
        "open_issues": latest.issue_count if latest else 0,
        "by_severity": {
            "critical": latest.critical_count if latest else 0,
            "recommended": latest.recommended_count if latest else 0,
            "informational": latest.informational_count if latest else 0,
        },
        "dismissed": len(audit_store.list_dismissed(session, site.id)),
        "score_trend": [
            {"run_id": str(r.id), "score": r.score, "started_at": r.started_at}
            for r in reversed(history)
        ],
    }
