import pytest

from netaudit.audit.issues import Severity
from netaudit.services import audit_store
from netaudit.tasks import audit as audit_tasks
from netaudit.tasks.audit import _cancel_poller, execute_audit
from netaudit.tasks.celery_app import celery_app


@pytest.fixture
def sent(monkeypatch):
    calls = []

    def fake_send_task(name, args=None, **kwargs):
        calls.append((name, args))

    monkeypatch.setattr(celery_app, "send_task", fake_send_task)
    return calls


def _never():
    return False


def test_execute_audit_completes_and_alerts(session, site, mock_source, sent):
    run = audit_store.start_run(session, site.id, "manual")
    run = execute_audit(session, site, run, cancel=_never)

    assert run.status == "completed"
    assert run.score is not None
    issues = audit_store.run_issues(run)
    critical = [i for i in issues if i.severity == Severity.CRITICAL]
    assert critical
    assert len(sent) == len(critical)
    name, (kind, payload) = sent[0]
    assert name == "alerts.fire_alert"
    assert kind == "audit_issue"
    assert payload["site_name"] == "Test Site"
    assert payload["run_id"] == str(run.id)
    assert payload["severity"] == "critical"


def test_repeat_audit_sends_no_new_alerts(session, site, mock_source, sent):
    execute_audit(session, site, audit_store.start_run(session, site.id), cancel=_never)
    sent.clear()
    run = execute_audit(session, site, audit_store.start_run(session, site.id), cancel=_never)
    assert run.status == "completed"
    assert sent == []


def test_dismissed_issues_excluded_from_stored_run(session, site, mock_source, sent):
    first = execute_audit(session, site, audit_store.start_run(session, site.id), cancel=_never)
    key = audit_store.run_issues(first)[0].key
    audit_store.dismiss(session, site.id, key)
    second = execute_audit(session, site, audit_store.start_run(session, site.id), cancel=_never)
    assert key not in {i.key for i in audit_store.run_issues(second)}
    assert second.dismissed_count == 1


def test_unreachable_controller_fails_run(session, site, mock_source, sent):
    mock_source.set_unreachable(site.name)
    run = execute_audit(session, site, audit_store.start_run(session, site.id), cancel=_never)
    assert run.status == "failed"
    assert "controller unreachable" in run.error
    assert run.score is None
    assert sent == []


def test_cancelled_run_keeps_no_results(session, site, mock_source, sent):
    run = execute_audit(session, site, audit_store.start_run(session, site.id),
                        cancel=lambda: True)
    assert run.status == "cancelled"
    assert run.issues_json is None
    assert audit_store.get_latest(session, site.id) is None


def test_cancel_poller_reads_flag(session, site, monkeypatch):
    monkeypatch.setattr(audit_tasks, "CANCEL_POLL_SECONDS", 0)
    run = audit_store.start_run(session, site.id)
    poll = _cancel_poller(session, run.id)
    assert poll() is False
    audit_store.request_cancel(session, run)
    assert poll() is True


def test_alert_hand_off_failure_does_not_fail_run(session, site, mock_source, monkeypatch,
                                                 caplog):
    def broken_send_task(*args, **kwargs):
        raise ConnectionError("broker down")

    monkeypatch.setattr(celery_app, "send_task", broken_send_task)
    run = execute_audit(session, site, audit_store.start_run(session, site.id), cancel=_never)
    assert run.status == "completed"
    assert "Could not hand off audit alert" in caplog.text


def test_unknown_source_fails_run(session, site, sent):
    site.source = "bogus"
    session.add(site)
    session.commit()
    run = execute_audit(session, site, audit_store.start_run(session, site.id), cancel=_never)
    assert run.status == "failed"
    assert "Unknown snapshot source" in run.error
    assert audit_store.get_audit_run(session, run.id).status == "failed"


def test_invalid_snapshot_data_fails_run(session, site, mock_source, sent):
    mock_source.set_site(site.name, {"networks": "not-a-list"})
    run = execute_audit(session, site, audit_store.start_run(session, site.id), cancel=_never)
    assert run.status == "failed"
    assert run.error.startswith("Audit could not run")
    assert sent == []
