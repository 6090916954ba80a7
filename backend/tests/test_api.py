import uuid
from types import SimpleNamespace
from urllib.parse import quote

from netaudit.services import audit_store
from netaudit.tasks import audit as audit_tasks


def _create(client, name="Home Lab", source="mock"):
    r = client.post("/api/v1/audit/sites", json={"name": name, "source": source})
    assert r.status_code == 201
    return r.json()


def test_create_and_list_sites(client, mock_source):
    site = _create(client)
    assert site["name"] == "Home Lab"
    r = client.get("/api/v1/audit/sites")
    assert [s["id"] for s in r.json()] == [site["id"]]


def test_create_site_rejects_duplicates_and_unknown_sources(client):
    _create(client)
    assert client.post("/api/v1/audit/sites", json={"name": "Home Lab"}).status_code == 409
    r = client.post("/api/v1/audit/sites", json={"name": "Other", "source": "snmp"})
    assert r.status_code == 400


def test_unknown_site_is_404(client):
    r = client.get("/api/v1/audit/sites/00000000-0000-0000-0000-000000000000")
    assert r.status_code == 404


def test_evaluate_persists_run(client, mock_source):
    site = _create(client)
    r = client.post(f"/api/v1/audit/sites/{site['id']}/evaluate")
    assert r.status_code == 200
    data = r.json()
    assert 0 <= data["score"] <= 100
    assert all("key" in i for i in data["issues"])

    latest = client.get(f"/api/v1/audit/sites/{site['id']}/runs/latest").json()
    assert latest["id"] == data["run_id"]
    assert latest["score"] == data["score"]
    assert len(latest["issues"]) == len(data["issues"])


def test_evaluate_posted_snapshot_without_persisting(client):
    site = _create(client)
    body = {
        "persist": False,
        "snapshot": {
            "site_name": "Home Lab",
            "firewall_rules": [{"id": "r1", "name": "Allow all", "action": "accept"}],
        },
    }
    r = client.post(f"/api/v1/audit/sites/{site['id']}/evaluate", json=body)
    assert r.status_code == 200
    data = r.json()
    assert [i["rule_id"] for i in data["issues"]] == ["FW-ANY-ANY-001"]
    assert data["score"] == 85
    assert "run_id" not in data
    assert client.get(f"/api/v1/audit/sites/{site['id']}/runs/latest").status_code == 404


def test_evaluate_unreachable_source_is_502(client, mock_source):
    site = _create(client)
    mock_source.set_unreachable("Home Lab")
    r = client.post(f"/api/v1/audit/sites/{site['id']}/evaluate")
    assert r.status_code == 502
    assert "controller unreachable" in r.json()["detail"]


def test_trigger_audit_queues_task(client, monkeypatch):
    queued = []

    def fake_delay(*args):
        queued.append(args)
        return SimpleNamespace(id="task-123")

    monkeypatch.setattr(audit_tasks.run_site_audit, "delay", fake_delay)
    site = _create(client)
    r = client.post(f"/api/v1/audit/sites/{site['id']}/runs")
    assert r.status_code == 202
    body = r.json()
    assert body["task_id"] == "task-123"
    assert queued == [(site["id"], "manual", body["run_id"])]

    run = client.get(f"/api/v1/audit/runs/{body['run_id']}").json()
    assert run["status"] == "running"
    r = client.post(f"/api/v1/audit/runs/{body['run_id']}/cancel")
    assert r.status_code == 200
    assert r.json()["cancel_requested"] is True


def test_cancel_finished_run_conflicts(client, mock_source):
    site = _create(client)
    run_id = client.post(f"/api/v1/audit/sites/{site['id']}/evaluate").json()["run_id"]
    assert client.post(f"/api/v1/audit/runs/{run_id}/cancel").status_code == 409


def test_export_formats(client, mock_source):
    site = _create(client)
    run_id = client.post(f"/api/v1/audit/sites/{site['id']}/evaluate").json()["run_id"]
    r = client.get(f"/api/v1/audit/runs/{run_id}/export")
    assert r.status_code == 200
    assert r.json()["site_name"] == "Home Lab"
    r = client.get(f"/api/v1/audit/runs/{run_id}/export", params={"format": "text"})
    assert "Network Security Audit Report" in r.text
    r = client.get(f"/api/v1/audit/runs/{run_id}/export", params={"format": "pdf"})
    assert r.status_code == 400


def test_dismiss_and_restore_issue(client, mock_source):
    site = _create(client)
    base = f"/api/v1/audit/sites/{site['id']}"
    first = client.post(f"{base}/evaluate").json()
    key = first["issues"][0]["key"]

    r = client.post(f"{base}/dismissed", json={"issue_key": key, "reason": "accepted risk"})
    assert r.status_code == 201
    assert client.post(f"{base}/dismissed", json={"issue_key": key}).status_code == 201
    assert [d["issue_key"] for d in client.get(f"{base}/dismissed").json()] == [key]

    second = client.post(f"{base}/evaluate").json()
    assert key not in {i["key"] for i in second["issues"]}
    assert [i["key"] for i in second["dismissed_issues"]] == [key]
    assert second["score"] == min(100, first["score"] + first["issues"][0]["score_impact"])

    assert client.delete(f"{base}/dismissed/{quote(key, safe='')}").status_code == 204
    assert client.delete(f"{base}/dismissed/{quote(key, safe='')}").status_code == 404


def test_site_summary_and_delete(client, session, mock_source):
    site = _create(client)
    base = f"/api/v1/audit/sites/{site['id']}"
    client.post(f"{base}/evaluate")
    summary = client.get(f"{base}/summary").json()
    assert summary["score"] is not None
    assert len(summary["score_trend"]) == 1
    assert summary["by_severity"]["critical"] >= 1

    assert client.delete(base).status_code == 204
    assert client.get(base).status_code == 404
    assert audit_store.get_history(session, uuid.UUID(site["id"])) == []
