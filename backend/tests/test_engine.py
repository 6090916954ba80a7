"""Tests for the audit runner, scoring and dismissal handling."""
import logging
from datetime import datetime, timezone

import pytest

from netaudit.audit.analyzers import Analyzer, AnalyzerResult
from netaudit.audit.engine import AuditEngine
from netaudit.audit.errors import AuditCancelled
from netaudit.audit.issues import Issue, IssueTypes, Severity, issue_key, sort_issues
from netaudit.audit.models import NetworkSnapshot
from netaudit.audit.rules import DEFAULT_PORT_RULES, PortRule
from netaudit.audit.scoring import calculate_score, count_by_severity, grade_for
from netaudit.sources.mock import MockSource

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)
PROXMOX_KEY = "ACCESS_PORT_VLAN_EXPOSURE|Switch-Office|2"


@pytest.fixture
def demo_snapshot(mock_source):
    return mock_source.fetch_snapshot("Home Lab")


def _issue(impact, severity=Severity.RECOMMENDED, **kw):
    kw.setdefault("type", "TEST")
    kw.setdefault("rule_id", "TEST-001")
    kw.setdefault("message", "test")
    return Issue(severity=severity, score_impact=impact, **kw)


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("score,grade", [
    (100, "A"), (90, "A"), (89, "B"), (75, "B"), (74, "C"),
    (50, "C"), (49, "D"), (25, "D"), (24, "F"), (0, "F"),
])
def test_grade_bands(score, grade):
    assert grade_for(score) == grade


def test_score_is_uncapped_per_rule_and_floored():
    assert calculate_score([]) == (100, "A")
    assert calculate_score([_issue(6)] * 3) == (82, "B")
    assert calculate_score([_issue(15)] * 8) == (0, "F")


def test_count_by_severity():
    counts = count_by_severity([_issue(1, Severity.CRITICAL), _issue(0, Severity.INFORMATIONAL)])
    assert counts == {"critical": 1, "recommended": 0, "informational": 1}


def test_issue_key_format():
    assert issue_key("UNUSED_PORT", "Sw", "4") == "UNUSED_PORT|Sw|4"
    assert issue_key("UPNP_ENABLED", "Gateway", None) == "UPNP_ENABLED|Gateway|"
    net = _issue(0, type="IOT_NETWORK_NOT_ISOLATED", current_network="IoT")
    assert net.key == "IOT_NETWORK_NOT_ISOLATED||IoT"


def test_sort_issues_by_severity_then_impact():
    issues = [
        _issue(0, Severity.INFORMATIONAL),
        _issue(3, Severity.RECOMMENDED),
        _issue(15, Severity.CRITICAL),
        _issue(6, Severity.RECOMMENDED),
    ]
    assert [i.score_impact for i in sort_issues(issues)] == [15, 6, 3, 0]


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------

def test_demo_site_audit(demo_snapshot):
    result = AuditEngine().run(demo_snapshot, now=NOW)
    keys = {i.key for i in result.issues}
    assert PROXMOX_KEY in keys
    proxmox = next(i for i in result.issues if i.key == PROXMOX_KEY)
    assert proxmox.message == "Server port allows all VLANs"

    rule_ids = {i.rule_id for i in result.issues}
    assert {"FW-ANY-ANY-001", "UPNP-001", "UPNP-006", "VLAN-ISOLATION-003",
            "VLAN-INTERNET-001", "UNUSED-PORT-001"} <= rule_ids
    # uplinks, WAN and the AP port never produce port findings
    assert not any(i.port in ("9", "10", "3") for i in result.issues if i.port)

    expected = max(0, 100 - sum(i.score_impact for i in result.issues))
    assert result.score == expected
    assert result.grade == grade_for(expected)
    assert result.stats["ports"] == 7
    assert result.issues == sort_issues(result.issues)


def test_dismissal_is_idempotent_across_runs(demo_snapshot):
    engine = AuditEngine()
    first = engine.run(demo_snapshot, now=NOW)
    second = engine.run(demo_snapshot, dismissed_keys=[PROXMOX_KEY], now=NOW)
    third = engine.run(demo_snapshot, dismissed_keys=[PROXMOX_KEY, PROXMOX_KEY], now=NOW)

    assert PROXMOX_KEY not in {i.key for i in second.issues}
    assert [i.key for i in second.dismissed_issues] == [PROXMOX_KEY]
    assert second.score == min(100, first.score + 8)
    assert third.score == second.score
    assert [i.key for i in third.issues] == [i.key for i in second.issues]


def test_unknown_dismissal_keys_are_ignored(demo_snapshot):
    engine = AuditEngine()
    baseline = engine.run(demo_snapshot, now=NOW)
    result = engine.run(demo_snapshot, dismissed_keys=["NOPE|x|y"], now=NOW)
    assert result.score == baseline.score
    assert result.dismissed_issues == []


def test_empty_snapshot_scores_perfect():
    result = AuditEngine().run(NetworkSnapshot(site_name="Empty"))
    assert result.issues == []
    assert (result.score, result.grade) == (100, "A")


def test_pooled_run_matches_serial(demo_snapshot):
    serial = AuditEngine(max_workers=1).run(demo_snapshot, now=NOW)
    pooled = AuditEngine(max_workers=4).run(demo_snapshot, now=NOW)
    assert [i.key for i in pooled.issues] == [i.key for i in serial.issues]
    assert pooled.score == serial.score
    assert pooled.hardening_notes == serial.hardening_notes


@pytest.mark.parametrize("workers", [1, 4])
def test_cancel_before_start_raises(demo_snapshot, workers):
    with pytest.raises(AuditCancelled):
        AuditEngine(max_workers=workers).run(demo_snapshot, cancel=lambda: True)


def test_cancel_midway_discards_results(demo_snapshot):
    calls = {"n": 0}

    def cancel():
        calls["n"] += 1
        return calls["n"] > 5

    with pytest.raises(AuditCancelled):
        AuditEngine().run(demo_snapshot, cancel=cancel)


def test_failing_rule_is_logged_and_skipped(demo_snapshot, caplog):
    def explode(rule, ctx):
        raise KeyError("missing field")

    broken = PortRule(
        rule_id="BROKEN-001", name="Broken", issue_type="BROKEN",
        severity=Severity.RECOMMENDED, score_impact=1, check=explode,
    )
    engine = AuditEngine(port_rules=[broken] + DEFAULT_PORT_RULES)
    with caplog.at_level(logging.WARNING, logger="netaudit.audit.engine"):
        result = engine.run(demo_snapshot, now=NOW, run_id="abcdef12-0000")
    assert PROXMOX_KEY in {i.key for i in result.issues}
    messages = [r.getMessage() for r in caplog.records]
    assert any("Rule BROKEN-001 skipped port" in m for m in messages)
    assert all(m.startswith("[Home Lab abcdef12]") for m in messages)


def test_failing_analyzer_is_logged_and_skipped(demo_snapshot, caplog):
    def explode(ctx):
        raise ValueError("bad data")

    ok = Analyzer(name="ok", analyze=lambda ctx: AnalyzerResult(hardening_notes=["fine"]))
    engine = AuditEngine(port_rules=[], analyzers=[Analyzer(name="bad", analyze=explode), ok])
    with caplog.at_level(logging.WARNING, logger="netaudit.audit.engine"):
        result = engine.run(demo_snapshot)
    assert result.hardening_notes == ["fine"]
    assert any("Analyzer bad failed" in r.getMessage() for r in caplog.records)


def test_port_profiles_are_applied(mock_source):
    data = {
        "networks": [{"id": "net-a", "name": "A", "vlan_id": 10},
                     {"id": "net-b", "name": "B", "vlan_id": 20}],
        "port_profiles": [{"id": "PP-Trunk", "name": "Trunk", "forward": "all"}],
        "switches": [{"name": "Sw", "ports": [{
            "port_index": 1, "name": "Port 1", "is_up": True, "forward_mode": "native",
            "native_network_id": "net-a", "port_profile_id": "pp-trunk",
            "allowed_mac_addresses": ["aa:bb:cc:dd:ee:01"],
        }]}],
    }
    mock_source.set_site("Profiled", data)
    result = AuditEngine().run(mock_source.fetch_snapshot("Profiled"), now=NOW)
    assert [i.type for i in result.issues] == [IssueTypes.ACCESS_PORT_VLAN_EXPOSURE]


@pytest.mark.parametrize("client", [
    {"mac": "aa:bb:cc:dd:ee:01", "hostname": "desk-pc"},
    {"mac": "aa:bb:cc:dd:ee:01", "hostname": "desk-pc-renamed", "name": "Alice's Desk"},
    None,
])
def test_port_issue_key_ignores_connected_client(mock_source, client):
    port = {
        "port_index": 7, "name": "Port 7", "is_up": True, "forward_mode": "all",
        "native_network_id": "net-a", "allowed_mac_addresses": ["aa:bb:cc:dd:ee:01"],
    }
    if client:
        port["connected_client"] = client
    mock_source.set_site("Renames", {
        "networks": [{"id": "net-a", "name": "A", "vlan_id": 10},
                     {"id": "net-b", "name": "B", "vlan_id": 20}],
        "switches": [{"name": "Sw", "ports": [port]}],
    })
    key = "ACCESS_PORT_VLAN_EXPOSURE|Sw|7"
    snapshot = mock_source.fetch_snapshot("Renames")
    assert [i.key for i in AuditEngine().run(snapshot, now=NOW).issues] == [key]
    dismissed = AuditEngine().run(snapshot, dismissed_keys=[key], now=NOW)
    assert dismissed.issues == []
