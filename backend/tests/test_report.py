import json

import pytest

from netaudit.audit.engine import AuditEngine
from netaudit.services.report import (
    REPORT_TITLE,
    executive_summary,
    export_json,
    generate_text_report,
    save_report,
)


@pytest.fixture
def audited(mock_source):
    snapshot = mock_source.fetch_snapshot("Home Lab")
    return AuditEngine().run(snapshot), snapshot


def test_json_export(audited):
    result, _ = audited
    data = json.loads(export_json(result))
    assert data["site_name"] == "Home Lab"
    assert data["score"] == result.score
    assert len(data["issues"]) == len(result.issues)


def test_text_report_sections(audited):
    result, snapshot = audited
    text = generate_text_report(result, snapshot)
    assert REPORT_TITLE in text
    for section in ("NETWORK TOPOLOGY", "CRITICAL ISSUES", "RECOMMENDED IMPROVEMENTS",
                    "INFORMATIONAL", "HARDENING MEASURES", "SWITCH DETAILS"):
        assert section in text
    assert "Gateway [Gateway]" in text
    assert "[FW-ANY-ANY-001]" in text
    assert f"{result.score}/100" in text


def test_text_report_without_snapshot_omits_topology(audited):
    result, _ = audited
    text = generate_text_report(result)
    assert "NETWORK TOPOLOGY" not in text
    assert "SWITCH DETAILS" not in text


def test_executive_summary_mentions_counts(audited):
    result, _ = audited
    summary = executive_summary(result)
    assert "needs immediate attention" in summary
    assert f"{result.severity_counts['critical']} critical" in summary


def test_save_report(audited, tmp_path):
    result, snapshot = audited
    path = save_report(result, tmp_path / "report.txt", "text", snapshot)
    assert REPORT_TITLE in path.read_text(encoding="utf-8")
    path = save_report(result, tmp_path / "report.json")
    assert json.loads(path.read_text(encoding="utf-8"))["grade"] == result.grade


def test_save_report_rejects_unknown_format(audited, tmp_path):
    result, _ = audited
    with pytest.raises(ValueError, match="Unsupported report format"):
        save_report(result, tmp_path / "report.pdf", "pdf")
