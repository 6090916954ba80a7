import json

from scripts.run_audit import main


def _write_snapshot(tmp_path):
    path = tmp_path / "edge.json"
    path.write_text(json.dumps({
        "gateway_name": "Edge",
        "firewall_rules": [{"id": "r1", "name": "Allow all", "action": "accept"}],
    }), encoding="utf-8")
    return path


def test_critical_findings_exit_nonzero(tmp_path, capsys):
    assert main([str(_write_snapshot(tmp_path))]) == 1
    out = capsys.readouterr().out
    assert "Network Security Audit Report" in out
    assert "Allow all" in out


def test_dismissed_critical_exits_clean(tmp_path, capsys):
    dismissed = tmp_path / "dismissed.txt"
    dismissed.write_text("FW_ANY_ANY|Allow all|\n", encoding="utf-8")
    code = main([str(_write_snapshot(tmp_path)), "--format", "json",
                 "--dismissed", str(dismissed)])
    assert code == 0
    data = json.loads(capsys.readouterr().out)
    assert data["score"] == 100
    assert data["site_name"] == "edge"


def test_missing_snapshot_exit_code(tmp_path):
    assert main([str(tmp_path / "missing.json")]) == 2


def test_report_written_to_file(tmp_path):
    out = tmp_path / "report.json"
    main([str(_write_snapshot(tmp_path)), "--format", "json", "--output", str(out)])
    assert json.loads(out.read_text(encoding="utf-8"))["grade"] == "B"
