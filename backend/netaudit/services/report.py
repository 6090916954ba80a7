"""
Audit report rendering: JSON export, plain-text report, executive summary.
"""
import logging
from pathlib import Path
from typing import Optional

from netaudit.audit.engine import AuditResult
from netaudit.audit.issues import Issue, Severity
from netaudit.audit.models import NetworkSnapshot

logger = logging.getLogger(__name__)

REPORT_TITLE = "Network Security Audit Report"
_RULE = "=" * 72
_SUBRULE = "-" * 72

_SECTIONS = [
    (Severity.CRITICAL, "CRITICAL ISSUES"),
    (Severity.RECOMMENDED, "RECOMMENDED IMPROVEMENTS"),
    (Severity.INFORMATIONAL, "INFORMATIONAL"),
]


def export_json(result: AuditResult) -> str:
    return result.model_dump_json(indent=2)


def executive_summary(result: AuditResult) -> str:
    counts = result.severity_counts
    if counts["critical"]:
        posture = "needs immediate attention"
    elif counts["recommended"]:
        posture = "is reasonable but has room for improvement"
    else:
        posture = "is in good shape"
    lines = [
        f"Site '{result.site_name}' scored {result.score}/100 (grade {result.grade}) "
        f"and {posture}.",
        f"{counts['critical']} critical, {counts['recommended']} recommended and "
        f"{counts['informational']} informational issue(s) were found.",
    ]
    if result.dismissed_issues:
        lines.append(f"{len(result.dismissed_issues)} issue(s) were dismissed and not scored.")
    return " ".join(lines)


def _format_issue(issue: Issue) -> list[str]:
    where = " / ".join(
        p for p in (
            issue.device_name,
            f"port {issue.port}" if issue.port else None,
            issue.current_network,
        ) if p
    )
    lines = [f"  [{issue.rule_id}] {issue.message}"]
    if where:
        lines.append(f"      Where: {where}")
    if issue.recommended_action:
        lines.append(f"      Action: {issue.recommended_action}")
    if issue.score_impact:
        lines.append(f"      Impact: -{issue.score_impact}")
    return lines


def _topology(snapshot: NetworkSnapshot) -> list[str]:
    lines = ["NETWORK TOPOLOGY", _SUBRULE]
    for network in sorted(snapshot.networks, key=lambda n: n.vlan_id):
        flags = []
        if not network.enabled:
            flags.append("disabled")
        if network.network_isolation_enabled:
            flags.append("isolated")
        if not network.internet_access_enabled:
            flags.append("no internet")
        suffix = f" [{', '.join(flags)}]" if flags else ""
        lines.append(
            f"  VLAN {network.vlan_id:<5} {network.name:<24} "
            f"{network.purpose.display_name:<11} {network.subnet or '-'}{suffix}"
        )
    return lines


def _switch_details(snapshot: NetworkSnapshot) -> list[str]:
    lines = ["SWITCH DETAILS", _SUBRULE]
    for switch in snapshot.switches:
        marker = " [Gateway]" if switch.is_gateway else ""
        up = sum(1 for p in switch.ports if p.is_up)
        lines.append(
            f"  {switch.name}{marker} ({switch.model or 'unknown model'}): "
            f"{len(switch.ports)} ports, {up} up"
        )
        for port in switch.ports:
            network = snapshot.network_by_id(port.native_network_id)
            lines.append(
                f"    {port.port_index:>3}  {port.name or '-':<20} "
                f"{'up' if port.is_up else 'down':<5} {port.forward_mode:<10} "
                f"{network.name if network else '-'}"
            )
    return lines


def generate_text_report(result: AuditResult, snapshot: Optional[NetworkSnapshot] = None) -> str:
    lines = [
        _RULE,
        REPORT_TITLE.center(72),
        _RULE,
        f"Site:      {result.site_name}",
        f"Generated: {result.completed_at.isoformat()}",
        f"Score:     {result.score}/100 (grade {result.grade})",
        "",
        executive_summary(result),
        "",
    ]
    if snapshot is not None:
        lines += _topology(snapshot) + [""]

    for severity, title in _SECTIONS:
        issues = [i for i in result.issues if i.severity == severity]
        if not issues:
            continue
        lines += [f"{title} ({len(issues)})", _SUBRULE]
        for issue in issues:
            lines += _format_issue(issue)
        lines.append("")

    if result.hardening_notes:
        lines += ["HARDENING MEASURES", _SUBRULE]
        lines += [f"  + {note}" for note in result.hardening_notes]
        lines.append("")

    if snapshot is not None:
        lines += _switch_details(snapshot) + [""]
    return "\n".join(lines)


def save_report(
    result: AuditResult,
    path: Path,
    fmt: str = "json",
    snapshot: Optional[NetworkSnapshot] = None,
) -> Path:
    fmt = fmt.lower()
    if fmt == "json":
        body = export_json(result)
    elif fmt in ("text", "txt"):
        body = generate_text_report(result, snapshot)
    else:
        raise ValueError(f"Unsupported report format: {fmt!r}")
    path = Path(path)
    path.write_text(body, encoding="utf-8")
    logger.info("Saved %s report for %s to %s", fmt, result.site_name, path)
    return path
