"""
UPnP and static port-forward exposure on the gateway.

UPnP findings depend on which networks UPnP is bound to; dynamic mappings
and static forwards are then inspected for privileged (< 1024) ports.
"""
from netaudit.audit.analyzers.base import AnalyzerResult, SnapshotContext
from netaudit.audit.issues import Issue, IssueTypes, Severity
from netaudit.audit.matching import expand_port_range
from netaudit.audit.models import NetworkInfo, NetworkPurpose, PortForwardRule

PRIVILEGED_PORT_LIMIT = 1024
_MAX_LISTED_PORTS = 5

WELL_KNOWN_SERVICES = {
    20: "FTP-Data",
    21: "FTP",
    22: "SSH",
    23: "Telnet",
    25: "SMTP",
    53: "DNS",
    67: "DHCP",
    69: "TFTP",
    80: "HTTP",
    110: "POP3",
    123: "NTP",
    137: "NetBIOS",
    138: "NetBIOS",
    139: "NetBIOS",
    143: "IMAP",
    161: "SNMP",
    389: "LDAP",
    443: "HTTPS",
    445: "SMB",
    465: "SMTPS",
    500: "IKE",
    514: "Syslog",
    587: "SMTP-Submission",
    636: "LDAPS",
    993: "IMAPS",
    995: "POP3S",
}


def describe_port(port: int) -> str:
    service = WELL_KNOWN_SERVICES.get(port)
    return f"{port}/{service}" if service else str(port)


def _privileged_ports(rule: PortForwardRule) -> list[int]:
    return [p for p in expand_port_range(rule.dst_port) if p < PRIVILEGED_PORT_LIMIT]


def _has_unprivileged_port(rule: PortForwardRule) -> bool:
    return any(p >= PRIVILEGED_PORT_LIMIT for p in expand_port_range(rule.dst_port))


def _summarize(entries: list[str]) -> str:
    shown = entries[:_MAX_LISTED_PORTS]
    text = ", ".join(shown)
    if len(entries) > len(shown):
        text += f" and {len(entries) - len(shown)} more"
    return text


# ---------------------------------------------------------------------------
# UPnP network binding
# ---------------------------------------------------------------------------

def _binding_issues(ctx: SnapshotContext, bound: list[NetworkInfo]) -> list[Issue]:
    issues = []
    non_home = [n for n in bound if n.purpose != NetworkPurpose.HOME]
    home = [n for n in bound if n.purpose == NetworkPurpose.HOME]

    if non_home:
        listed = ", ".join(f"{n.name} ({n.purpose.display_name})" for n in non_home)
        issues.append(Issue(
            type=IssueTypes.UPNP_NON_HOME_NETWORK,
            rule_id="UPNP-002",
            severity=Severity.CRITICAL,
            message=f"UPnP is enabled on non-Home network(s): {listed}",
            device_name=ctx.gateway_name,
            metadata={"networks": [n.name for n in non_home]},
            score_impact=15,
            recommended_action=(
                "Disable UPnP on these networks; devices on restricted VLANs must not "
                "open inbound ports automatically"
            ),
        ))

    if len(home) == 1:
        issues.append(Issue(
            type=IssueTypes.UPNP_ENABLED,
            rule_id="UPNP-001",
            severity=Severity.INFORMATIONAL,
            message=f"UPnP is enabled for Home network {home[0].name}",
            device_name=ctx.gateway_name,
            metadata={"networks": [home[0].name]},
            score_impact=0,
            recommended_action="Review UPnP mappings periodically",
        ))
    elif len(home) > 1:
        names = ", ".join(n.name for n in home)
        issues.append(Issue(
            type=IssueTypes.UPNP_ENABLED,
            rule_id="UPNP-001",
            severity=Severity.RECOMMENDED,
            message=f"UPnP is enabled on {len(home)} Home networks: {names}",
            device_name=ctx.gateway_name,
            metadata={"networks": [n.name for n in home]},
            score_impact=5,
            recommended_action=(
                "Limit UPnP to one dedicated Home network for the devices that need it"
            ),
        ))
    return issues


# ---------------------------------------------------------------------------
# Mappings and forwards
# ---------------------------------------------------------------------------

def _upnp_mapping_issues(ctx: SnapshotContext, mappings: list[PortForwardRule]) -> list[Issue]:
    issues = []
    privileged_entries = []
    privileged_apps = []
    unprivileged_count = 0

    for rule in mappings:
        if not (rule.dst_port or "").strip():
            continue
        ports = _privileged_ports(rule)
        for port in ports:
            privileged_entries.append(f"{describe_port(port)} ({rule.application_name})")
        if ports and rule.application_name not in privileged_apps:
            privileged_apps.append(rule.application_name)
        if _has_unprivileged_port(rule):
            unprivileged_count += 1

    if privileged_entries:
        issues.append(Issue(
            type=IssueTypes.UPNP_PRIVILEGED_PORT,
            rule_id="UPNP-003",
            severity=Severity.RECOMMENDED,
            message=(
                f"UPnP is exposing {len(privileged_entries)} privileged port(s): "
                f"{_summarize(privileged_entries)}"
            ),
            device_name=ctx.gateway_name,
            metadata={
                "ports": privileged_entries,
                "applications": privileged_apps,
            },
            score_impact=8,
            recommended_action=(
                "Check why these applications need well-known ports and move them to "
                "unprivileged ports or a static forward with a source restriction"
            ),
        ))

    if unprivileged_count:
        issues.append(Issue(
            type=IssueTypes.UPNP_PORTS_EXPOSED,
            rule_id="UPNP-004",
            severity=Severity.INFORMATIONAL,
            message=f"{unprivileged_count} UPnP port mapping(s) on non-privileged ports",
            device_name=ctx.gateway_name,
            metadata={"mapping_count": unprivileged_count},
            score_impact=0,
            recommended_action="Review active UPnP mappings",
        ))
    return issues


def _static_forward_issues(
    ctx: SnapshotContext, forwards: list[PortForwardRule], home_exists: bool,
) -> list[Issue]:
    issues = []
    privileged = [(r, _privileged_ports(r)) for r in forwards]
    privileged = [(r, ports) for r, ports in privileged if ports]
    unprivileged = [r for r in forwards if _has_unprivileged_port(r)]

    if privileged:
        entries = [
            f"{describe_port(p)} ({rule.name})" for rule, ports in privileged for p in ports
        ]
        unrestricted = [r for r, _ in privileged if not r.has_source_restriction]
        escalate = home_exists and bool(unrestricted)
        if escalate:
            action = (
                "Limit these forwards to known source IP addresses or a firewall group"
            )
        else:
            action = "Confirm these services are meant to be reachable from the internet"
        issues.append(Issue(
            type=IssueTypes.STATIC_PRIVILEGED_PORT,
            rule_id="UPNP-006",
            severity=Severity.RECOMMENDED if escalate else Severity.INFORMATIONAL,
            message=(
                f"{len(privileged)} static port forward(s) expose privileged ports: "
                f"{_summarize(entries)}"
            ),
            device_name=ctx.gateway_name,
            metadata={
                "ports": entries,
                "unrestricted": bool(unrestricted),
                "unrestricted_count": len(unrestricted),
            },
            score_impact=8 if escalate else 0,
            recommended_action=action,
        ))

    if unprivileged:
        issues.append(Issue(
            type=IssueTypes.STATIC_PORT_FORWARD,
            rule_id="UPNP-005",
            severity=Severity.INFORMATIONAL,
            message=f"{len(unprivileged)} static port forward(s) configured",
            device_name=ctx.gateway_name,
            metadata={"forwards": [r.name for r in unprivileged]},
            score_impact=0,
            recommended_action="Review static port forwards and remove unused ones",
        ))
    return issues


def analyze_upnp(ctx: SnapshotContext) -> AnalyzerResult:
    result = AnalyzerResult()
    snapshot = ctx.snapshot
    if snapshot.upnp_enabled is None:
        ctx.log.info("UPnP status unavailable, skipping UPnP analysis")
        return result

    active = [r for r in snapshot.port_forwards if r.enabled]
    mappings = [r for r in active if r.is_upnp]
    forwards = [r for r in active if not r.is_upnp and (r.dst_port or "").strip()]

    if not snapshot.upnp_enabled:
        result.hardening_notes.append("UPnP is disabled on the gateway")
        return result

    bound = [n for n in snapshot.networks if n.upnp_lan_enabled]
    if not bound:
        result.hardening_notes.append("UPnP is enabled globally but not bound to any networks")
    result.issues.extend(_binding_issues(ctx, bound))
    result.issues.extend(_upnp_mapping_issues(ctx, mappings))

    home_exists = any(n.purpose == NetworkPurpose.HOME for n in snapshot.networks)
    result.issues.extend(_static_forward_issues(ctx, forwards, home_exists))
    return result
