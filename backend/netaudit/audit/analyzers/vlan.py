"""
VLAN isolation and internet access by network purpose.  VLAN 1 (native) is
never checked.
"""
from netaudit.audit.analyzers.base import AnalyzerResult, SnapshotContext
from netaudit.audit.issues import Issue, IssueTypes, Severity
from netaudit.audit.models import NetworkInfo, NetworkPurpose

# purpose -> (issue type, rule id, severity, impact)
_ISOLATION_REQUIRED = {
    NetworkPurpose.SECURITY: (
        IssueTypes.SECURITY_NETWORK_NOT_ISOLATED, "VLAN-ISOLATION-001", Severity.CRITICAL, 15,
    ),
    NetworkPurpose.MANAGEMENT: (
        IssueTypes.MGMT_NETWORK_NOT_ISOLATED, "VLAN-ISOLATION-002", Severity.CRITICAL, 15,
    ),
    NetworkPurpose.IOT: (
        IssueTypes.IOT_NETWORK_NOT_ISOLATED, "VLAN-ISOLATION-003", Severity.RECOMMENDED, 10,
    ),
}

_INTERNET_RESTRICTED = {
    NetworkPurpose.SECURITY: (
        IssueTypes.SECURITY_NETWORK_HAS_INTERNET, "VLAN-INTERNET-001", Severity.CRITICAL, 15,
    ),
    NetworkPurpose.MANAGEMENT: (
        IssueTypes.MGMT_NETWORK_HAS_INTERNET, "VLAN-INTERNET-002", Severity.RECOMMENDED, 5,
    ),
}


def _network_issue(network: NetworkInfo, check: tuple, message: str, action: str) -> Issue:
    issue_type, rule_id, severity, impact = check
    return Issue(
        type=issue_type,
        rule_id=rule_id,
        severity=severity,
        message=message,
        current_network=network.name,
        metadata={
            "network_id": network.id,
            "vlan_id": network.vlan_id,
            "purpose": network.purpose.value,
            "subnet": network.subnet,
        },
        score_impact=impact,
        recommended_action=action,
    )


def analyze_vlans(ctx: SnapshotContext) -> AnalyzerResult:
    result = AnalyzerResult()
    for network in ctx.snapshot.networks:
        if network.is_native:
            continue
        purpose = network.purpose.display_name

        check = _ISOLATION_REQUIRED.get(network.purpose)
        if check is not None and not network.network_isolation_enabled:
            result.issues.append(_network_issue(
                network, check,
                message=f"{purpose} network '{network.name}' is not isolated from other VLANs",
                action=f"Enable network isolation on '{network.name}'",
            ))

        check = _INTERNET_RESTRICTED.get(network.purpose)
        if check is not None and network.internet_access_enabled:
            result.issues.append(_network_issue(
                network, check,
                message=f"{purpose} network '{network.name}' has internet access enabled",
                action=(
                    f"Disable internet access on '{network.name}' and allow only the "
                    "update or cloud endpoints its devices need"
                ),
            ))
    return result
