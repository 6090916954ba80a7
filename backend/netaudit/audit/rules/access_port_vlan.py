"""
Access-port VLAN exposure: trunk ports facing a single end device should not
carry more tagged VLANs than that device needs.
"""
from typing import Optional

from netaudit.audit.detection import UNKNOWN_DEVICE
from netaudit.audit.issues import Issue, IssueTypes, Severity
from netaudit.audit.models import Restricted, Unrestricted
from netaudit.audit.rules.base import PortContext, PortRule

SERVER_VLAN_THRESHOLD = 5
DEFAULT_VLAN_THRESHOLD = 2


def _check(rule: PortRule, ctx: PortContext) -> Optional[Issue]:
    port = ctx.port
    if port.is_uplink or port.is_wan or not port.is_trunk:
        return None
    if (port.tagged_vlan_mgmt or "").lower() == "block_all":
        return None
    if port.is_fabric_device:
        return None

    pool = ctx.all_networks if ctx.all_networks is not None else ctx.networks
    vlan_network_ids = {n.id for n in pool if n.vlan_id > 0}
    if not vlan_network_ids:
        return None

    allowance = port.vlan_allowance
    allows_all = isinstance(allowance, Unrestricted)
    excluded = allowance.excluded if isinstance(allowance, Restricted) else frozenset()
    tagged = vlan_network_ids - excluded - {port.native_network_id}
    tagged_count = len(tagged)

    metadata = {
        "network": ctx.native_network_name,
        "tagged_vlan_count": tagged_count,
        "allows_all_vlans": allows_all,
        "has_device_evidence": port.has_single_device_evidence,
        "is_server_device": False,
        "is_dot1x_secured": port.is_dot1x_secured,
    }

    if port.is_dot1x_secured:
        if not allows_all:
            return None
        return rule.issue(
            ctx,
            message="802.1X-secured port allows all VLANs",
            recommended_action=(
                "Replace 'Allow All' with the VLANs RADIUS is expected to assign on this port"
            ),
            metadata=metadata,
            severity=Severity.INFORMATIONAL,
            score_impact=2,
        )

    has_device = port.has_single_device_evidence
    detected = ctx.classify_device() if has_device else UNKNOWN_DEVICE
    is_server = detected.is_server
    threshold = SERVER_VLAN_THRESHOLD if is_server else DEFAULT_VLAN_THRESHOLD
    metadata["is_server_device"] = is_server

    if not allows_all and tagged_count <= threshold:
        return None

    if is_server:
        subject = "Server port"
    elif has_device:
        subject = "Port with single device"
    else:
        subject = "Trunk port with no device"
    exposure = "allows all VLANs" if allows_all else f"has {tagged_count} VLANs tagged"

    if not has_device:
        action = "Disable the port if it is unused, or restrict its tagged VLANs"
        if allows_all:
            action += " instead of using 'Allow All'"
    elif allows_all:
        action = "Replace 'Allow All' with only the VLANs this device needs"
    else:
        action = (
            f"Reduce the tagged VLANs on this single-device port to at most {threshold}"
        )

    ctx.log.debug(
        "VLAN exposure on %s port %s: tagged=%d allows_all=%s server=%s",
        port.switch_name, port.port_index, tagged_count, allows_all, is_server,
    )
    return rule.issue(ctx, message=f"{subject} {exposure}", recommended_action=action,
                      metadata=metadata)


ACCESS_PORT_VLAN_RULE = PortRule(
    rule_id="ACCESS-VLAN-001",
    name="Access Port VLAN Exposure",
    issue_type=IssueTypes.ACCESS_PORT_VLAN_EXPOSURE,
    severity=Severity.CRITICAL,
    score_impact=8,
    check=_check,
    description="Single-device trunk ports should tag only the VLANs the device uses",
)
