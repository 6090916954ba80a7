import re
from typing import Optional

from netaudit.audit.issues import Issue, IssueTypes, Severity
from netaudit.audit.models import ACCESS_POINT_TYPES
from netaudit.audit.rules.base import PortContext, PortRule

_ACCESS_POINT_NAME = re.compile(r"\b(AP|WAP)\b|\bwi-?fi\b|\baccess\s*point\b", re.IGNORECASE)


def looks_like_access_point(name: Optional[str]) -> bool:
    return bool(name) and bool(_ACCESS_POINT_NAME.search(name))


def _is_access_port(ctx: PortContext) -> bool:
    port = ctx.port
    if port.forward_mode == "native":
        return True
    return port.forward_mode in ("custom", "customize") and bool(port.native_network_id)


def _check(rule: PortRule, ctx: PortContext) -> Optional[Issue]:
    port = ctx.port
    if not port.is_up or port.is_uplink or port.is_wan:
        return None
    if not _is_access_port(ctx):
        return None
    if port.switch is not None and port.switch.capabilities.max_custom_mac_acls == 0:
        return None
    if port.port_security_enabled or port.allowed_mac_addresses:
        return None
    if port.is_fabric_device or (port.connected_device_type or "").lower() in ACCESS_POINT_TYPES:
        return None
    client_name = port.connected_client.name if port.connected_client else None
    if looks_like_access_point(port.name) or looks_like_access_point(client_name):
        return None
    if port.is_dot1x_secured:
        return None
    profile = port.assigned_port_profile
    if profile is not None and profile.is_unrestricted_access_profile:
        return None

    return rule.issue(
        ctx,
        message="No MAC restriction on access port",
        recommended_action=(
            "Restrict the port to the connected device's MAC address or enable 802.1X"
        ),
        metadata={
            "network": ctx.native_network_name,
            "forward_mode": port.forward_mode,
            "max_mac_acls": port.switch.capabilities.max_custom_mac_acls if port.switch else None,
        },
    )


MAC_RESTRICTION_RULE = PortRule(
    rule_id="MAC-RESTRICT-001",
    name="MAC Restriction Missing",
    issue_type=IssueTypes.MAC_RESTRICTION,
    severity=Severity.RECOMMENDED,
    score_impact=3,
    check=_check,
    description="Access ports should be locked to the expected device",
)
