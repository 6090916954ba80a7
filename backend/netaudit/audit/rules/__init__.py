from netaudit.audit.rules.base import PortContext, PortRule
from netaudit.audit.rules.access_port_vlan import ACCESS_PORT_VLAN_RULE
from netaudit.audit.rules.mac_restriction import MAC_RESTRICTION_RULE
from netaudit.audit.rules.unused_port import UNUSED_PORT_RULE

# Evaluation order is the order issues are reported in per port.
DEFAULT_PORT_RULES: list[PortRule] = [
    ACCESS_PORT_VLAN_RULE,
    UNUSED_PORT_RULE,
    MAC_RESTRICTION_RULE,
]

__all__ = [
    "PortContext", "PortRule", "DEFAULT_PORT_RULES",
    "ACCESS_PORT_VLAN_RULE", "UNUSED_PORT_RULE", "MAC_RESTRICTION_RULE",
]
