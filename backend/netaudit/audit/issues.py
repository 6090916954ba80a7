"""
Issue: the single output unit of every rule and analyzer.
"""
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class Severity(str, Enum):
    CRITICAL = "critical"
    RECOMMENDED = "recommended"
    INFORMATIONAL = "informational"

    @property
    def rank(self) -> int:
        return {"critical": 0, "recommended": 1, "informational": 2}[self.value]


class IssueTypes:
    """Stable machine codes.  Changing a value breaks stored dismissals."""
    FW_ANY_ANY = "FW_ANY_ANY"
    FW_CONFLICTING_OVERLAP = "FW_CONFLICTING_OVERLAP"
    ACCESS_PORT_VLAN_EXPOSURE = "ACCESS_PORT_VLAN_EXPOSURE"
    UNUSED_PORT = "UNUSED_PORT"
    MAC_RESTRICTION = "MAC_RESTRICTION"
    UPNP_ENABLED = "UPNP_ENABLED"
    UPNP_NON_HOME_NETWORK = "UPNP_NON_HOME_NETWORK"
    UPNP_PRIVILEGED_PORT = "UPNP_PRIVILEGED_PORT"
    UPNP_PORTS_EXPOSED = "UPNP_PORTS_EXPOSED"
    STATIC_PORT_FORWARD = "STATIC_PORT_FORWARD"
    STATIC_PRIVILEGED_PORT = "STATIC_PRIVILEGED_PORT"
    SECURITY_NETWORK_NOT_ISOLATED = "SECURITY_NETWORK_NOT_ISOLATED"
    MGMT_NETWORK_NOT_ISOLATED = "MGMT_NETWORK_NOT_ISOLATED"
    IOT_NETWORK_NOT_ISOLATED = "IOT_NETWORK_NOT_ISOLATED"
    SECURITY_NETWORK_HAS_INTERNET = "SECURITY_NETWORK_HAS_INTERNET"
    MGMT_NETWORK_HAS_INTERNET = "MGMT_NETWORK_HAS_INTERNET"


class Issue(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: str
    rule_id: str
    severity: Severity
    message: str
    device_name: Optional[str] = None
    # set on per-port issues; keys them by switch instead of the connected client
    switch_name: Optional[str] = None
    port: Optional[str] = None
    port_name: Optional[str] = None
    current_network: Optional[str] = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    score_impact: int = Field(default=0, ge=0)
    recommended_action: Optional[str] = None

    @property
    def key(self) -> str:
        return issue_key(
            self.type, self.switch_name or self.device_name, self.port or self.current_network,
        )


def issue_key(issue_type: str, device_name: Optional[str], locator: Optional[str]) -> str:
    """Dismissal identity: ``TYPE|device|port-or-network``.

    Stored dismissals are matched against this string verbatim.
    """
    return "|".join([issue_type, device_name or "", locator or ""])


def sort_issues(issues: list[Issue]) -> list[Issue]:
    return sorted(
        issues,
        key=lambda i: (i.severity.rank, -i.score_impact, i.device_name or "", i.port or "", i.type),
    )
