"""
Read-only snapshot of one site as delivered by a controller source.

Models are frozen: rules and analyzers receive them by reference and must
never mutate them.
"""
import re
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")


# ---------------------------------------------------------------------------
# Networks
# ---------------------------------------------------------------------------

class NetworkPurpose(str, Enum):
    HOME = "home"
    IOT = "iot"
    SECURITY = "security"
    MANAGEMENT = "management"
    CORPORATE = "corporate"
    GUEST = "guest"
    UNKNOWN = "unknown"

    @property
    def display_name(self) -> str:
        return {"iot": "IoT", "unknown": "Unknown"}.get(self.value, self.value.capitalize())


class NetworkInfo(_Frozen):
    id: str
    name: str
    vlan_id: int = 1
    purpose: NetworkPurpose = NetworkPurpose.UNKNOWN
    subnet: Optional[str] = None
    gateway: Optional[str] = None
    enabled: bool = True
    dhcp_enabled: bool = True
    dns_servers: list[str] = Field(default_factory=list)
    network_isolation_enabled: bool = False
    internet_access_enabled: bool = True
    upnp_lan_enabled: bool = False
    firewall_zone_id: Optional[str] = None

    @field_validator("purpose", mode="before")
    @classmethod
    def _coerce_purpose(cls, v):
        if isinstance(v, NetworkPurpose) or v is None:
            return v or NetworkPurpose.UNKNOWN
        try:
            return NetworkPurpose(str(v).strip().lower())
        except ValueError:
            return NetworkPurpose.UNKNOWN

    @property
    def is_native(self) -> bool:
        return self.vlan_id == 1


# ---------------------------------------------------------------------------
# Switches and ports
# ---------------------------------------------------------------------------

TRUNK_FORWARD_MODES = {"custom", "customize", "all"}
DOT1X_SECURED_MODES = {"auto", "mac_based"}

# Short type codes reported for gateways, switches, APs and bridges.
FABRIC_DEVICE_TYPES = {"ugw", "usg", "udm", "uxg", "ucg", "uap", "usw", "ubb"}
ACCESS_POINT_TYPES = {"uap"}


@dataclass(frozen=True)
class Unrestricted:
    """Port carries every network as a tagged VLAN."""


@dataclass(frozen=True)
class Restricted:
    """Port carries every network except ``excluded``."""
    excluded: frozenset


VlanAllowance = Union[Unrestricted, Restricted]


class SwitchCapabilities(_Frozen):
    max_custom_mac_acls: int = 32


class SwitchRef(_Frozen):
    name: str
    model: Optional[str] = None
    is_gateway: bool = False
    capabilities: SwitchCapabilities = Field(default_factory=SwitchCapabilities)


class ConnectedClient(_Frozen):
    mac: str
    name: Optional[str] = None
    hostname: Optional[str] = None
    ip: Optional[str] = None
    oui: Optional[str] = None
    dev_cat: Optional[int] = None


class PortProfile(_Frozen):
    id: str
    name: str = ""
    forward: Optional[str] = None
    port_security_enabled: Optional[bool] = None
    tagged_vlan_mgmt: Optional[str] = None
    native_network_id: Optional[str] = None
    excluded_network_ids: Optional[list[str]] = None

    @property
    def is_unrestricted_access_profile(self) -> bool:
        """Public-jack pattern: native only, no port security, tagging blocked."""
        return (
            self.forward == "native"
            and self.port_security_enabled is False
            and self.tagged_vlan_mgmt == "block_all"
        )


class PortInfo(_Frozen):
    switch: Optional[SwitchRef] = None
    port_index: int
    name: str = ""
    is_up: bool = False
    forward_mode: str = "native"
    tagged_vlan_mgmt: Optional[str] = None
    native_network_id: Optional[str] = None
    excluded_network_ids: Optional[list[str]] = None
    is_uplink: bool = False
    is_wan: bool = False
    connected_device_type: Optional[str] = None
    connected_client: Optional[ConnectedClient] = None
    last_connection_mac: Optional[str] = None
    last_connection_seen: Optional[int] = None
    allowed_mac_addresses: list[str] = Field(default_factory=list)
    port_security_enabled: bool = False
    dot1x_ctrl: Optional[str] = None
    port_profile_id: Optional[str] = None
    assigned_port_profile: Optional[PortProfile] = None

    @property
    def switch_name(self) -> str:
        return self.switch.name if self.switch else "Unknown switch"

    @property
    def is_trunk(self) -> bool:
        return self.forward_mode in TRUNK_FORWARD_MODES

    @property
    def is_dot1x_secured(self) -> bool:
        return (self.dot1x_ctrl or "").lower() in DOT1X_SECURED_MODES

    @property
    def is_fabric_device(self) -> bool:
        return (self.connected_device_type or "").lower() in FABRIC_DEVICE_TYPES

    @property
    def vlan_allowance(self) -> VlanAllowance:
        if not self.excluded_network_ids:
            return Unrestricted()
        return Restricted(frozenset(self.excluded_network_ids))

    @property
    def has_single_device_evidence(self) -> bool:
        return (
            self.connected_client is not None
            or len(self.allowed_mac_addresses) == 1
            or bool(self.last_connection_mac)
        )

    def with_profile(self, profile: Optional[PortProfile]) -> "PortInfo":
        """Resolve an assigned port profile onto this port.

        Profile values win where the profile sets them.
        """
        if profile is None:
            return self
        update: dict[str, Any] = {"assigned_port_profile": profile}
        if profile.forward is not None:
            update["forward_mode"] = profile.forward
        if profile.port_security_enabled is not None:
            update["port_security_enabled"] = profile.port_security_enabled
        if profile.tagged_vlan_mgmt is not None:
            update["tagged_vlan_mgmt"] = profile.tagged_vlan_mgmt
        if profile.native_network_id is not None:
            update["native_network_id"] = profile.native_network_id
        if profile.excluded_network_ids is not None:
            update["excluded_network_ids"] = profile.excluded_network_ids
        return self.model_copy(update=update)


class SwitchInfo(_Frozen):
    name: str
    model: Optional[str] = None
    is_gateway: bool = False
    capabilities: SwitchCapabilities = Field(default_factory=SwitchCapabilities)
    ports: list[PortInfo] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _attach_owner(cls, data):
        if not isinstance(data, dict):
            return data
        ref = {
            "name": data.get("name"),
            "model": data.get("model"),
            "is_gateway": data.get("is_gateway", False),
            "capabilities": data.get("capabilities") or {},
        }
        ports = []
        for port in data.get("ports") or []:
            if isinstance(port, dict) and not port.get("switch"):
                port = {**port, "switch": ref}
            elif isinstance(port, PortInfo) and port.switch is None:
                port = port.model_copy(update={"switch": SwitchRef.model_validate(ref)})
            ports.append(port)
        return {**data, "ports": ports}

    @property
    def ref(self) -> SwitchRef:
        return SwitchRef(
            name=self.name, model=self.model,
            is_gateway=self.is_gateway, capabilities=self.capabilities,
        )


# ---------------------------------------------------------------------------
# Firewall rules
# ---------------------------------------------------------------------------

class TargetKind(str, Enum):
    ANY = "ANY"
    IP = "IP"
    NETWORK = "NETWORK"
    CLIENT = "CLIENT"
    WEB = "WEB"
    APP = "APP"


class ConnectionStateType(str, Enum):
    ALL = "ALL"
    RESPOND_ONLY = "RESPOND_ONLY"
    CUSTOM = "CUSTOM"


class ActionType(str, Enum):
    ALLOW = "allow"
    DENY = "deny"
    UNKNOWN = "unknown"


_ALLOW_ACTIONS = {"accept", "allow"}
_DENY_ACTIONS = {"drop", "reject", "block", "deny"}


class TargetSpec(_Frozen):
    """One side (source or destination) of a firewall rule."""
    kind: TargetKind = TargetKind.ANY
    ips: list[str] = Field(default_factory=list)
    network_ids: list[str] = Field(default_factory=list)
    client_macs: list[str] = Field(default_factory=list)
    domains: list[str] = Field(default_factory=list)
    app_ids: list[str] = Field(default_factory=list)
    match_opposite_ips: bool = False
    match_opposite_networks: bool = False
    port: Optional[str] = None
    match_opposite_ports: bool = False
    port_group_unresolved: bool = False
    zone_id: Optional[str] = None

    @field_validator("kind", mode="before")
    @classmethod
    def _coerce_kind(cls, v):
        if v is None or v == "":
            return TargetKind.ANY
        return str(v.value if isinstance(v, TargetKind) else v).upper()

    @property
    def is_any(self) -> bool:
        return self.kind == TargetKind.ANY

    @property
    def has_port(self) -> bool:
        return bool((self.port or "").strip()) or self.port_group_unresolved


class FirewallRule(_Frozen):
    id: str
    name: str = ""
    enabled: bool = True
    index: int = 0
    action: str = "allow"
    protocol: Optional[str] = None
    match_opposite_protocol: bool = False
    icmp_typename: Optional[str] = None
    source: TargetSpec = Field(default_factory=TargetSpec)
    destination: TargetSpec = Field(default_factory=TargetSpec)
    connection_state_type: Optional[ConnectionStateType] = None
    connection_states: list[str] = Field(default_factory=list)
    predefined: bool = False
    ruleset: Optional[str] = None
    hit_count: int = 0
    has_been_hit: bool = False

    @property
    def action_type(self) -> ActionType:
        action = (self.action or "").lower()
        if action in _ALLOW_ACTIONS:
            return ActionType.ALLOW
        if action in _DENY_ACTIONS:
            return ActionType.DENY
        return ActionType.UNKNOWN

    @property
    def normalized_protocol(self) -> str:
        proto = (self.protocol or "").strip().lower()
        return proto or "all"

    @property
    def is_any_source(self) -> bool:
        return self.source.is_any

    @property
    def is_any_destination(self) -> bool:
        return self.destination.is_any

    @property
    def has_unresolved_destination_port_group(self) -> bool:
        return self.destination.port_group_unresolved

    def _states(self) -> set[str]:
        return {s.upper() for s in self.connection_states}

    def allows_new_connections(self) -> bool:
        state = self.connection_state_type
        if state is None or state == ConnectionStateType.ALL:
            return True
        if state == ConnectionStateType.RESPOND_ONLY:
            return False
        return "NEW" in self._states()

    def blocks_new_connections(self) -> bool:
        return self.action_type == ActionType.DENY and self.allows_new_connections()


# ---------------------------------------------------------------------------
# Port forwards
# ---------------------------------------------------------------------------

_UPNP_NAME = re.compile(r"^UPnP\s*\[(?P<app>.+)\]\s*$", re.IGNORECASE)


class PortForwardRule(_Frozen):
    id: Optional[str] = None
    name: str = ""
    dst_port: Optional[str] = None
    fwd_ip: Optional[str] = None
    fwd_port: Optional[str] = None
    proto: str = "tcp_udp"
    is_upnp: bool = False
    enabled: bool = True
    src_limiting_enabled: bool = False
    src_limiting_type: Optional[str] = None
    src: Optional[str] = None
    src_firewall_group_id: Optional[str] = None

    @field_validator("is_upnp", "enabled", "src_limiting_enabled", mode="before")
    @classmethod
    def _coerce_flag(cls, v):
        # controllers report these as 0/1 as often as true/false
        if isinstance(v, str):
            return v.strip().lower() in ("1", "true", "yes", "on")
        return bool(v)

    @property
    def application_name(self) -> str:
        m = _UPNP_NAME.match(self.name or "")
        return m.group("app").strip() if m else (self.name or "Unknown")

    @property
    def has_source_restriction(self) -> bool:
        if not self.src_limiting_enabled:
            return False
        kind = (self.src_limiting_type or "").lower()
        if kind == "ip":
            return bool((self.src or "").strip())
        if kind == "firewall_group":
            return bool((self.src_firewall_group_id or "").strip())
        return False


# ---------------------------------------------------------------------------
# Snapshot
# ---------------------------------------------------------------------------

class NetworkSnapshot(_Frozen):
    site_name: str
    gateway_name: Optional[str] = None
    collected_at: Optional[datetime] = None
    switches: list[SwitchInfo] = Field(default_factory=list)
    networks: list[NetworkInfo] = Field(default_factory=list)
    firewall_rules: list[FirewallRule] = Field(default_factory=list)
    port_forwards: list[PortForwardRule] = Field(default_factory=list)
    port_profiles: list[PortProfile] = Field(default_factory=list)
    upnp_enabled: Optional[bool] = None

    @property
    def enabled_networks(self) -> list[NetworkInfo]:
        return [n for n in self.networks if n.enabled]

    def find_profile(self, profile_id: Optional[str]) -> Optional[PortProfile]:
        if not profile_id:
            return None
        wanted = profile_id.lower()
        for profile in self.port_profiles:
            if profile.id.lower() == wanted:
                return profile
        return None

    def resolved_ports(self) -> list[PortInfo]:
        """Every port of every switch, with port profiles applied."""
        ports = []
        for switch in self.switches:
            for port in switch.ports:
                ports.append(port.with_profile(self.find_profile(port.port_profile_id)))
        return ports

    def network_by_id(self, network_id: Optional[str]) -> Optional[NetworkInfo]:
        if not network_id:
            return None
        for network in self.networks:
            if network.id == network_id:
                return network
        return None
