"""
Mock source: serves a demo site without a real controller.
Per-site state is kept in memory so several mock sites behave independently.
"""
import copy
import time

from netaudit.audit.errors import SnapshotUnavailable
from netaudit.audit.models import NetworkSnapshot
from netaudit.sources.base import SnapshotSource

_DAY = 86400

_MOCK_SITE_TEMPLATE = {
    "gateway_name": "Gateway",
    "upnp_enabled": True,
    "networks": [
        {"id": "net-default", "name": "Default", "vlan_id": 1, "purpose": "corporate",
         "subnet": "192.168.1.0/24", "gateway": "192.168.1.1"},
        {"id": "net-home", "name": "Home", "vlan_id": 10, "purpose": "home",
         "subnet": "192.168.10.0/24", "upnp_lan_enabled": True},
        {"id": "net-iot", "name": "IoT Devices", "vlan_id": 20, "purpose": "iot",
         "subnet": "192.168.20.0/24", "network_isolation_enabled": False},
        {"id": "net-cams", "name": "Cameras", "vlan_id": 30, "purpose": "security",
         "subnet": "192.168.30.0/24", "network_isolation_enabled": True,
         "internet_access_enabled": True},
        {"id": "net-mgmt", "name": "Management", "vlan_id": 99, "purpose": "management",
         "subnet": "10.99.0.0/24", "network_isolation_enabled": True,
         "internet_access_enabled": False},
    ],
    "switches": [
        {
            "name": "Gateway",
            "model": "UDM-Pro",
            "is_gateway": True,
            "ports": [
                {"port_index": 9, "name": "WAN", "is_up": True, "is_wan": True,
                 "forward_mode": "native"},
                {"port_index": 10, "name": "Uplink", "is_up": True, "is_uplink": True,
                 "forward_mode": "all", "connected_device_type": "usw"},
            ],
        },
        {
            "name": "Switch-Office",
            "model": "USW-24",
            "capabilities": {"max_custom_mac_acls": 32},
            "ports": [
                {"port_index": 1, "name": "Port 1", "is_up": True, "forward_mode": "native",
                 "native_network_id": "net-home",
                 "connected_client": {"mac": "aa:bb:cc:00:00:01", "hostname": "office-pc"}},
                {"port_index": 2, "name": "Proxmox", "is_up": True, "forward_mode": "custom",
                 "native_network_id": "net-home", "excluded_network_ids": None,
                 "connected_client": {"mac": "aa:bb:cc:00:00:02", "hostname": "proxmox-host"}},
                {"port_index": 3, "name": "Lobby AP", "is_up": True, "forward_mode": "all",
                 "connected_device_type": "uap"},
                {"port_index": 4, "name": "Port 4", "is_up": False, "forward_mode": "native",
                 "native_network_id": "net-home"},
                {"port_index": 5, "name": "Printer", "is_up": False, "forward_mode": "native",
                 "native_network_id": "net-home",
                 "last_connection_mac": "aa:bb:cc:00:00:05",
                 "last_connection_seen_days_ago": 60},
            ],
        },
    ],
    "firewall_rules": [
        {"id": "fw-1", "name": "Block IoT to LAN", "index": 2000, "action": "block",
         "source": {"kind": "NETWORK", "network_ids": ["net-iot"]},
         "destination": {"kind": "NETWORK", "network_ids": ["net-home"]}},
        {"id": "fw-2", "name": "Allow all (temp)", "index": 2001, "action": "allow",
         "protocol": "all"},
    ],
    "port_forwards": [
        {"id": "pf-1", "name": "UPnP [Sunshine - RTSP]", "dst_port": "48010",
         "proto": "tcp", "is_upnp": 1},
        {"id": "pf-2", "name": "Web Server", "dst_port": "443", "proto": "tcp",
         "fwd_ip": "192.168.10.20", "is_upnp": 0},
    ],
}

_site_states: dict = {}


def _materialise(site_name: str, template: dict) -> dict:
    state = copy.deepcopy(template)
    state["site_name"] = site_name
    now = int(time.time())
    for switch in state.get("switches", []):
        for port in switch.get("ports", []):
            days = port.pop("last_connection_seen_days_ago", None)
            if days is not None:
                port["last_connection_seen"] = now - days * _DAY
    return state


class MockSource(SnapshotSource):

    def fetch_snapshot(self, site_name: str) -> NetworkSnapshot:
        state = _site_states.get(site_name)
        if state is None:
            state = _site_states[site_name] = _materialise(site_name, _MOCK_SITE_TEMPLATE)
        if state.get("unreachable"):
            raise SnapshotUnavailable(site_name, "Mock: controller unreachable")
        return NetworkSnapshot.model_validate(state)

    def set_site(self, site_name: str, data: dict) -> None:
        """Replace the state served for ``site_name``."""
        _site_states[site_name] = _materialise(site_name, data)

    def set_unreachable(self, site_name: str, unreachable: bool = True) -> None:
        state = _site_states.setdefault(site_name, _materialise(site_name, _MOCK_SITE_TEMPLATE))
        state["unreachable"] = unreachable

    def reset(self) -> None:
        _site_states.clear()
