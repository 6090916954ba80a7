import pytest
from pydantic import ValidationError

from netaudit.audit.models import (
    NetworkInfo,
    NetworkPurpose,
    NetworkSnapshot,
    PortForwardRule,
    PortInfo,
    PortProfile,
    Restricted,
    TargetKind,
    TargetSpec,
    Unrestricted,
)


def test_network_purpose_coercion():
    assert NetworkInfo(id="n", name="n", purpose="IoT").purpose == NetworkPurpose.IOT
    assert NetworkInfo(id="n", name="n", purpose="vpn").purpose == NetworkPurpose.UNKNOWN
    assert NetworkInfo(id="n", name="n", purpose=None).purpose == NetworkPurpose.UNKNOWN
    assert NetworkPurpose.IOT.display_name == "IoT"
    assert NetworkPurpose.MANAGEMENT.display_name == "Management"


def test_vlan_allowance():
    assert PortInfo(port_index=1).vlan_allowance == Unrestricted()
    assert PortInfo(port_index=1, excluded_network_ids=[]).vlan_allowance == Unrestricted()
    allowance = PortInfo(port_index=1, excluded_network_ids=["a", "b"]).vlan_allowance
    assert allowance == Restricted(frozenset({"a", "b"}))


def test_port_is_frozen():
    port = PortInfo(port_index=1)
    with pytest.raises(ValidationError):
        port.name = "changed"


def test_profile_values_win_where_set():
    port = PortInfo(port_index=1, forward_mode="native", native_network_id="net-a",
                    port_security_enabled=True)
    profile = PortProfile(id="pp", forward="customize", excluded_network_ids=["net-b"])
    resolved = port.with_profile(profile)
    assert resolved.forward_mode == "customize"
    assert resolved.native_network_id == "net-a"
    assert resolved.port_security_enabled is True
    assert resolved.excluded_network_ids == ["net-b"]
    assert resolved.assigned_port_profile == profile
    assert port.forward_mode == "native"
    assert port.with_profile(None) is port


def test_snapshot_attaches_switch_to_ports():
    snapshot = NetworkSnapshot.model_validate({
        "site_name": "s",
        "switches": [{"name": "Core", "model": "USW-48",
                      "capabilities": {"max_custom_mac_acls": 0},
                      "ports": [{"port_index": 1}, {"port_index": 2}]}],
    })
    ports = snapshot.switches[0].ports
    assert {p.switch_name for p in ports} == {"Core"}
    assert ports[0].switch.capabilities.max_custom_mac_acls == 0


def test_snapshot_resolves_profiles_case_insensitively():
    snapshot = NetworkSnapshot.model_validate({
        "site_name": "s",
        "port_profiles": [{"id": "ABC", "forward": "disabled"}],
        "switches": [{"name": "Sw", "ports": [
            {"port_index": 1, "port_profile_id": "abc"},
            {"port_index": 2, "port_profile_id": "missing"},
        ]}],
    })
    modes = [p.forward_mode for p in snapshot.resolved_ports()]
    assert modes == ["disabled", "native"]


def test_enabled_networks_and_lookup():
    snapshot = NetworkSnapshot(site_name="s", networks=[
        NetworkInfo(id="a", name="A", vlan_id=10),
        NetworkInfo(id="b", name="B", vlan_id=20, enabled=False),
    ])
    assert [n.id for n in snapshot.enabled_networks] == ["a"]
    assert snapshot.network_by_id("b").name == "B"
    assert snapshot.network_by_id(None) is None


@pytest.mark.parametrize("name,app", [
    ("UPnP [Sunshine - RTSP]", "Sunshine - RTSP"),
    ("upnp [Xbox]", "Xbox"),
    ("Web Server", "Web Server"),
    ("", "Unknown"),
])
def test_forward_application_name(name, app):
    assert PortForwardRule(name=name).application_name == app


@pytest.mark.parametrize("kw,restricted", [
    ({}, False),
    ({"src_limiting_enabled": True, "src_limiting_type": "ip", "src": "1.2.3.4"}, True),
    ({"src_limiting_enabled": True, "src_limiting_type": "ip", "src": " "}, False),
    ({"src_limiting_enabled": True, "src_limiting_type": "firewall_group",
      "src_firewall_group_id": "grp-1"}, True),
    ({"src_limiting_enabled": False, "src_limiting_type": "ip", "src": "1.2.3.4"}, False),
])
def test_forward_source_restriction(kw, restricted):
    assert PortForwardRule(name="f", **kw).has_source_restriction is restricted


def test_forward_flags_accept_integers():
    rule = PortForwardRule(name="f", is_upnp=1, enabled="0")
    assert rule.is_upnp is True
    assert rule.enabled is False


def test_target_kind_coercion():
    assert TargetSpec(kind="network").kind == TargetKind.NETWORK
    assert TargetSpec(kind=None).is_any
    assert TargetSpec(port_group_unresolved=True).has_port
    assert not TargetSpec(port="  ").has_port
