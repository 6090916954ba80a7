"""
Pairwise firewall rule overlap detection.

Two rules overlap when some packet could match both.  Each criterion below is
evaluated independently and combined with AND; every criterion is symmetric
so ``rules_overlap(a, b) == rules_overlap(b, a)``.
"""
from typing import Callable, Collection, Optional

from netaudit.audit.matching import (
    any_domain_overlap,
    any_ip_overlap,
    ip_list_covered,
    parse_port_string,
)
from netaudit.audit.models import FirewallRule, TargetKind, TargetSpec

PORT_PROTOCOLS = {"tcp", "udp", "tcp_udp"}
ICMP_PROTOCOLS = {"icmp", "icmpv6"}


def _negatable_overlap(
    a_values: Collection,
    a_negated: bool,
    b_values: Collection,
    b_negated: bool,
    intersects: Callable[[Collection, Collection], bool],
    covered: Callable[[Collection, Collection], bool],
) -> bool:
    """Overlap of two value sets where either may mean "everything except"."""
    if a_negated and b_negated:
        return True
    if not a_negated and not b_negated:
        return intersects(a_values, b_values)
    plain, excluded = (a_values, b_values) if b_negated else (b_values, a_values)
    if not plain:
        return False
    return not covered(plain, excluded)


def _set_intersects(a: Collection, b: Collection) -> bool:
    return bool(set(a) & set(b))


def _set_covered(plain: Collection, excluded: Collection) -> bool:
    return set(plain) <= set(excluded)


# ---------------------------------------------------------------------------
# Criteria
# ---------------------------------------------------------------------------

def _protocols(rule: FirewallRule) -> set[str]:
    proto = rule.normalized_protocol
    return {"tcp", "udp"} if proto == "tcp_udp" else {proto}


def protocols_overlap(a: FirewallRule, b: FirewallRule) -> bool:
    if a.normalized_protocol == "all" or b.normalized_protocol == "all":
        return True
    return _negatable_overlap(
        _protocols(a), a.match_opposite_protocol,
        _protocols(b), b.match_opposite_protocol,
        _set_intersects, _set_covered,
    )


def targets_overlap(a: TargetSpec, b: TargetSpec) -> bool:
    """Source-vs-source or destination-vs-destination comparison."""
    if a.is_any or b.is_any:
        return True
    if a.kind != b.kind:
        return False
    if a.kind == TargetKind.NETWORK:
        return _negatable_overlap(
            a.network_ids, a.match_opposite_networks,
            b.network_ids, b.match_opposite_networks,
            _set_intersects, _set_covered,
        )
    if a.kind == TargetKind.IP:
        return _negatable_overlap(
            a.ips, a.match_opposite_ips,
            b.ips, b.match_opposite_ips,
            any_ip_overlap, ip_list_covered,
        )
    if a.kind == TargetKind.CLIENT:
        return _set_intersects(
            {m.lower() for m in a.client_macs}, {m.lower() for m in b.client_macs},
        )
    if a.kind == TargetKind.WEB:
        return any_domain_overlap(a.domains, b.domains)
    if a.kind == TargetKind.APP:
        return _set_intersects(a.app_ids, b.app_ids)
    return False


def zones_overlap(a: Optional[str], b: Optional[str]) -> bool:
    return not a or not b or a == b


def _port_side_overlap(a: TargetSpec, b: TargetSpec) -> bool:
    # an unresolved port group could hold anything
    if a.port_group_unresolved or b.port_group_unresolved:
        return True
    if not (a.port or "").strip() or not (b.port or "").strip():
        return True
    return _negatable_overlap(
        parse_port_string(a.port), a.match_opposite_ports,
        parse_port_string(b.port), b.match_opposite_ports,
        _set_intersects, _set_covered,
    )


def ports_overlap(a: FirewallRule, b: FirewallRule) -> bool:
    pa, pb = a.normalized_protocol, b.normalized_protocol
    if pa not in PORT_PROTOCOLS or pb not in PORT_PROTOCOLS:
        return True
    if a.match_opposite_protocol or b.match_opposite_protocol:
        return True
    return (
        _port_side_overlap(a.destination, b.destination)
        and _port_side_overlap(a.source, b.source)
    )


def icmp_types_overlap(a: FirewallRule, b: FirewallRule) -> bool:
    pa, pb = a.normalized_protocol, b.normalized_protocol
    if pa not in ICMP_PROTOCOLS and pb not in ICMP_PROTOCOLS:
        return True
    if pa == "all" or pb == "all":
        return True
    ta = (a.icmp_typename or "").strip().upper()
    tb = (b.icmp_typename or "").strip().upper()
    if ta in ("", "ANY") or tb in ("", "ANY"):
        return True
    return ta == tb


def rules_overlap(a: FirewallRule, b: FirewallRule) -> bool:
    """True iff every criterion overlaps."""
    return (
        zones_overlap(a.source.zone_id, b.source.zone_id)
        and zones_overlap(a.destination.zone_id, b.destination.zone_id)
        and protocols_overlap(a, b)
        and targets_overlap(a.source, b.source)
        and targets_overlap(a.destination, b.destination)
        and ports_overlap(a, b)
        and icmp_types_overlap(a, b)
    )
