"""
Matching primitives shared by the overlap detector and the analyzers.

Everything here is a pure function over strings.  Unparseable input never
raises: it is logged and treated as "matches nothing".
"""
import ipaddress
import logging
from typing import Iterable, Optional

logger = logging.getLogger(__name__)

MAX_PORT = 65535
PORT_RANGE_EXPANSION_CAP = 100


# ---------------------------------------------------------------------------
# IP / CIDR
# ---------------------------------------------------------------------------

def ip_matches_cidr(ip: str, cidr: str) -> bool:
    """True when ``ip`` falls inside ``cidr``.

    ``cidr`` must carry a prefix length.  If ``ip`` is itself written as a
    CIDR only its address part is compared.
    """
    if not ip or not cidr or "/" not in cidr:
        return False
    address = ip.split("/", 1)[0].strip()
    try:
        network = ipaddress.ip_network(cidr.strip(), strict=False)
        parsed = ipaddress.ip_address(address)
    except ValueError:
        logger.warning("Unparseable IP/CIDR pair: %r in %r", ip, cidr)
        return False
    if parsed.version != network.version:
        return False
    return parsed in network


def cidr_covers(outer: str, inner: str) -> bool:
    """True when every address of ``inner`` is also in ``outer``."""
    a = _ip_interval(outer)
    b = _ip_interval(inner)
    if a is None or b is None or a[2] != b[2]:
        return False
    return a[0] <= b[0] and b[1] <= a[1]


def _ip_interval(entry: str) -> Optional[tuple[int, int, int]]:
    """(first, last, version) for a single address, CIDR or ``a-b`` range."""
    entry = (entry or "").strip()
    if not entry:
        return None
    try:
        if "/" in entry:
            net = ipaddress.ip_network(entry, strict=False)
            return int(net.network_address), int(net.broadcast_address), net.version
        if "-" in entry:
            lo, hi = (ipaddress.ip_address(p.strip()) for p in entry.split("-", 1))
            if lo.version != hi.version or int(lo) > int(hi):
                raise ValueError(entry)
            return int(lo), int(hi), lo.version
        addr = ipaddress.ip_address(entry)
        return int(addr), int(addr), addr.version
    except ValueError:
        logger.warning("Skipping unparseable IP entry %r", entry)
        return None


def ip_entries_overlap(a: str, b: str) -> bool:
    """Equal entries, or one contains the other (or the ranges intersect)."""
    if a.strip() == b.strip() and a.strip():
        return True
    ia = _ip_interval(a)
    ib = _ip_interval(b)
    if ia is None or ib is None or ia[2] != ib[2]:
        return False
    return ia[0] <= ib[1] and ib[0] <= ia[1]


def any_ip_overlap(left: Iterable[str], right: Iterable[str]) -> bool:
    right = list(right)
    return any(ip_entries_overlap(a, b) for a in left for b in right)


def ip_list_covered(inner: Iterable[str], outer: Iterable[str]) -> bool:
    """True when every entry of ``inner`` is covered by some entry of ``outer``."""
    outer = list(outer)
    inner = list(inner)
    if not inner:
        return False
    return all(any(cidr_covers(o, i) for o in outer) for i in inner)


# ---------------------------------------------------------------------------
# Ports
# ---------------------------------------------------------------------------

def parse_port_string(value: Optional[str]) -> set[int]:
    """Parse ``"80"``, ``"80,443"``, ``"8000-8002"`` or any mix of them.

    Ranges are clamped to 1-65535; bad tokens are skipped.
    """
    ports: set[int] = set()
    if not value:
        return ports
    for token in value.split(","):
        token = token.strip()
        if not token:
            continue
        if "-" in token:
            lo_s, hi_s = (p.strip() for p in token.split("-", 1))
            if not (lo_s.isdigit() and hi_s.isdigit()):
                logger.warning("Skipping non-numeric port range %r", token)
                continue
            lo, hi = max(int(lo_s), 1), min(int(hi_s), MAX_PORT)
            if lo > hi:
                logger.warning("Skipping inverted port range %r", token)
                continue
            ports.update(range(lo, hi + 1))
        elif token.isdigit():
            port = int(token)
            if 0 < port <= MAX_PORT:
                ports.add(port)
        else:
            logger.warning("Skipping non-numeric port token %r", token)
    return ports


def port_strings_overlap(a: Optional[str], b: Optional[str]) -> bool:
    """Empty means ANY; otherwise the covered port sets must intersect."""
    if not (a or "").strip() or not (b or "").strip():
        return True
    return bool(parse_port_string(a) & parse_port_string(b))


def expand_port_range(value: Optional[str], cap: int = PORT_RANGE_EXPANSION_CAP) -> list[int]:
    """Expand a forward's port field for per-port inspection.

    Each range contributes at most ``cap`` ports.
    """
    ports: list[int] = []
    if not value:
        return ports
    for token in value.split(","):
        token = token.strip()
        if "-" in token:
            lo_s, hi_s = (p.strip() for p in token.split("-", 1))
            if not (lo_s.isdigit() and hi_s.isdigit()):
                logger.warning("Skipping non-numeric port range %r", token)
                continue
            lo, hi = int(lo_s), min(int(hi_s), MAX_PORT)
            if hi - lo + 1 > cap:
                logger.warning(
                    "Port range %r truncated to first %d ports", token, cap,
                )
                hi = lo + cap - 1
            ports.extend(range(lo, hi + 1))
        elif token.isdigit():
            ports.append(int(token))
        elif token:
            logger.warning("Skipping non-numeric port token %r", token)
    return ports


# ---------------------------------------------------------------------------
# Domains
# ---------------------------------------------------------------------------

def domains_overlap(a: str, b: str) -> bool:
    """Equal domains, or one is a subdomain of the other."""
    a = (a or "").strip().lower().rstrip(".")
    b = (b or "").strip().lower().rstrip(".")
    if not a or not b:
        return False
    return a == b or a.endswith("." + b) or b.endswith("." + a)


def any_domain_overlap(left: Iterable[str], right: Iterable[str]) -> bool:
    right = list(right)
    return any(domains_overlap(a, b) for a in left for b in right)
