from netaudit.audit.analyzers.base import Analyzer, AnalyzerResult, SnapshotContext
from netaudit.audit.analyzers.firewall import analyze_firewall
from netaudit.audit.analyzers.upnp import analyze_upnp
from netaudit.audit.analyzers.vlan import analyze_vlans

DEFAULT_ANALYZERS: list[Analyzer] = [
    Analyzer(name="firewall", analyze=analyze_firewall),
    Analyzer(name="upnp", analyze=analyze_upnp),
    Analyzer(name="vlan", analyze=analyze_vlans),
]

__all__ = ["Analyzer", "AnalyzerResult", "SnapshotContext", "DEFAULT_ANALYZERS"]
