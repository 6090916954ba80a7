"""
Per-port rule descriptors.

A rule is a small immutable value: identity, default severity and impact,
plus a ``check`` function.  Rules hold no state; everything a check needs
arrives in the ``PortContext``, including the logger for the current run.
"""
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Optional, Union

from netaudit.audit.detection import (
    UNKNOWN_DEVICE,
    DetectionResult,
    DeviceCategory,
    DeviceClassifier,
    DeviceHint,
    HeuristicDeviceClassifier,
)
from netaudit.audit.issues import Issue, Severity
from netaudit.audit.models import NetworkInfo, PortInfo

_DEFAULT_PORT_NAME = re.compile(r"^(Port\s*\d+|SFP\+?\s*\d+)$", re.IGNORECASE)

Logger = Union[logging.Logger, logging.LoggerAdapter]


@dataclass(frozen=True)
class PortContext:
    port: PortInfo
    networks: list[NetworkInfo]
    all_networks: Optional[list[NetworkInfo]] = None
    classifier: DeviceClassifier = field(default_factory=HeuristicDeviceClassifier)
    log: Logger = field(default_factory=lambda: logging.getLogger(__name__))
    now: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def network_name(self, network_id: Optional[str]) -> Optional[str]:
        if not network_id:
            return None
        for network in self.all_networks or self.networks:
            if network.id == network_id:
                return network.name
        return None

    @property
    def native_network_name(self) -> Optional[str]:
        return self.network_name(self.port.native_network_id)

    def classify_device(self) -> DetectionResult:
        """Classify whatever single device the port shows evidence of."""
        port = self.port
        client = port.connected_client
        if client is not None:
            hint = DeviceHint(
                hostname=client.hostname or client.name,
                oui=client.oui,
                fingerprint=client.dev_cat,
            )
        elif port.has_single_device_evidence:
            hint = DeviceHint(hostname=port.name or None)
        else:
            return UNKNOWN_DEVICE
        return self.classifier.classify(hint)

    def device_label(self) -> str:
        """Label as "<device> on <switch>" using the most specific name known."""
        port = self.port
        client = port.connected_client
        label = None
        if client is not None:
            label = client.name or client.hostname
        if not label and port.name and not is_default_port_name(port.name):
            label = port.name
        if not label and port.has_single_device_evidence:
            detected = self.classify_device()
            if detected.product_name:
                label = detected.product_name
            elif detected.category != DeviceCategory.UNKNOWN:
                label = detected.category.display_name
        if not label:
            label = port.name or f"Port {port.port_index}"
        return f"{label} on {port.switch_name}"


def is_default_port_name(name: Optional[str]) -> bool:
    return not name or bool(_DEFAULT_PORT_NAME.match(name.strip()))


@dataclass(frozen=True)
class PortRule:
    rule_id: str
    name: str
    issue_type: str
    severity: Severity
    score_impact: int
    check: Callable[["PortRule", PortContext], Optional[Issue]]
    description: str = ""

    def evaluate(self, ctx: PortContext) -> Optional[Issue]:
        return self.check(self, ctx)

    def issue(
        self,
        ctx: PortContext,
        message: str,
        recommended_action: str,
        metadata: Optional[dict[str, Any]] = None,
        severity: Optional[Severity] = None,
        score_impact: Optional[int] = None,
    ) -> Issue:
        port = ctx.port
        return Issue(
            type=self.issue_type,
            rule_id=self.rule_id,
            severity=severity or self.severity,
            message=message,
            device_name=ctx.device_label(),
            switch_name=port.switch_name,
            port=str(port.port_index),
            port_name=port.name or None,
            current_network=ctx.native_network_name,
            metadata=metadata or {},
            score_impact=self.score_impact if score_impact is None else score_impact,
            recommended_action=recommended_action,
        )
