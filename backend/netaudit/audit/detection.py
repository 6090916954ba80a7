"""
Device classification signal used by the port rules.

The engine depends only on the ``DeviceClassifier`` protocol: a category, an
optional product name, a confidence and the evidence source.  The heuristic
classifier below is pure and safe to share between worker threads.
"""
import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol


class DeviceCategory(str, Enum):
    SERVER = "server"
    NAS = "nas"
    VIRTUAL_MACHINE = "virtual_machine"
    COMPUTER = "computer"
    PHONE = "phone"
    PRINTER = "printer"
    CAMERA = "camera"
    ACCESS_POINT = "access_point"
    IOT = "iot"
    UNKNOWN = "unknown"

    @property
    def display_name(self) -> str:
        return {
            "nas": "NAS",
            "iot": "IoT Device",
            "virtual_machine": "Virtual Machine",
            "access_point": "Access Point",
        }.get(self.value, self.value.capitalize())


SERVER_CATEGORIES = frozenset({
    DeviceCategory.SERVER, DeviceCategory.NAS, DeviceCategory.VIRTUAL_MACHINE,
})


class DetectionSource(str, Enum):
    FINGERPRINT = "fingerprint"
    HOSTNAME = "hostname"
    OUI = "oui"
    NONE = "none"


@dataclass(frozen=True)
class DeviceHint:
    hostname: Optional[str] = None
    oui: Optional[str] = None
    fingerprint: Optional[int] = None


@dataclass(frozen=True)
class DetectionResult:
    category: DeviceCategory
    product_name: Optional[str] = None
    confidence: int = 0
    source: DetectionSource = DetectionSource.NONE

    @property
    def is_server(self) -> bool:
        return self.category in SERVER_CATEGORIES


UNKNOWN_DEVICE = DetectionResult(DeviceCategory.UNKNOWN)


class DeviceClassifier(Protocol):
    def classify(self, hint: DeviceHint) -> DetectionResult: ...


# ---------------------------------------------------------------------------
# Heuristic classifier
# ---------------------------------------------------------------------------

# Controller fingerprint category codes.
_FINGERPRINT_CATEGORIES = {
    1: DeviceCategory.COMPUTER,
    6: DeviceCategory.PHONE,
    9: DeviceCategory.CAMERA,
    12: DeviceCategory.PRINTER,
    14: DeviceCategory.IOT,
    44: DeviceCategory.PHONE,
    46: DeviceCategory.COMPUTER,
    56: DeviceCategory.SERVER,
    91: DeviceCategory.NAS,
    106: DeviceCategory.CAMERA,
    182: DeviceCategory.VIRTUAL_MACHINE,
}

_HOSTNAME_PATTERNS: list[tuple[re.Pattern, DeviceCategory, Optional[str]]] = [
    (re.compile(r"proxmox|\bpve\d*\b", re.I), DeviceCategory.SERVER, "Proxmox VE"),
    (re.compile(r"esxi|vmware|vsphere", re.I), DeviceCategory.SERVER, "VMware ESXi"),
    (re.compile(r"hyper-?v", re.I), DeviceCategory.SERVER, "Hyper-V"),
    (re.compile(r"truenas|freenas", re.I), DeviceCategory.NAS, "TrueNAS"),
    (re.compile(r"unraid", re.I), DeviceCategory.NAS, "Unraid"),
    (re.compile(r"synology|diskstation|\bds\d{3,4}", re.I), DeviceCategory.NAS, "Synology"),
    (re.compile(r"qnap", re.I), DeviceCategory.NAS, "QNAP"),
    (re.compile(r"\bnas\b", re.I), DeviceCategory.NAS, None),
    (re.compile(r"docker|k8s|kube", re.I), DeviceCategory.SERVER, None),
    (re.compile(r"server|\bsrv\b", re.I), DeviceCategory.SERVER, None),
    (re.compile(r"printer|laserjet|officejet", re.I), DeviceCategory.PRINTER, None),
    (re.compile(r"\bcam\b|camera|doorbell", re.I), DeviceCategory.CAMERA, None),
    (re.compile(r"iphone|android|pixel|galaxy", re.I), DeviceCategory.PHONE, None),
    (re.compile(r"laptop|desktop|macbook|imac|\bpc\b", re.I), DeviceCategory.COMPUTER, None),
]

_OUI_VENDORS: list[tuple[str, DeviceCategory, str]] = [
    ("synology", DeviceCategory.NAS, "Synology"),
    ("qnap", DeviceCategory.NAS, "QNAP"),
    ("supermicro", DeviceCategory.SERVER, "Supermicro"),
    ("vmware", DeviceCategory.VIRTUAL_MACHINE, "VMware"),
    ("hewlett packard enterprise", DeviceCategory.SERVER, "HPE"),
    ("axis communications", DeviceCategory.CAMERA, "Axis"),
    ("hikvision", DeviceCategory.CAMERA, "Hikvision"),
    ("brother", DeviceCategory.PRINTER, "Brother"),
    ("espressif", DeviceCategory.IOT, "Espressif"),
]


class HeuristicDeviceClassifier:
    """Fingerprint code first, then hostname keywords, then vendor name."""

    def classify(self, hint: DeviceHint) -> DetectionResult:
        if hint.fingerprint is not None and hint.fingerprint in _FINGERPRINT_CATEGORIES:
            return DetectionResult(
                category=_FINGERPRINT_CATEGORIES[hint.fingerprint],
                confidence=90,
                source=DetectionSource.FINGERPRINT,
            )
        if hint.hostname:
            for pattern, category, product in _HOSTNAME_PATTERNS:
                if pattern.search(hint.hostname):
                    return DetectionResult(category, product, 70, DetectionSource.HOSTNAME)
        if hint.oui:
            vendor = hint.oui.lower()
            for needle, category, product in _OUI_VENDORS:
                if needle in vendor:
                    return DetectionResult(category, product, 50, DetectionSource.OUI)
        return UNKNOWN_DEVICE


class StaticClassifier:
    """Returns fixed results keyed by hostname; used where determinism matters."""

    def __init__(self, by_hostname: Optional[dict[str, DetectionResult]] = None,
                 default: DetectionResult = UNKNOWN_DEVICE):
        self._by_hostname = {k.lower(): v for k, v in (by_hostname or {}).items()}
        self._default = default

    def classify(self, hint: DeviceHint) -> DetectionResult:
        return self._by_hostname.get((hint.hostname or "").lower(), self._default)
