import logging
from dataclasses import dataclass, field
from typing import Callable, Union

from netaudit.audit.issues import Issue
from netaudit.audit.models import NetworkSnapshot

Logger = Union[logging.Logger, logging.LoggerAdapter]


@dataclass
class AnalyzerResult:
    issues: list[Issue] = field(default_factory=list)
    hardening_notes: list[str] = field(default_factory=list)

    def extend(self, other: "AnalyzerResult") -> None:
        self.issues.extend(other.issues)
        self.hardening_notes.extend(other.hardening_notes)


@dataclass(frozen=True)
class SnapshotContext:
    snapshot: NetworkSnapshot
    log: Logger = field(default_factory=lambda: logging.getLogger(__name__))

    @property
    def gateway_name(self) -> str:
        return self.snapshot.gateway_name or "Gateway"


@dataclass(frozen=True)
class Analyzer:
    """Evaluates one whole category of objects in the snapshot."""
    name: str
    analyze: Callable[[SnapshotContext], AnalyzerResult]
