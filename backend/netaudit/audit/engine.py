"""
Audit runner: evaluates every port rule against every port and every
analyzer against the whole snapshot, then filters dismissed issues and
computes the score.

Rules are pure, so ports and analyzers may be evaluated on a thread pool.
The cancel callback is polled between units of work; a cancelled run raises
``AuditCancelled`` and returns nothing.
"""
import logging
import uuid
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Optional

from pydantic import BaseModel, Field

from netaudit.audit.analyzers import DEFAULT_ANALYZERS, Analyzer, AnalyzerResult, SnapshotContext
from netaudit.audit.detection import DeviceClassifier, HeuristicDeviceClassifier
from netaudit.audit.errors import AuditCancelled
from netaudit.audit.issues import Issue, sort_issues
from netaudit.audit.models import NetworkSnapshot, PortInfo
from netaudit.audit.rules import DEFAULT_PORT_RULES, PortContext, PortRule
from netaudit.audit.scoring import calculate_score, count_by_severity

logger = logging.getLogger(__name__)

CancelCheck = Callable[[], bool]


class RunLogAdapter(logging.LoggerAdapter):
    """Prefixes every record with the site and run it belongs to."""

    def process(self, msg, kwargs):
        return f"[{self.extra['site']} {self.extra['run_id'][:8]}] {msg}", kwargs


class AuditResult(BaseModel):
    run_id: str
    site_name: str
    started_at: datetime
    completed_at: datetime
    issues: list[Issue] = Field(default_factory=list)
    dismissed_issues: list[Issue] = Field(default_factory=list)
    hardening_notes: list[str] = Field(default_factory=list)
    score: int = 100
    grade: str = "A"
    stats: dict[str, Any] = Field(default_factory=dict)

    @property
    def severity_counts(self) -> dict[str, int]:
        return count_by_severity(self.issues)


class AuditEngine:
    def __init__(
        self,
        port_rules: Optional[list[PortRule]] = None,
        analyzers: Optional[list[Analyzer]] = None,
        classifier: Optional[DeviceClassifier] = None,
        max_workers: int = 1,
    ):
        self.port_rules = list(DEFAULT_PORT_RULES if port_rules is None else port_rules)
        self.analyzers = list(DEFAULT_ANALYZERS if analyzers is None else analyzers)
        self.classifier = classifier or HeuristicDeviceClassifier()
        self.max_workers = max(1, max_workers)

    # ------------------------------------------------------------------
    # Units of work
    # ------------------------------------------------------------------

    def _evaluate_port(
        self,
        port: PortInfo,
        snapshot: NetworkSnapshot,
        log: logging.LoggerAdapter,
        cancelled: CancelCheck,
        now: datetime,
    ) -> list[Issue]:
        ctx = PortContext(
            port=port,
            networks=snapshot.enabled_networks,
            all_networks=snapshot.networks,
            classifier=self.classifier,
            log=log,
            now=now,
        )
        issues = []
        for rule in self.port_rules:
            if cancelled():
                raise AuditCancelled(snapshot.site_name)
            try:
                issue = rule.evaluate(ctx)
            except Exception as exc:
                log.warning(
                    "Rule %s skipped port %s/%s: %s",
                    rule.rule_id, port.switch_name, port.port_index, exc, exc_info=True,
                )
                continue
            if issue is not None:
                issues.append(issue)
        return issues

    def _run_analyzer(
        self,
        analyzer: Analyzer,
        ctx: SnapshotContext,
        cancelled: CancelCheck,
    ) -> AnalyzerResult:
        if cancelled():
            raise AuditCancelled(ctx.snapshot.site_name)
        try:
            return analyzer.analyze(ctx)
        except Exception as exc:
            ctx.log.warning("Analyzer %s failed: %s", analyzer.name, exc, exc_info=True)
            return AnalyzerResult()

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------

    def run(
        self,
        snapshot: NetworkSnapshot,
        dismissed_keys: Iterable[str] = (),
        cancel: Optional[CancelCheck] = None,
        run_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> AuditResult:
        run_id = run_id or str(uuid.uuid4())
        started_at = datetime.now(timezone.utc)
        now = now or started_at
        cancelled: CancelCheck = cancel or (lambda: False)
        log = RunLogAdapter(logger, {"site": snapshot.site_name, "run_id": run_id})

        ports = snapshot.resolved_ports()
        snap_ctx = SnapshotContext(snapshot=snapshot, log=log)
        log.info(
            "Audit started: %d switches, %d ports, %d networks, %d firewall rules",
            len(snapshot.switches), len(ports), len(snapshot.networks),
            len(snapshot.firewall_rules),
        )

        if self.max_workers > 1:
            port_issues, analysis = self._run_pooled(ports, snapshot, snap_ctx, log, cancelled, now)
        else:
            port_issues = []
            for port in ports:
                port_issues.extend(self._evaluate_port(port, snapshot, log, cancelled, now))
            analysis = AnalyzerResult()
            for analyzer in self.analyzers:
                analysis.extend(self._run_analyzer(analyzer, snap_ctx, cancelled))

        if cancelled():
            raise AuditCancelled(snapshot.site_name)

        dismissed = set(dismissed_keys)
        produced = port_issues + analysis.issues
        active = [i for i in produced if i.key not in dismissed]
        hidden = [i for i in produced if i.key in dismissed]
        score, grade = calculate_score(active)

        result = AuditResult(
            run_id=run_id,
            site_name=snapshot.site_name,
            started_at=started_at,
            completed_at=datetime.now(timezone.utc),
            issues=sort_issues(active),
            dismissed_issues=sort_issues(hidden),
            hardening_notes=analysis.hardening_notes,
            score=score,
            grade=grade,
            stats={
                "switches": len(snapshot.switches),
                "ports": len(ports),
                "networks": len(snapshot.networks),
                "firewall_rules": len(snapshot.firewall_rules),
                "port_forwards": len(snapshot.port_forwards),
            },
        )
        log.info(
            "Audit complete: score=%d grade=%s issues=%d dismissed=%d",
            score, grade, len(active), len(hidden),
        )
        return result

    def _run_pooled(self, ports, snapshot, snap_ctx, log, cancelled, now):
        with ThreadPoolExecutor(max_workers=self.max_workers,
                                thread_name_prefix="audit") as pool:
            port_futures: list[Future] = [
                pool.submit(self._evaluate_port, port, snapshot, log, cancelled, now)
                for port in ports
            ]
            analyzer_futures: list[Future] = [
                pool.submit(self._run_analyzer, analyzer, snap_ctx, cancelled)
                for analyzer in self.analyzers
            ]
            try:
                # collect in submission order so output does not depend on scheduling
                port_issues = []
                for future in port_futures:
                    port_issues.extend(future.result())
                analysis = AnalyzerResult()
                for future in analyzer_futures:
                    analysis.extend(future.result())
            except AuditCancelled:
                for future in port_futures + analyzer_futures:
                    future.cancel()
                raise
        return port_issues, analysis
