"""
Firewall rule analysis: any->any allow rules and rules that overlap an
earlier rule with the opposite action.
"""
from typing import Optional

from netaudit.audit.analyzers.base import AnalyzerResult, SnapshotContext
from netaudit.audit.issues import Issue, IssueTypes, Severity
from netaudit.audit.models import ActionType, FirewallRule
from netaudit.audit.overlap import rules_overlap


def is_any_any_allow(rule: FirewallRule) -> bool:
    return (
        rule.enabled
        and rule.is_any_source
        and rule.is_any_destination
        and rule.normalized_protocol == "all"
        and not rule.source.has_port
        and not rule.destination.has_port
        and rule.action_type == ActionType.ALLOW
        and rule.allows_new_connections()
    )


def check_any_any(rule: FirewallRule) -> Optional[Issue]:
    if not is_any_any_allow(rule):
        return None
    return Issue(
        type=IssueTypes.FW_ANY_ANY,
        rule_id="FW-ANY-ANY-001",
        severity=Severity.CRITICAL,
        message=f"Firewall rule '{rule.name}' allows any->any traffic",
        device_name=rule.name or rule.id,
        metadata={
            "rule_id": rule.id,
            "rule_name": rule.name,
            "rule_index": rule.index,
            "ruleset": rule.ruleset,
            "action": rule.action,
        },
        score_impact=15,
        recommended_action="Restrict source, destination, or protocol to minimum required access",
    )


def find_conflicts(rules: list[FirewallRule]) -> list[tuple[FirewallRule, FirewallRule]]:
    """(earlier, later) pairs that overlap with opposite allow/deny actions.

    Only the first conflicting earlier rule is reported for each later rule.
    """
    candidates = sorted(
        (r for r in rules
         if r.enabled and not r.predefined and r.action_type != ActionType.UNKNOWN),
        key=lambda r: r.index,
    )
    conflicts = []
    for pos, later in enumerate(candidates):
        for earlier in candidates[:pos]:
            if earlier.action_type == later.action_type:
                continue
            if rules_overlap(earlier, later):
                conflicts.append((earlier, later))
                break
    return conflicts


def analyze_firewall(ctx: SnapshotContext) -> AnalyzerResult:
    result = AnalyzerResult()
    rules = ctx.snapshot.firewall_rules

    for rule in rules:
        issue = check_any_any(rule)
        if issue is not None:
            result.issues.append(issue)

    for earlier, later in find_conflicts(rules):
        ctx.log.debug("Rule %s overlaps earlier rule %s", later.id, earlier.id)
        result.issues.append(Issue(
            type=IssueTypes.FW_CONFLICTING_OVERLAP,
            rule_id="FW-SHADOW-001",
            severity=Severity.INFORMATIONAL,
            message=(
                f"Firewall rule '{later.name}' ({later.action_type.value}) overlaps earlier "
                f"rule '{earlier.name}' ({earlier.action_type.value}); traffic matching both "
                "is decided by the earlier rule"
            ),
            device_name=later.name or later.id,
            metadata={
                "rule_id": later.id,
                "rule_index": later.index,
                "earlier_rule_id": earlier.id,
                "earlier_rule_name": earlier.name,
                "earlier_rule_index": earlier.index,
            },
            score_impact=0,
            recommended_action=(
                "Review rule order, or narrow one of the rules so the intended action applies"
            ),
        ))
    return result
