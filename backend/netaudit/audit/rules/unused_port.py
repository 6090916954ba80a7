from datetime import datetime, timezone
from typing import Optional

from netaudit.audit.issues import Issue, IssueTypes, Severity
from netaudit.audit.rules.base import PortContext, PortRule, is_default_port_name

DEFAULT_NAME_INACTIVE_DAYS = 15
CUSTOM_NAME_INACTIVE_DAYS = 45


def _check(rule: PortRule, ctx: PortContext) -> Optional[Issue]:
    """Down ports that are still enabled, once inactive long enough."""
    port = ctx.port
    if port.is_up or port.is_uplink or port.is_wan:
        return None
    if port.forward_mode == "disabled":
        return None

    # a named port was probably set up for something; give it longer
    threshold = (
        DEFAULT_NAME_INACTIVE_DAYS if is_default_port_name(port.name)
        else CUSTOM_NAME_INACTIVE_DAYS
    )

    days_inactive = None
    if port.last_connection_seen:
        last_seen = datetime.fromtimestamp(port.last_connection_seen, tz=timezone.utc)
        days_inactive = (ctx.now - last_seen).total_seconds() / 86400
        if days_inactive < threshold:
            return None

    return rule.issue(
        ctx,
        message="Unused port not disabled - should set forward mode to 'disabled'",
        recommended_action="Set the port's forward mode to 'disabled' until it is needed",
        metadata={
            "current_forward_mode": port.forward_mode,
            "days_inactive": int(days_inactive) if days_inactive is not None else None,
            "inactivity_threshold_days": threshold,
            "recommendation": "Disable unused ports to prevent unauthorized access",
        },
    )


UNUSED_PORT_RULE = PortRule(
    rule_id="UNUSED-PORT-001",
    name="Unused Port Enabled",
    issue_type=IssueTypes.UNUSED_PORT,
    severity=Severity.RECOMMENDED,
    score_impact=2,
    check=_check,
    description="Inactive ports should be disabled",
)
