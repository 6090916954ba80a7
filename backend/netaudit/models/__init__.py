from netaudit.models.site import Site
from netaudit.models.audit import AuditRun, DismissedIssue

__all__ = [
    "Site",
    "AuditRun", "DismissedIssue",
]
