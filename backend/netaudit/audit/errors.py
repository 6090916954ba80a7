class AuditError(Exception):
    """Base class for audit run failures."""


class SnapshotUnavailable(AuditError):
    """The controller could not deliver a snapshot; the audit could not run."""

    def __init__(self, site: str, reason: str):
        self.site = site
        self.reason = reason
        super().__init__(f"Snapshot unavailable for site {site!r}: {reason}")


class AuditCancelled(AuditError):
    """The run was cancelled; any partial results were discarded."""
