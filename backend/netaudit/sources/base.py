"""
Abstract SnapshotSource interface: every controller source implements this.
"""
from abc import ABC, abstractmethod

from netaudit.audit.models import NetworkSnapshot


class SnapshotSource(ABC):

    @abstractmethod
    def fetch_snapshot(self, site_name: str) -> NetworkSnapshot:
        """Return a fully materialised snapshot or raise SnapshotUnavailable."""

    def test_connection(self, site_name: str) -> dict:
        """Optional: returns {success: bool, message: str}."""
        try:
            self.fetch_snapshot(site_name)
        except Exception as exc:
            return {"success": False, "message": str(exc)}
        return {"success": True, "message": "Snapshot available"}
