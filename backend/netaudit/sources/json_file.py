"""
Reads site snapshots exported as JSON: ``<snapshot_dir>/<site>.json``.
"""
import json
import logging
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from netaudit.audit.errors import SnapshotUnavailable
from netaudit.audit.models import NetworkSnapshot
from netaudit.core.config import get_settings
from netaudit.sources.base import SnapshotSource

logger = logging.getLogger(__name__)


def load_snapshot_file(path: Path, site_name: Optional[str] = None) -> NetworkSnapshot:
    path = Path(path)
    site = site_name or path.stem
    if not path.is_file():
        raise SnapshotUnavailable(site, f"Device data file not found: {path}")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise SnapshotUnavailable(site, f"Unreadable device data file {path}: {exc}") from exc
    data.setdefault("site_name", site)
    try:
        return NetworkSnapshot.model_validate(data)
    except ValidationError as exc:
        raise SnapshotUnavailable(site, f"Invalid device data in {path}: {exc}") from exc


class JsonFileSource(SnapshotSource):

    def __init__(self, directory: Optional[str] = None):
        self._directory = directory

    @property
    def directory(self) -> Path:
        return Path(self._directory or get_settings().snapshot_dir)

    def fetch_snapshot(self, site_name: str) -> NetworkSnapshot:
        path = self.directory / f"{site_name}.json"
        logger.debug("Loading snapshot for %s from %s", site_name, path)
        return load_snapshot_file(path, site_name)
