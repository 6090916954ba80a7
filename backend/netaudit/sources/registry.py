from netaudit.sources.base import SnapshotSource
from netaudit.sources.json_file import JsonFileSource
from netaudit.sources.mock import MockSource

_REGISTRY: dict[str, SnapshotSource] = {
    "mock": MockSource(),
    "json_file": JsonFileSource(),
}


def get_source(name: str) -> SnapshotSource:
    source = _REGISTRY.get(name)
    if not source:
        raise ValueError(f"Unknown snapshot source: {name!r}. Available: {list(_REGISTRY)}")
    return source
