"""Issue diff between two audit runs."""
from deepdiff import DeepDiff

from netaudit.audit.issues import Issue


def _by_key(issues: list[Issue]) -> dict[str, dict]:
    return {i.key: i.model_dump(mode="json") for i in issues}


def diff_issues(previous: list[Issue], current: list[Issue]) -> dict:
    """Return {"new": [...keys], "resolved": [...keys], "changed": [...keys]}.

    "changed" holds keys present in both runs whose content differs
    (message, severity, metadata ...).
    """
    before = _by_key(previous)
    after = _by_key(current)
    changed = [
        key for key in after
        if key in before and DeepDiff(before[key], after[key], ignore_order=True)
    ]
    return {
        "new": sorted(k for k in after if k not in before),
        "resolved": sorted(k for k in before if k not in after),
        "changed": sorted(changed),
    }
