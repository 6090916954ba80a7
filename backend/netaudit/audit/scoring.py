"""
Score aggregation.

score = max(0, 100 - sum of score_impact over the non-dismissed issues),
uncapped per rule.  Grades follow the A/B/C/D/F bands.
"""
from typing import Iterable

from netaudit.audit.issues import Issue, Severity


def grade_for(score: int) -> str:
    if score >= 90:
        return "A"
    if score >= 75:
        return "B"
    if score >= 50:
        return "C"
    if score >= 25:
        return "D"
    return "F"


def calculate_score(issues: Iterable[Issue]) -> tuple[int, str]:
    """
    Returns (score, grade).
    score: 0-100 (100 = no deductions)
    grade: A/B/C/D/F
    """
    deducted = sum(i.score_impact for i in issues)
    score = max(0, 100 - deducted)
    return score, grade_for(score)


def count_by_severity(issues: Iterable[Issue]) -> dict[str, int]:
    counts = {s.value: 0 for s in Severity}
    for issue in issues:
        counts[issue.severity.value] += 1
    return counts
