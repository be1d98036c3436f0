"""
QualityScorer - six-category website score.

The base score comes from the command success rate (5 + 4 * rate); a
pluggable heuristic perturbs each category before clamping to [0, 10].
"""
import logging
import random
from typing import Dict, List, Optional

from ..config import Limits
from ..domain import QUALITY_CATEGORIES, ExecutionResult, QualityIssue, QualityScore
from ..interfaces import IScoringHeuristic

logger = logging.getLogger("autotester.scorer")

VERDICT_BANDS = [
    (4.0, "Poor"),
    (6.0, "OK"),
    (8.0, "Good"),
    (9.0, "Excellent"),
]
TOP_VERDICT = "World-Class"


class PerturbationHeuristic(IScoringHeuristic):
    """Uniform noise in [-spread, +spread] from a seedable RNG."""

    def __init__(self, rng: Optional[random.Random] = None, spread: float = 0.75):
        self.rng = rng or random.Random()
        self.spread = spread

    def adjust(self, category: str, base: float) -> float:
        return (self.rng.random() - 0.5) * 2 * self.spread


class FlatHeuristic(IScoringHeuristic):
    """No adjustment; every category equals the base score."""

    def adjust(self, category: str, base: float) -> float:
        return 0.0


def get_verdict(score: float) -> str:
    for upper, verdict in VERDICT_BANDS:
        if score < upper:
            return verdict
    return TOP_VERDICT


def severity_for(score: float) -> str:
    if score < 4:
        return "critical"
    if score < 5:
        return "high"
    return "medium"


def clamp(value: float, low: float = 0.0, high: float = 10.0) -> float:
    return min(high, max(low, value))


class QualityScorer:
    """Scores a website attempt from its execution result."""

    def __init__(self, heuristic: Optional[IScoringHeuristic] = None,
                 quality_threshold: float = Limits.QUALITY_THRESHOLD,
                 issue_threshold: float = Limits.ISSUE_THRESHOLD):
        self.heuristic = heuristic or PerturbationHeuristic()
        self.quality_threshold = quality_threshold
        self.issue_threshold = issue_threshold

    def evaluate(self, website_id: str, result: ExecutionResult,
                 industry_id: str = "", template_id: str = "",
                 business_name: str = "") -> QualityScore:
        base = 5 + 4 * result.success_rate
        categories: Dict[str, float] = {
            category: clamp(base + self.heuristic.adjust(category, base))
            for category in QUALITY_CATEGORIES
        }
        overall = sum(categories.values()) / len(categories)
        issues = self._find_issues(categories)

        score = QualityScore(
            website_id=website_id,
            industry_id=industry_id,
            template_id=template_id,
            business_name=business_name,
            categories=categories,
            overall_score=overall,
            verdict=get_verdict(overall),
            meets_threshold=overall >= self.quality_threshold,
            issues=issues,
        )
        logger.debug(f"Scored {website_id}: {overall:.2f} ({score.verdict}), {len(issues)} issues")
        return score

    def _find_issues(self, categories: Dict[str, float]) -> List[QualityIssue]:
        issues = []
        for category, value in categories.items():
            if value < self.issue_threshold:
                issues.append(QualityIssue(
                    category=category,
                    severity=severity_for(value),
                    message=f"{category} score below threshold ({value:.1f})",
                    suggestion=f"Improve {category} by reviewing templates and content",
                ))
        return issues
