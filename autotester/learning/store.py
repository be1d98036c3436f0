"""
LearningStore - the reflect/store/apply half of the Reflexion loop.

Turns scored attempts into learnings, stages them for knowledge export,
applies effective learnings to future command lists and reflects on
finished sessions.
"""
import json
import logging
import re
from collections import Counter, OrderedDict
from typing import Dict, List, Optional

from ..config import Limits, LearningConfig
from ..domain import (
    Command,
    FailureEntry,
    ImprovementSuggestion,
    Learning,
    LearningPattern,
    LearningType,
    QualityScore,
    ReflectionResult,
    SessionReport,
    utc_now,
)
from ..utils import new_id
from .knowledge import KnowledgeStaging

logger = logging.getLogger("autotester.learning")

EXPORT_VERSION = 1
LEARNING_TYPES = {t.value for t in LearningType}

# Checked in order; first keyword found in the context wins
CONTEXT_SUGGESTIONS = [
    ("form_fill", "Add validation before form submission"),
    ("timeout", "Increase wait times between steps"),
    ("click", "Verify element visibility before clicking"),
    ("navigation", "Add page load verification after navigation"),
]
DEFAULT_SUGGESTION = "Add more robust error handling"


def categorize_context(context: str) -> str:
    """Map a failure context onto an improvement area."""
    if "form" in context or "fill" in context:
        return "form_filling"
    if "template" in context:
        return "templates"
    if "industry" in context:
        return "industries"
    if "timeout" in context or "wait" in context:
        return "timing"
    return "commands"


def suggestion_for_context(context: str) -> str:
    for keyword, suggestion in CONTEXT_SUGGESTIONS:
        if keyword in context:
            return suggestion
    return DEFAULT_SUGGESTION


def trailing_action(context: str) -> str:
    """`command_execution_form_fill/click_button` -> `click_button`."""
    return context.rsplit("/", 1)[-1]


class LearningStore:
    """In-memory learnings for one session plus knowledge staging."""

    def __init__(self, session_id: str, config: Optional[LearningConfig] = None,
                 staging: Optional[KnowledgeStaging] = None):
        self.session_id = session_id
        self.config = config or LearningConfig()
        self.staging = staging or KnowledgeStaging()
        self.learnings: List[Learning] = []

    # ------------------------------------------------------------------
    # Learn
    # ------------------------------------------------------------------

    def learn_from_result(self, website_id: str, score: QualityScore,
                          failures: List[FailureEntry], commands_executed: int) -> List[Learning]:
        """
        Derive learnings from one scored attempt.

        Returns:
            The new learnings (already added to the store and staged)
        """
        new_learnings: List[Learning] = []
        new_learnings.extend(self._analyze_quality(website_id, score))
        new_learnings.extend(self._analyze_failures(website_id, failures))
        if score.overall_score >= self.config.quality_threshold:
            new_learnings.append(self._capture_success(website_id, score, commands_executed))

        self._stage_learnings(new_learnings)
        self.learnings.extend(new_learnings)
        logger.debug(f"{len(new_learnings)} learnings from {website_id}")
        return new_learnings

    def _analyze_quality(self, website_id: str, score: QualityScore) -> List[Learning]:
        learnings = []
        for category, value in score.categories.items():
            if value >= self.config.quality_threshold:
                continue
            messages = "; ".join(i.message for i in score.issues if i.category == category)
            learnings.append(Learning(
                id=new_id("learning"),
                type=LearningType.IMPROVEMENT.value,
                context=f"quality_{category}",
                insight=(f"{category} scored {value:.1f}/10 for {score.industry_id} industry "
                         f"with {score.template_id} template. Issues: {messages}"),
                related_website_ids=[website_id],
            ))
            self.staging.queue_entity(
                f"QualityIssue_{category}_{website_id}",
                "quality_issue",
                [
                    f"Category: {category}",
                    f"Score: {value:.1f}",
                    f"Industry: {score.industry_id}",
                    f"Template: {score.template_id}",
                    f"Timestamp: {utc_now().isoformat()}",
                ],
            )
        return learnings

    def _analyze_failures(self, website_id: str, failures: List[FailureEntry]) -> List[Learning]:
        groups: "OrderedDict[str, List[FailureEntry]]" = OrderedDict()
        for failure in failures:
            groups.setdefault(f"{failure.error_type}_{failure.step}", []).append(failure)

        learnings = []
        for key, group in groups.items():
            first = group[0]
            learnings.append(Learning(
                id=new_id("learning"),
                type=LearningType.FAILURE_PATTERN.value,
                context=key,
                insight=(f"Failure at {first.step}: {first.error_message}. "
                         f"Occurred {len(group)} times. "
                         f"Context: {json.dumps(first.context.to_dict())}"),
                related_website_ids=[website_id],
            ))
            self.staging.queue_entity(
                f"Failure_{re.sub(r'[^a-zA-Z0-9]', '_', key)}",
                "failure_pattern",
                [
                    f"Step: {first.step}",
                    f"Error: {first.error_message}",
                    f"Occurrences: {len(group)}",
                    f"Timestamp: {utc_now().isoformat()}",
                ],
            )
        return learnings

    def _capture_success(self, website_id: str, score: QualityScore, commands_executed: int) -> Learning:
        pattern_name = f"SuccessPattern_{score.industry_id}_{score.template_id}"
        self.staging.queue_entity(
            pattern_name,
            "success_pattern",
            [
                f"Industry: {score.industry_id}",
                f"Template: {score.template_id}",
                f"Score: {score.overall_score:.1f}",
                f"Commands: {commands_executed}",
                f"Verdict: {score.verdict}",
                f"Timestamp: {utc_now().isoformat()}",
            ],
        )
        self.staging.queue_relation(f"Session_{self.session_id}", pattern_name, "discovered")
        return Learning(
            id=new_id("learning"),
            type=LearningType.SUCCESS_PATTERN.value,
            context=f"{score.industry_id}_{score.template_id}",
            insight=(f"High-quality website ({score.overall_score:.1f}/10) generated for "
                     f"{score.business_name} in {score.industry_id} industry using "
                     f"{score.template_id} template. {commands_executed} commands executed successfully."),
            effectiveness_score=min(1.0, score.overall_score / 10),
            related_website_ids=[website_id],
        )

    def _stage_learnings(self, learnings: List[Learning]):
        for learning in learnings:
            self.staging.queue_entity(
                learning.id,
                learning.type,
                [
                    f"Context: {learning.context}",
                    f"Insight: {learning.insight}",
                    f"Effectiveness: {learning.effectiveness_score}",
                    f"Created: {learning.created_at.isoformat()}",
                ],
            )
            self.staging.queue_relation(f"Session_{self.session_id}", learning.id, "generated")
            for website_id in learning.related_website_ids:
                self.staging.queue_relation(learning.id, f"Website_{website_id}", "relates_to")

    # ------------------------------------------------------------------
    # Query
    # ------------------------------------------------------------------

    def query_relevant_learnings(self, context: str) -> List[Learning]:
        needle = context.lower()
        return [l for l in self.learnings
                if context in l.context or needle in l.insight.lower()]

    def get_learnings_by_type(self, learning_type: str) -> List[Learning]:
        return [l for l in self.learnings if l.type == learning_type]

    def get_improvement_suggestions(self) -> List[ImprovementSuggestion]:
        suggestions = []
        contexts = Counter(l.context for l in self.get_learnings_by_type(LearningType.FAILURE_PATTERN.value))
        for context, count in contexts.items():
            if count >= 2:
                suggestions.append(ImprovementSuggestion(
                    area=categorize_context(context),
                    current=f"Frequent failures in {context}",
                    suggested=suggestion_for_context(context),
                    expected_impact=min(count * 0.1, 0.5),
                    confidence=min(count * 0.2, 0.8),
                ))

        for success in self.get_learnings_by_type(LearningType.SUCCESS_PATTERN.value):
            if success.effectiveness_score > 0.8:
                suggestions.append(ImprovementSuggestion(
                    area="templates",
                    current="Random template selection",
                    suggested=f"Prioritize templates similar to {success.context}",
                    expected_impact=0.3,
                    confidence=success.effectiveness_score,
                ))
        return suggestions

    def top_learnings(self, limit: int = Limits.TOP_LEARNINGS) -> List[Learning]:
        ranked = sorted(self.learnings,
                        key=lambda l: (l.effectiveness_score, l.applied_count),
                        reverse=True)
        return ranked[:limit]

    # ------------------------------------------------------------------
    # Apply
    # ------------------------------------------------------------------

    def apply_learnings_to_commands(self, commands: List[Command]) -> List[Command]:
        """
        Returns adjusted copies of *commands*; the inputs are not modified.

        Every applicable learning counts one application per call.
        """
        optimized = [Command.from_dict(c.to_dict()) for c in commands]
        applicable = [l for l in self.learnings
                      if l.effectiveness_score >= self.config.activation_threshold]

        for learning in applicable:
            if learning.type == LearningType.COMMAND_OPTIMIZATION.value:
                if "wait time" in learning.insight:
                    for cmd in optimized:
                        if cmd.action in ("submit_form", "click_button"):
                            cmd.timeout = (cmd.timeout or 5000) * 1.5
            elif learning.type == LearningType.FAILURE_PATTERN.value:
                action = trailing_action(learning.context)
                for cmd in optimized:
                    if cmd.action == action:
                        cmd.retries = min((cmd.retries or 1) + 1, self.config.max_retries_cap)
            learning.applied_count += 1

        if applicable:
            logger.info(f"Applied {len(applicable)} learnings to {len(optimized)} commands")
        return optimized

    def update_learning_effectiveness(self, learning_id: str, sample: float) -> bool:
        """Fold one effectiveness sample into the running average."""
        for learning in self.learnings:
            if learning.id == learning_id:
                sample = min(1.0, max(0.0, sample))
                n = learning.applied_count
                learning.effectiveness_score = (learning.effectiveness_score * n + sample) / (n + 1)
                learning.applied_count = n + 1
                return True
        logger.warning(f"Unknown learning id: {learning_id}")
        return False

    # ------------------------------------------------------------------
    # Reflect
    # ------------------------------------------------------------------

    def reflect_on_session(self, report: SessionReport) -> ReflectionResult:
        insights: List[str] = []
        patterns: List[LearningPattern] = []
        improvements: List[ImprovementSuggestion] = []

        if report.average_score >= 8:
            insights.append(f"Session achieved excellent quality ({report.average_score:.1f}/10). "
                            f"Maintain current strategies.")
        elif report.average_score < 6:
            insights.append(f"Session quality below target ({report.average_score:.1f}/10). "
                            f"Major improvements needed.")

        if report.improvement_from_previous > 0:
            insights.append(f"Improved by {report.improvement_from_previous * 100:.1f}% from previous "
                            f"session. Learning is effective.")
        elif report.improvement_from_previous < 0:
            insights.append(f"Decreased by {abs(report.improvement_from_previous) * 100:.1f}% from "
                            f"previous session. Review recent changes.")

        if report.command_success_rate < 0.9:
            rate = report.command_success_rate * 100
            insights.append(f"Command success rate is {rate:.1f}%. Consider reducing command complexity.")
            improvements.append(ImprovementSuggestion(
                area="commands",
                current=f"{report.total_commands} commands with {rate:.1f}% success",
                suggested="Reduce command count and increase verification steps",
                expected_impact=0.2,
                confidence=0.7,
            ))

        self.staging.queue_entity(
            f"Reflection_{report.session_id}",
            "session_reflection",
            [
                f"Average Score: {report.average_score:.1f}",
                f"Success Rate: {report.command_success_rate * 100:.1f}%",
                f"Improvement: {report.improvement_from_previous * 100:.1f}%",
                f"Insights: {' | '.join(insights)}",
                f"Timestamp: {utc_now().isoformat()}",
            ],
        )

        for learning in report.top_learnings:
            if learning.applied_count > 0:
                patterns.append(LearningPattern(
                    type="success" if learning.type == LearningType.SUCCESS_PATTERN.value else "failure",
                    context=learning.context,
                    frequency=learning.applied_count,
                    actions=[learning.insight.split(".")[0]],
                    outcome="positive" if learning.effectiveness_score > 0.7 else "needs_improvement",
                ))

        return ReflectionResult(insights=insights, patterns=patterns, improvements=improvements)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def export_learnings(self) -> str:
        return json.dumps({
            "version": EXPORT_VERSION,
            "session_id": self.session_id,
            "exported_at": utc_now().isoformat(),
            "learnings": [l.to_dict() for l in self.learnings],
        }, indent=2, ensure_ascii=False)

    def import_learnings(self, data: str) -> int:
        """
        Merge learnings from an exported document.

        Bad JSON, missing fields and unknown types are logged and skipped.
        Returns the number of learnings imported.
        """
        try:
            document = json.loads(data)
        except (TypeError, ValueError) as e:
            logger.error(f"Failed to import learnings: {e}")
            return 0
        if not isinstance(document, dict) or not isinstance(document.get("learnings"), list):
            logger.warning("Learnings document has no learnings list")
            return 0

        known: Dict[str, Learning] = {l.id: l for l in self.learnings}
        imported = 0
        for raw in document["learnings"]:
            if not isinstance(raw, dict):
                continue
            if raw.get("type") not in LEARNING_TYPES:
                logger.warning(f"Skipping learning with unknown type: {raw.get('type')!r}")
                continue
            try:
                learning = Learning.from_dict(raw)
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed learning: {e}")
                continue
            if learning.id in known:
                continue
            known[learning.id] = learning
            self.learnings.append(learning)
            imported += 1
        logger.info(f"Imported {imported} learnings")
        return imported
