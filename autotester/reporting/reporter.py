"""
Reporter - per-attempt logging and the end-of-session report.

Attempts and execution entries are appended to `session_<id>.jsonl` as
they arrive; the session report is rendered as Markdown with a JSON
sidecar that trend analysis reads back.
"""
import logging
import os
from collections import Counter
from typing import List, Optional

from ..config import Limits
from ..domain import (
    ExecutionLogEntry,
    ExecutionStatus,
    FailureEntry,
    Learning,
    LearningType,
    QualityScore,
    Session,
    SessionReport,
    SessionSummary,
    WebsiteReport,
    WebsiteResult,
    utc_now,
)
from ..errors import PersistenceError
from ..utils import append_jsonl, save_json
from . import trends
from .markdown import render_report

logger = logging.getLogger("autotester.reporter")

# (upper bound, recommendations); the last band has no upper bound
SCORE_BAND_RECOMMENDATIONS = [
    (6.0, [
        "Consider reducing command complexity and adding more verification steps.",
        "Review template selection strategy - some templates may not work well with certain industries.",
    ]),
    (7.5, [
        "Focus on improving content quality and visual design consistency.",
        "Add more detailed form validation before submission.",
    ]),
    (8.5, [
        "Minor improvements needed in SEO and accessibility.",
        "Consider testing with more diverse industry combinations.",
    ]),
    (None, [
        "Excellent performance! Consider expanding to new industries.",
        "Document successful patterns for replication.",
    ]),
]


def verdict_band(score: float) -> str:
    if score >= 9:
        return "world_class"
    if score >= 8:
        return "excellent"
    if score >= 6:
        return "good"
    if score >= 4:
        return "ok"
    return "poor"


class Reporter:
    """Accumulates website reports for one session."""

    def __init__(self, session_id: str, log_dir: str, report_dir: str):
        self.session_id = session_id
        self.log_dir = log_dir
        self.report_dir = report_dir
        self.website_reports: List[WebsiteReport] = []
        self.execution_logs: List[ExecutionLogEntry] = []
        self.log_path = os.path.join(log_dir, f"session_{session_id}.jsonl")
        self.report_path = os.path.join(report_dir, f"report_{session_id}.md")
        self.json_report_path = os.path.join(report_dir, f"report_{session_id}.json")

    # ------------------------------------------------------------------
    # Logging
    # ------------------------------------------------------------------

    def log_attempt(self, result: WebsiteResult, score: Optional[QualityScore],
                    failures: List[FailureEntry]) -> WebsiteReport:
        if result.success:
            status = "success"
        else:
            status = "partial" if failures else "failed"
        report = WebsiteReport(
            website_id=result.website_id,
            business_name=result.business_name,
            industry_id=result.industry_id,
            template_id=result.template_id,
            quality_score=score,
            status=status,
            commands_executed=result.commands_executed,
            commands_failed=result.commands_failed,
            failures=list(failures),
            generation_time_ms=result.generation_time_ms,
        )
        self.website_reports.append(report)
        self._append(report.to_dict())
        return report

    def log_execution(self, entries: List[ExecutionLogEntry]):
        self.execution_logs.extend(entries)
        for entry in entries:
            self._append(entry.to_dict())

    def _append(self, record: dict):
        try:
            append_jsonl(self.log_path, record)
        except PersistenceError as e:
            logger.warning(f"Log write failed: {e}")

    # ------------------------------------------------------------------
    # Reports
    # ------------------------------------------------------------------

    def _scores(self) -> List[float]:
        return [r.quality_score.overall_score for r in self.website_reports if r.quality_score]

    def generate_session_report(self, session: Session, top_learnings: List[Learning],
                                improvement_from_previous: float = 0.0,
                                all_learnings: Optional[List[Learning]] = None) -> SessionReport:
        """
        Compute aggregate statistics and write the Markdown + JSON report.

        Write failures are logged; the report object is always returned.
        """
        scores = self._scores()
        average = sum(scores) / len(scores) if scores else 0.0
        total = len(self.website_reports)
        successful = sum(1 for r in self.website_reports if r.status == "success")
        total_commands = len(self.execution_logs)
        succeeded_commands = sum(1 for l in self.execution_logs
                                 if l.status == ExecutionStatus.SUCCESS.value)

        report = SessionReport(
            session_id=self.session_id,
            started_at=session.started_at,
            completed_at=session.completed_at or utc_now(),
            total_websites=total,
            successful_websites=successful,
            failed_websites=total - successful,
            average_score=average,
            best_score=max(scores) if scores else 0.0,
            worst_score=min(scores) if scores else 0.0,
            total_commands=total_commands,
            command_success_rate=succeeded_commands / total_commands if total_commands else 0.0,
            top_learnings=tuple(top_learnings[:Limits.TOP_LEARNINGS]),
            recommendations=tuple(self.generate_recommendations(
                average, all_learnings if all_learnings is not None else top_learnings)),
            improvement_from_previous=improvement_from_previous,
        )
        self._save_report(report)
        return report

    def generate_recommendations(self, average_score: float, learnings: List[Learning]) -> List[str]:
        recommendations: List[str] = []
        for upper, texts in SCORE_BAND_RECOMMENDATIONS:
            if upper is None or average_score < upper:
                recommendations.extend(texts)
                break

        failure_count = sum(len(r.failures) for r in self.website_reports)
        if failure_count > 10:
            recommendations.append(
                f"High failure rate detected ({failure_count} failures). Review error patterns."
            )

        failure_patterns = [l for l in learnings if l.type == LearningType.FAILURE_PATTERN.value]
        if len(failure_patterns) > 5:
            recommendations.append("Multiple failure patterns identified. Prioritize fixing recurring issues.")
        return recommendations

    def _save_report(self, report: SessionReport):
        try:
            os.makedirs(self.report_dir, exist_ok=True)
            with open(self.report_path, "w", encoding="utf-8") as f:
                f.write(render_report(report, self.website_reports))
            save_json(self.json_report_path, report.to_dict())
            logger.info(f"Report saved to {self.report_path}")
        except (OSError, PersistenceError) as e:
            logger.error(f"Failed to save report: {e}")

    def generate_session_summary(self, learnings_generated: int = 0,
                                 improvement_from_previous: float = 0.0) -> SessionSummary:
        scores = self._scores()
        distribution = {"poor": 0, "ok": 0, "good": 0, "excellent": 0, "world_class": 0}
        for score in scores:
            distribution[verdict_band(score)] += 1

        issue_counts = Counter(
            issue.message
            for r in self.website_reports if r.quality_score
            for issue in r.quality_score.issues
        )
        successful = sum(1 for r in self.website_reports if r.status == "success")
        return SessionSummary(
            session_id=self.session_id,
            total_websites=len(self.website_reports),
            successful_websites=successful,
            failed_websites=len(self.website_reports) - successful,
            average_score=sum(scores) / len(scores) if scores else 0.0,
            score_distribution=distribution,
            top_issues=issue_counts.most_common(5),
            learnings_generated=learnings_generated,
            improvement_from_previous=improvement_from_previous,
        )

    # ------------------------------------------------------------------
    # Cross-session helpers
    # ------------------------------------------------------------------

    @staticmethod
    def analyze_trends(report_dir: str, limit: int = Limits.TREND_WINDOW):
        return trends.analyze_trends(report_dir, limit)

    @staticmethod
    def latest_average_score(report_dir: str) -> Optional[float]:
        return trends.latest_average_score(report_dir)

    @staticmethod
    def cleanup_old_logs(log_dir: str, max_files: int = Limits.MAX_LOG_FILES) -> int:
        return trends.cleanup_old_logs(log_dir, max_files)
