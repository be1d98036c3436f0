"""Markdown rendering for session reports."""
from typing import List

from ..domain import SessionReport, WebsiteReport, utc_now

MAX_FAILURE_ROWS = 20


def verdict_banner(score: float) -> str:
    if score >= 9:
        return "🏆 **WORLD-CLASS** - Outstanding quality!"
    if score >= 8:
        return "⭐ **EXCELLENT** - Above expectations!"
    if score >= 7.5:
        return "✅ **GOOD** - Meets quality standards"
    if score >= 6:
        return "⚠️ **OK** - Needs improvement"
    if score >= 4:
        return "❌ **POOR** - Significant issues"
    return "🚫 **FAILED** - Major rework needed"


def _table(headers: List[str], rows: List[List[str]]) -> str:
    lines = [
        "| " + " | ".join(headers) + " |",
        "|" + "|".join("-" * (len(h) + 2) for h in headers) + "|",
    ]
    lines.extend("| " + " | ".join(row) + " |" for row in rows)
    return "\n".join(lines)


def _truncate(text: str, width: int) -> str:
    return text if len(text) <= width else f"{text[:width]}..."


def website_table(reports: List[WebsiteReport]) -> str:
    if not reports:
        return "*No websites generated*"
    rows = []
    for i, r in enumerate(reports, 1):
        score = f"{r.quality_score.overall_score:.1f}" if r.quality_score else "N/A"
        rows.append([str(i), r.business_name, r.industry_id, score, r.status,
                     f"{r.generation_time_ms / 1000:.1f}s"])
    return _table(["#", "Business", "Industry", "Score", "Status", "Time"], rows)


def failure_log(reports: List[WebsiteReport]) -> str:
    failures = [f for r in reports for f in r.failures]
    if not failures:
        return "*No failures recorded* ✅"
    rows = [
        [f.website_id, f.step, _truncate(f.error_message, 50), str(f.recovery_attempts)]
        for f in failures[:MAX_FAILURE_ROWS]
    ]
    text = _table(["Website", "Step", "Error", "Attempts"], rows)
    if len(failures) > MAX_FAILURE_ROWS:
        text += f"\n\n*...and {len(failures) - MAX_FAILURE_ROWS} more failures*"
    return text


def render_report(report: SessionReport, websites: List[WebsiteReport]) -> str:
    duration_min = (report.completed_at - report.started_at).total_seconds() / 60
    success_pct = (report.successful_websites / report.total_websites * 100
                   if report.total_websites else 0.0)
    failed_commands = round(report.total_commands * (1 - report.command_success_rate))
    sign = "+" if report.improvement_from_previous >= 0 else ""

    learnings = "\n".join(
        f"{i}. **{l.type}**: {l.insight}" for i, l in enumerate(report.top_learnings, 1)
    ) or "*No learnings yet*"
    recommendations = "\n".join(f"- {r}" for r in report.recommendations)

    sections = [
        "# Autonomous Testing Session Report",
        f"## Session: {report.session_id}",
        _table(["Metric", "Value"], [
            ["Started", report.started_at.isoformat()],
            ["Completed", report.completed_at.isoformat()],
            ["Duration", f"{duration_min:.1f} minutes"],
        ]),
        "---",
        "## Summary",
        _table(["Metric", "Value"], [
            ["Total Websites", str(report.total_websites)],
            ["Successful", str(report.successful_websites)],
            ["Failed", str(report.failed_websites)],
            ["Success Rate", f"{success_pct:.1f}%"],
        ]),
        "---",
        "## Quality Scores",
        _table(["Metric", "Score"], [
            ["Average", f"{report.average_score:.2f}/10"],
            ["Best", f"{report.best_score:.2f}/10"],
            ["Worst", f"{report.worst_score:.2f}/10"],
            ["Improvement", f"{sign}{report.improvement_from_previous * 100:.1f}%"],
        ]),
        "### Score Verdict:",
        verdict_banner(report.average_score),
        "---",
        "## Command Execution",
        _table(["Metric", "Value"], [
            ["Total Commands", str(report.total_commands)],
            ["Success Rate", f"{report.command_success_rate * 100:.1f}%"],
            ["Failed Commands", str(failed_commands)],
        ]),
        "---",
        "## Website Details",
        website_table(websites),
        "---",
        "## Top Learnings",
        learnings,
        "---",
        "## Recommendations",
        recommendations,
        "---",
        "## Failure Log",
        failure_log(websites),
        "---",
        f"*Report generated at {utc_now().isoformat()}*",
    ]
    return "\n\n".join(sections) + "\n"
