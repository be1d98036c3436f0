"""Cross-session analysis over persisted JSON reports."""
import glob
import json
import logging
import os
from typing import List, Optional, Tuple

from ..config import Limits
from ..domain import TrendAnalysis

logger = logging.getLogger("autotester.reporter")

TREND_THRESHOLD = 0.2


def _report_files(report_dir: str) -> List[str]:
    files = glob.glob(os.path.join(report_dir, "report_*.json"))
    return sorted(files, key=lambda p: (os.path.getmtime(p), p))


def load_scores(report_dir: str, limit: int = Limits.TREND_WINDOW) -> List[Tuple[str, float]]:
    """(session_id, average_score) for the last *limit* reports, oldest first."""
    if not os.path.isdir(report_dir):
        return []
    results = []
    for path in _report_files(report_dir)[-limit:]:
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
            results.append((data["session_id"], float(data["average_score"])))
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning(f"Skipping unreadable report {path}: {e}")
    return results


def latest_average_score(report_dir: str) -> Optional[float]:
    scores = load_scores(report_dir, limit=1)
    return scores[-1][1] if scores else None


def analyze_trends(report_dir: str, limit: int = Limits.TREND_WINDOW) -> TrendAnalysis:
    """Classify the recent average-score series and extrapolate one step."""
    series = load_scores(report_dir, limit)
    sessions = [s for s, _ in series]
    scores = [v for _, v in series]

    trend = "stable"
    average_improvement = 0.0
    if len(scores) >= 2:
        deltas = [b - a for a, b in zip(scores, scores[1:])]
        average_improvement = sum(deltas) / len(deltas)
        if average_improvement > TREND_THRESHOLD:
            trend = "improving"
        elif average_improvement < -TREND_THRESHOLD:
            trend = "declining"

    if trend == "improving":
        predictions = [
            f"Expected score next session: {scores[-1] + average_improvement:.1f}",
            "Continue current learning strategies",
        ]
    elif trend == "declining":
        predictions = [
            "Review recent changes that may have caused regression",
            "Consider reverting to previously successful patterns",
        ]
    else:
        predictions = ["Performance is stable - consider experimenting with new approaches"]

    return TrendAnalysis(
        sessions=sessions,
        scores=scores,
        trend=trend,
        average_improvement=average_improvement,
        predictions=predictions,
    )


def cleanup_old_logs(log_dir: str, max_files: int = Limits.MAX_LOG_FILES) -> int:
    """Delete the oldest files beyond *max_files*. Returns how many were removed."""
    if not os.path.isdir(log_dir):
        return 0
    paths = [os.path.join(log_dir, f) for f in os.listdir(log_dir)]
    paths = [p for p in paths if os.path.isfile(p)]
    paths.sort(key=os.path.getmtime, reverse=True)

    removed = 0
    for path in paths[max_files:]:
        try:
            os.remove(path)
            removed += 1
        except OSError as e:
            logger.warning(f"Could not remove {path}: {e}")
    if removed:
        logger.info(f"Removed {removed} old log files from {log_dir}")
    return removed
