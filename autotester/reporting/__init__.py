from .reporter import Reporter
from .trends import analyze_trends, cleanup_old_logs, latest_average_score

__all__ = [
    'Reporter',
    'analyze_trends',
    'cleanup_old_logs',
    'latest_average_score',
]
