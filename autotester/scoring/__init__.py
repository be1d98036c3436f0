from .quality_scorer import FlatHeuristic, PerturbationHeuristic, QualityScorer, get_verdict

__all__ = [
    'FlatHeuristic',
    'PerturbationHeuristic',
    'QualityScorer',
    'get_verdict',
]
