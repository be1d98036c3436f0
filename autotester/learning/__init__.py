from .knowledge import KnowledgeStaging
from .store import LearningStore

__all__ = [
    'KnowledgeStaging',
    'LearningStore',
]
