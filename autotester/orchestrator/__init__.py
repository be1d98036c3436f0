from .checkpoint import load_checkpoint, save_checkpoint
from .session import SessionOrchestrator

__all__ = [
    'SessionOrchestrator',
    'load_checkpoint',
    'save_checkpoint',
]
