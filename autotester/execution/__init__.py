from .dispatch import DISPATCH_TABLE, SupportedCommand, UnsupportedCommand, resolve
from .engine import ExecutionEngine

__all__ = [
    'DISPATCH_TABLE',
    'ExecutionEngine',
    'SupportedCommand',
    'UnsupportedCommand',
    'resolve',
]
