from .catalog import INDUSTRIES, TEMPLATES
from .command_generator import CommandGenerator

__all__ = [
    'CommandGenerator',
    'INDUSTRIES',
    'TEMPLATES',
]
