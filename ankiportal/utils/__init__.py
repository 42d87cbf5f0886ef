"""Utils module."""

from .parsing import TextParser
from .paths import MediaPathGenerator
from .logger import setup_logger

__all__ = [
    'TextParser',
    'MediaPathGenerator',
    'setup_logger'
]
