"""
Models package for the SSL pinning client.
"""

from .config import Config, ConfigValidationError, ConfigValidationResult
from .fetch import FetchedContent, FetchResult

__all__ = [
    'Config',
    'ConfigValidationError',
    'ConfigValidationResult',
    'FetchedContent',
    'FetchResult'
]
