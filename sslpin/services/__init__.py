"""
Services package for the SSL pinning client.
"""

from .config_service import ConfigService
from .pinned_session_service import PinnedSessionService

__all__ = [
    'ConfigService',
    'PinnedSessionService'
]
