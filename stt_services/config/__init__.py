"""
Configuration system for transcription provider selection
"""

from .factory import ServiceFactory
from .settings import ProviderConfig, Settings

__all__ = [
    "ServiceFactory",
    "ProviderConfig",
    "Settings",
]
