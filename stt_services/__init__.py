"""
Speech-to-text service with multi-provider fallback
"""

__version__ = "0.1.0"

from .config import ProviderConfig, ServiceFactory, Settings
from .transcription import TranscriptionService

__all__ = [
    "ServiceFactory",
    "Settings",
    "ProviderConfig",
    "TranscriptionService",
]
