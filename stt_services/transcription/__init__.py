"""
Transcription orchestration with pluggable providers
"""

from .credentials import CredentialResolver
from .registry import ProviderRegistry, build_fallback_chain
from .service import DEFAULT_FALLBACK_ORDER, DEFAULT_PROVIDER, TranscriptionService
from .streaming import ReplayableAudioStream
from .usage import UsageRecorder

__all__ = [
    "TranscriptionService",
    "ProviderRegistry",
    "build_fallback_chain",
    "CredentialResolver",
    "UsageRecorder",
    "ReplayableAudioStream",
    "DEFAULT_PROVIDER",
    "DEFAULT_FALLBACK_ORDER",
]
