"""
Core interfaces and models for the transcription service system
"""

from .exceptions import (
    AllProvidersFailedError,
    AuthenticationError,
    ConfigurationError,
    ProviderError,
    ProviderErrorKind,
    ServiceError,
    StorageError,
    StreamInterruptedError,
    TranscriptionCancelledError,
    ValidationError,
)
from .interfaces import (
    CredentialStore,
    PreferenceStore,
    SecretCipher,
    TranscriptionProvider,
    UsageLogStore,
)
from .logging import configure_logging, get_logger
from .models import (
    AttemptStatus,
    CredentialStatus,
    ProviderAttempt,
    ProviderDescriptor,
    ResolvedCredential,
    TranscriptionChunk,
    TranscriptionOutcome,
    TranscriptionRequest,
    UsageRecord,
    UsageStatus,
)

__all__ = [
    # Interfaces
    "TranscriptionProvider",
    "CredentialStore",
    "PreferenceStore",
    "UsageLogStore",
    "SecretCipher",
    # Models
    "TranscriptionRequest",
    "ProviderDescriptor",
    "TranscriptionOutcome",
    "TranscriptionChunk",
    "UsageRecord",
    "UsageStatus",
    "CredentialStatus",
    "ResolvedCredential",
    "AttemptStatus",
    "ProviderAttempt",
    # Exceptions
    "ServiceError",
    "ValidationError",
    "ConfigurationError",
    "StorageError",
    "AuthenticationError",
    "ProviderError",
    "ProviderErrorKind",
    "AllProvidersFailedError",
    "StreamInterruptedError",
    "TranscriptionCancelledError",
    # Logging
    "configure_logging",
    "get_logger",
]
