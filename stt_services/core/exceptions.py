"""
Custom exceptions for the service system
"""

from enum import Enum
from typing import Optional


class ServiceError(Exception):
    """Base exception for all service errors"""

    pass


class ValidationError(ServiceError):
    """Exception for invalid input handed to a service"""

    pass


class ConfigurationError(ServiceError):
    """Exception for configuration errors"""

    pass


class StorageError(ServiceError):
    """Exception for credential, preference and usage store errors"""

    pass


class AuthenticationError(ServiceError):
    """Exception for authentication errors"""

    pass


class ProviderErrorKind(Enum):
    """Failure categories a transcription provider can report"""

    UNAVAILABLE = "unavailable"
    INVALID_CREDENTIAL = "invalid_credential"
    BAD_RESPONSE = "bad_response"
    EMPTY_RESULT = "empty_result"
    TIMEOUT = "timeout"
    UNSUPPORTED = "unsupported"


class ProviderError(ServiceError):
    """
    Failure of a single transcription provider.

    Always recoverable at the orchestration level: the fallback chain moves
    on to the next provider.
    """

    def __init__(self, kind: ProviderErrorKind, message: str, provider: Optional[str] = None):
        self.kind = kind
        self.provider = provider
        super().__init__(message)

    def __str__(self) -> str:
        prefix = f"{self.provider}: " if self.provider else ""
        return f"{prefix}[{self.kind.value}] {self.args[0]}"


class AllProvidersFailedError(ServiceError):
    """Every provider in the fallback chain failed or returned empty text"""

    def __init__(
        self,
        message: str,
        last_error: Optional[BaseException] = None,
        attempts: Optional[list] = None,
    ):
        self.last_error = last_error
        self.attempts = attempts or []
        super().__init__(message)


class StreamInterruptedError(AllProvidersFailedError):
    """A provider failed after it had started streaming chunks"""

    pass


class TranscriptionCancelledError(ServiceError):
    """The caller cancelled the transcription call"""

    pass
