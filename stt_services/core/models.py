"""
Data models for the transcription service system
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from .exceptions import ProviderError, ValidationError

DEFAULT_LANGUAGE = "en"


def utcnow() -> datetime:
    """Timezone-aware current UTC time"""
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class TranscriptionRequest:
    """A single request to transcribe opaque audio bytes for a user"""

    audio: bytes = field(repr=False)
    user_id: str
    language: str = DEFAULT_LANGUAGE
    provider: Optional[str] = None

    def __post_init__(self):
        if not self.audio:
            raise ValidationError("No audio data provided")
        if not self.language or not self.language.strip():
            raise ValidationError("Language code is required")
        if not str(self.user_id).strip():
            raise ValidationError("User identity is required")

    @property
    def size_bytes(self) -> int:
        """Size of the audio payload"""
        return len(self.audio)


@dataclass(frozen=True)
class ProviderDescriptor:
    """Static description of a transcription provider"""

    name: str
    supported_languages: tuple[str, ...] = ()
    max_audio_bytes: Optional[int] = None
    cost_per_minute: Optional[Decimal] = None
    requires_credential: bool = False
    supports_audio: bool = True

    def accepts_size(self, size_bytes: int) -> bool:
        """Check a payload size against the provider limit"""
        return self.max_audio_bytes is None or size_bytes <= self.max_audio_bytes

    def supports_language(self, language: str) -> bool:
        """Check whether a language code is listed as supported"""
        return language in self.supported_languages


@dataclass(frozen=True)
class TranscriptionOutcome:
    """Result of a successful transcription"""

    text: str
    language: str
    confidence: float
    duration: float
    provider: str
    tokens: int = 0
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    timestamp: datetime = field(default_factory=utcnow)
    used_fallback: bool = False
    raw_response: Optional[str] = field(default=None, repr=False)

    def __post_init__(self):
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"Confidence must be within [0, 1], got {self.confidence}")

    @property
    def word_count(self) -> int:
        """Get word count of transcription"""
        return len(self.text.split())

    @property
    def is_empty(self) -> bool:
        """True when no text was produced"""
        return not self.text or not self.text.strip()

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization"""
        return {
            "id": str(self.id),
            "text": self.text,
            "language": self.language,
            "confidence": self.confidence,
            "duration": self.duration,
            "provider": self.provider,
            "tokens": self.tokens,
            "timestamp": self.timestamp.isoformat(),
            "used_fallback": self.used_fallback,
        }


@dataclass(frozen=True)
class TranscriptionChunk:
    """A piece of a streamed transcription"""

    index: int
    text: str
    is_final: bool = False
    confidence: float = 0.0
    timestamp: datetime = field(default_factory=utcnow)


class UsageStatus(Enum):
    """Terminal status of an accounted transcription"""

    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class UsageRecord:
    """Append-only accounting entry for one transcription call"""

    user_id: str
    provider: Optional[str]
    language: str
    duration: float
    text_length: int
    confidence: float
    status: UsageStatus
    cost: Optional[Decimal] = None
    tokens: int = 0
    transaction_type: str = "transcription"
    error_message: Optional[str] = None
    timestamp: datetime = field(default_factory=utcnow)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization"""
        return {
            "user_id": self.user_id,
            "provider": self.provider,
            "language": self.language,
            "duration": self.duration,
            "text_length": self.text_length,
            "confidence": self.confidence,
            "status": self.status.value,
            "cost": str(self.cost) if self.cost is not None else None,
            "tokens": self.tokens,
            "transaction_type": self.transaction_type,
            "error_message": self.error_message,
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "UsageRecord":
        """Rebuild a record from its serialized form"""
        return cls(
            user_id=data["user_id"],
            provider=data.get("provider"),
            language=data.get("language", DEFAULT_LANGUAGE),
            duration=float(data.get("duration", 0.0)),
            text_length=int(data.get("text_length", 0)),
            confidence=float(data.get("confidence", 0.0)),
            status=UsageStatus(data.get("status", UsageStatus.COMPLETED.value)),
            cost=Decimal(data["cost"]) if data.get("cost") is not None else None,
            tokens=int(data.get("tokens", 0)),
            transaction_type=data.get("transaction_type", "transcription"),
            error_message=data.get("error_message"),
            timestamp=datetime.fromisoformat(data["timestamp"]),
        )


class CredentialStatus(Enum):
    """Outcome of a credential lookup"""

    NOT_REQUIRED = "not_required"
    FOUND = "found"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class ResolvedCredential:
    """Credential lookup result; the secret never shows up in repr"""

    status: CredentialStatus
    secret: Optional[str] = field(default=None, repr=False)

    @property
    def usable(self) -> bool:
        """Whether the provider can be attempted with this credential"""
        return self.status != CredentialStatus.NOT_FOUND


class AttemptStatus(Enum):
    """How a single provider attempt in the fallback chain ended"""

    SUCCEEDED = "succeeded"
    SKIPPED_NO_CREDENTIAL = "skipped_no_credential"
    SKIPPED_TOO_LARGE = "skipped_too_large"
    SKIPPED_UNAVAILABLE = "skipped_unavailable"
    FAILED = "failed"
    EMPTY = "empty"


@dataclass
class ProviderAttempt:
    """Per-provider result collected by the orchestrator"""

    provider: str
    status: AttemptStatus
    outcome: Optional[TranscriptionOutcome] = None
    error: Optional[Exception] = None
    elapsed_seconds: float = 0.0

    @property
    def succeeded(self) -> bool:
        return self.status == AttemptStatus.SUCCEEDED

    @property
    def provider_error(self) -> Optional[ProviderError]:
        return self.error if isinstance(self.error, ProviderError) else None
