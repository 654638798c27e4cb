"""
Pydantic models for the transcription API
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from ..core.models import TranscriptionOutcome


class HealthStatus(BaseModel):
    """Health status model"""
    status: str = Field(description="Service health status")
    service: str = Field(description="Service name")
    timestamp: datetime = Field(description="Status check timestamp")
    version: str = Field(description="Service version")


class TranscriptionResponse(BaseModel):
    """Result of a transcription call"""
    id: str = Field(description="Transcription identifier")
    text: str = Field(description="Transcribed text")
    language: str = Field(description="Language code")
    confidence: float = Field(ge=0, le=1, description="Confidence score")
    duration: float = Field(description="Provider processing time in seconds")
    provider: str = Field(description="Provider that produced the text")
    tokens: int = Field(0, description="Tokens reported by the provider")
    word_count: int = Field(description="Number of words in the text")
    used_fallback: bool = Field(description="A provider other than the requested one was used")
    timestamp: datetime = Field(description="Completion timestamp")

    @classmethod
    def from_outcome(cls, outcome: TranscriptionOutcome) -> "TranscriptionResponse":
        return cls(
            id=str(outcome.id),
            text=outcome.text,
            language=outcome.language,
            confidence=outcome.confidence,
            duration=outcome.duration,
            provider=outcome.provider,
            tokens=outcome.tokens,
            word_count=outcome.word_count,
            used_fallback=outcome.used_fallback,
            timestamp=outcome.timestamp,
        )


class ProvidersResponse(BaseModel):
    """Registered and currently reachable providers"""
    available: List[str] = Field(description="Providers that answered the availability probe")
    registered: List[str] = Field(description="All registered providers")
    default_provider: str = Field(description="System default provider")
    fallback_chain: List[str] = Field(description="Configured fallback order")


class ProviderPreferenceRequest(BaseModel):
    provider: str = Field(description="Preferred provider name")


class ProviderPreferenceResponse(BaseModel):
    provider: Optional[str] = Field(None, description="Stored preferred provider")
    effective_provider: str = Field(description="Provider tried first when none is requested")


class ApiKeyRequest(BaseModel):
    provider: str = Field(description="Provider the key belongs to")
    api_key: str = Field(description="Provider API key")


class ApiKeyResponse(BaseModel):
    provider: str = Field(description="Provider name")
    stored: bool = Field(description="Whether a key is stored")


class ApiKeyListResponse(BaseModel):
    providers: List[str] = Field(description="Providers with a stored key")


class Error(BaseModel):
    """Error response model"""
    error: str = Field(description="Error message")
    code: Optional[str] = Field(None, description="Error code")
    timestamp: datetime = Field(description="Error timestamp")
