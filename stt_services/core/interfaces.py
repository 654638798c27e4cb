"""
Abstract interfaces for all service providers and collaborators
"""

from abc import ABC, abstractmethod
from typing import AsyncIterable, AsyncIterator, List, Optional

from .models import (
    DEFAULT_LANGUAGE,
    ProviderDescriptor,
    TranscriptionChunk,
    TranscriptionOutcome,
    UsageRecord,
)


class TranscriptionProvider(ABC):
    """Abstract interface for speech-to-text providers"""

    @abstractmethod
    def describe(self) -> ProviderDescriptor:
        """
        Static description of the provider

        Returns:
            ProviderDescriptor; must not perform I/O
        """
        pass

    @property
    def name(self) -> str:
        """Unique provider name"""
        return self.describe().name

    @property
    def requires_credential(self) -> bool:
        """Whether a per-user credential is needed"""
        return self.describe().requires_credential

    @abstractmethod
    async def is_available(self, credential: Optional[str] = None) -> bool:
        """
        Lightweight reachability probe with a short timeout

        Args:
            credential: Optional per-user secret

        Returns:
            True if the backend answered; False on any network or auth error
        """
        pass

    @abstractmethod
    async def transcribe(
        self,
        audio: bytes,
        credential: Optional[str] = None,
        language: str = DEFAULT_LANGUAGE,
    ) -> TranscriptionOutcome:
        """
        Transcribe an audio payload

        Args:
            audio: Opaque audio bytes
            credential: Optional per-user secret
            language: Requested language code

        Returns:
            TranscriptionOutcome produced by this provider

        Raises:
            ProviderError: On any backend failure
        """
        pass

    async def transcribe_streaming(
        self,
        audio_stream: AsyncIterable[bytes],
        credential: Optional[str] = None,
        language: str = DEFAULT_LANGUAGE,
    ) -> AsyncIterator[TranscriptionChunk]:
        """
        Streaming transcription

        Backends without native streaming buffer the whole stream, run a
        single transcribe call and emit one final chunk.
        """
        buffer = bytearray()
        async for piece in audio_stream:
            buffer.extend(piece)

        outcome = await self.transcribe(bytes(buffer), credential, language)

        yield TranscriptionChunk(
            index=0,
            text=outcome.text,
            is_final=True,
            confidence=outcome.confidence,
        )

    async def close(self) -> None:
        """Release network clients held by the provider"""
        pass


class CredentialStore(ABC):
    """Storage for encrypted per-user provider secrets"""

    @abstractmethod
    async def get(self, user_id: str, provider: str) -> Optional[str]:
        """Return the encrypted secret or None"""
        pass

    @abstractmethod
    async def put(self, user_id: str, provider: str, encrypted_secret: str) -> None:
        """Insert or replace the encrypted secret"""
        pass

    @abstractmethod
    async def delete(self, user_id: str, provider: str) -> bool:
        """Remove a secret; True if one existed"""
        pass

    @abstractmethod
    async def list_providers(self, user_id: str) -> List[str]:
        """Providers the user has stored secrets for"""
        pass


class PreferenceStore(ABC):
    """Storage for user provider preferences"""

    @abstractmethod
    async def get_preferred_provider(self, user_id: str) -> Optional[str]:
        pass

    @abstractmethod
    async def set_preferred_provider(self, user_id: str, provider: str) -> None:
        pass


class UsageLogStore(ABC):
    """Append-only usage log"""

    @abstractmethod
    async def append(self, record: UsageRecord) -> None:
        pass

    @abstractmethod
    async def list_for_user(self, user_id: str) -> List[UsageRecord]:
        pass


class SecretCipher(ABC):
    """Symmetric encryption for stored secrets"""

    @abstractmethod
    def encrypt(self, plain_text: str) -> str:
        pass

    @abstractmethod
    def decrypt(self, cipher_text: str) -> str:
        pass
