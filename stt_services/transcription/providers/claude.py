"""
Placeholder provider for a backend that cannot transcribe audio yet
"""

from typing import AsyncIterable, Optional

from ...core.exceptions import ProviderError, ProviderErrorKind
from ...core.interfaces import TranscriptionProvider
from ...core.logging import get_logger
from ...core.models import DEFAULT_LANGUAGE, ProviderDescriptor, TranscriptionOutcome

logger = get_logger(__name__)

UNSUPPORTED_MESSAGE = (
    "Claude Haiku does not currently support audio transcription. "
    "Use GroqWhisper, OpenAIWhisper, or WhisperCpp instead."
)


class ClaudeHaikuProvider(TranscriptionProvider):
    """
    Registered so the name resolves, but never reachable: every call fails
    with an UNSUPPORTED provider error before any network I/O.
    """

    NAME = "ClaudeHaiku"

    def describe(self) -> ProviderDescriptor:
        return ProviderDescriptor(
            name=self.NAME,
            supported_languages=(),
            max_audio_bytes=None,
            cost_per_minute=None,
            requires_credential=True,
            supports_audio=False,
        )

    async def is_available(self, credential: Optional[str] = None) -> bool:
        logger.info("Claude Haiku provider: Audio transcription not currently supported")
        return False

    async def transcribe(
        self,
        audio: bytes,
        credential: Optional[str] = None,
        language: str = DEFAULT_LANGUAGE,
    ) -> TranscriptionOutcome:
        logger.warning("Claude Haiku transcription attempted but audio is not supported")
        raise ProviderError(ProviderErrorKind.UNSUPPORTED, UNSUPPORTED_MESSAGE, provider=self.NAME)

    def transcribe_streaming(
        self,
        audio_stream: AsyncIterable[bytes],
        credential: Optional[str] = None,
        language: str = DEFAULT_LANGUAGE,
    ):
        logger.warning("Claude Haiku streaming attempted but audio is not supported")
        raise ProviderError(ProviderErrorKind.UNSUPPORTED, UNSUPPORTED_MESSAGE, provider=self.NAME)
