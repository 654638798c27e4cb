"""
OpenAI Whisper implementation of TranscriptionProvider
"""

import time
from decimal import Decimal
from typing import Callable, Optional

import openai
from openai import AsyncOpenAI

from ...core.exceptions import ProviderError, ProviderErrorKind
from ...core.interfaces import TranscriptionProvider
from ...core.logging import get_logger
from ...core.models import DEFAULT_LANGUAGE, ProviderDescriptor, TranscriptionOutcome
from ...core.resilience import call_with_timeout
from .groq import WHISPER_LANGUAGES

logger = get_logger(__name__)


class OpenAIWhisperProvider(TranscriptionProvider):
    """
    OpenAI Whisper implementation of transcription provider

    Authenticates with the calling user's own API key, so every call gets a
    short-lived client bound to that key.
    """

    NAME = "OpenAIWhisper"
    DEFAULT_ENDPOINT = "https://api.openai.com/v1"

    # OpenAI limits
    MAX_AUDIO_BYTES = 25 * 1024 * 1024  # 25 MB
    COST_PER_MINUTE = Decimal("0.006")  # whisper-1
    DEFAULT_CONFIDENCE = 0.95  # OpenAI doesn't provide confidence
    SUPPORTED_LANGUAGES = WHISPER_LANGUAGES + ("id", "ms", "bn", "ta", "te", "mr", "ur", "fa")

    def __init__(
        self,
        endpoint: Optional[str] = None,
        model: str = "whisper-1",
        request_timeout: float = 60.0,
        probe_timeout: float = 5.0,
        client_factory: Optional[Callable[[str], AsyncOpenAI]] = None,
    ):
        """
        Initialize OpenAI transcription provider

        Args:
            endpoint: API base URL
            model: Whisper model name
            request_timeout: Seconds allowed for a transcription request
            probe_timeout: Seconds allowed for the availability probe
            client_factory: Builds a client for a given API key
        """
        self.endpoint = endpoint or self.DEFAULT_ENDPOINT
        self.model = model
        self.request_timeout = request_timeout
        self.probe_timeout = probe_timeout
        self._client_factory = client_factory or self._default_client

        logger.info("Initialized OpenAIWhisperProvider")

    def _default_client(self, api_key: str) -> AsyncOpenAI:
        return AsyncOpenAI(
            api_key=api_key,
            base_url=self.endpoint,
            timeout=self.request_timeout,
            max_retries=0,
        )

    def describe(self) -> ProviderDescriptor:
        return ProviderDescriptor(
            name=self.NAME,
            supported_languages=self.SUPPORTED_LANGUAGES,
            max_audio_bytes=self.MAX_AUDIO_BYTES,
            cost_per_minute=self.COST_PER_MINUTE,
            requires_credential=True,
        )

    async def is_available(self, credential: Optional[str] = None) -> bool:
        if not credential:
            logger.warning("OpenAI provider: No API key available")
            return False

        client = self._client_factory(credential)
        try:
            await call_with_timeout(
                client.models.list(), self.probe_timeout, self.NAME, "availability probe"
            )
            return True
        except Exception as e:
            logger.warning(f"OpenAI provider availability check failed: {e}")
            return False
        finally:
            await client.close()

    async def transcribe(
        self,
        audio: bytes,
        credential: Optional[str] = None,
        language: str = DEFAULT_LANGUAGE,
    ) -> TranscriptionOutcome:
        if not credential:
            raise ProviderError(
                ProviderErrorKind.INVALID_CREDENTIAL,
                "OpenAI API key is required",
                provider=self.NAME,
            )

        start = time.monotonic()
        logger.info(f"Starting transcription with OpenAI Whisper, language: {language}")

        client = self._client_factory(credential)
        try:
            transcript = await call_with_timeout(
                client.audio.transcriptions.create(
                    file=("audio.mp3", audio),
                    model=self.model,
                    language=language,
                    response_format="json",
                    temperature=0.0,
                ),
                self.request_timeout,
                self.NAME,
            )
        except ProviderError:
            raise
        except openai.APITimeoutError as e:
            raise ProviderError(ProviderErrorKind.TIMEOUT, str(e), provider=self.NAME)
        except (openai.AuthenticationError, openai.PermissionDeniedError) as e:
            raise ProviderError(ProviderErrorKind.INVALID_CREDENTIAL, str(e), provider=self.NAME)
        except (openai.APIConnectionError, openai.RateLimitError) as e:
            raise ProviderError(ProviderErrorKind.UNAVAILABLE, str(e), provider=self.NAME)
        except openai.APIError as e:
            logger.error(f"OpenAI API error: {e}")
            raise ProviderError(ProviderErrorKind.BAD_RESPONSE, str(e), provider=self.NAME)
        finally:
            await client.close()

        text = getattr(transcript, "text", None) or ""
        if not text.strip():
            raise ProviderError(
                ProviderErrorKind.EMPTY_RESULT,
                "OpenAI returned empty transcription",
                provider=self.NAME,
            )

        elapsed = time.monotonic() - start
        usage = getattr(transcript, "usage", None)

        logger.info(
            f"OpenAI transcription completed in {elapsed * 1000:.0f}ms, length: {len(text)}"
        )

        return TranscriptionOutcome(
            text=text,
            language=getattr(transcript, "language", None) or language,
            confidence=self.DEFAULT_CONFIDENCE,
            duration=elapsed,
            provider=self.NAME,
            tokens=int(getattr(usage, "total_tokens", 0) or 0),
        )
