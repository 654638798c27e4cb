"""
Groq Whisper implementation of TranscriptionProvider
"""

import os
from typing import Any, Optional

import httpx

from ...core.exceptions import ConfigurationError
from ...core.logging import get_logger
from ...core.models import ProviderDescriptor
from .http import HTTPTranscriptionProvider

logger = get_logger(__name__)

WHISPER_LANGUAGES = (
    "en", "es", "fr", "de", "it", "pt", "nl", "ru", "ja", "ko", "zh", "ar",
    "hi", "tr", "pl", "sv", "fi", "da", "no", "uk", "cs", "el", "he", "th", "vi",
)


class GroqWhisperProvider(HTTPTranscriptionProvider):
    """
    Primary provider backed by Groq's hosted Whisper API

    The API key is configured server-side, so users need no credential.
    """

    NAME = "GroqWhisper"
    DEFAULT_ENDPOINT = "https://api.groq.com/openai/v1"
    DEFAULT_MODEL = "whisper-large-v3"
    MAX_AUDIO_BYTES = 25 * 1024 * 1024  # 25 MB
    DEFAULT_CONFIDENCE = 0.95  # Whisper reports no confidence

    def __init__(
        self,
        api_key: Optional[str] = None,
        endpoint: Optional[str] = None,
        model: str = DEFAULT_MODEL,
        request_timeout: float = 60.0,
        probe_timeout: float = 5.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize Groq transcription provider

        Args:
            api_key: Groq API key (will read GROQ_API_KEY if not provided)
            endpoint: OpenAI-compatible base URL
            model: Whisper model name
            request_timeout: Seconds allowed for a transcription request
            probe_timeout: Seconds allowed for the availability probe
            client: Pre-built HTTP client
        """
        self.api_key = api_key or os.environ.get("GROQ_API_KEY")
        if not self.api_key:
            raise ConfigurationError("Groq API key not configured. Set GROQ_API_KEY")

        self.model = model
        super().__init__(
            endpoint=endpoint or self.DEFAULT_ENDPOINT,
            request_timeout=request_timeout,
            probe_timeout=probe_timeout,
            client=client,
        )

        logger.info(f"Initialized GroqWhisperProvider with model {self.model}")

    def describe(self) -> ProviderDescriptor:
        return ProviderDescriptor(
            name=self.NAME,
            supported_languages=WHISPER_LANGUAGES,
            max_audio_bytes=self.MAX_AUDIO_BYTES,
            cost_per_minute=None,
            requires_credential=False,
        )

    @property
    def probe_path(self) -> str:
        return "/models"

    @property
    def transcribe_path(self) -> str:
        return "/audio/transcriptions"

    def _default_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.api_key}"}

    def _request_headers(self, credential: Optional[str]) -> dict[str, str]:
        # Injected clients may not carry the default headers
        return self._default_headers()

    def _form_fields(self, language: str) -> dict[str, str]:
        return {
            "model": self.model,
            "response_format": "json",
            "language": language,
            "temperature": "0",
        }

    def _tokens(self, payload: dict[str, Any]) -> int:
        tokens = payload.get("tokens")
        if tokens is None:
            tokens = (payload.get("usage") or {}).get("total_tokens")
        return int(tokens or 0)
