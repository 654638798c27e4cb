"""
Local whisper.cpp server implementation of TranscriptionProvider
"""

from typing import Any, Optional

import httpx

from ...core.logging import get_logger
from ...core.models import ProviderDescriptor
from .groq import WHISPER_LANGUAGES
from .http import HTTPTranscriptionProvider

logger = get_logger(__name__)


class WhisperCppProvider(HTTPTranscriptionProvider):
    """
    Offline fallback that talks to a local whisper.cpp HTTP server
    """

    NAME = "WhisperCpp"
    DEFAULT_ENDPOINT = "http://localhost:8080"
    MAX_AUDIO_BYTES = 500 * 1024 * 1024  # local processing handles larger files
    DEFAULT_CONFIDENCE = 0.85
    SUPPORTED_LANGUAGES = WHISPER_LANGUAGES + (
        "id", "ms", "bn", "ta", "te", "mr", "ur", "fa", "sw",
    )

    def __init__(
        self,
        endpoint: Optional[str] = None,
        model: str = "base",
        request_timeout: float = 300.0,
        probe_timeout: float = 2.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.model = model
        super().__init__(
            endpoint=endpoint or self.DEFAULT_ENDPOINT,
            request_timeout=request_timeout,
            probe_timeout=probe_timeout,
            client=client,
        )

        logger.info(f"Initialized WhisperCppProvider at {self.endpoint}")

    def describe(self) -> ProviderDescriptor:
        return ProviderDescriptor(
            name=self.NAME,
            supported_languages=self.SUPPORTED_LANGUAGES,
            max_audio_bytes=self.MAX_AUDIO_BYTES,
            cost_per_minute=None,
            requires_credential=False,
        )

    @property
    def probe_path(self) -> str:
        return "/health"

    @property
    def transcribe_path(self) -> str:
        return "/inference"

    def _form_fields(self, language: str) -> dict[str, str]:
        return {
            "language": language,
            "temperature": "0.0",
            "response_format": "json",
            "model": self.model,
        }

    def _confidence(self, payload: dict[str, Any]) -> float:
        confidence = payload.get("confidence")
        if confidence is None:
            return self.DEFAULT_CONFIDENCE
        return min(max(float(confidence), 0.0), 1.0)
