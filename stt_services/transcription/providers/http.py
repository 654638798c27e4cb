"""
Shared plumbing for providers that speak plain HTTP with multipart uploads
"""

import json
import time
from abc import abstractmethod
from typing import Any, Optional

import httpx

from ...core.exceptions import ProviderError, ProviderErrorKind
from ...core.interfaces import TranscriptionProvider
from ...core.logging import get_logger
from ...core.models import DEFAULT_LANGUAGE, TranscriptionOutcome

logger = get_logger(__name__)


class HTTPTranscriptionProvider(TranscriptionProvider):
    """
    Base class for Whisper-style HTTP backends

    Subclasses describe themselves and build the multipart form; this class
    owns the client, the probe, and the mapping of transport and HTTP
    failures onto ProviderError kinds.
    """

    AUDIO_FILENAME = "audio.mp3"
    DEFAULT_CONFIDENCE = 0.95

    def __init__(
        self,
        endpoint: str,
        request_timeout: float = 60.0,
        probe_timeout: float = 5.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.endpoint = endpoint.rstrip("/")
        self.request_timeout = request_timeout
        self.probe_timeout = probe_timeout
        self._client = client

    @property
    def client(self) -> httpx.AsyncClient:
        """Lazy initialization of the HTTP client"""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.endpoint,
                headers=self._default_headers(),
                timeout=self.request_timeout,
            )
        return self._client

    def _default_headers(self) -> dict[str, str]:
        return {}

    @property
    @abstractmethod
    def probe_path(self) -> str:
        """Path of the lightweight metadata endpoint used for probing"""

    @property
    @abstractmethod
    def transcribe_path(self) -> str:
        """Path of the transcription endpoint"""

    @abstractmethod
    def _form_fields(self, language: str) -> dict[str, str]:
        """Non-file multipart fields for a transcription request"""

    def _request_headers(self, credential: Optional[str]) -> dict[str, str]:
        return {}

    async def is_available(self, credential: Optional[str] = None) -> bool:
        try:
            response = await self.client.get(
                self.probe_path,
                headers=self._request_headers(credential),
                timeout=self.probe_timeout,
            )
            return response.is_success
        except Exception as e:
            logger.warning(f"{self.name} availability check failed at {self.endpoint}: {e}")
            return False

    async def transcribe(
        self,
        audio: bytes,
        credential: Optional[str] = None,
        language: str = DEFAULT_LANGUAGE,
    ) -> TranscriptionOutcome:
        start = time.monotonic()
        logger.info(f"Starting transcription with {self.name}, language: {language}")

        payload, raw = await self._post_audio(audio, credential, language)

        text = payload.get("text") or ""
        if not text.strip():
            raise ProviderError(
                ProviderErrorKind.EMPTY_RESULT,
                "backend returned empty transcription",
                provider=self.name,
            )

        elapsed = time.monotonic() - start
        outcome = TranscriptionOutcome(
            text=text,
            language=payload.get("language") or language,
            confidence=self._confidence(payload),
            duration=elapsed,
            provider=self.name,
            tokens=self._tokens(payload),
            raw_response=raw,
        )

        logger.info(
            f"{self.name} transcription completed in {elapsed * 1000:.0f}ms, "
            f"length: {len(outcome.text)}"
        )
        return outcome

    def _confidence(self, payload: dict[str, Any]) -> float:
        return self.DEFAULT_CONFIDENCE

    def _tokens(self, payload: dict[str, Any]) -> int:
        return 0

    async def _post_audio(
        self, audio: bytes, credential: Optional[str], language: str
    ) -> tuple[dict[str, Any], str]:
        """POST the audio and return the decoded JSON body plus the raw text"""
        files = {"file": (self.AUDIO_FILENAME, audio, "application/octet-stream")}

        try:
            response = await self.client.post(
                self.transcribe_path,
                files=files,
                data=self._form_fields(language),
                headers=self._request_headers(credential),
                timeout=self.request_timeout,
            )
        except httpx.TimeoutException as e:
            raise ProviderError(
                ProviderErrorKind.TIMEOUT,
                f"request timed out after {self.request_timeout}s: {e}",
                provider=self.name,
            )
        except httpx.TransportError as e:
            raise ProviderError(
                ProviderErrorKind.UNAVAILABLE,
                f"backend unreachable at {self.endpoint}: {e}",
                provider=self.name,
            )

        if response.status_code in (401, 403):
            raise ProviderError(
                ProviderErrorKind.INVALID_CREDENTIAL,
                f"backend rejected credentials ({response.status_code})",
                provider=self.name,
            )

        if not response.is_success:
            logger.error(f"{self.name} API error: {response.status_code} - {response.text}")
            raise ProviderError(
                ProviderErrorKind.BAD_RESPONSE,
                f"backend returned HTTP {response.status_code}",
                provider=self.name,
            )

        raw = response.text
        try:
            payload = json.loads(raw)
        except ValueError as e:
            raise ProviderError(
                ProviderErrorKind.BAD_RESPONSE,
                f"invalid JSON response: {e}",
                provider=self.name,
            )

        if not isinstance(payload, dict):
            raise ProviderError(
                ProviderErrorKind.BAD_RESPONSE,
                "unexpected response shape",
                provider=self.name,
            )

        return payload, raw

    async def close(self) -> None:
        """Close the HTTP client connection"""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
